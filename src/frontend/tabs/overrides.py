"""Overrides tab: per-contact auto-reply overrides from the CRM snapshot."""

from __future__ import annotations

from typing import Any

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Static


class OverridesTab(Container):
    """Read-only; overrides are changed through PUT /api/contacts/{key}/auto-reply."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._table_ready = False

    def compose(self):
        with Vertical(id="overrides-panel"):
            yield Static("Per-contact auto-reply", id="overrides-title")
            yield DataTable(id="overrides-table", cursor_type="row")
            with Horizontal(id="overrides-actions"):
                yield Button("Refresh", id="overrides-refresh")
            yield Static("", id="overrides-output")

    def on_mount(self) -> None:
        table = self.query_one("#overrides-table", DataTable)
        table.add_column("contact", key="jid", width=34)
        table.add_column("name", key="name", width=24)
        table.add_column("auto_reply", key="auto_reply", width=12)
        table.zebra_stripes = True
        table.styles.height = "1fr"
        self._table_ready = True
        self.reload_from_store()

    @on(Button.Pressed, "#overrides-refresh")
    def _on_refresh(self) -> None:
        self.app.refresh_store_view()

    def reload_from_store(self) -> None:
        if not self._table_ready:
            return
        view = self.app.store_view
        table = self.query_one("#overrides-table", DataTable)
        table.clear()
        for entry in sorted(view.overrides, key=lambda item: str(item.get("jid"))):
            jid = str(entry.get("jid", ""))
            name = entry.get("name") or view.names.get(jid, "")
            table.add_row(jid, name, entry.get("auto_reply", ""), key=jid)
        self.query_one("#overrides-output", Static).update(
            f"{len(view.overrides)} overrides in {view.store_dir}"
        )
