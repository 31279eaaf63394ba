"""Identities tab: learned LID to phone mappings."""

from __future__ import annotations

from typing import Any

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Input, Static


class IdentitiesTab(Container):
    """Browse the identity map snapshot with a simple substring filter."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._table_ready = False
        self._filter = ""

    def compose(self):
        with Vertical(id="identities-panel"):
            yield Static("LID mappings", id="identities-title")
            yield Input(placeholder="filter by LID, phone or name", id="identities-filter")
            yield DataTable(id="identities-table", cursor_type="row")
            with Horizontal(id="identities-actions"):
                yield Button("Refresh", id="identities-refresh")
            yield Static("", id="identities-output")

    def on_mount(self) -> None:
        table = self.query_one("#identities-table", DataTable)
        table.add_column("lid", key="lid", width=30)
        table.add_column("phone", key="phone", width=30)
        table.add_column("name", key="name", width=24)
        table.zebra_stripes = True
        table.styles.height = "1fr"
        self._table_ready = True
        self.reload_from_store()

    @on(Input.Changed, "#identities-filter")
    def _on_filter_changed(self, event: Input.Changed) -> None:
        self._filter = event.value.strip().lower()
        self.reload_from_store()

    @on(Button.Pressed, "#identities-refresh")
    def _on_refresh(self) -> None:
        self.app.refresh_store_view()

    def reload_from_store(self) -> None:
        if not self._table_ready:
            return
        view = self.app.store_view
        table = self.query_one("#identities-table", DataTable)
        table.clear()
        shown = 0
        for lid, phone in sorted(view.lid_to_phone.items(), key=lambda item: item[1]):
            name = view.names.get(phone) or view.names.get(lid, "")
            if self._filter and self._filter not in f"{lid} {phone} {name}".lower():
                continue
            table.add_row(lid, phone, name, key=lid)
            shown += 1
        self.query_one("#identities-output", Static).update(
            f"showing {shown} of {len(view.lid_to_phone)} mappings"
        )
