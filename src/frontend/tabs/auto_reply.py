"""Auto-reply tab: global switches and the allowed group list."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Static, Switch

from ..modals import AddGroupKeyScreen, RemoveGroupKeyScreen


class AutoReplyTab(Container):
    """Edits config.auto_reply (enabled, private_only, group_keys)."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._loading_form = False
        self._current_row_key: Optional[str] = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="auto-reply-panel"):
            with Horizontal(id="auto-reply-body"):
                with Container(id="auto-reply-left"):
                    yield Static("Allowed groups", id="auto-reply-groups-title")
                    yield DataTable(id="groups-table", cursor_type="row")
                with Container(id="auto-reply-right"):
                    yield Static("Global policy", id="auto-reply-title")
                    yield Static("enabled", classes="form-label")
                    yield Switch(value=False, id="auto-reply-enabled")
                    yield Static("private_only", classes="form-label")
                    yield Switch(value=True, id="auto-reply-private-only")
                    yield Static(
                        "Per-contact overrides (on/off) win over 'enabled'. "
                        "Groups are only answered when private_only is off and the group is listed.",
                        classes="subtle",
                    )
            with Horizontal(id="auto-reply-actions"):
                yield Button("Add group", id="add-group", variant="success")
                yield Button("Remove group", id="remove-group", variant="error")

    def on_mount(self) -> None:
        table = self.query_one("#groups-table", DataTable)
        table.add_column("group key", key="group_key", width=40)
        table.zebra_stripes = True
        self._table_ready = True
        self.reload_from_config()

    def _get_section(self) -> dict[str, Any]:
        data = self.app.config_state.data or {}
        section = data.get("auto_reply")
        if isinstance(section, dict):
            return section
        return {}

    def _set_section(self, section: dict[str, Any]) -> None:
        self.app.update_config_section("auto_reply", section)

    def _group_keys(self) -> list[str]:
        keys = self._get_section().get("group_keys")
        if isinstance(keys, list):
            return [str(key) for key in keys]
        return []

    def reload_from_config(self) -> None:
        if not self._table_ready:
            return
        section = self._get_section()
        self._loading_form = True
        self.query_one("#auto-reply-enabled", Switch).value = bool(section.get("enabled", False))
        self.query_one("#auto-reply-private-only", Switch).value = bool(section.get("private_only", True))
        self._loading_form = False

        table = self.query_one("#groups-table", DataTable)
        table.clear()
        for key in self._group_keys():
            table.add_row(key, key=key)
        self._current_row_key = None
        self._update_action_state()

    def _update_action_state(self) -> None:
        self.query_one("#remove-group", Button).disabled = self._current_row_key is None

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        value = event.row_key
        self._current_row_key = str(value.value) if hasattr(value, "value") else str(value)
        self._update_action_state()

    @on(Switch.Changed, "#auto-reply-enabled")
    def _on_enabled_changed(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        section = self._get_section()
        if section.get("enabled", False) == bool(event.value):
            return
        section["enabled"] = bool(event.value)
        self._set_section(section)

    @on(Switch.Changed, "#auto-reply-private-only")
    def _on_private_only_changed(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        section = self._get_section()
        if section.get("private_only", True) == bool(event.value):
            return
        section["private_only"] = bool(event.value)
        self._set_section(section)

    @on(Button.Pressed, "#add-group")
    def _on_add_group(self) -> None:
        self.app.push_screen(AddGroupKeyScreen(), self._handle_add_group)

    @on(Button.Pressed, "#remove-group")
    def _on_remove_group(self) -> None:
        if self._current_row_key is None:
            return
        self.app.push_screen(RemoveGroupKeyScreen(self._current_row_key), self._handle_remove_group)

    def _handle_add_group(self, group_key: str | None) -> None:
        if not group_key:
            return
        keys = self._group_keys()
        if group_key in keys:
            return
        keys.append(group_key)
        section = self._get_section()
        section["group_keys"] = keys
        self._set_section(section)
        self.reload_from_config()

    def _handle_remove_group(self, confirmed: bool | None) -> None:
        if not confirmed or self._current_row_key is None:
            return
        keys = [key for key in self._group_keys() if key != self._current_row_key]
        section = self._get_section()
        section["group_keys"] = keys
        self._set_section(section)
        self.reload_from_config()
