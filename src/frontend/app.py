"""Textual config panel for the bridge: config.json editing plus store views."""

from __future__ import annotations

from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Center, Container, Horizontal, Vertical
from textual.widgets import Button, ContentSwitcher, Footer, Static, Tab, Tabs

from .constants import CONFIG_PATH, WHATSAPP_GREEN
from .modals import ReloadConfirmScreen, UnsavedChangesScreen
from .state import ConfigState, StoreView, load_store_view, store_dir_from_config
from .tabs.auto_reply import AutoReplyTab
from .tabs.identities import IdentitiesTab
from .tabs.overrides import OverridesTab
from .tabs.settings import SettingsTab

TABS = (
    ("auto-reply", "Auto-reply", AutoReplyTab),
    ("overrides", "Overrides", OverridesTab),
    ("identities", "Identities", IdentitiesTab),
    ("settings", "Settings", SettingsTab),
)


class ConfigPanelApp(App):
    """Edits config.json and shows what the bridge has persisted."""

    BINDINGS = [
        ("ctrl+s", "save_config", "Save"),
        ("ctrl+r", "reload_config", "Reload"),
        ("q", "request_quit", "Quit"),
        ("ctrl+c", "request_quit", "Quit"),
    ]

    CSS_PATH = "app.tcss"

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.config_state = ConfigState()
        self.store_view = StoreView()

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(Text.assemble(("WA", WHATSAPP_GREEN), ("BRIDGE > Config Panel", "bold")), id="title")
                    yield Static("bridge v1.0.0", classes="subtle")
                with Vertical(id="header-right"):
                    yield Static("", id="header-store", classes="subtle")
                    yield Static("", id="header-status")
                    yield Horizontal(Button("Save", id="save-btn"), Button("Reload", id="reload-btn"), id="header-actions")

        with Container(id="tabs-bar"):
            with Center(id="tabs-center"):
                yield Tabs(*(Tab(label, id=tab_id) for tab_id, label, _ in TABS), id="tabs")

        with ContentSwitcher(id="content", initial=TABS[0][0]):
            for tab_id, _, widget in TABS:
                yield widget(id=tab_id)
        yield Footer()

    def on_mount(self) -> None:
        self._load_config()

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        if event.tab.id:
            self.query_one("#content", ContentSwitcher).current = event.tab.id

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-btn":
            self.action_save_config()
        elif event.button.id == "reload-btn":
            self.action_reload_config()

    def action_save_config(self) -> None:
        self._save_config()

    def action_reload_config(self) -> None:
        if self.config_state.dirty:
            self.push_screen(ReloadConfirmScreen(), self._after_reload_prompt)
        else:
            self._load_config()

    def action_request_quit(self) -> None:
        if self.config_state.dirty:
            self.push_screen(UnsavedChangesScreen(), self._after_quit_prompt)
        else:
            self.exit()

    def _after_quit_prompt(self, choice: str | None) -> None:
        if choice == "discard" or (choice == "save" and self._save_config()):
            self.exit()

    def _after_reload_prompt(self, choice: str | None) -> None:
        if choice == "reload" or (choice == "save" and self._save_config()):
            self._load_config()

    def _load_config(self) -> None:
        self.config_state.load(CONFIG_PATH)
        self._refresh_header()
        self.query_one(AutoReplyTab).reload_from_config()
        self.query_one(SettingsTab).reload_from_config()
        self.refresh_store_view()

    def _save_config(self) -> bool:
        saved = self.config_state.save(CONFIG_PATH)
        self._refresh_header()
        return saved

    def refresh_store_view(self) -> None:
        """Re-read the snapshot files and redraw the store-backed tabs."""
        self.store_view = load_store_view(store_dir_from_config(self.config_state.data))
        self.query_one("#header-store", Static).update(f"store: {self.store_view.store_dir.name}")
        self.query_one(OverridesTab).reload_from_store()
        self.query_one(IdentitiesTab).reload_from_store()

    def update_config_section(self, section: str, value: Any) -> None:
        self.config_state.set_section(section, value)
        self._refresh_header()

    def _refresh_header(self) -> None:
        state = self.config_state
        if state.error:
            text, style = f"config: {state.error}", "status-error"
        elif state.dirty:
            text, style = "config: modified *", "status-modified"
        else:
            text, style = "config: loaded", "status-loaded"
        status = self.query_one("#header-status", Static)
        status.remove_class("status-loaded", "status-modified", "status-error")
        status.update(text)
        status.add_class(style)
        self.query_one("#save-btn", Button).disabled = state.data is None or not state.dirty
