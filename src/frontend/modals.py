"""Modal dialogs for the Textual config panel."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static

from .validators import parse_group_key


class UnsavedChangesScreen(ModalScreen[str]):
    """Prompt when exiting with unsaved changes."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Unsaved changes", classes="modal-title"),
            Static("Save config.json before exit?", classes="modal-body"),
            Horizontal(
                Button("Save", id="unsaved-save", variant="success"),
                Button("Discard", id="unsaved-discard", variant="error"),
                Button("Cancel", id="unsaved-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        choices = {"unsaved-save": "save", "unsaved-discard": "discard"}
        self.dismiss(choices.get(event.button.id or "", "cancel"))


class ReloadConfirmScreen(ModalScreen[str]):
    """Prompt when reloading with unsaved changes."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Reload config?", classes="modal-title"),
            Static("Unsaved changes will be lost.", classes="modal-body"),
            Horizontal(
                Button("Save", id="reload-save"),
                Button("Reload", id="reload-reload", variant="warning"),
                Button("Cancel", id="reload-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        choices = {"reload-save": "save", "reload-reload": "reload"}
        self.dismiss(choices.get(event.button.id or "", "cancel"))


class AddGroupKeyScreen(ModalScreen[str | None]):
    """Form for allowing auto-replies in one more group."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Allow group", classes="modal-title"),
            Static("", id="add-error", classes="modal-error"),
            Static("group key", classes="form-label"),
            Input(placeholder="120363000000000000@g.us", id="add-group-key"),
            Horizontal(
                Button("Add", id="add-confirm", variant="success"),
                Button("Cancel", id="add-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--form",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "add-cancel":
            self.dismiss(None)
            return
        if event.button.id != "add-confirm":
            return
        info = parse_group_key(self.query_one("#add-group-key", Input).value)
        if info.error or info.normalized is None:
            self.query_one("#add-error", Static).update(info.error or "invalid group key")
            return
        self.dismiss(info.normalized)


class RemoveGroupKeyScreen(ModalScreen[bool]):
    """Confirm removal of an allowed group."""

    def __init__(self, group_key: str) -> None:
        super().__init__()
        self._group_key = group_key

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Stop replying in this group?", classes="modal-title"),
            Static(self._group_key, classes="modal-body"),
            Horizontal(
                Button("Remove", id="remove-confirm", variant="error"),
                Button("Cancel", id="remove-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "remove-confirm")
