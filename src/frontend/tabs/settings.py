"""Settings tab implementation."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.widgets import ContentSwitcher, DataTable, Input, Select, Static, Switch, TextArea


class SettingsTab(Container):
    """Settings tab for the runtime sections of config.json."""

    LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

    SECTION_LABELS = [
        ("gateway", "Gateway", "Evolution API request timeout"),
        ("webhook", "Webhook", "Listener host and port"),
        ("responder", "Responder", "Reply generation endpoints"),
        ("persistence", "Persistence", "Snapshot directory and flush timer"),
        ("logging", "Logging", "Console/file logging + redaction"),
    ]

    # (input id, section, key, kind) for plain text/number fields.
    FIELDS = [
        ("gateway-timeout", "gateway", "timeout_seconds", "float"),
        ("webhook-host", "webhook", "host", "str"),
        ("webhook-port", "webhook", "port", "int"),
        ("responder-url", "responder", "url", "str"),
        ("responder-fallback-url", "responder", "fallback_url", "str"),
        ("responder-fallback-model", "responder", "fallback_model", "str"),
        ("responder-persona", "responder", "persona", "str"),
        ("responder-timeout", "responder", "timeout_seconds", "float"),
        ("persistence-store-dir", "persistence", "store_dir", "str"),
        ("persistence-flush", "persistence", "flush_interval_seconds", "float"),
        ("persistence-bootstrap", "persistence", "bootstrap_delay_seconds", "float"),
    ]

    DEFAULTS = {
        ("gateway", "timeout_seconds"): 30,
        ("webhook", "host"): "127.0.0.1",
        ("webhook", "port"): 3000,
        ("responder", "url"): "http://localhost:3777/api/respond",
        ("responder", "fallback_model"): "openai",
        ("responder", "persona"): "the AI assistant",
        ("responder", "timeout_seconds"): 60,
        ("persistence", "store_dir"): "store",
        ("persistence", "flush_interval_seconds"): 30,
        ("persistence", "bootstrap_delay_seconds"): 10,
    }

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._loading_form = False
        self._current_section: Optional[str] = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="settings-panel"):
            with Horizontal(id="settings-body"):
                with Container(id="settings-left"):
                    yield DataTable(id="settings-table", cursor_type="row")
                with Container(id="settings-right"):
                    with ContentSwitcher(id="settings-forms"):
                        with Container(id="settings-gateway"):
                            yield Static("Gateway", classes="settings-title")
                            yield Static("timeout_seconds (URL, instance and key live in .env)", classes="form-label")
                            yield Input(placeholder="30", id="gateway-timeout")
                            yield Static("", id="gateway-error", classes="settings-error")

                        with Container(id="settings-webhook"):
                            yield Static("Webhook", classes="settings-title")
                            yield Static("host", classes="form-label")
                            yield Input(placeholder="127.0.0.1", id="webhook-host")
                            yield Static("port", classes="form-label")
                            yield Input(placeholder="3000", id="webhook-port")
                            yield Static("", id="webhook-error", classes="settings-error")

                        with ScrollableContainer(id="settings-responder"):
                            yield Static("Responder", classes="settings-title")
                            yield Static("url", classes="form-label")
                            yield Input(placeholder="http://localhost:3777/api/respond", id="responder-url")
                            yield Static("fallback_url (optional)", classes="form-label")
                            yield Input(placeholder="https://text.pollinations.ai/", id="responder-fallback-url")
                            yield Static("fallback_model", classes="form-label")
                            yield Input(placeholder="openai", id="responder-fallback-model")
                            yield Static("persona", classes="form-label")
                            yield Input(placeholder="the AI assistant", id="responder-persona")
                            yield Static("timeout_seconds", classes="form-label")
                            yield Input(placeholder="60", id="responder-timeout")
                            yield Static("", id="responder-error", classes="settings-error")

                        with Container(id="settings-persistence"):
                            yield Static("Persistence", classes="settings-title")
                            yield Static("store_dir", classes="form-label")
                            yield Input(placeholder="store", id="persistence-store-dir")
                            yield Static("flush_interval_seconds", classes="form-label")
                            yield Input(placeholder="30", id="persistence-flush")
                            yield Static("bootstrap_delay_seconds", classes="form-label")
                            yield Input(placeholder="10", id="persistence-bootstrap")
                            yield Static("", id="persistence-error", classes="settings-error")

                        with ScrollableContainer(id="settings-logging"):
                            yield Static("Logging", classes="settings-title")
                            yield Static("enabled", classes="form-label")
                            yield Switch(id="logging-enabled")
                            yield Static("level", classes="form-label")
                            yield Select(
                                [(level, level) for level in self.LOG_LEVELS],
                                id="logging-level",
                                allow_blank=False,
                            )
                            yield Static("console", classes="form-label")
                            yield Switch(id="logging-console")
                            yield Static("file.enabled", classes="form-label")
                            yield Switch(id="logging-file-enabled")
                            yield Static("file.path", classes="form-label")
                            yield Input(placeholder="logs/wabridge.log", id="logging-file-path")
                            yield Static("file.max_bytes", classes="form-label")
                            yield Input(placeholder="5242880", id="logging-file-max-bytes")
                            yield Static("file.backup_count", classes="form-label")
                            yield Input(placeholder="5", id="logging-file-backup")
                            yield Static("redact.enabled", classes="form-label")
                            yield Switch(id="logging-redact-enabled")
                            yield Static("redact.patterns (env var names, one per line)", classes="form-label")
                            yield TextArea(id="logging-redact-patterns")
                            yield Static("", id="logging-error", classes="settings-error")

    def on_mount(self) -> None:
        table = self.query_one("#settings-table", DataTable)
        table.add_column("section", key="section", width=18)
        table.add_column("description", key="description", width=34)
        for key, label, description in self.SECTION_LABELS:
            table.add_row(label, description, key=key)
        table.zebra_stripes = True
        self._table_ready = True
        self._select_section("gateway")
        self.reload_from_config()

    def reload_from_config(self) -> None:
        if not self._table_ready:
            return
        self._loading_form = True
        for input_id, section, key, _ in self.FIELDS:
            value = self._get_section(section).get(key, self.DEFAULTS.get((section, key), ""))
            self.query_one(f"#{input_id}", Input).value = "" if value is None else str(value)
        for section in ("gateway", "webhook", "responder", "persistence"):
            self._set_error(f"{section}-error", "")
        self._load_logging()
        self._loading_form = False

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self._select_section(self._coerce_row_key(event.row_key))

    def _select_section(self, section_id: str) -> None:
        self._current_section = section_id
        self.query_one("#settings-forms", ContentSwitcher).current = f"settings-{section_id}"

    def _get_section(self, key: str) -> dict[str, Any]:
        data = self.app.config_state.data or {}
        section = data.get(key)
        if isinstance(section, dict):
            return section
        return {}

    def _update_section(self, key: str, section: dict[str, Any]) -> None:
        self.app.update_config_section(key, section)

    def _load_logging(self) -> None:
        logging = self._get_section("logging")
        file_cfg = self._get_subdict(logging, "file")
        redact_cfg = self._get_subdict(logging, "redact")
        file_enabled = bool(file_cfg.get("enabled", False))
        redact_enabled = bool(redact_cfg.get("enabled", False))

        self.query_one("#logging-enabled", Switch).value = bool(logging.get("enabled", False))
        self._set_select_value("#logging-level", logging.get("level", "INFO"), self.LOG_LEVELS, "logging-error")
        self.query_one("#logging-console", Switch).value = bool(logging.get("console", True))
        self.query_one("#logging-file-enabled", Switch).value = file_enabled
        self.query_one("#logging-file-path", Input).value = str(file_cfg.get("path", "logs/wabridge.log"))
        self.query_one("#logging-file-max-bytes", Input).value = str(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        self.query_one("#logging-file-backup", Input).value = str(file_cfg.get("backup_count", 5))
        self.query_one("#logging-redact-enabled", Switch).value = redact_enabled
        self.query_one("#logging-redact-patterns", TextArea).text = "\n".join(redact_cfg.get("patterns", []) or [])
        self._apply_logging_state(file_enabled, redact_enabled)
        self._set_error("logging-error", "")

    def _set_select_value(self, selector: str, value: str, allowed: list[str], error_id: str) -> None:
        select = self.query_one(selector, Select)
        if value in allowed:
            select.value = value
            self._set_error(error_id, "")
        else:
            select.value = allowed[0] if allowed else Select.BLANK
            self._set_error(error_id, f"Invalid value: {value}")

    def _set_error(self, error_id: str, message: str) -> None:
        self.query_one(f"#{error_id}", Static).update(message)

    def _apply_logging_state(self, file_enabled: bool, redact_enabled: bool) -> None:
        self.query_one("#logging-file-path", Input).disabled = not file_enabled
        self.query_one("#logging-file-max-bytes", Input).disabled = not file_enabled
        self.query_one("#logging-file-backup", Input).disabled = not file_enabled
        self.query_one("#logging-redact-patterns", TextArea).disabled = not redact_enabled

    @on(Input.Changed)
    def _on_field_changed(self, event: Input.Changed) -> None:
        if self._loading_form:
            return
        for input_id, section, key, kind in self.FIELDS:
            if event.input.id == input_id:
                self._update_field(section, key, kind, event.value)
                return

    def _update_field(self, section: str, key: str, kind: str, raw: str) -> None:
        error_id = f"{section}-error"
        value = raw.strip()
        config = self._get_section(section)
        if not value:
            self._set_error(error_id, "")
            if key == "fallback_url" and key in config:
                config.pop(key, None)
                self._update_section(section, config)
            return
        if kind == "int":
            parsed: Any = self._parse_number(value, error_id, int)
        elif kind == "float":
            parsed = self._parse_number(value, error_id, float)
        else:
            parsed = value
            self._set_error(error_id, "")
        if parsed is None or config.get(key) == parsed:
            return
        config[key] = parsed
        self._update_section(section, config)

    def _parse_number(self, value: str, error_id: str, kind: type) -> Optional[Any]:
        try:
            parsed = kind(value)
        except ValueError:
            self._set_error(error_id, "Enter a non-negative number")
            return None
        if parsed < 0:
            self._set_error(error_id, "Enter a non-negative number")
            return None
        self._set_error(error_id, "")
        return parsed

    @on(Switch.Changed, "#logging-enabled")
    def _on_logging_enabled(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        logging = self._get_section("logging")
        if logging.get("enabled", False) == bool(event.value):
            return
        logging["enabled"] = bool(event.value)
        self._update_section("logging", logging)

    @on(Select.Changed, "#logging-level")
    def _on_logging_level(self, event: Select.Changed) -> None:
        if self._loading_form or event.value is Select.BLANK:
            return
        logging = self._get_section("logging")
        if logging.get("level", "INFO") == event.value:
            return
        logging["level"] = event.value
        self._update_section("logging", logging)

    @on(Switch.Changed, "#logging-console")
    def _on_logging_console(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        logging = self._get_section("logging")
        if logging.get("console", True) == bool(event.value):
            return
        logging["console"] = bool(event.value)
        self._update_section("logging", logging)

    @on(Switch.Changed, "#logging-file-enabled")
    def _on_logging_file_enabled(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        logging = self._set_logging_value(("file", "enabled"), bool(event.value))
        redact_enabled = bool(self._get_subdict(logging, "redact").get("enabled", False))
        self._apply_logging_state(bool(event.value), redact_enabled)

    @on(Input.Changed, "#logging-file-path")
    def _on_logging_file_path(self, event: Input.Changed) -> None:
        if self._loading_form:
            return
        self._set_logging_value(("file", "path"), event.value)

    @on(Input.Changed, "#logging-file-max-bytes")
    def _on_logging_file_max(self, event: Input.Changed) -> None:
        if self._loading_form:
            return
        parsed = self._parse_count(event.value)
        if parsed is not None:
            self._set_logging_value(("file", "max_bytes"), parsed)

    @on(Input.Changed, "#logging-file-backup")
    def _on_logging_file_backup(self, event: Input.Changed) -> None:
        if self._loading_form:
            return
        parsed = self._parse_count(event.value)
        if parsed is not None:
            self._set_logging_value(("file", "backup_count"), parsed)

    @on(Switch.Changed, "#logging-redact-enabled")
    def _on_logging_redact_enabled(self, event: Switch.Changed) -> None:
        if self._loading_form:
            return
        logging = self._set_logging_value(("redact", "enabled"), bool(event.value))
        file_enabled = bool(self._get_subdict(logging, "file").get("enabled", False))
        self._apply_logging_state(file_enabled, bool(event.value))

    @on(TextArea.Changed, "#logging-redact-patterns")
    def _on_logging_redact_patterns(self, event: TextArea.Changed) -> None:
        if self._loading_form:
            return
        patterns = [line.strip() for line in event.text_area.text.splitlines() if line.strip()]
        self._set_logging_value(("redact", "patterns"), patterns)

    def _set_logging_value(self, path: tuple[str, str], value: Any) -> dict[str, Any]:
        logging = self._get_section("logging")
        nested = self._get_subdict(logging, path[0])
        if nested.get(path[1]) == value:
            return logging
        nested[path[1]] = value
        logging[path[0]] = nested
        self._update_section("logging", logging)
        return logging

    def _parse_count(self, value: str) -> Optional[int]:
        stripped = value.strip()
        if not stripped:
            self._set_error("logging-error", "")
            return None
        if not stripped.isdigit():
            self._set_error("logging-error", "Enter a non-negative integer")
            return None
        self._set_error("logging-error", "")
        return int(stripped)

    @staticmethod
    def _coerce_row_key(value: Any) -> str:
        if hasattr(value, "value"):
            return str(value.value)
        return str(value)

    @staticmethod
    def _get_subdict(parent: dict[str, Any], key: str) -> dict[str, Any]:
        value = parent.get(key)
        if isinstance(value, dict):
            return value
        return {}
