from __future__ import annotations

import json

from frontend.state import ConfigState


def test_load_and_save_round_trip(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"auto_reply": {"enabled": False}}), encoding="utf-8")
    state = ConfigState()

    assert state.load(path)
    state.set_section("auto_reply", {"enabled": True})
    assert state.dirty

    assert state.save(path)
    assert not state.dirty
    assert json.loads(path.read_text(encoding="utf-8")) == {"auto_reply": {"enabled": True}}


def test_load_reports_missing_and_broken_files(tmp_path) -> None:
    state = ConfigState(data={"stale": True}, dirty=True)
    path = tmp_path / "config.json"

    assert not state.load(path)
    assert state.data is None
    assert not state.dirty
    assert state.error == "config.json missing"

    path.write_text("{nope", encoding="utf-8")
    assert not state.load(path)
    assert state.error.startswith("config.json error:")

    path.write_text("[1, 2]", encoding="utf-8")
    assert not state.load(path)
    assert state.error == "config root must be an object"


def test_save_without_data(tmp_path) -> None:
    state = ConfigState()
    assert not state.save(tmp_path / "config.json")
    assert state.error == "Nothing to save"
    assert not (tmp_path / "config.json").exists()
