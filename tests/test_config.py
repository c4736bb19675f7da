"""Tests for configuration defaults and persistence helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from surrealui import config as config_module
from surrealui.config import (
    ConfigAutosave,
    create_base_config,
    create_connection,
    create_history_entry,
    create_saved_query,
    invalid_config_path,
    load_config,
    save_config,
)
from surrealui.models import SANDBOX, ColorScheme, ConnectionOptions, Preferences, WorkspaceConfig
from surrealui.store import ConfigStore


def test_base_config_has_sandbox_and_no_connections() -> None:
    config = create_base_config()

    assert config.connections == ()
    assert config.active_connection is None
    assert config.sandbox.id == SANDBOX
    assert [query.id for query in config.sandbox.queries] == [1]
    assert config.sandbox.active_query_id == 1
    assert config.sandbox.last_query_id == 1
    assert config.font_zoom_level == 1.0


def test_create_connection_generates_unique_ids() -> None:
    first = create_connection("Local")
    second = create_connection("Local")

    assert first.id != second.id
    assert first.id != SANDBOX
    assert first.queries[0].id == 1


def test_factories_stamp_identifiers() -> None:
    entry = create_history_entry("SELECT 1", "Query 1")
    saved = create_saved_query("People", "SELECT * FROM person", tags=["demo"])

    assert entry.id and entry.timestamp.tzinfo is not None
    assert saved.id and saved.tags == ("demo",)


def test_load_config_returns_defaults_when_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.json")

    result = load_config()

    assert result == create_base_config()


def test_load_config_handles_invalid_json(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text('{"color_scheme": [unterminated')
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    with caplog.at_level(logging.WARNING, logger="surrealui.config"):
        result = load_config()

    assert result == create_base_config()
    assert "Ignoring invalid configuration file" in caplog.text


def test_load_config_clamps_out_of_range_zoom(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "font_zoom_level": 2.05,
                "active_connection": "alpha",
                "connections": [{"id": "alpha", "name": "Alpha"}],
            }
        )
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result.font_zoom_level == 2.0
    assert [connection.id for connection in result.connections] == ["alpha"]
    assert not invalid_config_path().exists()


def test_preferences_clamp_zoom_on_construction() -> None:
    assert Preferences(font_zoom_level=5).font_zoom_level == 2.0
    assert Preferences(font_zoom_level=0.04).font_zoom_level == 0.5


def test_load_config_keeps_copy_of_invalid_file(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    config_path = tmp_path / "config.json"
    original = json.dumps({"color_scheme": "sepia", "connections": [{"id": "alpha", "name": "Alpha"}]})
    config_path.write_text(original)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    with caplog.at_level(logging.WARNING, logger="surrealui.config"):
        result = load_config()

    assert result == create_base_config()
    assert invalid_config_path() == tmp_path / "config.json.invalid"
    assert invalid_config_path().read_text() == original
    assert "Ignoring invalid configuration file" in caplog.text

    save_config(result)

    assert invalid_config_path().read_text() == original


def test_load_config_reads_partial_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "color_scheme": "dark",
                "active_connection": "alpha",
                "connections": [
                    {
                        "id": "alpha",
                        "name": "Alpha",
                        "queries": [{"id": 1, "text": ""}, {"id": 3, "text": "SELECT 1"}],
                        "active_query_id": 3,
                        "last_query_id": 3,
                        "pinned_tables": ["person"],
                    }
                ],
            }
        )
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result.color_scheme is ColorScheme.DARK
    assert result.active_connection == "alpha"
    assert result.connections[0].queries[1].text == "SELECT 1"
    assert result.connections[0].pinned_tables == ("person",)
    assert result.sandbox.id == SANDBOX


def test_save_config_round_trips_shape(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "nested" / "config.json"
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)
    store = ConfigStore(create_base_config())
    store.add_connection(
        create_connection("Alpha", ConnectionOptions(endpoint="ws://localhost:8000"), connection_id="alpha")
    )
    store.set_active_connection("alpha")
    store.add_query_tab("SELECT * FROM person")
    store.add_history_entry(create_history_entry("SELECT * FROM person", "Query 2"))
    store.save_query(create_saved_query("People", "SELECT * FROM person"))

    save_config(store.state)

    raw = json.loads(config_path.read_text())
    assert raw["active_connection"] == "alpha"
    assert raw["connections"][0]["last_query_id"] == 2
    assert raw["connections"][0]["options"]["endpoint"] == "ws://localhost:8000"
    assert raw["sandbox"]["id"] == SANDBOX
    assert load_config() == store.state


def test_autosave_persists_each_commit() -> None:
    written: list[WorkspaceConfig] = []
    store = ConfigStore(create_base_config())
    autosave = ConfigAutosave(store, writer=written.append)

    autosave.attach()
    store.set_active_connection(SANDBOX)
    store.add_query_tab()
    autosave.detach()
    store.add_query_tab()

    assert len(written) == 2
    assert written[-1].sandbox.last_query_id == 2
    assert autosave.attached is False


def test_autosave_logs_write_failures(caplog: pytest.LogCaptureFixture) -> None:
    def _failing_writer(config: WorkspaceConfig) -> None:
        raise OSError("disk full")

    store = ConfigStore(create_base_config())
    autosave = ConfigAutosave(store, writer=_failing_writer)
    autosave.attach()

    with caplog.at_level(logging.ERROR, logger="surrealui.config"):
        store.set_active_connection(SANDBOX)

    assert "Failed to persist configuration" in caplog.text
    assert store.state.active_connection == SANDBOX
