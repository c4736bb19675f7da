"""App-level tests for store wiring and command palette providers."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from textual.widgets import TextArea

from surrealui.app import SurrealuiApp
from surrealui.config import create_base_config, create_connection
from surrealui.models import SANDBOX, ColorScheme, WorkspaceConfig
from surrealui.providers import ConnectionSwitchProvider, PreferenceToggleProvider
from surrealui.widgets import StatusBar


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "config.json"
    monkeypatch.setattr("surrealui.config.CONFIG_FILE", path)
    return path


def _workspace() -> WorkspaceConfig:
    return create_base_config().model_copy(
        update={
            "connections": (
                create_connection("Local", connection_id="local"),
                create_connection("Staging", connection_id="staging"),
            )
        }
    )


class _DummyScreen:
    """Minimal stub so providers can reference an app without a running screen stack."""

    def __init__(self, app: SurrealuiApp) -> None:
        self.app = app
        self.focused = None


@pytest.mark.anyio
async def test_app_defaults_to_sandbox(config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("surrealui.app._load_app_config", _workspace)

    app = SurrealuiApp()

    assert app.config_store.state.active_connection == SANDBOX
    assert app.autosave.attached
    assert not config_path.exists()


@pytest.mark.anyio
async def test_connection_switch_provider_updates_store_and_persists(
    config_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("surrealui.app._load_app_config", _workspace)
    app = SurrealuiApp()

    provider = ConnectionSwitchProvider(_DummyScreen(app))
    hits = [hit async for hit in provider.discover()]
    assert any("Sandbox" in (hit.display or "") for hit in hits)
    target = next(hit for hit in hits if "Staging" in (hit.display or ""))
    await target.command()

    assert app.config_store.state.active_connection == "staging"
    assert json.loads(config_path.read_text())["active_connection"] == "staging"


@pytest.mark.anyio
async def test_preference_provider_toggles_flags(config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("surrealui.app._load_app_config", _workspace)
    app = SurrealuiApp()

    provider = PreferenceToggleProvider(_DummyScreen(app))
    hits = [hit async for hit in provider.discover()]
    disable_wrap = next(hit for hit in hits if (hit.display or "") == "Disable word wrap")
    await disable_wrap.command()
    zoom_in = next(hit for hit in hits if (hit.display or "") == "Increase font zoom")
    await zoom_in.command()
    scheme = next(hit for hit in hits if "colour scheme" in str(hit.display))
    await scheme.command()

    state = app.config_store.state
    assert state.word_wrap is False
    assert state.font_zoom_level == 1.1
    assert state.color_scheme is ColorScheme.LIGHT


@pytest.mark.anyio
async def test_keyboard_tab_management(config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("surrealui.app._load_app_config", _workspace)
    app = SurrealuiApp()

    async with app.run_test() as pilot:
        await pilot.press("ctrl+t")
        await pilot.pause()
        sandbox = app.config_store.state.sandbox
        assert [query.id for query in sandbox.queries] == [1, 2]
        assert sandbox.active_query_id == 2

        await pilot.press("ctrl+w")
        await pilot.pause()
        sandbox = app.config_store.state.sandbox
        assert [query.id for query in sandbox.queries] == [1]
        assert sandbox.last_query_id == 1


@pytest.mark.anyio
async def test_run_request_records_history(config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("surrealui.app._load_app_config", _workspace)
    app = SurrealuiApp()

    async with app.run_test() as pilot:
        app.config_store.update_query_tab(text="SELECT * FROM person")
        await pilot.pause()
        await pilot.press("ctrl+r")
        await pilot.pause()

        history = app.config_store.state.sandbox.query_history
        assert [entry.query for entry in history] == ["SELECT * FROM person"]
        assert history[0].tab_name == "Query 1"


def test_status_bar_describes_active_target() -> None:
    state = _workspace().model_copy(update={"active_connection": "local", "is_pinned": True})

    text = StatusBar.describe(state, 50)

    assert "Connection: Local" in text
    assert "Tab: 1/1" in text
    assert "History: 0/50" in text
    assert "Zoom: 100%" in text
    assert "Pinned" in text


def test_status_bar_without_target() -> None:
    assert StatusBar.describe(create_base_config(), 50).startswith("Connection: none")


@pytest.mark.anyio
async def test_editor_text_reaches_store_after_typing_pauses(
    config_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("surrealui.app._load_app_config", _workspace)
    app = SurrealuiApp()

    async with app.run_test() as pilot:
        app.query_one("#query-editor", TextArea).focus()
        await pilot.press(*"select")

        assert app.config_store.state.sandbox.active_query.text == ""

        await pilot.pause(0.6)

        assert app.config_store.state.sandbox.active_query.text == "select"
        assert json.loads(config_path.read_text())["sandbox"]["queries"][0]["text"] == "select"


@pytest.mark.anyio
async def test_run_request_uses_text_typed_just_before(
    config_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("surrealui.app._load_app_config", _workspace)
    app = SurrealuiApp()

    async with app.run_test() as pilot:
        app.query_one("#query-editor", TextArea).focus()
        await pilot.press(*"info")
        await pilot.press("ctrl+r")
        await pilot.pause()

        history = app.config_store.state.sandbox.query_history
        assert [entry.query for entry in history] == ["info"]
        assert app.config_store.state.sandbox.active_query.text == "info"
