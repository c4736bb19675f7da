"""Textual application entry point for surrealui."""

from __future__ import annotations

import logging
from typing import Callable

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.widgets import Footer, Header

from .config import ConfigAutosave, create_history_entry, create_saved_query, load_config
from .models import SANDBOX, ColorScheme, WorkspaceConfig
from .providers import ConnectionSwitchProvider, PreferenceToggleProvider
from .store import ConfigInvariantError, ConfigStore, resolve_connection
from .widgets import ConnectionSidebar, QueryTabs, StatusBar
from .widgets.query_tabs import tab_label

LOG = logging.getLogger(__name__)


def _load_app_config() -> WorkspaceConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


class SurrealuiApp(App[None]):
    """Textual shell around the workspace configuration store."""

    TITLE = "surrealui"
    COMMANDS = App.COMMANDS | {ConnectionSwitchProvider, PreferenceToggleProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #content {
        layout: horizontal;
        height: 1fr;
    }
    #main-column {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
        border-left: solid $surface-darken-1;
    }
    """

    BINDINGS = [
        Binding("ctrl+t", "new_tab", "New tab", priority=True),
        Binding("ctrl+w", "close_tab", "Close tab", priority=True),
        Binding("ctrl+pagedown", "next_tab", "Next tab", show=False, priority=True),
        Binding("ctrl+pageup", "previous_tab", "Previous tab", show=False, priority=True),
        Binding("ctrl+r", "run_query", "Run", priority=True),
        Binding("ctrl+s", "save_query", "Save query", priority=True),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(self) -> None:
        super().__init__()
        config = _load_app_config()
        try:
            self._store = ConfigStore(config)
        except ConfigInvariantError:
            LOG.exception("Configuration failed consistency checks; continuing leniently")
            self._store = ConfigStore(config, strict=False)
        if self._store.state.active_connection is None:
            self._store.set_active_connection(SANDBOX)
        self._autosave = ConfigAutosave(self._store)
        self._autosave.attach()
        self._query_tabs: QueryTabs | None = None
        self._store_unsubscribe: Callable[[], None] | None = self._store.subscribe(self._handle_config_update)
        self._handle_config_update(self._store.state)

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        self._query_tabs = QueryTabs(self._store)
        main_column = Container(self._query_tabs, id="main-column")
        yield Horizontal(ConnectionSidebar(self._store), main_column, id="content")
        yield StatusBar(self._store)
        yield Footer()

    async def on_mount(self) -> None:
        self._apply_color_scheme(self._store.state)

    @property
    def config_store(self) -> ConfigStore:
        """Expose the configuration store for providers and tests."""

        return self._store

    @property
    def autosave(self) -> ConfigAutosave:
        return self._autosave

    def action_new_tab(self) -> None:
        if self._query_tabs:
            self._query_tabs.new_tab()
        else:
            self._store.add_query_tab()

    def action_close_tab(self) -> None:
        if self._query_tabs:
            self._query_tabs.close_tab()

    def action_next_tab(self) -> None:
        if self._query_tabs:
            self._query_tabs.cycle_tab(1)

    def action_previous_tab(self) -> None:
        if self._query_tabs:
            self._query_tabs.cycle_tab(-1)

    def action_run_query(self) -> None:
        if self._query_tabs:
            self._query_tabs.request_run()

    def action_save_query(self) -> None:
        if self._query_tabs:
            self._query_tabs.flush()
        target = self._store.active_target
        query = target.active_query if target else None
        if query is None or not query.text.strip():
            self.notify("Nothing to save.", severity="warning")
            return
        self._store.save_query(create_saved_query(tab_label(query), query.text))
        self.notify(f"Saved {tab_label(query)}.", severity="information")

    def on_query_tabs_run_requested(self, event: QueryTabs.RunRequested) -> None:
        self._store.add_history_entry(create_history_entry(event.query, event.tab_name))
        if self._query_tabs:
            self._query_tabs.set_status(f"Recorded {event.tab_name} in history.")
        event.stop()

    async def _shutdown(self) -> None:
        if self._query_tabs:
            self._query_tabs.flush()
        if self._store_unsubscribe:
            self._store_unsubscribe()
            self._store_unsubscribe = None
        self._autosave.detach()
        self._store.close()
        await super()._shutdown()

    def _handle_config_update(self, state: WorkspaceConfig) -> None:
        target = resolve_connection(state)
        self.sub_title = target.name if target else "No connection"
        if self.is_running:
            self._apply_color_scheme(state)

    def _apply_color_scheme(self, state: WorkspaceConfig) -> None:
        if state.color_scheme is ColorScheme.AUTO:
            return
        self.theme = "textual-light" if state.color_scheme is ColorScheme.LIGHT else "textual-dark"


def main() -> None:
    """Invoke the Textual application."""

    SurrealuiApp().run()


if __name__ == "__main__":
    main()
