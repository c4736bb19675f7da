"""Sidebar widget listing the sandbox and the user connections."""

from __future__ import annotations

from typing import Callable

from textual import on
from textual.app import ComposeResult
from textual.containers import Container
from textual.widgets import Label, ListItem, ListView, Static

from surrealui.models import SANDBOX, WorkspaceConfig
from surrealui.store import ConfigStore, resolve_connection


class ConnectionSidebar(Container):
    """Displays connections and the pinned tables of the active one."""

    DEFAULT_CSS = """
    ConnectionSidebar {
        width: 28;
        min-width: 22;
        border-right: solid $surface-darken-1;
        padding: 1;
        height: 1fr;
        background: $surface-darken-2;
    }

    ConnectionSidebar .sidebar-heading {
        text-style: bold;
        margin-bottom: 1;
    }

    ConnectionSidebar .sidebar-section {
        margin-bottom: 2;
    }

    #connection-list {
        height: 8;
        border: round $primary 30%;
        margin-bottom: 2;
    }

    #connection-list .active {
        text-style: bold;
    }

    #connection-summary {
        padding-top: 1;
        border-top: solid $surface-darken-1;
        color: $text-muted;
        min-height: 3;
    }
    """

    def __init__(self, store: ConfigStore) -> None:
        super().__init__(id="connection-sidebar")
        self._store = store
        self._connection_list: ListView | None = None
        self._listed: tuple[tuple[str, str], ...] = ()
        self._summary: Static | None = None
        self._pinned: Static | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Static("Connections", classes="sidebar-heading")
        self._listed = self._listing(self._store.state)
        self._connection_list = ListView(*self._build_items(), id="connection-list")
        yield self._connection_list
        self._summary = Static("", id="connection-summary", classes="sidebar-section")
        yield self._summary
        yield Static("Pinned tables", classes="sidebar-heading")
        self._pinned = Static("No pinned tables.", id="pinned-tables", classes="sidebar-section")
        yield self._pinned

    async def on_mount(self) -> None:
        self._unsubscribe = self._store.subscribe(self._handle_config_update)
        self._handle_config_update(self._store.state)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_config_update(self, state: WorkspaceConfig) -> None:
        self._render_connections(state)
        self._render_summary(state)
        self._render_pinned(state)

    def _render_connections(self, state: WorkspaceConfig) -> None:
        if not self._connection_list:
            return
        listing = self._listing(state)
        if listing != self._listed:
            self._listed = listing
            self._connection_list.clear()
            self._connection_list.extend(self._build_items())
            return
        for item in self._connection_list.query(_ConnectionListItem):
            item.set_class(item.connection_id == state.active_connection, "active")

    def _render_summary(self, state: WorkspaceConfig) -> None:
        if not self._summary:
            return
        target = resolve_connection(state)
        if target is None:
            self._summary.update("No connection selected.")
            return
        options = target.options
        self._summary.update(
            "\n".join(
                [
                    f"Endpoint: {options.endpoint or '—'}",
                    f"Namespace: {options.namespace or '—'}",
                    f"Database: {options.database or '—'}",
                ]
            )
        )

    def _render_pinned(self, state: WorkspaceConfig) -> None:
        if not self._pinned:
            return
        target = resolve_connection(state)
        if target is None or not target.pinned_tables:
            self._pinned.update("No pinned tables.")
            return
        self._pinned.update("\n".join(f"• {table}" for table in sorted(target.pinned_tables)))

    @on(ListView.Selected)
    def _handle_connection_selected(self, event: ListView.Selected) -> None:
        if event.list_view.id != "connection-list":
            return
        item = event.item
        if isinstance(item, _ConnectionListItem):
            self._store.set_active_connection(item.connection_id)
            event.stop()

    def _build_items(self) -> list[_ConnectionListItem]:
        active = self._store.state.active_connection
        items = []
        for connection_id, name in self._listed:
            item = _ConnectionListItem(connection_id, name)
            item.set_class(connection_id == active, "active")
            items.append(item)
        return items

    @staticmethod
    def _listing(state: WorkspaceConfig) -> tuple[tuple[str, str], ...]:
        entries = [(SANDBOX, state.sandbox.name)]
        entries.extend((connection.id, connection.name) for connection in state.connections)
        return tuple(entries)


class _ConnectionListItem(ListItem):
    """List item storing a connection id for selection callbacks."""

    def __init__(self, connection_id: str, name: str) -> None:
        super().__init__(Label(name))
        self.connection_id = connection_id


__all__ = ["ConnectionSidebar"]
