"""Workspace configuration store: the single writer of the configuration tree."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Mapping, TypeVar

from pydantic import BaseModel

from .config import create_base_config
from .models import (
    FONT_ZOOM_STEP,
    MAX_HISTORY_SIZE,
    SANDBOX,
    Connection,
    HistoryEntry,
    Preference,
    Preferences,
    SavedQuery,
    TabQuery,
    ViewMode,
    WorkspaceConfig,
    clamp_font_zoom,
)

LOG = logging.getLogger(__name__)

ConfigListener = Callable[[WorkspaceConfig], None]
ConnectionModifier = Callable[[Connection], "Connection | None"]

_ModelT = TypeVar("_ModelT", bound=BaseModel)

_TAB_FIELDS = frozenset(TabQuery.model_fields) - {"id"}
_CONNECTION_FIELDS = frozenset(Connection.model_fields) - {"id"}


class ConfigInvariantError(RuntimeError):
    """Raised in strict mode when a caller introduces an inconsistent tree."""


def resolve_connection(state: WorkspaceConfig) -> Connection | None:
    """Return the connection that routed mutations should target.

    The sandbox sentinel resolves to ``state.sandbox``; any other value must
    name a member of ``state.connections``. ``None`` and unknown identifiers
    resolve to ``None`` so the caller can skip the mutation.
    """

    active = state.active_connection
    if active is None:
        return None
    if active == SANDBOX:
        return state.sandbox
    for connection in state.connections:
        if connection.id == active:
            return connection
    return None


class ConfigStore:
    """Holds the current configuration snapshot and applies mutations to it.

    Every operation reads the latest snapshot, derives the next one with
    copy-on-write updates, commits it, and then notifies subscribers
    synchronously. Operations whose target cannot be resolved leave the
    snapshot untouched and notify nobody.
    """

    def __init__(
        self,
        config: WorkspaceConfig | None = None,
        *,
        max_history_size: int = MAX_HISTORY_SIZE,
        strict: bool = __debug__,
    ) -> None:
        if max_history_size < 1:
            raise ValueError("max_history_size must be at least 1")
        self._state = config if config is not None else create_base_config()
        self._max_history_size = max_history_size
        self._strict = strict
        self._listeners: list[ConfigListener] = []
        problem = _find_tree_violation(self._state)
        if problem:
            if strict:
                raise ConfigInvariantError(problem)
            LOG.warning("Loaded configuration is inconsistent", extra={"problem": problem})

    @property
    def state(self) -> WorkspaceConfig:
        """Current immutable snapshot."""

        return self._state

    @property
    def active_target(self) -> Connection | None:
        """Connection that routed mutations currently apply to."""

        return resolve_connection(self._state)

    @property
    def max_history_size(self) -> int:
        return self._max_history_size

    def subscribe(self, listener: ConfigListener) -> Callable[[], None]:
        """Subscribe to committed snapshots; returns an unsubscribe handle."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def close(self) -> None:
        """Drop every subscriber."""

        self._listeners.clear()

    # Preferences

    def set_preference(self, preference: Preference | str, value: object) -> None:
        """Replace a single scalar preference after validating the value."""

        name = Preference(preference).value
        validated = getattr(Preferences.model_validate({name: value}), name)
        if getattr(self._state, name) == validated:
            return
        self._commit(self._state.model_copy(update={name: validated}))

    def toggle_window_pinned(self) -> None:
        self._commit(self._state.model_copy(update={"is_pinned": not self._state.is_pinned}))

    def increase_font_zoom(self) -> None:
        self.set_preference(Preference.FONT_ZOOM_LEVEL, self._state.font_zoom_level + FONT_ZOOM_STEP)

    def decrease_font_zoom(self) -> None:
        self.set_preference(Preference.FONT_ZOOM_LEVEL, self._state.font_zoom_level - FONT_ZOOM_STEP)

    def reset_font_zoom(self) -> None:
        self.set_preference(Preference.FONT_ZOOM_LEVEL, 1.0)

    def set_active_view(self, view: ViewMode | str) -> None:
        view = ViewMode(view)
        if self._state.active_view is view:
            return
        self._commit(self._state.model_copy(update={"active_view": view}))

    # Connection set

    def add_connection(self, connection: Connection) -> None:
        """Append a connection; its identifier must not already be in use."""

        state = self._state
        if connection.id == SANDBOX:
            problem = "The sandbox identifier is reserved"
        elif any(existing.id == connection.id for existing in state.connections):
            problem = f"Duplicate connection id '{connection.id}'"
        else:
            problem = _find_connection_violation(connection)
        if not self._accept(problem):
            return
        self._commit(state.model_copy(update={"connections": (*state.connections, connection)}))

    def remove_connection(self, connection_id: str) -> None:
        """Remove the matching connection and keep every other entry in order."""

        state = self._state
        if connection_id == SANDBOX:
            LOG.debug("Ignoring request to remove the sandbox connection")
            return
        index = _index_of(state.connections, connection_id)
        connections = state.connections
        if index >= 0:
            connections = connections[:index] + connections[index + 1 :]
        active = None if state.active_connection == connection_id else state.active_connection
        if index < 0 and active == state.active_connection:
            LOG.debug("Connection not found", extra={"connection_id": connection_id})
            return
        self._commit(state.model_copy(update={"connections": connections, "active_connection": active}))

    def set_connections(self, connections: Iterable[Connection]) -> None:
        """Replace the whole connection list."""

        connections = tuple(connections)
        if not self._accept(_find_list_violation(connections)):
            return
        if connections == self._state.connections:
            return
        self._commit(self._state.model_copy(update={"connections": connections}))

    def update_connection(self, connection_id: str, **fields: object) -> None:
        """Merge ``fields`` into the connection with the given identifier."""

        _check_fields(Connection, fields, _CONNECTION_FIELDS)
        self._update_connection(connection_id, lambda connection: self._merge_connection(connection, fields))

    def update_current_connection(self, **fields: object) -> None:
        """Merge ``fields`` into the active target (sandbox or active connection)."""

        _check_fields(Connection, fields, _CONNECTION_FIELDS)
        self._update_target(lambda connection: self._merge_connection(connection, fields))

    def set_active_connection(self, connection_id: str | None) -> None:
        """Select the sandbox, a user connection, or nothing (``None``)."""

        state = self._state
        if connection_id is not None and state.connection_by_id(connection_id) is None:
            LOG.debug("Cannot activate unknown connection", extra={"connection_id": connection_id})
            return
        if state.active_connection == connection_id:
            return
        self._commit(state.model_copy(update={"active_connection": connection_id}))

    # Query tabs

    def add_query_tab(self, text: str | None = None) -> None:
        """Open a new tab on the active target and focus it."""

        def _add(connection: Connection) -> Connection:
            highest = max((query.id for query in connection.queries), default=0)
            new_id = max(connection.last_query_id, highest) + 1
            return connection.model_copy(
                update={
                    "queries": (*connection.queries, TabQuery(id=new_id, text=text or "")),
                    "active_query_id": new_id,
                    "last_query_id": new_id,
                }
            )

        self._update_target(_add)

    def remove_query_tab(self, query_id: int) -> None:
        """Close a tab. The first tab of a connection can never be closed."""

        def _remove(connection: Connection) -> Connection | None:
            queries = connection.queries
            index = _index_of(queries, query_id)
            if index < 1:
                return None
            active_query_id = connection.active_query_id
            if active_query_id == query_id:
                active_query_id = queries[index - 1].id
            remaining = queries[:index] + queries[index + 1 :]
            last_query_id = connection.last_query_id
            if len(remaining) <= 1:
                # A single remaining tab restarts the sequence at the floor id.
                active_query_id = 1
                last_query_id = 1
            return connection.model_copy(
                update={
                    "queries": remaining,
                    "active_query_id": active_query_id,
                    "last_query_id": last_query_id,
                }
            )

        self._update_target(_remove)

    def update_query_tab(self, **fields: object) -> None:
        """Merge ``fields`` into the active tab of the active target."""

        _check_fields(TabQuery, fields, _TAB_FIELDS)

        def _update(connection: Connection) -> Connection | None:
            index = _index_of(connection.queries, connection.active_query_id)
            if index < 0:
                return None
            current = connection.queries[index]
            updated = _merge(current, fields)
            if updated == current:
                return None
            queries = connection.queries[:index] + (updated,) + connection.queries[index + 1 :]
            return connection.model_copy(update={"queries": queries})

        self._update_target(_update)

    def set_active_query_tab(self, query_id: int) -> None:
        """Focus an existing tab; unknown identifiers are ignored."""

        def _activate(connection: Connection) -> Connection | None:
            if connection.active_query_id == query_id:
                return None
            if _index_of(connection.queries, query_id) < 0:
                LOG.debug("Cannot activate unknown tab", extra={"query_id": query_id})
                return None
            return connection.model_copy(update={"active_query_id": query_id})

        self._update_target(_activate)

    # History and pins

    def add_history_entry(self, entry: HistoryEntry) -> None:
        """Append to the active target's history, evicting the oldest entries past the cap."""

        limit = self._max_history_size

        def _append(connection: Connection) -> Connection:
            history = (*connection.query_history, entry)
            if len(history) > limit:
                history = history[-limit:]
            return connection.model_copy(update={"query_history": history})

        self._update_target(_append)

    def clear_history(self) -> None:
        def _clear(connection: Connection) -> Connection | None:
            if not connection.query_history:
                return None
            return connection.model_copy(update={"query_history": ()})

        self._update_target(_clear)

    def toggle_table_pin(self, table: str) -> None:
        """Pin the table if it is not pinned, unpin it otherwise."""

        def _toggle(connection: Connection) -> Connection:
            pinned = connection.pinned_tables
            if table in pinned:
                pinned = tuple(name for name in pinned if name != table)
            else:
                pinned = (*pinned, table)
            return connection.model_copy(update={"pinned_tables": pinned})

        self._update_target(_toggle)

    # Saved queries

    def save_query(self, query: SavedQuery) -> None:
        """Insert the query, or replace the stored one with the same id in place."""

        saved = self._state.saved_queries
        index = _index_of(saved, query.id)
        if index < 0:
            saved = (*saved, query)
        elif saved[index] == query:
            return
        else:
            saved = saved[:index] + (query,) + saved[index + 1 :]
        self._commit(self._state.model_copy(update={"saved_queries": saved}))

    def remove_saved_query(self, saved_id: str) -> None:
        saved = self._state.saved_queries
        remaining = tuple(entry for entry in saved if entry.id != saved_id)
        if len(remaining) == len(saved):
            return
        self._commit(self._state.model_copy(update={"saved_queries": remaining}))

    def set_saved_queries(self, queries: Iterable[SavedQuery]) -> None:
        saved = tuple(queries)
        if not self._accept(_find_saved_query_violation(saved)):
            return
        if saved == self._state.saved_queries:
            return
        self._commit(self._state.model_copy(update={"saved_queries": saved}))

    # Internals

    def _merge_connection(self, connection: Connection, fields: Mapping[str, object]) -> Connection | None:
        updated = _merge(connection, fields)
        if updated == connection:
            return None
        if not self._accept(_find_connection_violation(updated)):
            return None
        return updated

    def _update_target(self, modifier: ConnectionModifier) -> None:
        state = self._state
        target = resolve_connection(state)
        if target is None:
            LOG.debug(
                "No active connection to update",
                extra={"active_connection": state.active_connection},
            )
            return
        self._apply(state, target, modifier)

    def _update_connection(self, connection_id: str, modifier: ConnectionModifier) -> None:
        state = self._state
        target = state.connection_by_id(connection_id)
        if target is None:
            LOG.debug("Connection not found", extra={"connection_id": connection_id})
            return
        self._apply(state, target, modifier)

    def _apply(self, state: WorkspaceConfig, target: Connection, modifier: ConnectionModifier) -> None:
        updated = modifier(target)
        if updated is None or updated is target:
            return
        if target is state.sandbox:
            self._commit(state.model_copy(update={"sandbox": updated}))
            return
        connections = tuple(updated if connection is target else connection for connection in state.connections)
        self._commit(state.model_copy(update={"connections": connections}))

    def _accept(self, problem: str | None) -> bool:
        if problem is None:
            return True
        if self._strict:
            raise ConfigInvariantError(problem)
        LOG.warning("Rejected inconsistent configuration change", extra={"problem": problem})
        return False

    def _commit(self, state: WorkspaceConfig) -> None:
        self._state = state
        for listener in tuple(self._listeners):
            listener(state)


def _index_of(items: tuple[TabQuery, ...] | tuple[Connection, ...] | tuple[SavedQuery, ...], item_id: object) -> int:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    return -1


def _check_fields(model: type[BaseModel], fields: Mapping[str, object], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unsupported field(s) for {model.__name__}: {', '.join(sorted(unknown))}")


def _merge(model: _ModelT, fields: Mapping[str, object]) -> _ModelT:
    return type(model).model_validate({**dict(model), **fields})


def _find_connection_violation(connection: Connection) -> str | None:
    if not connection.queries:
        return f"Connection '{connection.id}' has no query tabs"
    ids = [query.id for query in connection.queries]
    if len(set(ids)) != len(ids):
        return f"Duplicate tab ids in connection '{connection.id}'"
    if connection.active_query_id not in ids:
        return f"Active tab {connection.active_query_id} is missing from connection '{connection.id}'"
    if connection.last_query_id < max(ids):
        return f"Tab id counter of connection '{connection.id}' is behind its highest tab id"
    return None


def _find_list_violation(connections: tuple[Connection, ...]) -> str | None:
    seen: set[str] = set()
    for connection in connections:
        if connection.id == SANDBOX:
            return "The sandbox identifier is reserved"
        if connection.id in seen:
            return f"Duplicate connection id '{connection.id}'"
        seen.add(connection.id)
        problem = _find_connection_violation(connection)
        if problem:
            return problem
    return None


def _find_saved_query_violation(saved: tuple[SavedQuery, ...]) -> str | None:
    ids = [entry.id for entry in saved]
    if len(set(ids)) != len(ids):
        return "Duplicate saved query ids"
    return None


def _find_tree_violation(state: WorkspaceConfig) -> str | None:
    return (
        _find_list_violation(state.connections)
        or _find_connection_violation(state.sandbox)
        or _find_saved_query_violation(state.saved_queries)
    )


__all__ = [
    "ConfigInvariantError",
    "ConfigListener",
    "ConfigStore",
    "clamp_font_zoom",
    "resolve_connection",
]
