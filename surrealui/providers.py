"""Command palette providers for connection switching and preferences."""

from __future__ import annotations

from typing import Callable

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType

from .models import ColorScheme, Preference
from .store import ConfigStore

_BOOLEAN_PREFERENCES: tuple[tuple[Preference, str], ...] = (
    (Preference.AUTO_CONNECT, "auto connect"),
    (Preference.TABLE_SUGGEST, "table suggestions"),
    (Preference.ERROR_CHECKING, "error checking"),
    (Preference.WORD_WRAP, "word wrap"),
    (Preference.UPDATE_CHECKER, "update checker"),
)


class _StoreProvider(Provider):
    @property
    def _store(self) -> ConfigStore | None:
        store = getattr(self.app, "config_store", None)
        if isinstance(store, ConfigStore):
            return store
        return None


class ConnectionSwitchProvider(_StoreProvider):
    """Expose the sandbox and user connections to the command palette."""

    async def search(self, query: str) -> Hits:
        store = self._store
        if store is None:
            return
        matcher = self.matcher(query)
        for connection_id, name in self._entries(store):
            match = matcher.match(name)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=f"Switch to connection: {matcher.highlight(name)}",
                    command=self._build_callback(connection_id),
                    help="Set the active connection.",
                )

    async def discover(self) -> Hits:
        store = self._store
        if store is None:
            return
        for connection_id, name in self._entries(store):
            yield DiscoveryHit(
                display=f"Switch to connection: {name}",
                command=self._build_callback(connection_id),
                help="Set the active connection.",
            )

    @staticmethod
    def _entries(store: ConfigStore) -> list[tuple[str, str]]:
        state = store.state
        entries = [(state.sandbox.id, state.sandbox.name)]
        entries.extend((connection.id, connection.name) for connection in state.connections)
        return entries

    def _build_callback(self, connection_id: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            store = self._store
            if store is None:
                return
            store.set_active_connection(connection_id)

        return _run


class PreferenceToggleProvider(_StoreProvider):
    """Expose preference toggles (flags, colour scheme, zoom)."""

    async def search(self, query: str) -> Hits:
        store = self._store
        if store is None:
            return
        matcher = self.matcher(query)
        for label, action in self._actions(store):
            match = matcher.match(label)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=matcher.highlight(label),
                    command=self._build_callback(action),
                    help="Update a workspace preference.",
                )

    async def discover(self) -> Hits:
        store = self._store
        if store is None:
            return
        for label, action in self._actions(store):
            yield DiscoveryHit(
                display=label,
                command=self._build_callback(action),
                help="Update a workspace preference.",
            )

    @staticmethod
    def _actions(store: ConfigStore) -> list[tuple[str, Callable[[], None]]]:
        state = store.state
        actions: list[tuple[str, Callable[[], None]]] = []
        for preference, label in _BOOLEAN_PREFERENCES:
            enabled = bool(getattr(state, preference.value))
            verb = "Disable" if enabled else "Enable"
            actions.append(
                (
                    f"{verb} {label}",
                    lambda preference=preference, enabled=enabled: store.set_preference(preference, not enabled),
                )
            )
        schemes = list(ColorScheme)
        following = schemes[(schemes.index(state.color_scheme) + 1) % len(schemes)]
        actions.append(
            (
                f"Use {following.value} colour scheme",
                lambda: store.set_preference(Preference.COLOR_SCHEME, following),
            )
        )
        actions.append(("Increase font zoom", store.increase_font_zoom))
        actions.append(("Decrease font zoom", store.decrease_font_zoom))
        actions.append(("Reset font zoom", store.reset_font_zoom))
        actions.append(("Toggle window pin", store.toggle_window_pinned))
        return actions

    def _build_callback(self, action: Callable[[], None]) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            action()

        return _run


__all__ = ["ConnectionSwitchProvider", "PreferenceToggleProvider"]
