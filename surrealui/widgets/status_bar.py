"""Status bar widget that mirrors the workspace configuration."""

from __future__ import annotations

from typing import Callable

from textual.widgets import Static

from surrealui.models import SANDBOX, WorkspaceConfig
from surrealui.store import ConfigStore, resolve_connection


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, store: ConfigStore) -> None:
        super().__init__("", id="status-bar")
        self._store = store
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._store.subscribe(self._handle_config_update)
        self._handle_config_update(self._store.state)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_config_update(self, state: WorkspaceConfig) -> None:
        self.update(self.describe(state, self._store.max_history_size))

    @staticmethod
    def describe(state: WorkspaceConfig, history_limit: int) -> str:
        target = resolve_connection(state)
        if target is None:
            parts = ["Connection: none"]
        else:
            kind = " (sandbox)" if target.id == SANDBOX else ""
            parts = [
                f"Connection: {target.name}{kind}",
                f"Tab: {target.active_query_id}/{len(target.queries)}",
                f"History: {len(target.query_history)}/{history_limit}",
            ]
        parts.append(f"Saved: {len(state.saved_queries)}")
        parts.append(f"Theme: {state.color_scheme.value}")
        parts.append(f"Zoom: {int(round(state.font_zoom_level * 100))}%")
        if state.is_pinned:
            parts.append("Pinned")
        return " | ".join(parts)


__all__ = ["StatusBar"]
