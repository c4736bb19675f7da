"""Query tab strip and editor bound to the active connection's tabs."""

from __future__ import annotations

from typing import Callable

from textual.app import ComposeResult
from textual.containers import Container
from textual.message import Message
from textual.widgets import Static, TextArea

from surrealui.debounce import Debouncer
from surrealui.models import TabQuery, WorkspaceConfig
from surrealui.store import ConfigStore, resolve_connection


def tab_label(query: TabQuery) -> str:
    return query.name or f"Query {query.id}"


class QueryTabs(Container):
    """Editor surface for the tabs of whichever connection is active.

    Keystrokes are buffered per tab and written to the store once typing
    pauses for ``save_delay`` seconds, or sooner when ``flush`` is called.
    """

    DEFAULT_CSS = """
    QueryTabs {
        layout: vertical;
        border: round $primary 40%;
        padding: 1 2;
        height: 1fr;
        background: $surface;
    }

    QueryTabs:focus-within {
        border: round $primary;
    }

    #tab-strip {
        height: 1;
        margin-bottom: 1;
    }

    #query-editor {
        height: 1fr;
    }

    #query-status {
        height: 1;
        color: $text-muted;
    }
    """

    class RunRequested(Message):
        """Posted when the user asks to run the active tab."""

        def __init__(self, query: str, tab_name: str) -> None:
            super().__init__()
            self.query = query
            self.tab_name = tab_name

    def __init__(self, store: ConfigStore, *, save_delay: float = 0.3) -> None:
        super().__init__(id="query-tabs")
        self._store = store
        self._debouncer = Debouncer(save_delay)
        self._pending: dict[tuple[str, int], str] = {}
        self._strip: Static | None = None
        self._editor: TextArea | None = None
        self._status: Static | None = None
        self._editing: tuple[str, int] | None = None
        self._unsubscribe: Callable[[], None] | None = None

    def compose(self) -> ComposeResult:
        yield Static("", id="tab-strip")
        yield TextArea("", id="query-editor")
        yield Static("", id="query-status")

    async def on_mount(self) -> None:
        self._strip = self.query_one("#tab-strip", Static)
        self._editor = self.query_one("#query-editor", TextArea)
        self._status = self.query_one("#query-status", Static)
        self._unsubscribe = self._store.subscribe(self._handle_config_update)
        self._handle_config_update(self._store.state)

    def on_unmount(self) -> None:
        self.flush()
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        event.stop()
        target = self._store.active_target
        if target is None or self._editing != (target.id, target.active_query_id):
            return
        text = event.text_area.text
        query = target.active_query
        key = (target.id, target.active_query_id)
        if query is not None and query.text == text and key not in self._pending:
            return
        self._pending[key] = text
        self._debouncer.submit(self._save_pending)

    def flush(self) -> None:
        """Write buffered editor text to the tabs it was typed into."""

        self._debouncer.cancel()
        self._write_pending()

    def new_tab(self) -> None:
        self.flush()
        self._store.add_query_tab()

    def close_tab(self) -> None:
        self.flush()
        target = self._store.active_target
        if target is None:
            return
        if target.queries and target.queries[0].id == target.active_query_id:
            self.set_status("The first tab cannot be closed.")
            return
        self._store.remove_query_tab(target.active_query_id)

    def cycle_tab(self, step: int) -> None:
        self.flush()
        target = self._store.active_target
        if target is None or not target.queries:
            return
        ids = [query.id for query in target.queries]
        try:
            position = ids.index(target.active_query_id)
        except ValueError:
            position = 0
        self._store.set_active_query_tab(ids[(position + step) % len(ids)])

    def request_run(self) -> None:
        self.flush()
        query = self._active_query()
        if query is None or not query.text.strip():
            self.set_status("Enter a query to run.")
            return
        self.post_message(self.RunRequested(query.text, tab_label(query)))

    def active_text(self) -> str | None:
        query = self._active_query()
        return query.text if query else None

    def set_status(self, message: str) -> None:
        if self._status:
            self._status.update(message)

    async def _save_pending(self) -> None:
        self._write_pending()

    def _write_pending(self) -> None:
        # Entries stay buffered until written so store echoes keep the editor text.
        while self._pending:
            key, text = next(iter(self._pending.items()))
            connection_id, tab_id = key
            connection = self._store.state.connection_by_id(connection_id)
            if connection is not None:
                queries = tuple(
                    query.model_copy(update={"text": text}) if query.id == tab_id else query
                    for query in connection.queries
                )
                self._store.update_connection(connection_id, queries=queries)
            self._pending.pop(key, None)

    def _active_query(self) -> TabQuery | None:
        target = self._store.active_target
        return target.active_query if target else None

    def _handle_config_update(self, state: WorkspaceConfig) -> None:
        target = resolve_connection(state)
        self._render_strip(state)
        if not self._editor:
            return
        self._editor.soft_wrap = state.word_wrap
        if target is None:
            self._editing = None
            self._editor.disabled = True
            if self._editor.text:
                self._editor.load_text("")
            return
        self._editor.disabled = False
        query = target.active_query
        self._editing = (target.id, target.active_query_id)
        text = self._pending.get(self._editing, query.text if query else "")
        if self._editor.text != text:
            self._editor.load_text(text)

    def _render_strip(self, state: WorkspaceConfig) -> None:
        if not self._strip:
            return
        target = resolve_connection(state)
        if target is None:
            self._strip.update("Select a connection to start querying.")
            return
        labels = []
        for query in target.queries:
            label = tab_label(query)
            labels.append(f"[b]\\[{label}][/b]" if query.id == target.active_query_id else label)
        self._strip.update(" │ ".join(labels))


__all__ = ["QueryTabs", "tab_label"]
