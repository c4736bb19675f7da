"""Workspace defaults and configuration persistence helpers."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Sequence

from pydantic import ValidationError

from .models import (
    SANDBOX,
    AuthMode,
    Connection,
    ConnectionOptions,
    HistoryEntry,
    SavedQuery,
    TabQuery,
    WorkspaceConfig,
)

if TYPE_CHECKING:
    from .store import ConfigStore

CONFIG_FILE = Path.home() / ".config" / "surrealui" / "config.json"

LOG = logging.getLogger(__name__)


def new_id() -> str:
    """Return a fresh opaque identifier."""

    return uuid.uuid4().hex


def create_sandbox() -> Connection:
    """Scratch connection used when no user connection is selected."""

    return Connection(
        id=SANDBOX,
        name="Sandbox",
        options=ConnectionOptions(
            endpoint="mem://",
            namespace="sandbox",
            database="sandbox",
            auth_mode=AuthMode.NONE,
        ),
        queries=(TabQuery(id=1),),
        active_query_id=1,
        last_query_id=1,
    )


def create_connection(
    name: str,
    options: ConnectionOptions | None = None,
    *,
    connection_id: str | None = None,
) -> Connection:
    """Build a user connection holding a single empty tab."""

    return Connection(
        id=connection_id or new_id(),
        name=name,
        options=options or ConnectionOptions(),
        queries=(TabQuery(id=1),),
        active_query_id=1,
        last_query_id=1,
    )


def create_history_entry(query: str, tab_name: str = "") -> HistoryEntry:
    return HistoryEntry(id=new_id(), query=query, tab_name=tab_name)


def create_saved_query(name: str, text: str, tags: Sequence[str] = ()) -> SavedQuery:
    return SavedQuery(id=new_id(), name=name, text=text, tags=tuple(tags))


def create_base_config() -> WorkspaceConfig:
    """Baseline configuration used on first run or when the file is unusable."""

    return WorkspaceConfig(sandbox=create_sandbox())


def load_config() -> WorkspaceConfig:
    """Load configuration from disk; fall back to defaults if missing or invalid.

    A file that fails validation is copied to ``invalid_config_path()`` first,
    so the autosave that follows cannot destroy the only copy of it.
    """

    try:
        raw = CONFIG_FILE.read_text(encoding="utf-8")
    except FileNotFoundError:
        return create_base_config()
    except OSError:
        LOG.warning("Unable to read configuration", extra={"path": str(CONFIG_FILE)})
        return create_base_config()
    try:
        return WorkspaceConfig.model_validate_json(raw)
    except ValidationError as exc:
        backup = _keep_invalid_copy(raw)
        LOG.warning(
            "Ignoring invalid configuration file",
            extra={
                "path": str(CONFIG_FILE),
                "errors": exc.error_count(),
                "backup": str(backup) if backup else None,
            },
        )
        return create_base_config()


def invalid_config_path() -> Path:
    """Where an unreadable configuration file is copied before defaults replace it."""

    return CONFIG_FILE.with_name(CONFIG_FILE.name + ".invalid")


def _keep_invalid_copy(raw: str) -> Path | None:
    backup = invalid_config_path()
    try:
        backup.write_text(raw, encoding="utf-8")
    except OSError:
        LOG.exception("Failed to keep a copy of the invalid configuration", extra={"path": str(backup)})
        return None
    return backup


def save_config(config: WorkspaceConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(config.model_dump_json(indent=2) + "\n", encoding="utf-8")


class ConfigAutosave:
    """Store subscriber that writes every committed snapshot to disk."""

    def __init__(self, store: ConfigStore, *, writer: Callable[[WorkspaceConfig], None] | None = None) -> None:
        self._store = store
        self._writer = writer or save_config
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self) -> None:
        if self._unsubscribe:
            return
        self._unsubscribe = self._store.subscribe(self._handle_change)

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def flush(self) -> None:
        """Write the current snapshot immediately."""

        self._handle_change(self._store.state)

    def _handle_change(self, config: WorkspaceConfig) -> None:
        try:
            self._writer(config)
        except OSError:
            LOG.exception("Failed to persist configuration", extra={"path": str(CONFIG_FILE)})


__all__ = [
    "CONFIG_FILE",
    "ConfigAutosave",
    "create_base_config",
    "create_connection",
    "create_history_entry",
    "create_sandbox",
    "create_saved_query",
    "invalid_config_path",
    "load_config",
    "new_id",
    "save_config",
]
