"""Typed configuration tree shared by the store, persistence, and widgets."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

SANDBOX = "sandbox"
MAX_HISTORY_SIZE = 50
MIN_FONT_ZOOM = 0.5
MAX_FONT_ZOOM = 2.0
FONT_ZOOM_STEP = 0.1


def clamp_font_zoom(level: float) -> float:
    return round(min(max(level, MIN_FONT_ZOOM), MAX_FONT_ZOOM), 1)


class ColorScheme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class ResultMode(str, Enum):
    COMBINED = "combined"
    SINGLE = "single"
    TABLE = "table"


class DriverType(str, Enum):
    """Storage engine used when launching the local database server."""

    MEMORY = "memory"
    FILE = "file"
    TIKV = "tikv"


class DesignerLayoutMode(str, Enum):
    DIAGRAM = "diagram"
    GRID = "grid"


class DesignerNodeMode(str, Enum):
    FIELDS = "fields"
    SUMMARY = "summary"
    SIMPLE = "simple"


class ViewMode(str, Enum):
    QUERY = "query"
    EXPLORER = "explorer"
    DESIGNER = "designer"
    AUTHENTICATION = "authentication"
    FUNCTIONS = "functions"
    MODELS = "models"
    DOCUMENTATION = "documentation"


class AuthMode(str, Enum):
    NONE = "none"
    ROOT = "root"
    NAMESPACE = "namespace"
    DATABASE = "database"
    SCOPE = "scope"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ScopeField(_Frozen):
    subject: str
    value: str


class ConnectionOptions(_Frozen):
    """Transport settings; the store never looks inside them."""

    endpoint: str = ""
    namespace: str = ""
    database: str = ""
    username: str = ""
    password: str = ""
    auth_mode: AuthMode = AuthMode.ROOT
    scope: str = ""
    scope_fields: tuple[ScopeField, ...] = ()


class TabQuery(_Frozen):
    """A single query buffer inside a connection."""

    id: int = Field(ge=1)
    name: str = ""
    text: str = ""


class HistoryEntry(_Frozen):
    """A previously executed query kept for recall."""

    id: str
    query: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))
    tab_name: str = ""


class SavedQuery(_Frozen):
    """A named query stored independently of any connection."""

    id: str
    name: str
    text: str
    tags: tuple[str, ...] = ()


class Connection(_Frozen):
    """A user-configurable connection together with its tabs and history."""

    id: str
    name: str
    options: ConnectionOptions = Field(default_factory=ConnectionOptions)
    queries: tuple[TabQuery, ...] = (TabQuery(id=1),)
    active_query_id: int = 1
    last_query_id: int = 1
    query_history: tuple[HistoryEntry, ...] = ()
    pinned_tables: tuple[str, ...] = ()

    @property
    def active_query(self) -> TabQuery | None:
        """Tab whose id matches ``active_query_id``, if any."""

        for query in self.queries:
            if query.id == self.active_query_id:
                return query
        return None


class Preferences(_Frozen):
    """Scalar user preferences."""

    color_scheme: ColorScheme = ColorScheme.AUTO
    auto_connect: bool = True
    table_suggest: bool = True
    error_checking: bool = True
    word_wrap: bool = True
    update_checker: bool = True
    last_prompted_version: str = ""
    result_mode: ResultMode = ResultMode.COMBINED
    font_zoom_level: float = Field(default=1.0, ge=MIN_FONT_ZOOM, le=MAX_FONT_ZOOM)
    is_pinned: bool = False
    default_designer_layout_mode: DesignerLayoutMode = DesignerLayoutMode.DIAGRAM
    default_designer_node_mode: DesignerNodeMode = DesignerNodeMode.FIELDS
    local_surreal_user: str = "root"
    local_surreal_pass: str = "root"
    local_surreal_port: int = Field(default=8000, ge=1, le=65535)
    local_surreal_driver: DriverType = DriverType.MEMORY
    local_surreal_storage: str = ""
    local_surreal_path: str = ""

    @field_validator("font_zoom_level", mode="before")
    @classmethod
    def _clamp_font_zoom(cls, value: object) -> object:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return clamp_font_zoom(float(value))
        return value


class Preference(str, Enum):
    """Closed set of preference fields accepted by ``ConfigStore.set_preference``."""

    COLOR_SCHEME = "color_scheme"
    AUTO_CONNECT = "auto_connect"
    TABLE_SUGGEST = "table_suggest"
    ERROR_CHECKING = "error_checking"
    WORD_WRAP = "word_wrap"
    UPDATE_CHECKER = "update_checker"
    LAST_PROMPTED_VERSION = "last_prompted_version"
    RESULT_MODE = "result_mode"
    FONT_ZOOM_LEVEL = "font_zoom_level"
    IS_PINNED = "is_pinned"
    DESIGNER_LAYOUT_MODE = "default_designer_layout_mode"
    DESIGNER_NODE_MODE = "default_designer_node_mode"
    LOCAL_SURREAL_USER = "local_surreal_user"
    LOCAL_SURREAL_PASS = "local_surreal_pass"
    LOCAL_SURREAL_PORT = "local_surreal_port"
    LOCAL_SURREAL_DRIVER = "local_surreal_driver"
    LOCAL_SURREAL_STORAGE = "local_surreal_storage"
    LOCAL_SURREAL_PATH = "local_surreal_path"


class WorkspaceConfig(Preferences):
    """Root of the configuration tree."""

    connections: tuple[Connection, ...] = ()
    sandbox: Connection = Field(
        default_factory=lambda: Connection(id=SANDBOX, name="Sandbox"),
    )
    active_connection: str | None = None
    active_view: ViewMode = ViewMode.QUERY
    saved_queries: tuple[SavedQuery, ...] = ()

    def connection_by_id(self, connection_id: str) -> Connection | None:
        """Look up a connection, treating the sentinel as the sandbox."""

        if connection_id == SANDBOX:
            return self.sandbox
        for connection in self.connections:
            if connection.id == connection_id:
                return connection
        return None


__all__ = [
    "AuthMode",
    "ColorScheme",
    "Connection",
    "ConnectionOptions",
    "DesignerLayoutMode",
    "DesignerNodeMode",
    "DriverType",
    "FONT_ZOOM_STEP",
    "HistoryEntry",
    "MAX_FONT_ZOOM",
    "MAX_HISTORY_SIZE",
    "MIN_FONT_ZOOM",
    "Preference",
    "Preferences",
    "ResultMode",
    "SANDBOX",
    "SavedQuery",
    "ScopeField",
    "TabQuery",
    "ViewMode",
    "WorkspaceConfig",
    "clamp_font_zoom",
]
