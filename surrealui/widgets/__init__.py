"""Widget library for the Textual UI."""

from __future__ import annotations

from .connection_sidebar import ConnectionSidebar
from .query_tabs import QueryTabs
from .status_bar import StatusBar

__all__ = ["ConnectionSidebar", "QueryTabs", "StatusBar"]
