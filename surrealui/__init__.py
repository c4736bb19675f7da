"""Terminal workspace for administering SurrealDB-style databases."""

from __future__ import annotations

__version__ = "0.1.0"
