"""Table host package: wraps poker engines with websocket networking."""

from .registry import TableEntry, TableRegistry
from .server import TableHost

__all__ = ["TableEntry", "TableRegistry", "TableHost"]
