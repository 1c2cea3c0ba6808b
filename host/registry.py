from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Set

from holdem.engine import PokerEngine


@dataclass
class TableEntry:
    # Seats in join order; the engine is built from them on start. Departed
    # players still hold an engine seat until the current hand ends.
    table_id: str
    members: Dict[str, str] = field(default_factory=dict)
    departed: Set[str] = field(default_factory=set)
    engine: Optional[PokerEngine] = None
    hand_settled: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class TableRegistry:
    """Owns every live table, keyed by table id."""

    def __init__(self) -> None:
        self._tables: Dict[str, TableEntry] = {}

    def join(self, table_id: str, player_id: str, username: str) -> TableEntry:
        entry = self._tables.get(table_id)
        if entry is None:
            entry = TableEntry(table_id=table_id)
            self._tables[table_id] = entry
        entry.departed.discard(player_id)
        entry.members[player_id] = username
        return entry

    def leave(self, table_id: str, player_id: str) -> None:
        entry = self._tables.get(table_id)
        if entry is None:
            return
        if entry.members.pop(player_id, None) is not None:
            entry.departed.add(player_id)
        if not entry.members:
            self._tables.pop(table_id, None)

    def get(self, table_id: str) -> Optional[TableEntry]:
        return self._tables.get(table_id)

    def end_game(self, table_id: str) -> None:
        entry = self._tables.get(table_id)
        if entry is not None:
            entry.engine = None
            entry.departed.clear()
            entry.hand_settled = False

    def __contains__(self, table_id: object) -> bool:
        return table_id in self._tables

    def __iter__(self) -> Iterator[TableEntry]:
        return iter(list(self._tables.values()))

    def __len__(self) -> int:
        return len(self._tables)
