"""
Per-player serialization of schedule writes.

The conflict check and the write that follows must not interleave with another
write for the same player. Two layers:
- an in-process lock per player id (acquired in sorted order, so no deadlocks)
- SELECT ... FOR UPDATE on the player rows inside the writing transaction,
  which serializes writers across processes on PostgreSQL / SQL Server
  (SQLite ignores FOR UPDATE and already serializes writers per database)
"""

import threading
import weakref
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional
from uuid import UUID

from sqlmodel import Session, select

from pool_manager.models.player import Player

_registry_lock = threading.Lock()
# Entries vanish once no caller holds the lock object
_player_locks: "weakref.WeakValueDictionary[UUID, threading.Lock]" = weakref.WeakValueDictionary()


def _lock_for(player_id: UUID) -> threading.Lock:
    with _registry_lock:
        lock = _player_locks.get(player_id)
        if lock is None:
            lock = threading.Lock()
            _player_locks[player_id] = lock
        return lock


@contextmanager
def player_schedule_lock(player_ids: Iterable[Optional[UUID]]) -> Iterator[None]:
    """Hold the in-process schedule lock of every given player."""
    ordered = sorted({pid for pid in player_ids if pid is not None}, key=str)
    locks = [_lock_for(pid) for pid in ordered]
    acquired: List[threading.Lock] = []
    try:
        for lock in locks:
            lock.acquire()
            acquired.append(lock)
        yield
    finally:
        for lock in reversed(acquired):
            lock.release()


def lock_player_rows(session: Session, player_ids: Iterable[UUID]) -> Dict[UUID, Player]:
    """Load and row-lock the given players; missing ids are absent from the result."""
    ids = sorted({pid for pid in player_ids if pid is not None}, key=str)
    if not ids:
        return {}
    players = session.exec(select(Player).where(Player.id.in_(ids)).with_for_update()).all()
    return {player.id: player for player in players}
