"""
Trade Documents Document Store — In-Memory Implementation
==========================================================
Thread-safe, process-local store. One RLock serialises every unit of
work, so a transaction always covers every aggregate it touches.

Writes made inside transaction() are staged and published together
when the outermost block exits cleanly. A block that raises discards
its staged writes; nested blocks roll back to their own savepoint.
Readers on other threads only ever see committed snapshots.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from core.document_store.base import (
    check_entity,
    entity_id_of,
    entity_key,
    status_key,
    status_of,
)
from core.errors import ValidationError
from core.primitives.kinds import EntityKind, parse_kind

logger = logging.getLogger("tradedocs.store")


class _PendingWrites:
    """Staged writes of one open transaction."""

    def __init__(self) -> None:
        self.entities: Dict[Tuple[EntityKind, str], Any] = {}
        self.sequences: Dict[Tuple[EntityKind, int], int] = {}
        self.callbacks: List[Callable[[], None]] = []

    def savepoint(self) -> tuple:
        return dict(self.entities), dict(self.sequences), len(self.callbacks)

    def rollback_to(self, savepoint: tuple) -> None:
        entities, sequences, callback_count = savepoint
        self.entities = dict(entities)
        self.sequences = dict(sequences)
        del self.callbacks[callback_count:]


class InMemoryDocumentStore:
    """
    In-memory Document Store.

    Entities are kept per kind in insertion order. Updates replace the
    whole entity in place and keep its position.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entities: Dict[EntityKind, Dict[str, Any]] = {
            kind: {} for kind in EntityKind
        }
        self._sequences: Dict[Tuple[EntityKind, int], int] = {}
        self._pending: Optional[_PendingWrites] = None

    # ── Unit of work ──────────────────────────────────────────

    @contextmanager
    def transaction(self) -> Iterator[InMemoryDocumentStore]:
        callbacks: List[Callable[[], None]] = []
        with self._lock:
            outer = self._pending is None
            if outer:
                self._pending = _PendingWrites()
                savepoint = None
            else:
                savepoint = self._pending.savepoint()
            try:
                yield self
            except BaseException:
                if outer:
                    self._pending = None
                else:
                    self._pending.rollback_to(savepoint)
                raise
            if outer:
                pending, self._pending = self._pending, None
                self._publish(pending)
                callbacks = pending.callbacks
        for callback in callbacks:
            try:
                callback()
            except Exception as exc:
                logger.error(f"Post-commit callback failed: {exc}", exc_info=True)

    def on_commit(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if self._pending is not None:
                self._pending.callbacks.append(callback)
                return
        callback()

    def _publish(self, pending: _PendingWrites) -> None:
        for (kind, key), entity in pending.entities.items():
            self._entities[kind][key] = entity
        self._sequences.update(pending.sequences)

    # ── Reads ─────────────────────────────────────────────────

    def _lookup(self, kind: EntityKind, key: str) -> Optional[Any]:
        if self._pending is not None and (kind, key) in self._pending.entities:
            return self._pending.entities[(kind, key)]
        return self._entities[kind].get(key)

    def get_by_id(self, kind, entity_id) -> Optional[Any]:
        kind = parse_kind(kind)
        with self._lock:
            return self._lookup(kind, entity_key(entity_id))

    def list_by_status(self, kind, status=None) -> Tuple[Any, ...]:
        kind = parse_kind(kind)
        wanted = status_key(status)
        with self._lock:
            merged = dict(self._entities[kind])
            if self._pending is not None:
                for (pending_kind, key), entity in self._pending.entities.items():
                    if pending_kind == kind:
                        merged[key] = entity
        if wanted is None:
            return tuple(merged.values())
        return tuple(e for e in merged.values() if status_of(e) == wanted)

    def count(self, kind) -> int:
        return len(self.list_by_status(kind))

    # ── Writes ────────────────────────────────────────────────

    def insert(self, kind, entity) -> Any:
        kind = check_entity(kind, entity)
        key = entity_key(entity_id_of(kind, entity))
        with self.transaction():
            if self._lookup(kind, key) is not None:
                raise ValidationError(f"{kind.value} '{key}' already exists.")
            self._pending.entities[(kind, key)] = entity
        return entity

    def update(self, kind, entity) -> Any:
        kind = check_entity(kind, entity)
        key = entity_key(entity_id_of(kind, entity))
        with self.transaction():
            if self._lookup(kind, key) is None:
                raise ValidationError(f"{kind.value} '{key}' does not exist.")
            self._pending.entities[(kind, key)] = entity
        return entity

    def next_sequence(self, kind, year: int) -> int:
        kind = parse_kind(kind)
        with self.transaction():
            current = self._pending.sequences.get(
                (kind, year), self._sequences.get((kind, year), 0),
            )
            self._pending.sequences[(kind, year)] = current + 1
            return current + 1
