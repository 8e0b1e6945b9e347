"""
Trade Documents Document Store — Django Persistence
=====================================================
Database-backed Document Store. Entities are stored as JSON snapshots
in StoredEntity; document counters live in DocumentSequence.

Write flow (NON-NEGOTIABLE):
    1. transaction() opens one atomic block (nested blocks are savepoints)
    2. Reads inside the block lock the rows they touch
    3. Writes go through the ORM inside the same block
    4. on_commit callbacks run AFTER the outermost block commits

A process-wide lock serialises units of work, so read-modify-write
sequences behave the same on databases without row locks (SQLite).

This store does NOT:
- Interpret payloads beyond status extraction
- Retry on failure
- Swallow errors raised inside a unit of work
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Tuple

from django.db import IntegrityError, transaction

from core.document_store.base import (
    check_entity,
    decode_entity,
    encode_entity,
    entity_id_of,
    entity_key,
    status_key,
    status_of,
)
from core.document_store.models import DocumentSequence, StoredEntity
from core.errors import ValidationError
from core.primitives.kinds import EntityKind, parse_kind

logger = logging.getLogger("tradedocs.store")


def _logged(callback: Callable[[], None]) -> Callable[[], None]:
    def run() -> None:
        try:
            callback()
        except Exception as exc:
            logger.error(f"Post-commit callback failed: {exc}", exc_info=True)
    return run


class DjangoDocumentStore:
    """Document Store on the Django ORM (any configured database)."""

    def __init__(self, using: Optional[str] = None) -> None:
        self._using = using
        self._lock = threading.RLock()

    def _rows(self):
        return StoredEntity.objects.using(self._using) if self._using else StoredEntity.objects

    def _sequences(self):
        if self._using:
            return DocumentSequence.objects.using(self._using)
        return DocumentSequence.objects

    def _in_atomic(self) -> bool:
        return transaction.get_connection(self._using).in_atomic_block

    # ── Unit of work ──────────────────────────────────────────

    @contextmanager
    def transaction(self) -> Iterator[DjangoDocumentStore]:
        with self._lock:
            with transaction.atomic(using=self._using):
                yield self

    def on_commit(self, callback: Callable[[], None]) -> None:
        transaction.on_commit(_logged(callback), using=self._using)

    # ── Reads ─────────────────────────────────────────────────

    def _row(self, kind: EntityKind, key: str):
        query = self._rows().filter(kind=kind.value, entity_id=key)
        if self._in_atomic():
            query = query.select_for_update()
        return query.first()

    def get_by_id(self, kind, entity_id) -> Optional[Any]:
        kind = parse_kind(kind)
        row = self._row(kind, entity_key(entity_id))
        if row is None:
            return None
        return decode_entity(kind, row.payload)

    def list_by_status(self, kind, status=None) -> Tuple[Any, ...]:
        kind = parse_kind(kind)
        query = self._rows().filter(kind=kind.value)
        wanted = status_key(status)
        if wanted is not None:
            query = query.filter(status=wanted)
        return tuple(decode_entity(kind, row.payload) for row in query.order_by("id"))

    def count(self, kind) -> int:
        return self._rows().filter(kind=parse_kind(kind).value).count()

    # ── Writes ────────────────────────────────────────────────

    def insert(self, kind, entity) -> Any:
        kind = check_entity(kind, entity)
        key = entity_key(entity_id_of(kind, entity))
        with self.transaction():
            if self._row(kind, key) is not None:
                raise ValidationError(f"{kind.value} '{key}' already exists.")
            try:
                with transaction.atomic(using=self._using):
                    self._rows().create(
                        kind=kind.value,
                        entity_id=key,
                        status=status_of(entity),
                        payload=encode_entity(kind, entity),
                    )
            except IntegrityError as exc:
                raise ValidationError(f"{kind.value} '{key}' already exists.") from exc
        return entity

    def update(self, kind, entity) -> Any:
        kind = check_entity(kind, entity)
        key = entity_key(entity_id_of(kind, entity))
        with self.transaction():
            row = self._row(kind, key)
            if row is None:
                raise ValidationError(f"{kind.value} '{key}' does not exist.")
            row.status = status_of(entity)
            row.payload = encode_entity(kind, entity)
            row.save(update_fields=["status", "payload", "updated_at"])
        return entity

    def next_sequence(self, kind, year: int) -> int:
        kind = parse_kind(kind)
        with self.transaction():
            sequence, _ = (
                self._sequences()
                .select_for_update()
                .get_or_create(kind=kind.value, year=year, defaults={"last_value": 0})
            )
            sequence.last_value += 1
            sequence.save(update_fields=["last_value"])
            return sequence.last_value
