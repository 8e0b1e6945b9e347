"""
Trade Documents Document Store
================================
Keyed entity storage with per-kind numbering and all-or-nothing units
of work.

    InMemoryDocumentStore  — process-local, used by tests and simulation
    DjangoDocumentStore    — core.document_store.persistence (needs Django)
"""

from core.document_store.base import (
    ENTITY_CLASSES,
    DocumentStore,
    decode_entity,
    encode_entity,
)
from core.document_store.memory import InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "ENTITY_CLASSES",
    "InMemoryDocumentStore",
    "decode_entity",
    "encode_entity",
]
