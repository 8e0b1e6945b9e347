"""
Trade Documents Document Store - Relational Snapshot Tables
=============================================================
Each entity is stored as one row holding its serialized snapshot.
kind + entity_id is unique; status is copied out of the payload so
list-by-status is an indexed query.

This file contains NO business logic.
"""

from __future__ import annotations

from django.db import models


class StoredEntity(models.Model):
    kind = models.CharField(max_length=32)
    entity_id = models.CharField(max_length=64)
    status = models.CharField(max_length=32, null=True, blank=True)
    payload = models.JSONField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "tradedocs_stored_entities"
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["kind", "entity_id"], name="uq_stored_entity_kind_id",
            ),
        ]
        indexes = [
            models.Index(fields=["kind", "status"], name="idx_stored_entity_status"),
        ]

    def __str__(self) -> str:
        return f"{self.kind}:{self.entity_id} ({self.status})"


class DocumentSequence(models.Model):
    kind = models.CharField(max_length=32)
    year = models.IntegerField()
    last_value = models.IntegerField(default=0)

    class Meta:
        db_table = "tradedocs_document_sequences"
        ordering = ["kind", "year"]
        constraints = [
            models.UniqueConstraint(
                fields=["kind", "year"], name="uq_document_sequence_kind_year",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.kind}/{self.year}: {self.last_value}"
