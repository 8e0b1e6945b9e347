"""
Trade Documents Document Store - App Configuration
====================================================
Persistent entity snapshots and per-kind document sequences.
"""

from django.apps import AppConfig


class CoreDocumentStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.document_store"
    label = "core_document_store"
    verbose_name = "Trade Documents Store"
