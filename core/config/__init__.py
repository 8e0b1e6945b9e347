"""
Trade Documents Core Config — Public API
==========================================
Lifecycle settings and the additional-tax catalogue.
"""

from core.config.rules import (
    COMMON_LINE_ITEM_TAXES,
    LifecycleConfig,
    get_tax_by_id,
)

__all__ = [
    "COMMON_LINE_ITEM_TAXES",
    "LifecycleConfig",
    "get_tax_by_id",
]
