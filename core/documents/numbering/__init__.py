"""
Trade Documents - Numbering Public API
========================================
"""

from core.documents.numbering.engine import (
    generate_document_number,
    next_document_number,
    sequence_year,
)
from core.documents.numbering.models import (
    DEFAULT_POLICIES,
    RESET_NEVER,
    RESET_YEARLY,
    VALID_RESET_PERIODS,
    NumberingPolicy,
)

__all__ = [
    "DEFAULT_POLICIES",
    "NumberingPolicy",
    "RESET_NEVER",
    "RESET_YEARLY",
    "VALID_RESET_PERIODS",
    "generate_document_number",
    "next_document_number",
    "sequence_year",
]
