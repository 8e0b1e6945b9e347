"""
Trade Documents - Document Numbering
======================================
Human-readable document numbers: {PREFIX}-{YEAR}-{NNN}.
"""
