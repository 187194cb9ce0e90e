"""
Upload → OCR Extraction → Transaction Suggestions → Approved Ledger Entries

A deterministic, testable pipeline that turns household receipts and bank
statements into double-entry ledger transactions, with confidence scoring,
human approval and exactly-once materialization of each suggestion.
"""

__version__ = "0.1.0"
