"""
Reconciliation engine for migrated entity stores.

A run enumerates the record types of a source and a target store, pages
through every source type on both sides, diffs the record identifiers and
writes per-type and aggregate discrepancy reports.  The layout follows the
entity_store support package so the same logger, events and endpoints are
shared between the two.
"""

from .cli import run_cli
from .runner import ReconciliationOrchestrator, run_reconciliation

__all__ = ["run_cli", "ReconciliationOrchestrator", "run_reconciliation"]
