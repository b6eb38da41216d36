"""
Tests for finance app.

This package contains test modules for:
- test_models.py: Transaction model and storage constraints
- test_types.py: LedgerFilter and event parsing
- test_repositories.py: TransactionRepository (soft delete, guard lookups)
- test_services.py: LedgerService aggregation and posting
- test_handlers.py / test_tasks.py: Event dispatch and Celery posting
- test_integration.py: End-to-end ledger scenarios

Usage:
    pytest finance/tests/
    pytest finance/tests/test_services.py
"""
