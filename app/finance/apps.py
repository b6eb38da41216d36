"""
Finance app configuration.

This app provides the USD transaction ledger:
- Soft-deletable Transaction records
- Summary, monthly and category aggregation
- Idempotent posting of completed payments
"""

from django.apps import AppConfig


class FinanceConfig(AppConfig):
    """Configuration for the finance application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "finance"
    verbose_name = "Finance"

    def ready(self):
        # Registers event handlers with the dispatch table
        from finance import handlers  # noqa: F401
