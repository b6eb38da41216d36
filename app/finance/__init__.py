"""
Finance app: the USD transaction ledger.

This app handles:
- Manual income, expense and adjustment entries
- Automatic posting of completed payments (at most once per payment)
- Financial summary, monthly and category reports
- One-way soft delete with audit stamps

Related apps:
    - core: Repository, pagination, filters and error hierarchy

Usage:
    from finance.services import ledger

    ledger.post_payment_entry({"paymentId": "P1", "amountInUSD": "49.99"})
    ledger.get_financial_summary({"startDate": "2024-01-01"}).to_dict()
"""
