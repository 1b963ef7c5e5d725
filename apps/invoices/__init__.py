"""Invoices app package: one invoice document per confirmed booking."""
