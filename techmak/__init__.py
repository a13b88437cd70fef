"""Techmak business administration backend: quotations, purchase orders, invoices, bills."""

__version__ = "1.4.0"
