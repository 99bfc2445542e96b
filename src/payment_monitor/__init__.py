"""Stripe failed payments monitor.

Receives Stripe payment-failure webhooks, emails an alert through Gmail and
records each failure in Airtable.
"""

__version__ = "1.0.0"
