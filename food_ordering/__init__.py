"""
                Food Ordering Backend

Restaurants, users and orders with a Stripe-hosted checkout flow,
payment reconciliation via signed webhooks, and a Celery worker for
best-effort order total backfills.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
