"""
                        Services Module

Business logic behind the API.

Services:
    - pricing: order totals and checkout line items
    - orders: checkout, payment webhook, listing and lifecycle flows
    - payment: Stripe Checkout (Mock in development)
"""
