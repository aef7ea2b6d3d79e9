"""Billing module for saaskit.

This module provides:
- The public plan catalog and plan resolution
- Customer, checkout and portal operations
- Subscription sync from Stripe webhook events

Usage:
    from saaskit.platform.billing import billing_service

    info = await billing_service.get_subscription_info(db, user_id)
"""

from saaskit.platform.billing.billing_service import billing_service

__all__ = [
    "billing_service",
]
