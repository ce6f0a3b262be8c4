"""Rules reconciling local subscription state with Stripe's view of it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import Subscription, SubscriptionStatus

_STRIPE_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "unpaid": SubscriptionStatus.CANCELED,
}


@dataclass(frozen=True, slots=True)
class ReconciliationDecision:
    status: SubscriptionStatus
    cancel_at_period_end: bool
    changed: bool


def reconcile_cancellation(
    subscription: Subscription,
    provider_cancel_at_period_end: Optional[bool] = None,
) -> ReconciliationDecision:
    """
    Decide the status a subscription should hold given Stripe's cancel flag.

    A cancel-at-period-end request leaves the subscription entitled until the
    period ends, so a record stored as CANCELED while Stripe still reports
    ``cancel_at_period_end`` was canceled too early and must read ACTIVE.
    Every other combination is left untouched.

    Args:
        subscription: Locally stored subscription
        provider_cancel_at_period_end: Stripe's flag; None falls back to the
            flag stored on the record

    Returns:
        The status and flag the record should hold
    """
    cancel_at_period_end = (
        subscription.stripe_cancel_at_period_end
        if provider_cancel_at_period_end is None
        else provider_cancel_at_period_end
    )

    if cancel_at_period_end and subscription.status == SubscriptionStatus.CANCELED:
        return ReconciliationDecision(
            status=SubscriptionStatus.ACTIVE,
            cancel_at_period_end=True,
            changed=True,
        )

    return ReconciliationDecision(
        status=subscription.status,
        cancel_at_period_end=subscription.stripe_cancel_at_period_end,
        changed=False,
    )


def map_stripe_status(
    stripe_status: Optional[str],
    current: Optional[SubscriptionStatus] = None,
) -> SubscriptionStatus:
    """Translate a Stripe subscription status; unknown values keep ``current``."""
    mapped = _STRIPE_STATUS_MAP.get((stripe_status or "").lower())
    if mapped is not None:
        return mapped
    return current if current is not None else SubscriptionStatus.ACTIVE
