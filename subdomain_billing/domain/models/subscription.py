"""Subscription domain model linking users to Stripe subscriptions."""

from datetime import datetime, timezone
from typing import Optional

from .plan import ENTITLED_STATUSES, SubscriptionPlan, SubscriptionStatus


class Subscription:
    """
    Subscription entity representing one of a user's subdomain plans.

    A user may own several records; historical ones are kept with a
    terminal status instead of being deleted.

    Attributes:
        id: Unique identifier
        user_id: Reference to User
        plan: Subscribed plan (FREE, PACKAGE_5, PACKAGE_50)
        status: Local subscription status
        subdomain_quota: Subdomains allotted under the plan
        subdomains_used: Subdomains consumed
        stripe_subscription_id: Stripe subscription ID (None for FREE plans)
        stripe_price_id: Stripe price ID
        stripe_current_period_start: Start of current billing period
        stripe_current_period_end: End of current billing period
        stripe_cancel_at_period_end: Whether Stripe will cancel at period end
        stripe_cancel_at: Scheduled cancellation timestamp reported by Stripe
        created_at: Subscription creation timestamp
        updated_at: Last update timestamp
        canceled_at: When the subscription was canceled, if ever
        ended_at: When the entitlement ended, if ever
    """

    def __init__(
        self,
        id: int,
        user_id: int,
        plan: SubscriptionPlan,
        status: SubscriptionStatus,
        subdomain_quota: int,
        subdomains_used: int = 0,
        stripe_subscription_id: Optional[str] = None,
        stripe_price_id: Optional[str] = None,
        stripe_current_period_start: Optional[datetime] = None,
        stripe_current_period_end: Optional[datetime] = None,
        stripe_cancel_at_period_end: bool = False,
        stripe_cancel_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        canceled_at: Optional[datetime] = None,
        ended_at: Optional[datetime] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.plan = SubscriptionPlan(plan)
        self.status = SubscriptionStatus(status)
        self.subdomain_quota = subdomain_quota
        self.subdomains_used = subdomains_used
        self.stripe_subscription_id = stripe_subscription_id
        self.stripe_price_id = stripe_price_id
        self.stripe_current_period_start = stripe_current_period_start
        self.stripe_current_period_end = stripe_current_period_end
        self.stripe_cancel_at_period_end = stripe_cancel_at_period_end
        self.stripe_cancel_at = stripe_cancel_at
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or self.created_at
        self.canceled_at = canceled_at
        self.ended_at = ended_at

    def is_entitled(self) -> bool:
        """Check if subscription still grants its quota."""
        return self.status in ENTITLED_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Subscription id={self.id} user_id={self.user_id} "
            f"plan={self.plan.value} status={self.status.value}>"
        )
