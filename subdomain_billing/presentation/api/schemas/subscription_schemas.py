"""Pydantic schemas for the subscription admin endpoints."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from subdomain_billing.domain.models import Subscription


class SubscriptionResponse(BaseModel):
    """Response schema for subscription data."""

    id: int
    user_id: int
    plan: str
    status: str
    subdomain_quota: int
    subdomains_used: int
    stripe_subscription_id: Optional[str]
    stripe_current_period_end: Optional[datetime]
    stripe_cancel_at_period_end: bool
    created_at: datetime
    canceled_at: Optional[datetime]
    is_entitled: bool

    @classmethod
    def from_domain(cls, subscription: Subscription) -> "SubscriptionResponse":
        return cls(
            id=subscription.id,
            user_id=subscription.user_id,
            plan=subscription.plan.value,
            status=subscription.status.value,
            subdomain_quota=subscription.subdomain_quota,
            subdomains_used=subscription.subdomains_used,
            stripe_subscription_id=subscription.stripe_subscription_id,
            stripe_current_period_end=subscription.stripe_current_period_end,
            stripe_cancel_at_period_end=subscription.stripe_cancel_at_period_end,
            created_at=subscription.created_at,
            canceled_at=subscription.canceled_at,
            is_entitled=subscription.is_entitled(),
        )


class UserSubscriptionsResponse(BaseModel):
    """All subscriptions of one user, newest first."""

    user_id: int
    email: str
    subscriptions: List[SubscriptionResponse]
    status_counts: Dict[str, int]


class UserSummaryResponse(BaseModel):
    id: int
    email: str
    name: str
    subscription_count: int


class UserSummaryPageResponse(BaseModel):
    """One page of users; pass ``next_after_id`` back to continue."""

    items: List[UserSummaryResponse]
    next_after_id: Optional[int]


class ReconcileRequest(BaseModel):
    provider_cancel_at_period_end: Optional[bool] = None
    dry_run: bool = False


class ReconcileResponse(BaseModel):
    outcome: str
    stripe_subscription_id: str
    provider_cancel_at_period_end: Optional[bool]
    previous_status: Optional[str]
    subscription: Optional[SubscriptionResponse]
