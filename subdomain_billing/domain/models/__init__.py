"""Domain models for subdomain marketplace billing."""

from .plan import (
    ENTITLED_STATUSES,
    SUBSCRIPTION_PLANS,
    PlanDefinition,
    SubscriptionPlan,
    SubscriptionStatus,
    plan_for_price_id,
)
from .subscription import Subscription
from .user import User

__all__ = [
    "ENTITLED_STATUSES",
    "PlanDefinition",
    "SUBSCRIPTION_PLANS",
    "Subscription",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "User",
    "plan_for_price_id",
]
