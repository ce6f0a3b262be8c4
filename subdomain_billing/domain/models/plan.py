"""Subscription plans, statuses and the plan catalogue."""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Tuple


class SubscriptionPlan(str, Enum):
    FREE = "FREE"
    PACKAGE_5 = "PACKAGE_5"
    PACKAGE_50 = "PACKAGE_50"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    CANCELED = "CANCELED"
    EXPIRED = "EXPIRED"
    TRIALING = "TRIALING"


# Statuses that still entitle the user to their quota.
ENTITLED_STATUSES = frozenset(
    {SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING, SubscriptionStatus.PAST_DUE}
)


@dataclass(frozen=True, slots=True)
class PlanDefinition:
    plan: SubscriptionPlan
    name: str
    price_cents: int
    subdomain_quota: int
    features: Tuple[str, ...]


SUBSCRIPTION_PLANS: Mapping[SubscriptionPlan, PlanDefinition] = {
    SubscriptionPlan.FREE: PlanDefinition(
        plan=SubscriptionPlan.FREE,
        name="Free",
        price_cents=0,
        subdomain_quota=2,
        features=("Up to 2 subdomains", "Basic DNS management", "Email support"),
    ),
    SubscriptionPlan.PACKAGE_5: PlanDefinition(
        plan=SubscriptionPlan.PACKAGE_5,
        name="5 Subdomains Package",
        price_cents=4900,
        subdomain_quota=7,
        features=(
            "Up to 7 subdomains (2 free + 5)",
            "Advanced DNS management",
            "Priority support",
            "99.9% uptime SLA",
        ),
    ),
    SubscriptionPlan.PACKAGE_50: PlanDefinition(
        plan=SubscriptionPlan.PACKAGE_50,
        name="50 Subdomains Package",
        price_cents=9900,
        subdomain_quota=52,
        features=(
            "Up to 52 subdomains (2 free + 50)",
            "Advanced DNS management",
            "Dedicated support",
            "99.99% uptime SLA",
            "API access",
        ),
    ),
}


def plan_for_price_id(
    price_id: Optional[str], price_ids: Mapping[str, Optional[str]]
) -> SubscriptionPlan:
    """
    Resolve a Stripe price ID to a plan.

    Args:
        price_id: Stripe price ID taken from the subscription's first item
        price_ids: Mapping of plan name to configured Stripe price ID

    Returns:
        The matching plan, FREE when nothing matches
    """
    if price_id:
        for plan_name, configured in price_ids.items():
            if configured and configured == price_id:
                return SubscriptionPlan(plan_name)
    return SubscriptionPlan.FREE
