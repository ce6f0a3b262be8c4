from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from subdomain_billing.domain.models import (
    SUBSCRIPTION_PLANS,
    SubscriptionPlan,
    SubscriptionStatus,
)
from subdomain_billing.infrastructure.repositories.subscription_repository import (
    SubscriptionRepository,
)
from subdomain_billing.infrastructure.repositories.user_repository import UserRepository
from subdomain_billing.services.stripe_service import StripeSubscriptionSnapshot
from subdomain_billing.services.subscription_service import SubscriptionService

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeStripeService:
    """In-memory stand-in for StripeService."""

    def __init__(
        self,
        subscriptions: Optional[Dict[str, List[StripeSubscriptionSnapshot]]] = None,
        enabled: bool = True,
    ):
        self.subscriptions = subscriptions or {}
        self.enabled = enabled
        self.retrieved: List[str] = []

    def is_enabled(self) -> bool:
        return self.enabled

    def retrieve_subscription(self, stripe_subscription_id: str) -> StripeSubscriptionSnapshot:
        self.retrieved.append(stripe_subscription_id)
        for snapshots in self.subscriptions.values():
            for snapshot in snapshots:
                if snapshot.id == stripe_subscription_id:
                    return snapshot
        raise ValueError(f"No such subscription: {stripe_subscription_id}")

    def list_customer_subscriptions(self, customer_id: str) -> List[StripeSubscriptionSnapshot]:
        return list(self.subscriptions.get(customer_id, []))


def make_snapshot(
    subscription_id: str,
    status: str = "active",
    price_id: Optional[str] = "price_5",
    cancel_at_period_end: bool = False,
    created: datetime = NOW - timedelta(days=10),
) -> StripeSubscriptionSnapshot:
    return StripeSubscriptionSnapshot(
        id=subscription_id,
        status=status,
        created=created,
        current_period_start=created,
        current_period_end=created + timedelta(days=30),
        cancel_at_period_end=cancel_at_period_end,
        cancel_at=created + timedelta(days=30) if cancel_at_period_end else None,
        price_ids=(price_id,) if price_id else (),
    )


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "billing.db"


@pytest.fixture
def user_repository(db_path):
    return UserRepository(db_path)


@pytest.fixture
def subscription_repository(db_path, user_repository):
    return SubscriptionRepository(db_path)


@pytest.fixture
def subscription_service(user_repository, subscription_repository):
    return SubscriptionService(user_repository, subscription_repository)


@pytest.fixture
def create_subscription(subscription_repository):
    def _create(
        user_id: int,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        plan: SubscriptionPlan = SubscriptionPlan.PACKAGE_5,
        stripe_subscription_id: Optional[str] = None,
        cancel_at_period_end: bool = False,
        period_end: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ):
        return subscription_repository.create(
            user_id=user_id,
            plan=plan,
            status=status,
            subdomain_quota=SUBSCRIPTION_PLANS[plan].subdomain_quota,
            stripe_subscription_id=stripe_subscription_id,
            stripe_price_id="price_5" if plan is not SubscriptionPlan.FREE else None,
            stripe_current_period_start=NOW - timedelta(days=5),
            stripe_current_period_end=period_end or NOW + timedelta(days=25),
            stripe_cancel_at_period_end=cancel_at_period_end,
            created_at=created_at,
        )

    return _create
