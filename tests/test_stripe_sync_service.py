import pytest

from subdomain_billing.domain.models import SubscriptionPlan, SubscriptionStatus
from subdomain_billing.domain.ports.persistence import StoreError
from subdomain_billing.infrastructure.repositories.subscription_repository import (
    SubscriptionRepository,
)
from subdomain_billing.services.stripe_sync_service import StripeSyncService

from conftest import FakeStripeService, make_snapshot

PRICE_IDS = {"PACKAGE_5": "price_5", "PACKAGE_50": "price_50"}


@pytest.fixture
def stripe_service():
    return FakeStripeService(
        {
            "cus_1": [
                make_snapshot("sub_known", status="active", price_id="price_5"),
                make_snapshot("sub_big", status="past_due", price_id="price_50"),
                make_snapshot("sub_gone", status="unpaid", price_id="price_unknown", cancel_at_period_end=True),
            ]
        }
    )


@pytest.fixture
def sync_service(user_repository, subscription_repository, stripe_service):
    return StripeSyncService(user_repository, subscription_repository, stripe_service, PRICE_IDS)


@pytest.fixture
def customer(user_repository, create_subscription):
    user = user_repository.create("ada@example.com", stripe_customer_id="cus_1")
    create_subscription(user.id, stripe_subscription_id="sub_known")
    create_subscription(user.id, plan=SubscriptionPlan.FREE)
    return user


def test_compare_unknown_user(sync_service):
    assert sync_service.compare("nobody@example.com") is None
    assert sync_service.sync_missing("nobody@example.com") is None


def test_compare_user_without_customer(sync_service, user_repository):
    user_repository.create("ada@example.com")

    comparison = sync_service.compare("ada@example.com")

    assert comparison.has_customer is False
    assert comparison.stripe_subscriptions == []
    assert sync_service.sync_missing("ada@example.com").created == []


def test_compare_lists_missing_subscriptions(sync_service, customer):
    comparison = sync_service.compare("ada@example.com")

    assert comparison.has_customer is True
    assert len(comparison.stripe_subscriptions) == 3
    assert len(comparison.local_subscriptions) == 2
    assert [s.id for s in comparison.missing_locally] == ["sub_big", "sub_gone"]


def test_sync_creates_missing_records(sync_service, customer, subscription_repository):
    report = sync_service.sync_missing("ada@example.com")

    assert [s.stripe_subscription_id for s in report.created] == ["sub_big", "sub_gone"]
    assert report.failed == []
    assert report.total_local == 4

    big = subscription_repository.get_by_stripe_subscription_id("sub_big")
    assert big.plan is SubscriptionPlan.PACKAGE_50
    assert big.status is SubscriptionStatus.PAST_DUE
    assert big.subdomain_quota == 52
    assert big.subdomains_used == 0
    assert big.stripe_price_id == "price_50"

    gone = subscription_repository.get_by_stripe_subscription_id("sub_gone")
    assert gone.plan is SubscriptionPlan.FREE
    assert gone.status is SubscriptionStatus.CANCELED
    assert gone.subdomain_quota == 2
    assert gone.stripe_cancel_at_period_end is True
    assert gone.stripe_cancel_at is not None


def test_sync_is_a_no_op_once_in_step(sync_service, customer):
    sync_service.sync_missing("ada@example.com")

    second = sync_service.sync_missing("ada@example.com")

    assert second.comparison.missing_locally == []
    assert second.created == []
    assert second.total_local == 4


class _FlakySubscriptionRepository(SubscriptionRepository):
    def create(self, **kwargs):
        if kwargs.get("stripe_subscription_id") == "sub_big":
            raise StoreError("database is locked")
        return super().create(**kwargs)


def test_sync_keeps_going_after_a_failed_insert(db_path, user_repository, stripe_service):
    repository = _FlakySubscriptionRepository(db_path)
    service = StripeSyncService(user_repository, repository, stripe_service, PRICE_IDS)
    user_repository.create("ada@example.com", stripe_customer_id="cus_1")

    report = service.sync_missing("ada@example.com")

    assert [s.stripe_subscription_id for s in report.created] == ["sub_known", "sub_gone"]
    assert [f.stripe_subscription_id for f in report.failed] == ["sub_big"]
    assert "locked" in report.failed[0].error
    assert report.total_local == 2
