from datetime import timedelta

import pytest

from subdomain_billing.domain.models import SubscriptionStatus
from subdomain_billing.infrastructure.repositories.subscription_repository import (
    SubscriptionRepository,
)
from subdomain_billing.services.subscription_service import (
    ReconciliationOutcome,
    SubscriptionService,
)

from conftest import NOW, FakeStripeService, make_snapshot


def test_report_for_unknown_email_is_none(subscription_service):
    assert subscription_service.get_user_subscription_report("nobody@example.com") is None


def test_report_for_user_without_subscriptions(subscription_service, user_repository):
    user_repository.create("ada@example.com")

    report = subscription_service.get_user_subscription_report("ada@example.com")

    assert report.subscriptions == []
    assert report.status_counts == {}


def test_report_orders_newest_first_and_counts_statuses(
    subscription_service, user_repository, create_subscription
):
    user = user_repository.create("ada@example.com")
    statuses = [
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.CANCELED,
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.EXPIRED,
        SubscriptionStatus.PAST_DUE,
    ]
    for days_ago, status in enumerate(statuses):
        create_subscription(user.id, status=status, created_at=NOW - timedelta(days=days_ago))

    report = subscription_service.get_user_subscription_report("ada@example.com")

    created = [sub.created_at for sub in report.subscriptions]
    assert len(report.subscriptions) == 5
    assert created == sorted(created, reverse=True)
    assert report.status_counts == {
        SubscriptionStatus.ACTIVE: 2,
        SubscriptionStatus.CANCELED: 1,
        SubscriptionStatus.EXPIRED: 1,
        SubscriptionStatus.PAST_DUE: 1,
    }
    assert sum(report.status_counts.values()) == len(report.subscriptions)


def test_reconcile_restores_prematurely_canceled_subscription(
    subscription_service, user_repository, create_subscription, subscription_repository
):
    user = user_repository.create("ada@example.com")
    canceled = create_subscription(
        user.id,
        status=SubscriptionStatus.CANCELED,
        stripe_subscription_id="sub_canceled",
        cancel_at_period_end=True,
        period_end=NOW + timedelta(days=20),
        created_at=NOW,
    )
    active = create_subscription(
        user.id,
        status=SubscriptionStatus.ACTIVE,
        stripe_subscription_id="sub_active",
        created_at=NOW - timedelta(days=40),
    )

    before = subscription_service.get_user_subscription_report("ada@example.com")
    result = subscription_service.reconcile_subscription(
        "sub_canceled", provider_cancel_at_period_end=True
    )
    after = subscription_service.get_user_subscription_report("ada@example.com")

    assert before.status_counts == {SubscriptionStatus.CANCELED: 1, SubscriptionStatus.ACTIVE: 1}
    assert result.outcome is ReconciliationOutcome.UPDATED
    assert result.before.status is SubscriptionStatus.CANCELED
    assert result.after.status is SubscriptionStatus.ACTIVE
    assert result.after.stripe_cancel_at_period_end is True
    assert after.status_counts == {SubscriptionStatus.ACTIVE: 2}

    untouched = subscription_repository.get_by_id(active.id)
    assert untouched.status is SubscriptionStatus.ACTIVE
    assert untouched.updated_at == active.updated_at
    assert subscription_repository.get_by_id(canceled.id).stripe_current_period_end == (
        NOW + timedelta(days=20)
    )


def test_reconcile_twice_is_a_no_op_the_second_time(
    subscription_service, user_repository, create_subscription
):
    user = user_repository.create("ada@example.com")
    create_subscription(
        user.id,
        status=SubscriptionStatus.CANCELED,
        stripe_subscription_id="sub_1",
        cancel_at_period_end=True,
    )

    first = subscription_service.reconcile_subscription("sub_1", provider_cancel_at_period_end=True)
    second = subscription_service.reconcile_subscription("sub_1", provider_cancel_at_period_end=True)

    assert first.outcome is ReconciliationOutcome.UPDATED
    assert second.outcome is ReconciliationOutcome.UNCHANGED
    assert second.after.status is SubscriptionStatus.ACTIVE


def test_reconcile_unknown_subscription_reports_not_found(subscription_service):
    result = subscription_service.reconcile_subscription("sub_missing", provider_cancel_at_period_end=True)

    assert result.outcome is ReconciliationOutcome.NOT_FOUND
    assert result.before is None
    assert result.after is None


def test_reconcile_leaves_past_due_alone(
    subscription_service, user_repository, create_subscription, subscription_repository
):
    user = user_repository.create("ada@example.com")
    past_due = create_subscription(
        user.id,
        status=SubscriptionStatus.PAST_DUE,
        stripe_subscription_id="sub_1",
        period_end=NOW - timedelta(days=10),
    )

    result = subscription_service.reconcile_subscription("sub_1", provider_cancel_at_period_end=True)

    assert result.outcome is ReconciliationOutcome.UNCHANGED
    assert subscription_repository.get_by_id(past_due.id).status is SubscriptionStatus.PAST_DUE


def test_reconcile_dry_run_does_not_write(
    subscription_service, user_repository, create_subscription, subscription_repository
):
    user = user_repository.create("ada@example.com")
    subscription = create_subscription(
        user.id,
        status=SubscriptionStatus.CANCELED,
        stripe_subscription_id="sub_1",
        cancel_at_period_end=True,
    )

    result = subscription_service.reconcile_subscription(
        "sub_1", provider_cancel_at_period_end=True, dry_run=True
    )

    assert result.outcome is ReconciliationOutcome.WOULD_UPDATE
    assert subscription_repository.get_by_id(subscription.id).status is SubscriptionStatus.CANCELED


def test_reconcile_fetches_flag_from_stripe_when_not_given(
    user_repository, subscription_repository, create_subscription
):
    stripe_service = FakeStripeService(
        {"cus_1": [make_snapshot("sub_1", status="active", cancel_at_period_end=True)]}
    )
    service = SubscriptionService(user_repository, subscription_repository, stripe_service)
    user = user_repository.create("ada@example.com")
    create_subscription(user.id, status=SubscriptionStatus.CANCELED, stripe_subscription_id="sub_1")

    result = service.reconcile_subscription("sub_1")

    assert stripe_service.retrieved == ["sub_1"]
    assert result.provider_cancel_at_period_end is True
    assert result.outcome is ReconciliationOutcome.UPDATED
    assert result.after.stripe_cancel_at_period_end is True


def test_reconcile_skips_stripe_when_disabled(
    user_repository, subscription_repository, create_subscription
):
    stripe_service = FakeStripeService(enabled=False)
    service = SubscriptionService(user_repository, subscription_repository, stripe_service)
    user = user_repository.create("ada@example.com")
    create_subscription(user.id, status=SubscriptionStatus.CANCELED, stripe_subscription_id="sub_1")

    result = service.reconcile_subscription("sub_1")

    assert stripe_service.retrieved == []
    assert result.outcome is ReconciliationOutcome.UNCHANGED


class _RacingSubscriptionRepository(SubscriptionRepository):
    """Another writer expires the row between the read and the guarded write."""

    def update_status_if(self, subscription_id, expected_status, status, stripe_cancel_at_period_end=None):
        self.update(subscription_id, status=SubscriptionStatus.EXPIRED)
        return super().update_status_if(
            subscription_id, expected_status, status, stripe_cancel_at_period_end
        )


def test_reconcile_reports_conflict_when_row_changed_concurrently(db_path, user_repository):
    repository = _RacingSubscriptionRepository(db_path)
    service = SubscriptionService(user_repository, repository)
    user = user_repository.create("ada@example.com")
    repository.create(
        user_id=user.id,
        plan="PACKAGE_5",
        status=SubscriptionStatus.CANCELED,
        subdomain_quota=7,
        stripe_subscription_id="sub_1",
        stripe_cancel_at_period_end=True,
    )

    result = service.reconcile_subscription("sub_1", provider_cancel_at_period_end=True)

    assert result.outcome is ReconciliationOutcome.CONFLICT
    assert result.after.status is SubscriptionStatus.EXPIRED


def test_iter_user_summaries_pages_through_everyone(
    subscription_service, user_repository, create_subscription
):
    ada = user_repository.create("ada@example.com", first_name="Ada", last_name="Lovelace")
    bob = user_repository.create("bob@example.com", first_name="Bob")
    carol = user_repository.create("carol@example.com")
    create_subscription(ada.id)
    create_subscription(ada.id)
    create_subscription(carol.id)

    summaries = list(subscription_service.iter_user_summaries(page_size=2))

    assert [(s.email, s.display_name, s.subscription_count) for s in summaries] == [
        ("ada@example.com", "Ada Lovelace", 2),
        ("bob@example.com", "Bob", 0),
        ("carol@example.com", "", 1),
    ]
    assert [s.id for s in summaries] == [ada.id, bob.id, carol.id]


def test_iter_user_summaries_with_exact_page_multiple(subscription_service, user_repository):
    for i in range(4):
        user_repository.create(f"user{i}@example.com")

    assert len(list(subscription_service.iter_user_summaries(page_size=2))) == 4


def test_iter_user_summaries_empty_store(subscription_service):
    assert list(subscription_service.iter_user_summaries(page_size=10)) == []


def test_list_user_summaries_rejects_bad_page_size(subscription_service):
    with pytest.raises(ValueError):
        subscription_service.list_user_summaries(limit=0)
