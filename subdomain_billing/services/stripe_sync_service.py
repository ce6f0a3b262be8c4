"""Compare and backfill local subscriptions against Stripe."""

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from subdomain_billing.domain.models import (
    SUBSCRIPTION_PLANS,
    Subscription,
    User,
    plan_for_price_id,
)
from subdomain_billing.domain.ports.persistence import StoreError, SubscriptionStore, UserStore
from subdomain_billing.domain.reconciliation import map_stripe_status
from subdomain_billing.services.stripe_service import (
    StripeService,
    StripeSubscriptionSnapshot,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StripeComparison:
    user: User
    has_customer: bool
    stripe_subscriptions: List[StripeSubscriptionSnapshot] = field(default_factory=list)
    local_subscriptions: List[Subscription] = field(default_factory=list)
    missing_locally: List[StripeSubscriptionSnapshot] = field(default_factory=list)


@dataclass(slots=True)
class SyncFailure:
    stripe_subscription_id: str
    error: str


@dataclass(slots=True)
class SyncReport:
    comparison: StripeComparison
    created: List[Subscription] = field(default_factory=list)
    failed: List[SyncFailure] = field(default_factory=list)
    total_local: int = 0


class StripeSyncService:
    """Finds Stripe subscriptions the local store never recorded."""

    def __init__(
        self,
        user_repository: UserStore,
        subscription_repository: SubscriptionStore,
        stripe_service: StripeService,
        price_ids: Mapping[str, Optional[str]],
    ):
        self.user_repository = user_repository
        self.subscription_repository = subscription_repository
        self.stripe_service = stripe_service
        self.price_ids = price_ids

    def compare(self, email: str) -> Optional[StripeComparison]:
        """
        Compare a user's Stripe subscriptions with the local records.

        Args:
            email: User email

        Returns:
            StripeComparison, None if no user has this email

        Raises:
            ValueError: If Stripe is not configured or the Stripe call fails
        """
        user = self.user_repository.get_by_email(email)
        if not user:
            return None

        if not user.stripe_customer_id:
            return StripeComparison(user=user, has_customer=False)

        stripe_subscriptions = self.stripe_service.list_customer_subscriptions(
            user.stripe_customer_id
        )
        local_subscriptions = self.subscription_repository.list_by_user_id(user.id)
        known_ids = {
            sub.stripe_subscription_id
            for sub in local_subscriptions
            if sub.stripe_subscription_id
        }
        return StripeComparison(
            user=user,
            has_customer=True,
            stripe_subscriptions=stripe_subscriptions,
            local_subscriptions=local_subscriptions,
            missing_locally=[
                snapshot for snapshot in stripe_subscriptions if snapshot.id not in known_ids
            ],
        )

    def sync_missing(self, email: str) -> Optional[SyncReport]:
        """
        Create local records for Stripe subscriptions missing from the store.

        A failed insert is recorded on the report and the remaining
        subscriptions are still attempted.

        Returns:
            SyncReport, None if no user has this email
        """
        comparison = self.compare(email)
        if comparison is None:
            return None

        report = SyncReport(comparison=comparison)
        if not comparison.has_customer:
            return report

        for snapshot in comparison.missing_locally:
            try:
                report.created.append(self._create_from_snapshot(comparison.user, snapshot))
            except StoreError as e:
                logger.error("Failed to sync Stripe subscription %s: %s", snapshot.id, str(e))
                report.failed.append(SyncFailure(stripe_subscription_id=snapshot.id, error=str(e)))

        report.total_local = self.subscription_repository.count_by_user_id(comparison.user.id)
        return report

    def _create_from_snapshot(self, user: User, snapshot: StripeSubscriptionSnapshot) -> Subscription:
        plan = plan_for_price_id(snapshot.price_id, self.price_ids)
        subscription = self.subscription_repository.create(
            user_id=user.id,
            plan=plan,
            status=map_stripe_status(snapshot.status),
            subdomain_quota=SUBSCRIPTION_PLANS[plan].subdomain_quota,
            subdomains_used=0,
            stripe_subscription_id=snapshot.id,
            stripe_price_id=snapshot.price_id,
            stripe_current_period_start=snapshot.current_period_start,
            stripe_current_period_end=snapshot.current_period_end,
            stripe_cancel_at_period_end=snapshot.cancel_at_period_end,
            stripe_cancel_at=snapshot.cancel_at,
            created_at=snapshot.created,
        )
        logger.info(
            "Synced Stripe subscription %s as %s (%s) for user %s",
            snapshot.id,
            subscription.id,
            plan.value,
            user.id,
        )
        return subscription
