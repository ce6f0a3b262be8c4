"""Service for inspecting and repairing subscription records."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from subdomain_billing.domain.models import Subscription, SubscriptionStatus, User
from subdomain_billing.domain.ports.persistence import SubscriptionStore, UserStore
from subdomain_billing.domain.reconciliation import reconcile_cancellation
from subdomain_billing.services.stripe_service import StripeService

logger = logging.getLogger(__name__)


class ReconciliationOutcome(str, Enum):
    NOT_FOUND = "not_found"
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    WOULD_UPDATE = "would_update"
    CONFLICT = "conflict"


@dataclass(slots=True)
class ReconciliationResult:
    outcome: ReconciliationOutcome
    stripe_subscription_id: str
    provider_cancel_at_period_end: Optional[bool] = None
    before: Optional[Subscription] = None
    after: Optional[Subscription] = None


@dataclass(slots=True)
class UserSubscriptionReport:
    user: User
    subscriptions: List[Subscription]
    status_counts: Dict[SubscriptionStatus, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class UserSummary:
    id: int
    email: str
    display_name: str
    subscription_count: int


class SubscriptionService:
    """Operator-facing queries and repairs over the subscription store."""

    def __init__(
        self,
        user_repository: UserStore,
        subscription_repository: SubscriptionStore,
        stripe_service: Optional[StripeService] = None,
    ):
        self.user_repository = user_repository
        self.subscription_repository = subscription_repository
        self.stripe_service = stripe_service

    def get_user_subscription_report(self, email: str) -> Optional[UserSubscriptionReport]:
        """
        Collect every subscription a user owns.

        Args:
            email: User email

        Returns:
            Report with subscriptions newest first and a per-status count,
            None if no user has this email
        """
        user = self.user_repository.get_by_email(email)
        if not user:
            return None

        subscriptions = self.subscription_repository.list_by_user_id(user.id)
        status_counts = dict(Counter(sub.status for sub in subscriptions))
        return UserSubscriptionReport(
            user=user,
            subscriptions=subscriptions,
            status_counts=status_counts,
        )

    def list_user_summaries(self, after_id: int = 0, limit: int = 100) -> List[UserSummary]:
        """
        Build one page of users with their subscription counts.

        Raises:
            ValueError: If limit is not positive
        """
        if limit < 1:
            raise ValueError("Page size must be a positive integer")

        users = self.user_repository.list_page(after_id=after_id, limit=limit)
        counts = self.subscription_repository.count_by_user_ids(user.id for user in users)
        return [
            UserSummary(
                id=user.id,
                email=user.email,
                display_name=user.display_name,
                subscription_count=counts.get(user.id, 0),
            )
            for user in users
        ]

    def iter_user_summaries(self, page_size: int = 100) -> Iterator[UserSummary]:
        """Stream every user with their subscription count, one page at a time."""
        after_id = 0
        while True:
            page = self.list_user_summaries(after_id=after_id, limit=page_size)
            yield from page
            if len(page) < page_size:
                return
            after_id = page[-1].id

    def reconcile_subscription(
        self,
        stripe_subscription_id: str,
        provider_cancel_at_period_end: Optional[bool] = None,
        dry_run: bool = False,
    ) -> ReconciliationResult:
        """
        Restore a subscription that was canceled before its period ended.

        Args:
            stripe_subscription_id: Stripe subscription ID of the record
            provider_cancel_at_period_end: Stripe's cancel-at-period-end flag;
                fetched from Stripe when omitted and Stripe is configured,
                otherwise the stored flag is used
            dry_run: Report the decision without writing it

        Returns:
            ReconciliationResult describing what happened

        Raises:
            ValueError: If fetching the flag from Stripe fails
        """
        subscription = self.subscription_repository.get_by_stripe_subscription_id(
            stripe_subscription_id
        )
        if not subscription:
            logger.info("Subscription %s not found; nothing to reconcile", stripe_subscription_id)
            return ReconciliationResult(
                outcome=ReconciliationOutcome.NOT_FOUND,
                stripe_subscription_id=stripe_subscription_id,
                provider_cancel_at_period_end=provider_cancel_at_period_end,
            )

        if provider_cancel_at_period_end is None and self.stripe_service and self.stripe_service.is_enabled():
            snapshot = self.stripe_service.retrieve_subscription(stripe_subscription_id)
            provider_cancel_at_period_end = snapshot.cancel_at_period_end

        decision = reconcile_cancellation(subscription, provider_cancel_at_period_end)
        result = ReconciliationResult(
            outcome=ReconciliationOutcome.UNCHANGED,
            stripe_subscription_id=stripe_subscription_id,
            provider_cancel_at_period_end=provider_cancel_at_period_end,
            before=subscription,
            after=subscription,
        )
        if not decision.changed:
            return result

        if dry_run:
            result.outcome = ReconciliationOutcome.WOULD_UPDATE
            return result

        applied = self.subscription_repository.update_status_if(
            subscription.id,
            expected_status=subscription.status,
            status=decision.status,
            stripe_cancel_at_period_end=decision.cancel_at_period_end,
        )
        result.after = self.subscription_repository.get_by_id(subscription.id)
        if not applied:
            logger.warning(
                "Subscription %s changed concurrently; expected status %s",
                subscription.id,
                subscription.status.value,
            )
            result.outcome = ReconciliationOutcome.CONFLICT
            return result

        logger.info(
            "Subscription %s restored from %s to %s (cancel at period end)",
            subscription.id,
            subscription.status.value,
            decision.status.value,
        )
        result.outcome = ReconciliationOutcome.UPDATED
        return result
