"""Stripe billing provider integration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Tuple

import stripe

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StripeSubscriptionSnapshot:
    """The subset of a Stripe subscription the billing tools rely on."""

    id: str
    status: str
    created: Optional[datetime]
    current_period_start: Optional[datetime]
    current_period_end: Optional[datetime]
    cancel_at_period_end: bool
    cancel_at: Optional[datetime]
    price_ids: Tuple[str, ...]

    @property
    def price_id(self) -> Optional[str]:
        return self.price_ids[0] if self.price_ids else None

    @classmethod
    def from_stripe(cls, payload: Mapping[str, Any]) -> "StripeSubscriptionSnapshot":
        items = (payload.get("items") or {}).get("data") or []
        first_item = items[0] if items else {}

        # Newer API versions report the billing period on the items.
        period_start = payload.get("current_period_start") or first_item.get("current_period_start")
        period_end = payload.get("current_period_end") or first_item.get("current_period_end")

        return cls(
            id=payload["id"],
            status=payload.get("status") or "",
            created=_from_timestamp(payload.get("created")),
            current_period_start=_from_timestamp(period_start),
            current_period_end=_from_timestamp(period_end),
            cancel_at_period_end=bool(payload.get("cancel_at_period_end", False)),
            cancel_at=_from_timestamp(payload.get("cancel_at")),
            price_ids=tuple(
                item["price"]["id"] for item in items if item.get("price") and item["price"].get("id")
            ),
        )


class StripeService:
    """Read access to Stripe subscriptions for reconciliation."""

    def __init__(self, secret_key: Optional[str] = None) -> None:
        self._enabled = bool(secret_key)
        if secret_key:
            stripe.api_key = secret_key

    def is_enabled(self) -> bool:
        """Check if a Stripe secret key is configured."""
        return self._enabled

    def retrieve_subscription(self, stripe_subscription_id: str) -> StripeSubscriptionSnapshot:
        """
        Fetch a single subscription from Stripe.

        Raises:
            ValueError: If Stripe is not configured or the call fails
        """
        self._ensure_enabled()
        try:
            subscription = stripe.Subscription.retrieve(stripe_subscription_id)
        except stripe.AuthenticationError as e:
            raise ValueError("Invalid Stripe API key") from e
        except stripe.StripeError as e:
            logger.error("Failed to retrieve subscription %s: %s", stripe_subscription_id, str(e))
            raise ValueError(f"Failed to retrieve subscription: {str(e)}") from e

        return StripeSubscriptionSnapshot.from_stripe(_as_mapping(subscription))

    def list_customer_subscriptions(self, customer_id: str) -> List[StripeSubscriptionSnapshot]:
        """
        List every subscription of a Stripe customer, including canceled ones.

        Raises:
            ValueError: If Stripe is not configured or the call fails
        """
        self._ensure_enabled()
        try:
            subscriptions = stripe.Subscription.list(
                customer=customer_id,
                status="all",
                limit=100,
            )
            snapshots = [
                StripeSubscriptionSnapshot.from_stripe(_as_mapping(subscription))
                for subscription in subscriptions.auto_paging_iter()
            ]
        except stripe.AuthenticationError as e:
            raise ValueError("Invalid Stripe API key") from e
        except stripe.StripeError as e:
            logger.error("Failed to list subscriptions for %s: %s", customer_id, str(e))
            raise ValueError(f"Failed to list subscriptions: {str(e)}") from e

        logger.debug("Fetched %s Stripe subscriptions for %s", len(snapshots), customer_id)
        return snapshots

    def _ensure_enabled(self) -> None:
        if not self._enabled:
            raise ValueError("Stripe not configured. Please set STRIPE_SECRET_KEY first.")


def _as_mapping(obj: Any) -> Mapping[str, Any]:
    return obj.to_dict() if hasattr(obj, "to_dict") else obj


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
