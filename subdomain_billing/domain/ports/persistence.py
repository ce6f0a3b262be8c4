from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

from ..models import Subscription, SubscriptionPlan, SubscriptionStatus, User


class StoreError(RuntimeError):
    """A store rejected a write."""


class UserStore(Protocol):
    """Abstract storage for account holders."""

    def create(
        self,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email_verified: bool = False,
        stripe_customer_id: Optional[str] = None,
    ) -> User:
        ...

    def get_by_id(self, user_id: int) -> Optional[User]:
        ...

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def list_all(self) -> List[User]:
        ...

    def list_page(self, after_id: int, limit: int) -> List[User]:
        ...

    def set_stripe_customer_id(self, user_id: int, stripe_customer_id: str) -> None:
        ...


class SubscriptionStore(Protocol):
    """Abstract storage for subscription records."""

    def create(
        self,
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
    ) -> Subscription:
        ...

    def get_by_id(self, subscription_id: int) -> Optional[Subscription]:
        ...

    def get_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        ...

    def list_by_user_id(self, user_id: int) -> List[Subscription]:
        ...

    def count_by_user_id(self, user_id: int) -> int:
        ...

    def count_by_user_ids(self, user_ids: Iterable[int]) -> Dict[int, int]:
        ...

    def update(self, subscription_id: int, **fields: Any) -> Optional[Subscription]:
        ...

    def update_status_if(
        self,
        subscription_id: int,
        expected_status: SubscriptionStatus,
        status: SubscriptionStatus,
        stripe_cancel_at_period_end: Optional[bool] = None,
    ) -> bool:
        ...
