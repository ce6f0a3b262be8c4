"""User domain model for subdomain marketplace account holders."""

from datetime import datetime, timezone
from typing import Optional


class User:
    """
    User entity owning zero or more subscriptions.

    Attributes:
        id: Unique identifier
        email: User email address (unique)
        first_name: Optional first name
        last_name: Optional last name
        email_verified: Whether email has been verified
        stripe_customer_id: Stripe customer ID, set on first checkout
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: int,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email_verified: bool = False,
        stripe_customer_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.email = email
        self.first_name = first_name
        self.last_name = last_name
        self.email_verified = email_verified
        self.stripe_customer_id = stripe_customer_id
        self.created_at = created_at or datetime.now(timezone.utc)
        self.updated_at = updated_at or self.created_at

    @property
    def display_name(self) -> str:
        """First and last name joined, blank parts omitted."""
        parts = [part.strip() for part in (self.first_name, self.last_name) if part and part.strip()]
        return " ".join(parts)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} verified={self.email_verified}>"
