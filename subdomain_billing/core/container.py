from dataclasses import dataclass

from .config import Settings
from ..infrastructure.repositories.subscription_repository import SubscriptionRepository
from ..infrastructure.repositories.user_repository import UserRepository
from ..services.stripe_service import StripeService
from ..services.stripe_sync_service import StripeSyncService
from ..services.subscription_service import SubscriptionService


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared by the admin API and the operator scripts."""

    settings: Settings
    user_repository: UserRepository
    subscription_repository: SubscriptionRepository
    stripe_service: StripeService
    subscription_service: SubscriptionService
    stripe_sync_service: StripeSyncService


def build_container(settings: Settings) -> ApplicationContainer:
    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    user_repository = UserRepository(settings.database_path)
    subscription_repository = SubscriptionRepository(settings.database_path)
    stripe_service = StripeService(settings.stripe_secret_key)
    return ApplicationContainer(
        settings=settings,
        user_repository=user_repository,
        subscription_repository=subscription_repository,
        stripe_service=stripe_service,
        subscription_service=SubscriptionService(
            user_repository,
            subscription_repository,
            stripe_service,
        ),
        stripe_sync_service=StripeSyncService(
            user_repository,
            subscription_repository,
            stripe_service,
            settings.stripe_price_ids,
        ),
    )
