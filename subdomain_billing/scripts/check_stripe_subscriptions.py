"""Compare a user's Stripe subscriptions with the local records."""

import argparse
from typing import Optional, Sequence

from ..core.container import ApplicationContainer
from ._runner import format_optional, run_script


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="check-stripe-subscriptions",
        description="List a user's subscriptions in Stripe and in the database and compare them.",
    )
    parser.add_argument("email", nargs="?", help="User email (default: $TARGET_EMAIL)")
    return parser


def _run(args: argparse.Namespace, container: ApplicationContainer) -> int:
    comparison = container.stripe_sync_service.compare(args.email)
    if comparison is None:
        print("User not found")
        return 0

    print(f"\n=== User: {comparison.user.email} ===")
    print(f"Stripe Customer ID: {format_optional(comparison.user.stripe_customer_id)}\n")
    if not comparison.has_customer:
        print("No Stripe customer ID found for this user")
        return 0

    print("=== Fetching from Stripe ===\n")
    print(f"Total subscriptions in Stripe: {len(comparison.stripe_subscriptions)}\n")
    for index, snapshot in enumerate(comparison.stripe_subscriptions, start=1):
        print(f"{index}. Stripe Subscription: {snapshot.id}")
        print(f"   Status: {snapshot.status}")
        print(f"   Created: {format_optional(snapshot.created)}")
        print(f"   Current Period End: {format_optional(snapshot.current_period_end)}")
        print(f"   Cancel At Period End: {snapshot.cancel_at_period_end}")
        print(f"   Items: {', '.join(snapshot.price_ids)}")
        print("")

    print("=== Fetching from Database ===\n")
    print(f"Total subscriptions in database: {len(comparison.local_subscriptions)}\n")
    for index, sub in enumerate(comparison.local_subscriptions, start=1):
        print(f"{index}. DB Subscription: {sub.id}")
        print(f"   Stripe Sub ID: {format_optional(sub.stripe_subscription_id)}")
        print(f"   Status: {sub.status.value}")
        print(f"   Plan: {sub.plan.value}")
        print("")

    print("=== Comparison ===\n")
    if comparison.missing_locally:
        print(
            f"Found {len(comparison.missing_locally)} subscription(s) in Stripe "
            "that are NOT in our database:\n"
        )
        for snapshot in comparison.missing_locally:
            print(f"   - {snapshot.id} ({snapshot.status}) - Created: {format_optional(snapshot.created)}")
    else:
        print("All Stripe subscriptions are in our database")

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    return run_script(build_parser(), _run, argv, env_targets={"email": "TARGET_EMAIL"})


if __name__ == "__main__":
    raise SystemExit(main())
