"""Create local records for Stripe subscriptions the database is missing."""

import argparse
from typing import Optional, Sequence

from ..core.container import ApplicationContainer
from ._runner import run_script


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sync-stripe-subscriptions",
        description="Backfill a user's Stripe subscriptions into the database.",
    )
    parser.add_argument("email", nargs="?", help="User email (default: $TARGET_EMAIL)")
    return parser


def _run(args: argparse.Namespace, container: ApplicationContainer) -> int:
    report = container.stripe_sync_service.sync_missing(args.email)
    if report is None:
        print("User not found")
        return 0

    comparison = report.comparison
    if not comparison.has_customer:
        print("No Stripe customer ID found for this user")
        return 0

    print(f"\n=== Syncing subscriptions for {comparison.user.email} ===\n")
    print(f"Found {len(comparison.stripe_subscriptions)} subscriptions in Stripe")
    print(f"Found {len(comparison.local_subscriptions)} subscriptions in database\n")

    if not comparison.missing_locally:
        print("All Stripe subscriptions are already in the database")
        return 0

    print(f"Found {len(comparison.missing_locally)} subscriptions to sync:\n")
    for sub in report.created:
        print(f"Synced: {sub.stripe_subscription_id}")
        print(f"  Plan: {sub.plan.value}")
        print(f"  Status: {sub.status.value}")
        print(f"  Price ID: {sub.stripe_price_id}")
        print(f"  Quota: {sub.subdomain_quota}")
        print(f"  Created subscription {sub.id}\n")
    for failure in report.failed:
        print(f"Failed to sync {failure.stripe_subscription_id}: {failure.error}\n")

    print("=== Summary ===")
    print(f"Total subscriptions in database: {report.total_local}")
    return 1 if report.failed else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    return run_script(build_parser(), _run, argv, env_targets={"email": "TARGET_EMAIL"})


if __name__ == "__main__":
    raise SystemExit(main())
