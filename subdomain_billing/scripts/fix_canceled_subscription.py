"""Restore a subscription canceled before the end of its billing period."""

import argparse
from typing import Optional, Sequence

from ..core.container import ApplicationContainer
from ..services.subscription_service import ReconciliationOutcome
from ._runner import format_optional, run_script


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fix-canceled-subscription",
        description=(
            "Set a CANCELED subscription back to ACTIVE when Stripe reports it "
            "as canceling at period end."
        ),
    )
    parser.add_argument(
        "stripe_subscription_id",
        nargs="?",
        help="Stripe subscription ID (default: $STRIPE_SUBSCRIPTION_ID)",
    )
    parser.add_argument(
        "--provider-cancel-at-period-end",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Stripe's cancel-at-period-end flag; fetched from Stripe when omitted",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the correction without writing it",
    )
    return parser


def _run(args: argparse.Namespace, container: ApplicationContainer) -> int:
    print(f"\n=== Fixing subscription {args.stripe_subscription_id} ===\n")

    result = container.subscription_service.reconcile_subscription(
        args.stripe_subscription_id,
        provider_cancel_at_period_end=args.provider_cancel_at_period_end,
        dry_run=args.dry_run,
    )
    if result.outcome is ReconciliationOutcome.NOT_FOUND:
        print("Subscription not found")
        return 0

    before = result.before
    print(f"Current status: {before.status.value}")
    print(f"Stripe cancel at period end: {format_optional(result.provider_cancel_at_period_end)}")
    print(f"Period ends: {format_optional(before.stripe_current_period_end)}")

    if result.outcome is ReconciliationOutcome.UNCHANGED:
        print("\nNo correction needed")
    elif result.outcome is ReconciliationOutcome.WOULD_UPDATE:
        print("\n[dry run] Would update status to ACTIVE (cancel at period end)")
    elif result.outcome is ReconciliationOutcome.CONFLICT:
        print("\nSubscription changed while fixing it; status is now "
              f"{format_optional(result.after.status.value if result.after else None)}")
        return 1
    else:
        print("\nUpdated status to ACTIVE (cancel at period end)")
        print(f"New status: {result.after.status.value}")

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    return run_script(
        build_parser(),
        _run,
        argv,
        env_targets={"stripe_subscription_id": "STRIPE_SUBSCRIPTION_ID"},
    )


if __name__ == "__main__":
    raise SystemExit(main())
