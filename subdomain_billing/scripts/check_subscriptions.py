"""List every subscription a user owns, with a per-status breakdown."""

import argparse
from typing import Optional, Sequence

from ..core.container import ApplicationContainer
from ._runner import format_optional, run_script


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="check-subscriptions",
        description="List all subscriptions of a user, newest first.",
    )
    parser.add_argument("email", nargs="?", help="User email (default: $TARGET_EMAIL)")
    return parser


def _run(args: argparse.Namespace, container: ApplicationContainer) -> int:
    report = container.subscription_service.get_user_subscription_report(args.email)
    if report is None:
        print("User not found")
        return 0

    print(f"\n=== User: {report.user.email} (ID: {report.user.id}) ===\n")
    print(f"Total subscriptions: {len(report.subscriptions)}\n")

    for index, sub in enumerate(report.subscriptions, start=1):
        print(f"{index}. Subscription ID: {sub.id}")
        print(f"   Plan: {sub.plan.value}")
        print(f"   Status: {sub.status.value}")
        print(f"   Subdomain Quota: {sub.subdomain_quota}")
        print(f"   Subdomains Used: {sub.subdomains_used}")
        print(f"   Stripe Subscription ID: {format_optional(sub.stripe_subscription_id)}")
        print(f"   Current Period End: {format_optional(sub.stripe_current_period_end)}")
        print(f"   Cancel At Period End: {sub.stripe_cancel_at_period_end}")
        print(f"   Created: {sub.created_at}")
        print(f"   Canceled At: {format_optional(sub.canceled_at)}")
        print("")

    print("=== Status Breakdown ===")
    for status, count in report.status_counts.items():
        print(f"{status.value}: {count}")

    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    return run_script(build_parser(), _run, argv, env_targets={"email": "TARGET_EMAIL"})


if __name__ == "__main__":
    raise SystemExit(main())
