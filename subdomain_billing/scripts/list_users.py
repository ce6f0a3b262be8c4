"""List every user with their subscription count."""

import argparse
from typing import Optional, Sequence

from ..core.container import ApplicationContainer
from ._runner import run_script


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="list-users",
        description="List all users and how many subscription records they own.",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help="Users fetched per query (default: $LIST_USERS_PAGE_SIZE or 100)",
    )
    return parser


def _run(args: argparse.Namespace, container: ApplicationContainer) -> int:
    page_size = (
        args.page_size if args.page_size is not None else container.settings.list_users_page_size
    )

    print("\n=== All Users ===\n")
    total = 0
    for summary in container.subscription_service.iter_user_summaries(page_size=page_size):
        total += 1
        print(f"Email: {summary.email}")
        print(f"Name: {summary.display_name}")
        print(f"ID: {summary.id}")
        print(f"Subscriptions: {summary.subscription_count}")
        print("")

    print(f"Total users: {total}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    return run_script(build_parser(), _run, argv)


if __name__ == "__main__":
    raise SystemExit(main())
