"""Shared plumbing for the operator scripts."""

import argparse
import logging
import os
import sys
from typing import Callable, Mapping, Optional, Sequence

from dotenv import load_dotenv

from ..core.config import Settings
from ..core.container import ApplicationContainer, build_container
from ..core.logging import configure_logging

logger = logging.getLogger(__name__)

ScriptBody = Callable[[argparse.Namespace, ApplicationContainer], int]


def run_script(
    parser: argparse.ArgumentParser,
    body: ScriptBody,
    argv: Optional[Sequence[str]] = None,
    env_targets: Optional[Mapping[str, str]] = None,
) -> int:
    """
    Parse arguments, wire dependencies and run a script body.

    Args:
        parser: Script argument parser
        body: Callable producing the exit code
        argv: Arguments, defaults to sys.argv
        env_targets: Argument dest -> environment variable used when the
            argument is omitted; still missing after that is a usage error

    Returns:
        Process exit code; any failure inside ``body`` is logged, printed to
        stderr and reported as 1
    """
    load_dotenv()
    args = parser.parse_args(argv)
    for dest, env_var in (env_targets or {}).items():
        if not getattr(args, dest, None):
            value = os.getenv(env_var)
            if not value:
                parser.error(f"{dest} is required (pass it or set {env_var})")
            setattr(args, dest, value)

    configure_logging()
    try:
        container = build_container(Settings())
        return body(args, container)
    except Exception as exc:
        logger.exception("%s failed", parser.prog)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def format_optional(value: object) -> str:
    return "N/A" if value is None or value == "" else str(value)
