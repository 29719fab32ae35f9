"""Command line demo of guarded scopes.

Examples:
- castor divide 5            -> prints "Result: 20" then "done"
- castor divide 0            -> prints "Division by zero" then "done"
- echo 4 | castor divide     -> reads the divisor from stdin
- castor check-age 15        -> prints "Age must be at least 18."
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING, Any

from castor.config import resolve_settings
from castor.errors import CastorError
from castor.failure import Failure
from castor.inputs import read_int
from castor.kinds import ARITHMETIC, DIVISION_BY_ZERO, FAILURE, MALFORMED_INPUT, VALIDATION
from castor.runner import run

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import TextIO

    from castor.config import Settings

DIVIDEND = 100
MINIMUM_AGE = 18


def divide(dividend: int, divisor: int) -> int:
    """Integer division that raises a DIVISION_BY_ZERO failure for a zero divisor."""
    if divisor == 0:
        raise DIVISION_BY_ZERO("/ by zero")
    return dividend // divisor


def check_age(age: int, minimum: int = MINIMUM_AGE) -> int:
    """Return *age* when it meets *minimum*, otherwise raise a VALIDATION failure."""
    if age < minimum:
        raise VALIDATION(f"Age must be at least {minimum}.")
    return age


def _cmd_divide(
    args: argparse.Namespace, settings: Settings, stdin: TextIO, out: TextIO
) -> int:
    def operation() -> int:
        divisor = args.divisor
        if divisor is None:
            divisor = read_int(stdin, prompt="Enter a divisor: ", echo=out)
        result = divide(args.dividend, divisor)
        print(f"Result: {result}", file=out)
        return result

    run(
        operation,
        [
            (ARITHMETIC, lambda f: print("Division by zero", file=out)),
            (MALFORMED_INPUT, lambda f: print(f"Invalid input: {f}", file=out)),
            (FAILURE, lambda f: print(f"Something went wrong: {f}", file=out)),
        ],
        cleanup=lambda: print("done", file=out),
        settings=settings,
    )
    return 0


def _cmd_check_age(
    args: argparse.Namespace, settings: Settings, stdin: TextIO, out: TextIO
) -> int:
    del stdin

    def validate() -> int:
        # Only arithmetic is handled here; validation failures reach the outer scope.
        return run(
            lambda: check_age(args.age, args.minimum),
            [(ARITHMETIC, lambda f: print("Division by zero", file=out))],
            settings=settings,
        )

    def accepted() -> None:
        age = validate()
        print(f"Age {age} accepted.", file=out)

    run(accepted, [(VALIDATION, lambda f: print(f.message, file=out))], settings=settings)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="castor",
        description="Run demo operations inside guarded scopes.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log scope transitions to stderr"
    )
    parser.add_argument(
        "--cleanup-policy",
        choices=("chain", "discard"),
        default=None,
        help="What happens to a superseded failure when cleanup raises",
    )
    parser.add_argument(
        "--strict-handlers",
        action="store_true",
        default=None,
        help="Reject handler lists with unreachable handlers",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_div = sub.add_parser("divide", help=f"Divide {DIVIDEND} by a divisor")
    p_div.add_argument(
        "divisor", type=int, nargs="?", help="Divisor; read from stdin when omitted"
    )
    p_div.add_argument("--dividend", type=int, default=DIVIDEND)
    p_div.set_defaults(func=_cmd_divide)

    p_age = sub.add_parser("check-age", help="Validate an age against a minimum")
    p_age.add_argument("age", type=int)
    p_age.add_argument("--minimum", type=int, default=MINIMUM_AGE)
    p_age.set_defaults(func=_cmd_check_age)
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    """CLI entry point. Returns the process exit code."""
    stdin = stdin or sys.stdin
    out = stdout or sys.stdout
    err = stderr or sys.stderr

    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=err,
            format="%(levelname)s %(name)s: %(message)s",
        )

    overrides: dict[str, Any] = {}
    if args.cleanup_policy is not None:
        overrides["cleanup_failure_policy"] = args.cleanup_policy
    if args.strict_handlers is not None:
        overrides["strict_handlers"] = args.strict_handlers

    try:
        settings = resolve_settings(**overrides)
        return args.func(args, settings, stdin, out)
    except Failure as f:
        print(f"error: [{f.kind.name}] {f.message}", file=err)
        return 1
    except CastorError as e:
        print(f"error: {e}", file=err)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
