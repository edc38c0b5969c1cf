"""Command-line interface for twofactor_auth."""

from __future__ import annotations

import logging
import sys
import time

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from twofactor_auth import __version__
from twofactor_auth.account import parse_uri, to_uri
from twofactor_auth.errors import TwoFactorError
from twofactor_auth.migration import accounts_from_uri

USAGE = """\
Usage: twofactor-auth [options] <command> [arguments]

Commands:
  code URI [--at TIMESTAMP]   Print the current code for an otpauth:// URI
  migrate URI                 List the accounts in a migration (or otpauth://) URI
  uri URI                     Print one otpauth:// URI per account in URI

Options:
  --verbose         Log debug output to stderr
  --version, -v     Show version
  --help, -h        Show this help message"""

console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _cmd_code(args: list[str]) -> int:
    now = time.time()
    if "--at" in args:
        i = args.index("--at")
        try:
            now = float(args[i + 1])
        except (IndexError, ValueError):
            err_console.print("--at needs a numeric Unix timestamp")
            return 2
        del args[i : i + 2]
    if len(args) != 1:
        err_console.print(USAGE, markup=False)
        return 2
    account = parse_uri(args[0])
    code = account.generate_code(now)
    remaining = int(account.time_remaining(now))
    console.print(f"[bold cyan]{code}[/bold cyan]  ({remaining}s remaining)", highlight=False)
    return 0


def _cmd_migrate(args: list[str]) -> int:
    if len(args) != 1:
        err_console.print(USAGE, markup=False)
        return 2
    accounts = accounts_from_uri(args[0])
    table = Table(title=f"{len(accounts)} account(s)")
    table.add_column("Issuer")
    table.add_column("Account")
    table.add_column("Secret")
    table.add_column("Algorithm")
    table.add_column("Digits", justify="right")
    table.add_column("Period", justify="right")
    for acct in accounts:
        table.add_row(
            escape(acct.issuer),
            escape(acct.account_name),
            escape(acct.secret),
            acct.algorithm.value,
            str(acct.digits),
            str(acct.period),
        )
    console.print(table)
    return 0


def _cmd_uri(args: list[str]) -> int:
    if len(args) != 1:
        err_console.print(USAGE, markup=False)
        return 2
    for acct in accounts_from_uri(args[0]):
        console.print(to_uri(acct), markup=False, highlight=False, soft_wrap=True)
    return 0


COMMANDS = {
    "code": _cmd_code,
    "migrate": _cmd_migrate,
    "uri": _cmd_uri,
}


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Returns:
        Exit code (0 for success, 1 for decode errors, 2 for usage errors)
    """
    args = list(sys.argv[1:] if argv is None else argv)

    if args and args[0] in ("--version", "-v"):
        print(f"twofactor-auth version {__version__}")
        return 0

    if not args or args[0] in ("--help", "-h"):
        print("twofactor-auth - TOTP codes and authenticator migration decoding")
        print(f"Version: {__version__}")
        print()
        print(USAGE)
        return 0

    verbose = "--verbose" in args
    if verbose:
        args.remove("--verbose")
    _configure_logging(verbose)

    if not args:
        err_console.print(USAGE, markup=False)
        return 2

    command = COMMANDS.get(args[0])
    if command is None:
        err_console.print(f"Unknown command: {args[0]}", markup=False)
        err_console.print(USAGE, markup=False)
        return 2

    try:
        return command(args[1:])
    except TwoFactorError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
