"""CLI for gcal - Google Calendar from the command line.

Usage:
    gcal list                      # Upcoming events on the primary calendar
    gcal "Dinner Friday 7pm"       # Quick add; Google parses the date
    gcal "Lunch" 13:30             # Add today at 13:30 UTC, one hour long
    gcal add <title> [HH:MM]       # Same as the two above, explicitly
    gcal status                    # Show cached token status
    gcal logout                    # Revoke and delete the cached token

Anything that isn't a known command is taken as an event title, so "add"
is the default command.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from datetime import date, datetime, time, timezone

from gcal import __version__
from gcal.calendar import (
    CalendarAPIError,
    CalendarClient,
    Event,
    EventDraft,
    InvalidEventError,
)
from gcal.config import (
    ensure_directory_exists,
    get_auth_timeout,
    get_secret_path,
    get_store_path,
)
from gcal.google import (
    CredentialsMalformedError,
    CredentialsNotFoundError,
    GoogleOAuth,
    TokenError,
)

logger = logging.getLogger(__name__)

COMMANDS = ("list", "add", "status", "logout")


# =============================================================================
# Command requests
# =============================================================================


@dataclass(frozen=True)
class ListEvents:
    """List upcoming events."""


@dataclass(frozen=True)
class QuickAdd:
    """Create an event from free text."""

    text: str


@dataclass(frozen=True)
class AddEvent:
    """Create an event today at an explicit time."""

    title: str
    time_of_day: time


@dataclass(frozen=True)
class Status:
    """Show cached token status."""


@dataclass(frozen=True)
class Logout:
    """Revoke and forget the cached token."""


CommandRequest = ListEvents | QuickAdd | AddEvent | Status | Logout


# =============================================================================
# Parsing
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gcal",
        description="Google Calendar - CLI",
        epilog='Without a command, arguments are treated as "add [title] [date]".',
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log authentication and API activity to stderr",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Paste the redirect URL instead of opening a browser to authorize",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command")

    subparsers.add_parser("list", help="Lists upcoming events in Google Calendar")

    add_parser = subparsers.add_parser("add", help="Adds a new event to Google Calendar")
    add_parser.add_argument("title", nargs="?", help="Sets the event title")
    add_parser.add_argument("date", nargs="?", help="Sets the event time today, as HH:MM (UTC)")

    subparsers.add_parser("status", help="Show OAuth token status")
    subparsers.add_parser("logout", help="Revoke OAuth token and clear local cache")

    return parser


def _with_default_command(argv: list[str]) -> list[str]:
    """Insert "add" before the first positional unless it names a command."""
    for index, arg in enumerate(argv):
        if arg != "--" and arg.startswith("-"):
            continue
        if arg in COMMANDS:
            return list(argv)
        return [*argv[:index], "add", *argv[index:]]
    return [*argv, "add"]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    if argv is None:
        argv = sys.argv[1:]
    return build_parser().parse_args(_with_default_command(list(argv)))


def parse_time_of_day(value: str) -> time:
    """Parse a 24-hour HH:MM clock time.

    Raises:
        InvalidEventError: If the value isn't HH:MM.
    """
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except ValueError as e:
        raise InvalidEventError(f"Invalid time {value!r}, expected HH:MM (24-hour)") from e


def command_from_args(args: argparse.Namespace) -> CommandRequest | None:
    """Turn parsed arguments into a request.

    Returns None when there is nothing to do (add without a title).
    """
    if args.command == "list":
        return ListEvents()
    if args.command == "status":
        return Status()
    if args.command == "logout":
        return Logout()

    title = getattr(args, "title", None)
    if not title:
        return None

    date_arg = getattr(args, "date", None)
    if date_arg is None:
        return QuickAdd(text=title)

    return AddEvent(title=title, time_of_day=parse_time_of_day(date_arg))


def parse_command(argv: list[str] | None = None) -> CommandRequest | None:
    """Parse process arguments into a CommandRequest."""
    return command_from_args(parse_args(argv))


def build_draft(title: str, time_of_day: time, today: date | None = None) -> EventDraft:
    """Event today (UTC) at ``time_of_day``, lasting one hour."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    start = datetime.combine(today, time_of_day, tzinfo=timezone.utc)
    return EventDraft(title=title, start=start)


# =============================================================================
# Commands
# =============================================================================


def _format_time(value: datetime | None) -> str:
    return value.isoformat() if value else "?"


def format_event(event: Event) -> str:
    """One-line summary: title, start - end, link."""
    parts = [event.summary, f"{_format_time(event.start)} - {_format_time(event.end)}"]
    if event.html_link:
        parts.append(event.html_link)
    return ", ".join(parts)


def cmd_list(client: CalendarClient, now: datetime) -> int:
    """Print upcoming events, one per line, in provider order."""
    try:
        events = client.list_events(time_min=now)
    except CalendarAPIError as e:
        print(f"Error retrieving events: {e}", file=sys.stderr)
        return 1

    for event in events:
        print(format_event(event))
    return 0


def cmd_quick_add(client: CalendarClient, text: str) -> int:
    """Create an event from free text."""
    try:
        event = client.quick_add(text)
    except CalendarAPIError as e:
        print(f"Error creating event: {e}", file=sys.stderr)
        return 1

    print(f"Event created: {format_event(event)}")
    return 0


def cmd_add(client: CalendarClient, draft: EventDraft) -> int:
    """Create an event with an explicit start time."""
    try:
        event = client.insert_event(draft)
    except CalendarAPIError as e:
        print(f"Error creating event: {e}", file=sys.stderr)
        return 1

    print(f"Event created: {format_event(event)}")
    return 0


def cmd_status(auth: GoogleOAuth) -> int:
    """Show Google OAuth token status."""
    info = auth.get_token_info()

    if info["status"] == "no_token":
        print("No token found - run 'gcal list' to sign in")
        return 0

    print(f"Status     : {info['status']}")
    print(f"Scopes     : {', '.join(info.get('scopes', []))}")
    if info.get("missing_scopes"):
        print(f"Missing    : {', '.join(info['missing_scopes'])}")
    print(f"Expires in : {info.get('expires_in', 'unknown')}")
    print(f"Refreshable: {'yes' if info.get('has_refresh_token') else 'no'}")
    return 0


def cmd_logout(auth: GoogleOAuth) -> int:
    """Revoke Google OAuth token."""
    if auth.revoke_token():
        print("Token revoked and local cache cleared")
    else:
        print("No token to revoke")
    return 0


def run_command(
    request: CommandRequest, client: CalendarClient, now: datetime | None = None
) -> int:
    """Run a calendar request against an authenticated client."""
    now = now or datetime.now(timezone.utc)

    if isinstance(request, ListEvents):
        return cmd_list(client, now)
    if isinstance(request, QuickAdd):
        return cmd_quick_add(client, request.text)
    if isinstance(request, AddEvent):
        draft = build_draft(request.title, request.time_of_day, today=now.date())
        return cmd_add(client, draft)

    raise ValueError(f"Not a calendar request: {request!r}")


# =============================================================================
# Entry point
# =============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    now = datetime.now(timezone.utc)
    args = parse_args(argv)
    _configure_logging(args.verbose)

    try:
        request = command_from_args(args)
    except InvalidEventError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if request is None:
        return 0

    try:
        timeout = get_auth_timeout()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    secret_path = ensure_directory_exists(get_secret_path())
    try:
        auth = GoogleOAuth(
            secret_path=secret_path,
            token_path=get_store_path(),
            open_browser=not args.no_browser,
            timeout=timeout,
        )
    except CredentialsNotFoundError as e:
        print(f"You need to provide your secret at {e.path}")
        return 1
    except CredentialsMalformedError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if isinstance(request, Status):
        return cmd_status(auth)
    if isinstance(request, Logout):
        return cmd_logout(auth)

    # Google may return scopes in a different order or superset
    os.environ.setdefault("OAUTHLIB_RELAX_TOKEN_SCOPE", "1")

    try:
        auth.ensure_token()
    except KeyboardInterrupt:
        print("\nAuthorization cancelled", file=sys.stderr)
        return 130
    except TokenError as e:
        print(f"Authorization failed: {e}", file=sys.stderr)
        return 1

    logger.info("User is authenticated.")
    return run_command(request, CalendarClient(auth=auth), now=now)


if __name__ == "__main__":
    sys.exit(main())
