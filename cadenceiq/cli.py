"""CadenceIQ command-line entry point.

Usage:
    cadenceiq add --entity "Acme" --contact "Jane Doe" --email jane@acme.com --day Monday
    cadenceiq import contacts.csv --day Tuesday
    cadenceiq list --day Monday --stage "First Email"
    cadenceiq advance <contact-id>
    cadenceiq calendar --month 2026-03
    cadenceiq stats
    cadenceiq goal 15
    cadenceiq insights <contact-id>
    cadenceiq checkout
    cadenceiq unlock <token>
    cadenceiq --status
"""

import argparse
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from cadenceiq import __version__
from cadenceiq.core.config import Config, get_config, validate_config
from cadenceiq.core.exceptions import AlreadyCompletedError, CadenceIQError, ValidationError
from cadenceiq.core.logging import get_logger, setup_logging
from cadenceiq.db.database import Database
from cadenceiq.db.models import CalendarEvent, Contact, SequenceStage, WeekDay, parse_day
from cadenceiq.engine.access import AccessGate
from cadenceiq.engine.contacts import ContactStore
from cadenceiq.engine.dates import month_bounds
from cadenceiq.engine.stages import STAGE_ORDER

logger = get_logger("cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cadenceiq",
        description="CadenceIQ - contact outreach cadence tracker",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--status", action="store_true", help="Show readiness report and exit")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command")

    add = sub.add_parser("add", help="Add a contact")
    add.add_argument("--entity", required=True, dest="entity_name")
    add.add_argument("--contact", required=True, dest="primary_contact")
    add.add_argument("--email", required=True, dest="email_address")
    add.add_argument("--phone", default="", dest="phone_number")
    add.add_argument("--company-linkedin", default="")
    add.add_argument("--contact-linkedin", default="")
    add.add_argument("--facebook", default="", dest="contact_facebook")
    add.add_argument("--notes", default="")
    add.add_argument("--day", default=WeekDay.MONDAY.value)

    imp = sub.add_parser("import", help="Import contacts from CSV/XLSX")
    imp.add_argument("file", type=Path)
    imp.add_argument("--day", required=True)

    lst = sub.add_parser("list", help="List contacts in a day/stage bucket")
    lst.add_argument("--day", required=True)
    lst.add_argument("--stage", default=SequenceStage.FIRST_EMAIL.value)

    adv = sub.add_parser("advance", help="Advance a contact to its next stage")
    adv.add_argument("contact_id")

    delete = sub.add_parser("delete", help="Delete contacts and their follow-ups")
    delete.add_argument("contact_ids", nargs="+")

    sub.add_parser("stats", help="Contacts per stage")

    goal = sub.add_parser("goal", help="Show or set the lead goal")
    goal.add_argument("value", type=int, nargs="?")

    cal = sub.add_parser("calendar", help="Show follow-ups for a day or month")
    when = cal.add_mutually_exclusive_group()
    when.add_argument("--date", help="YYYY-MM-DD (default: today)")
    when.add_argument("--month", help="YYYY-MM")

    ins = sub.add_parser("insights", help="Fetch social insights for a contact")
    ins.add_argument("contact_id")

    sub.add_parser("checkout", help="Start the one-time unlock payment")

    unlock = sub.add_parser("unlock", help="Redeem an access token")
    unlock.add_argument("token")

    return parser


def _format_contact(contact: Contact) -> str:
    due = contact.next_activity.strftime("%Y-%m-%d") if contact.next_activity else "-"
    state = "done" if contact.completed else f"due {due}"
    return (
        f"{contact.id}  {contact.entity_name} / {contact.primary_contact} "
        f"<{contact.email_address}>  [{contact.stage.value}, {state}]"
    )


def _format_event(event: CalendarEvent) -> str:
    mark = "x" if event.completed else " "
    return f"[{mark}] {event.date:%Y-%m-%d}  {event.entity_name} - {event.stage.value}"


def _cmd_add(store: ContactStore, args: argparse.Namespace) -> int:
    contact = store.add(
        {
            "entity_name": args.entity_name,
            "primary_contact": args.primary_contact,
            "email_address": args.email_address,
            "phone_number": args.phone_number,
            "company_linkedin": args.company_linkedin,
            "contact_linkedin": args.contact_linkedin,
            "contact_facebook": args.contact_facebook,
            "notes": args.notes,
            "day": args.day,
        }
    )
    print(f"Added {_format_contact(contact)}")
    return 0


def _cmd_import(store: ContactStore, args: argparse.Namespace) -> int:
    from cadenceiq.integrations.csv_importer import CSVImporter

    try:
        day = parse_day(args.day)
    except ValueError as e:
        raise ValidationError(f"Unknown day bucket: {args.day!r}") from e

    rows = CSVImporter().read_contacts(args.file, day=day)
    result = store.import_batch(rows)
    print(f"Imported {result.succeeded} contact(s), {result.failed} failed")
    for error in result.errors:
        print(f"  row {error.row_index + 1}: {error.message}")
    return 0 if result.failed == 0 else 2


def _cmd_list(store: ContactStore, args: argparse.Namespace) -> int:
    contacts = store.filter(args.day, args.stage)
    progress = store.goal_progress(args.day, args.stage)
    for contact in contacts:
        print(_format_contact(contact))
    print(f"{progress.count} / {progress.goal} rows")
    return 0


def _cmd_advance(store: ContactStore, args: argparse.Namespace) -> int:
    try:
        contact = store.advance_stage(args.contact_id)
    except AlreadyCompletedError as e:
        print(str(e))
        return 0
    if contact.completed:
        print(f"Sequence complete for {contact.entity_name}")
    else:
        print(f"Advanced {_format_contact(contact)}")
    return 0


def _cmd_delete(store: ContactStore, args: argparse.Namespace) -> int:
    removed = store.delete_many(args.contact_ids)
    print(f"Deleted {removed} contact(s)")
    return 0


def _cmd_stats(store: ContactStore, args: argparse.Namespace) -> int:
    stats = store.stats()
    for stage in STAGE_ORDER:
        print(f"{stage.value:<24} {stats[stage]}")
    return 0


def _cmd_goal(store: ContactStore, args: argparse.Namespace) -> int:
    if args.value is not None:
        store.set_lead_goal(args.value)
    print(f"Lead goal: {store.lead_goal}")
    return 0


def _cmd_calendar(store: ContactStore, args: argparse.Namespace) -> int:
    if args.month:
        try:
            year, month = (int(part) for part in args.month.split("-"))
            start, end = month_bounds(year, month)
        except ValueError as e:
            raise ValidationError(f"Month must be YYYY-MM, got {args.month!r}") from e
        for day, count in store.calendar.busy_days(start, end).items():
            print(f"{day:%Y-%m-%d}  {count} follow-up(s)")
        return 0

    try:
        day = date.fromisoformat(args.date) if args.date else datetime.now().date()
    except ValueError as e:
        raise ValidationError(f"Date must be YYYY-MM-DD, got {args.date!r}") from e
    events = store.calendar.events_on_day(day)
    if not events:
        print(f"No follow-ups on {day:%Y-%m-%d}")
    for event in events:
        print(_format_event(event))
    return 0


def _cmd_insights(store: ContactStore, args: argparse.Namespace) -> int:
    from cadenceiq.ai.insights import ClaudeInsightSource

    source = ClaudeInsightSource()
    if not source.is_configured():
        print("Insights unavailable: CLAUDE_API_KEY not configured")
        return 1
    contact = store.request_insights(args.contact_id, source)
    print(f"Insights stored for {contact.entity_name}")
    return 0


_COMMANDS = {
    "add": _cmd_add,
    "import": _cmd_import,
    "list": _cmd_list,
    "advance": _cmd_advance,
    "delete": _cmd_delete,
    "stats": _cmd_stats,
    "goal": _cmd_goal,
    "calendar": _cmd_calendar,
    "insights": _cmd_insights,
}


def _print_status(config: Config, issues: list[str], gate: AccessGate) -> None:
    print(f"\nCadenceIQ v{__version__} - Readiness\n")
    print(f"  Data file:  {config.db_path}")
    print(f"  Insights:   {'configured' if config.claude_api_key else 'CLAUDE_API_KEY missing'}")
    checkout = "configured" if config.stripe_secret_key else "STRIPE_SECRET_KEY missing"
    print(f"  Checkout:   {checkout}")
    print(f"  Unlocked:   {'yes' if gate.is_unlocked else 'no'}")
    if issues:
        print(f"\nConfiguration issues ({len(issues)}):")
        for issue in issues:
            print(f"  ! {issue}")
    print()


def run(args: argparse.Namespace, config: Config) -> int:
    """Execute a parsed command against the configured data file."""
    db = Database(str(config.db_path))
    db.initialize()

    try:
        gate = AccessGate(db)

        if args.status:
            _print_status(config, validate_config(config), gate)
            return 0

        if args.command == "checkout":
            from cadenceiq.integrations.checkout import CheckoutClient

            session = CheckoutClient(config).create_session()
            gate.issue(session.access_token)
            print(f"Complete payment at: {session.url}")
            return 0

        if args.command == "unlock":
            if gate.redeem(args.token):
                print("CadenceIQ unlocked")
                return 0
            print("Invalid or already used access token")
            return 1

        if config.require_access and not gate.is_unlocked:
            print("CadenceIQ is locked. Run 'cadenceiq checkout' to purchase access.")
            return 1

        store = ContactStore.load(db, default_lead_goal=config.default_lead_goal)
        return _COMMANDS[args.command](store, args)
    finally:
        db.close()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CadenceIQ.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"CadenceIQ v{__version__}")
        return 0

    if not args.status and args.command is None:
        parser.print_help()
        return 1

    try:
        config = get_config()
    except CadenceIQError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config, verbose=args.debug)

    try:
        return run(args, config)
    except CadenceIQError as e:
        logger.error(f"{args.command or 'status'} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
