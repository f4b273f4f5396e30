import argparse
import json
import logging
import sys
import time
from datetime import date, datetime, timedelta

from noir_scheduler import config, notifier
from noir_scheduler.assignment import find_table
from noir_scheduler.availability import alternative_times, availability_response, sitting_minutes
from noir_scheduler.booking import create_reservation
from noir_scheduler.errors import SchedulerError
from noir_scheduler.models import TimeInterval
from noir_scheduler.search import next_available
from noir_scheduler.store import InMemoryRowStore, SupabaseRowStore

# --- Logging Setup ---

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool):
    """Configures logging to stderr with local time."""
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s]: %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    # Use local time instead of UTC for logging
    formatter.converter = time.localtime
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def parse_arguments(argv=None):
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(description="Check table availability and book reservations.")
    parser.add_argument("--data", type=str, help="JSON data file to use instead of Supabase.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    slots = sub.add_parser("slots", help="List open 15-minute slots for a date.")
    slots.add_argument("--date", type=str, required=True, help="Date in YYYY-MM-DD format.")
    slots.add_argument("--party-size", type=int, required=True)

    assign = sub.add_parser("assign", help="Find the smallest free table for a time window.")
    assign.add_argument("--start", type=str, required=True, help="ISO 8601 start time.")
    assign.add_argument("--end", type=str, required=True, help="ISO 8601 end time.")
    assign.add_argument("--party-size", type=int, required=True)

    nxt = sub.add_parser("next", help="Find the next time a table is free.")
    nxt.add_argument("--after", type=str, required=True, help="ISO 8601 earliest start time.")
    nxt.add_argument("--duration", type=int, help="Minutes. Defaults to the sitting length for the party size.")
    nxt.add_argument("--party-size", type=int, required=True)
    nxt.add_argument("--horizon-days", type=int, default=config.SEARCH_HORIZON_DAYS)

    alt = sub.add_parser("alternatives", help="Nearest open slots around a requested time.")
    alt.add_argument("--date", type=str, required=True, help="Date in YYYY-MM-DD format.")
    alt.add_argument("--time", type=str, required=True, help="Requested time in HH:MM format.")
    alt.add_argument("--party-size", type=int, required=True)

    book = sub.add_parser("book", help="Assign a table and create a reservation.")
    book.add_argument("--start", type=str, required=True, help="ISO 8601 start time.")
    book.add_argument("--end", type=str, required=True, help="ISO 8601 end time.")
    book.add_argument("--party-size", type=int, required=True)
    book.add_argument("--phone", type=str)
    book.add_argument("--first-name", type=str)
    book.add_argument("--last-name", type=str)
    book.add_argument("--notes", type=str)
    book.add_argument("--notify", action="store_true", help="Send SMS confirmations.")

    return parser.parse_args(argv)


def build_store(args):
    if args.data:
        return InMemoryRowStore.from_json_file(args.data)
    if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_ROLE_KEY:
        logger.error("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set, or pass --data.")
        sys.exit(1)
    return SupabaseRowStore()


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        logger.error("Error: Date must be in YYYY-MM-DD format.")
        sys.exit(1)


def _parse_instant(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.error(f"Error: '{value}' is not an ISO 8601 date-time.")
        sys.exit(1)


def run_command(args, store) -> dict:
    if args.command == "slots":
        return availability_response(store, _parse_date(args.date), args.party_size)

    if args.command == "assign":
        window = TimeInterval(start=_parse_instant(args.start), end=_parse_instant(args.end))
        return find_table(store, window, args.party_size).model_dump()

    if args.command == "next":
        duration = args.duration if args.duration is not None else sitting_minutes(args.party_size)
        found = next_available(
            store,
            _parse_instant(args.after),
            duration,
            args.party_size,
            horizon=timedelta(days=args.horizon_days),
        )
        return {"next_available_time": found.isoformat() if found else None}

    if args.command == "alternatives":
        return alternative_times(store, _parse_date(args.date), args.party_size, args.time).model_dump()

    if args.command == "book":
        request = {
            "start_time": args.start,
            "end_time": args.end,
            "party_size": args.party_size,
            "phone": args.phone,
            "first_name": args.first_name,
            "last_name": args.last_name,
            "notes": args.notes,
            "source": "cli",
        }
        outcome = create_reservation(store, request, notify=notifier.send_sms if args.notify else None)
        if outcome.booked and args.data:
            store.save_json_file(args.data)
        return {"status": outcome.status_code, **outcome.body}

    raise ValueError(f"Unknown command {args.command}")


def main(argv=None):
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    store = build_store(args)

    try:
        result = run_command(args, store)
    except (SchedulerError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)
    finally:
        if isinstance(store, SupabaseRowStore):
            store.close()

    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
