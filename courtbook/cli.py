"""
Command-line booking desk for the coach.

Runs availability queries and booking writes against the configured store
(``DATABASE_URL``). Times are shown in the coach's timezone.

Usage:
    courtbook slots 2026-11-03
    courtbook dates --limit 3
    courtbook book --name "Ana Costa" --type adult --group 2 \\
        --phone "0412 345 678" --start 2026-11-03T10:00:00+11:00
    courtbook list --from 2026-11-01T00:00:00+11:00 --to 2026-11-08T00:00:00+11:00
    courtbook cancel <booking-id>
"""

import argparse
import sys
from typing import Any, Optional

from courtbook.config import AppConfig, settings
from courtbook.errors import (
    BookingError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from courtbook.logging_context import set_request_id
from courtbook.schemas.booking_schema import Booking
from courtbook.storage import create_repository
from courtbook.storage.migrations import migrate_skill_levels
from courtbook.tools.booking import BookingService
from courtbook.tools.timeutils import parse_day, serialize_instant

GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

EXIT_INVALID = 1
EXIT_CONFLICT = 2
EXIT_STORAGE = 3


class BookingDesk:
    """Formats service results for the terminal."""

    def __init__(self, service: BookingService) -> None:
        self.service = service
        self.tz = service.config.tz

    def say(self, text: str, color: str = GREEN) -> None:
        print(f"{color}{text}{RESET}")

    def fmt(self, instant) -> str:
        return instant.astimezone(self.tz).strftime("%a %d %b %Y %H:%M")

    def show_booking(self, booking: Booking) -> None:
        self.say(f"{BOLD}{booking.display_name}{RESET}", GREEN)
        print(f"  id:       {booking.id}")
        print(f"  when:     {self.fmt(booking.start_time)} - "
              f"{booking.end_time.astimezone(self.tz):%H:%M}")
        print(f"  student:  {booking.student_type.value}, group of {booking.group_size}")
        print(f"  contact:  {booking.contact_phone}"
              + (f" / {booking.contact_email}" if booking.contact_email else ""))
        print(f"  status:   {booking.status.value}")

    # ------------------------------------------------------------------ #
    # Subcommands
    # ------------------------------------------------------------------ #

    def cmd_slots(self, args: argparse.Namespace) -> None:
        day = parse_day(args.date, self.tz)
        if day is None:
            raise ValidationError({"date": "Invalid date"})
        response = self.service.get_day_slots(day)
        if not response.slots:
            self.say(f"No bookable slots on {day:%A %d %B %Y}.", YELLOW)
            return
        self.say(f"{len(response.slots)} slot(s) on {day:%A %d %B %Y} ({response.timezone}):")
        for slot in response.slots:
            print(f"  {serialize_instant(slot, self.tz)}")

    def cmd_dates(self, args: argparse.Namespace) -> None:
        results = self.service.get_available_dates(limit=args.limit)
        if not results:
            self.say("No availability inside the booking horizon.", YELLOW)
            return
        for item in results:
            print(f"  {item.date.isoformat()} {item.day_name:<9} {item.slot_count} slot(s)")

    def cmd_book(self, args: argparse.Namespace) -> None:
        payload: dict[str, Any] = {
            "student_name": args.name,
            "student_type": args.type,
            "group_size": args.group,
            "contact_phone": args.phone,
            "start_time": args.start,
        }
        if args.email:
            payload["contact_email"] = args.email
        if args.skill:
            payload["skill_level"] = args.skill
        booking = self.service.create_booking(payload)
        self.say("Booking confirmed.")
        self.show_booking(booking)

    def cmd_list(self, args: argparse.Namespace) -> None:
        bookings = self.service.list_bookings(getattr(args, "from"), args.to)
        if not bookings:
            self.say("No confirmed bookings in that range.", YELLOW)
            return
        for booking in bookings:
            print(f"  {self.fmt(booking.start_time)}  {booking.display_name:<30} "
                  f"x{booking.group_size}  {DIM}{booking.id}{RESET}")

    def cmd_show(self, args: argparse.Namespace) -> None:
        self.show_booking(self.service.get_booking(args.booking_id))

    def cmd_edit(self, args: argparse.Namespace) -> None:
        fields = {
            "student_name": args.name,
            "student_type": args.type,
            "group_size": args.group,
            "contact_phone": args.phone,
            "contact_email": args.email,
            "skill_level": args.skill,
        }
        payload = {k: v for k, v in fields.items() if v is not None}
        self.show_booking(self.service.update_booking(args.booking_id, payload))

    def cmd_cancel(self, args: argparse.Namespace) -> None:
        self.service.cancel_booking(args.booking_id)
        self.say(f"Booking {args.booking_id} cancelled.")

    def cmd_delete(self, args: argparse.Namespace) -> None:
        self.service.delete_booking(args.booking_id)
        self.say(f"Booking {args.booking_id} deleted.")

    def cmd_migrate_skills(self, args: argparse.Namespace) -> None:
        count = migrate_skill_levels(self.service.repository, self.service.coach_id)
        self.say(f"Migrated skill level on {count} booking(s).")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="courtbook", description="Tennis lesson booking desk")
    sub = parser.add_subparsers(dest="command", required=True)

    slots = sub.add_parser("slots", help="Bookable lesson starts for a date")
    slots.add_argument("date", help="YYYY-MM-DD")

    dates = sub.add_parser("dates", help="Next dates with free slots")
    dates.add_argument("--limit", type=int, default=5)

    book = sub.add_parser("book", help="Create a booking")
    book.add_argument("--name", required=True)
    book.add_argument("--type", required=True, choices=["kid", "adult"])
    book.add_argument("--group", type=int, default=1)
    book.add_argument("--phone", required=True)
    book.add_argument("--email")
    book.add_argument("--skill")
    book.add_argument("--start", required=True, help="ISO-8601 instant with offset")

    listing = sub.add_parser("list", help="Confirmed bookings in a range")
    listing.add_argument("--from", required=True, help="ISO-8601 instant with offset")
    listing.add_argument("--to", required=True, help="ISO-8601 instant with offset")

    show = sub.add_parser("show", help="Show one booking")
    show.add_argument("booking_id")

    edit = sub.add_parser("edit", help="Edit booking details")
    edit.add_argument("booking_id")
    edit.add_argument("--name")
    edit.add_argument("--type", choices=["kid", "adult"])
    edit.add_argument("--group", type=int)
    edit.add_argument("--phone")
    edit.add_argument("--email")
    edit.add_argument("--skill")

    for name, help_text in (("cancel", "Cancel a booking"), ("delete", "Delete a booking")):
        command = sub.add_parser(name, help=help_text)
        command.add_argument("booking_id")

    sub.add_parser("migrate-skills", help="Move '(Skill)' name suffixes into skill_level")
    return parser


def run(argv: Optional[list[str]] = None, config: AppConfig = settings) -> int:
    """Parse ``argv``, run one command and return the process exit code."""
    args = build_parser().parse_args(argv)
    set_request_id()
    try:
        repository = create_repository(config.storage.database_url, echo=config.storage.echo_sql)
    except BookingError as exc:
        print(f"{RED}{exc.message}{RESET}")
        return EXIT_STORAGE
    desk = BookingDesk(BookingService(repository, config.booking, config.coach_id))
    handler = getattr(desk, "cmd_" + args.command.replace("-", "_"))

    try:
        handler(args)
    except ValidationError as exc:
        desk.say(exc.message, RED)
        for field_name, message in exc.errors.items():
            print(f"  {field_name}: {message}")
        return EXIT_INVALID
    except (NotFoundError, InvalidTransitionError) as exc:
        desk.say(exc.message, RED)
        return EXIT_INVALID
    except ConflictError as exc:
        desk.say(f"{exc.message}. Pick another slot.", YELLOW)
        return EXIT_CONFLICT
    except BookingError as exc:
        desk.say(exc.message, RED)
        return EXIT_STORAGE
    return 0


def main() -> None:
    sys.exit(run())
