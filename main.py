#!/usr/bin/env python3
"""
Release Date Calculator

Calculates the release dates of a prisoner's booking from a JSON file holding
the offender, their sentences and adjustments.

Usage:
    python main.py booking.json             # Print the booking's dates
    python main.py booking.json --ersed     # Include the ERSED
    python main.py booking.json --json      # Print the full result as JSON
    python main.py booking.json -v          # Log each calculation pass
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from release_dates.config import get_settings
from release_dates.core.engine import calculate_release_dates
from release_dates.core.errors import CalculationError
from release_dates.core.types import CalculationOptions
from release_dates.schemas import BookingIn, CalculationResultOut

console = Console()


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_booking(path: str) -> BookingIn:
    with open(path) as f:
        return BookingIn.model_validate(json.load(f))


def render(result: CalculationResultOut):
    table = Table(title="Release Dates")
    table.add_column("Type", style="cyan")
    table.add_column("Date", style="green")
    table.add_column("Unadjusted", style="yellow")
    table.add_column("Adjusted days", justify="right")
    table.add_column("Rules")
    for release_type, value in sorted(result.dates.items(), key=lambda item: item[1]):
        breakdown = result.breakdown.get(release_type)
        table.add_row(
            release_type,
            value.isoformat(),
            breakdown.unadjusted_date.isoformat() if breakdown else "",
            str(breakdown.adjusted_days) if breakdown else "",
            ", ".join(breakdown.rules) if breakdown else "",
        )
    console.print(table)

    length = result.effective_sentence_length
    console.print(
        f"  Effective sentence length: {length.years} years {length.months} months {length.days} days"
    )
    console.print(f"  Sentences impacting release: {len(result.sentences_impacting_final_release_date)}")


def main():
    parser = argparse.ArgumentParser(
        description="Calculate release dates for a booking",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("booking", help="Path to the booking JSON file")
    parser.add_argument(
        "--ersed",
        action="store_true",
        help="Calculate the early removal scheme eligibility date",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON instead of a table",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()
    setup_logging(args.verbose)

    if not Path(args.booking).exists():
        console.print(f"[red]No such file: {args.booking}[/]")
        sys.exit(2)

    try:
        booking_in = load_booking(args.booking)
    except ValidationError as e:
        console.print(f"[red]Invalid booking:[/]\n{e}")
        sys.exit(2)

    try:
        result = calculate_release_dates(
            booking_in.to_booking(),
            CalculationOptions(calculate_ersed=args.ersed),
            get_settings(),
        )
    except CalculationError as e:
        console.print(f"[red]{', '.join(e.codes)}:[/] {e}")
        sys.exit(1)

    output = CalculationResultOut.from_result(result)
    if args.json:
        print(output.model_dump_json(indent=2))
        return

    console.print(f"[bold]Release dates for {booking_in.offender.reference}[/]")
    console.print("=" * 45)
    render(output)


if __name__ == "__main__":
    main()
