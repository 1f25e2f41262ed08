#!/usr/bin/env python
"""
CSV Sales Import Script

Imports retail sales rows from a CSV file into the Retail Sales Report API.

Usage:
    python import_sales.py data/retail_sales.csv
    python import_sales.py data/retail_sales.csv --batch-size 500
    python import_sales.py data/retail_sales.csv --url http://localhost:8000
    python import_sales.py data/retail_sales.csv --limit 1000 --clean
"""
import argparse
import csv
import sys
from datetime import datetime
from io import StringIO
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple

import httpx


# CSV header -> API field. Covers the misspelled headers of the
# tutorial dataset (transactions_id, quantiy).
COLUMN_ALIASES = {
    "transactions_id": "transaction_id",
    "transaction_id": "transaction_id",
    "sale_date": "sale_date",
    "sale_time": "sale_time",
    "customer_id": "customer_id",
    "gender": "gender",
    "age": "age",
    "category": "category",
    "quantiy": "quantity",
    "quantity": "quantity",
    "price_per_unit": "price_per_unit",
    "cogs": "cogs",
    "total_sale": "total_sale",
}

DATE_FIELDS = {"sale_date"}


def parse_date(date_str: str, day_first: bool = False) -> str:
    """
    Parse a CSV date to ISO format.

    Accepts YYYY-MM-DD, M/D/YYYY and D/M/YYYY. Slash dates are read month
    first unless day_first is set, so an ambiguous 03/04/2022 is March 4th
    by default and April 3rd with day_first. The other order is still tried
    when the preferred one cannot parse the value (25/12/2022).

    Args:
        date_str: Date string from the CSV
        day_first: Prefer D/M/YYYY over M/D/YYYY

    Returns:
        ISO formatted date string

    Raises:
        ValueError: If no format matches
    """
    slash_formats = ["%m/%d/%Y", "%d/%m/%Y"]
    if day_first:
        slash_formats.reverse()
    for fmt in ["%Y-%m-%d"] + slash_formats:
        try:
            return datetime.strptime(date_str, fmt).date().isoformat()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date '{date_str}'")


def csv_row_to_sale(row: Dict[str, Optional[str]], day_first: bool = False) -> Dict[str, Any]:
    """
    Convert a CSV row to a raw sale record.

    Headers are matched case-insensitively through COLUMN_ALIASES; unknown
    columns are dropped and blank cells are left out so the API sees the
    field as missing. Values stay strings; the API parses and validates them.

    Args:
        row: Dictionary with CSV column headers as keys
        day_first: Read slash dates as D/M/YYYY first

    Returns:
        Sale record ready for the /sales/batch endpoint
    """
    record: Dict[str, Any] = {}
    for header, value in row.items():
        if header is None:
            continue
        field = COLUMN_ALIASES.get(header.strip().lower())
        if field is None or value is None or not value.strip():
            continue
        value = value.strip()
        record[field] = parse_date(value, day_first) if field in DATE_FIELDS else value
    return record


def read_csv_sales(
    file_path: Path,
    limit: int = None,
    day_first: bool = False,
) -> List[Tuple[int, Dict[str, Any]]]:
    """
    Read sale records from a CSV file.

    Args:
        file_path: Path to CSV file
        limit: Optional limit on number of rows to read
        day_first: Read slash dates as D/M/YYYY first

    Returns:
        List of (CSV line number, raw sale record); skipped rows are absent
    """
    encodings = ['utf-8-sig', 'latin-1', 'cp1252']
    file_content = None

    for encoding in encodings:
        try:
            with open(file_path, "r", encoding=encoding) as f:
                file_content = f.read()
                break
        except UnicodeDecodeError:
            continue

    if file_content is None:
        raise ValueError(f"Could not decode file with any of the supported encodings: {encodings}")

    sales = []
    reader = csv.DictReader(StringIO(file_content))
    for i, row in enumerate(reader):
        if limit and i >= limit:
            break
        # line the record ends on; the header is line 1
        line = reader.line_num
        try:
            sales.append((line, csv_row_to_sale(row, day_first)))
        except ValueError as e:
            print(f"⚠️  Skipping row {line}: {e}", file=sys.stderr)

    return sales


def send_batch(
    sales: List[Dict[str, Any]],
    api_url: str,
    timeout: int = 30
) -> Dict[str, Any]:
    """
    Send a batch of sale records to the API.

    Raises:
        httpx.HTTPError: If API request fails
    """
    with httpx.Client(timeout=timeout) as client:
        response = client.post(f"{api_url}/sales/batch", json={"records": sales})
        response.raise_for_status()
        return response.json()


def run_cleaning(api_url: str, timeout: int = 30) -> Dict[str, Any]:
    """Trigger the cleaning pass once all batches are loaded."""
    with httpx.Client(timeout=timeout) as client:
        response = client.post(f"{api_url}/sales/clean")
        response.raise_for_status()
        return response.json()


def main():
    """Main entry point for the script."""
    parser = argparse.ArgumentParser(
        description="Import retail sales from CSV to the Retail Sales Report API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s data/retail_sales.csv
  %(prog)s data/retail_sales.csv --batch-size 500
  %(prog)s data/retail_sales.csv --limit 1000 --url http://localhost:8000
  %(prog)s data/retail_sales.csv --clean
        """
    )
    parser.add_argument("csv_file", type=Path, help="Path to CSV file with sales data")
    parser.add_argument(
        "--url",
        type=str,
        default="http://localhost:8000",
        help="Base API URL (default: http://localhost:8000)"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=1000,
        help="Number of records per batch request (default: 1000)"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of rows to import (default: all)"
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=30,
        help="Request timeout in seconds (default: 30)"
    )
    parser.add_argument(
        "--day-first",
        action="store_true",
        help="Read ambiguous slash dates as D/M/YYYY (default: M/D/YYYY)"
    )
    parser.add_argument(
        "--clean",
        action="store_true",
        help="Run the cleaning pass after the import"
    )

    args = parser.parse_args()

    if not args.csv_file.is_file():
        print(f"❌ Error: File not found: {args.csv_file}", file=sys.stderr)
        sys.exit(1)

    print(f"📂 Reading sales from {args.csv_file}")

    try:
        sales = read_csv_sales(args.csv_file, args.limit, args.day_first)
    except (OSError, ValueError) as e:
        print(f"❌ Error reading CSV: {e}", file=sys.stderr)
        sys.exit(1)

    if not sales:
        print("⚠️  No rows found in CSV", file=sys.stderr)
        sys.exit(1)

    print(f"✅ Read {len(sales)} row(s)")

    total_created = 0
    total_rejected = 0
    batch_size = args.batch_size
    num_batches = (len(sales) + batch_size - 1) // batch_size

    print(f"📤 Sending {num_batches} batch(es) to {args.url}")

    for i in range(0, len(sales), batch_size):
        batch = sales[i:i + batch_size]
        batch_num = (i // batch_size) + 1

        try:
            print(f"   Batch {batch_num}/{num_batches}: {len(batch)} rows...", end=" ")
            response = send_batch([record for _, record in batch], args.url, args.timeout)
        except httpx.HTTPError as e:
            print("❌ Failed", file=sys.stderr)
            print(f"   Error: {e}", file=sys.stderr)
            sys.exit(1)

        created = response.get("created", 0)
        rejected = response.get("rejected", [])
        total_created += created
        total_rejected += len(rejected)
        print(f"✅ {created} created, {len(rejected)} rejected")
        for rejection in rejected:
            print(
                f"      row {batch[rejection['index']][0]}: {'; '.join(rejection['errors'])}",
                file=sys.stderr,
            )

    print(f"\n🎉 Import complete! Created {total_created} sale(s), rejected {total_rejected}")

    if args.clean:
        try:
            result = run_cleaning(args.url, args.timeout)
        except httpx.HTTPError as e:
            print(f"❌ Cleaning failed: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"🧹 {result['message']} ({result['remaining']} remaining)")


if __name__ == "__main__":
    main()
