#!/usr/bin/env python
"""
Sales Analysis Script

Fetches every report from the Retail Sales Report API and prints them as a
text report, or writes them to a JSON file.

Usage:
    python analyze_sales.py
    python analyze_sales.py --date 2022-11-05 --year-month 2022-11
    python analyze_sales.py --category Beauty --threshold 1000 --top 5
    python analyze_sales.py --output sales_report.json
"""
import argparse
import json
import sys
from typing import Dict, Any, Optional

import httpx


class SalesAnalyzer:
    """Client for the report endpoints."""

    def __init__(self, api_url: str = "http://localhost:8000", timeout: int = 60):
        self.api_url = api_url
        self.timeout = timeout

    def fetch(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET one report.

        Raises:
            httpx.HTTPError: If the API request fails
        """
        with httpx.Client(timeout=self.timeout) as client:
            response = client.get(f"{self.api_url}/reports/{path}", params=params or {})
            response.raise_for_status()
            return response.json()

    def collect(
        self,
        sale_date: str,
        year_month: str,
        category: str,
        threshold: float,
        top: int,
    ) -> Dict[str, Any]:
        """Fetch the summary and all ten reports into one dict."""
        return {
            "summary": self.fetch("summary"),
            "sales_on_date": self.fetch("sales-on-date", {"sale_date": sale_date}),
            "clothing_high_quantity": self.fetch("clothing-high-quantity", {"year_month": year_month}),
            "totals_by_category": self.fetch("totals-by-category"),
            "average_age": self.fetch("average-age", {"category": category}),
            "high_value": self.fetch("high-value", {"threshold": threshold}),
            "gender_category_counts": self.fetch("gender-category-counts"),
            "best_month_per_year": self.fetch("best-month-per-year"),
            "top_customers": self.fetch("top-customers", {"n": top}),
            "unique_customers_per_category": self.fetch("unique-customers-per-category"),
            "orders_by_shift": self.fetch("orders-by-shift"),
        }


def format_report(reports: Dict[str, Any], params: Dict[str, Any]) -> str:
    """Render collected reports as plain text."""
    lines = []

    def section(title: str) -> None:
        lines.append("")
        lines.append(title)
        lines.append("-" * len(title))

    summary = reports["summary"]
    section("📊 Overview")
    lines.append(f"Sales: {summary['total_sales']}")
    lines.append(f"Unique customers: {summary['unique_customers']}")
    lines.append(f"Categories: {', '.join(summary['categories']) or '-'}")

    section(f"📅 Sales on {params['sale_date']}")
    lines.append(f"{reports['sales_on_date']['total']} sale(s)")

    section(f"👕 Clothing, quantity > 4, {params['year_month']}")
    lines.append(f"{reports['clothing_high_quantity']['total']} sale(s)")

    section("🏷️  Totals by category")
    for item in reports["totals_by_category"]["items"]:
        lines.append(f"{item['category']:<15} {item['net_sale']:>12.2f}  {item['total_orders']:>6} orders")

    section(f"🎂 Average age, {params['category']}")
    avg_age = reports["average_age"]["avg_age"]
    lines.append("no sales" if avg_age is None else f"{avg_age:.2f}")

    section(f"💰 Sales above {params['threshold']}")
    lines.append(f"{reports['high_value']['total']} sale(s)")

    section("🚻 Transactions by gender and category")
    for item in reports["gender_category_counts"]["items"]:
        lines.append(f"{item['gender']:<8} {item['category']:<15} {item['total_trans']:>6}")

    section("🏆 Best month per year (average sale)")
    for item in reports["best_month_per_year"]["items"]:
        lines.append(f"{item['year']}-{item['month']:02d}  {item['avg_sale']:>10.2f}")

    section(f"⭐ Top {params['top']} customers")
    for rank, item in enumerate(reports["top_customers"]["items"], start=1):
        lines.append(f"{rank:>2}. customer {item['customer_id']:<8} {item['total_sale']:>12.2f}")

    section("👥 Unique customers per category")
    for item in reports["unique_customers_per_category"]["items"]:
        lines.append(f"{item['category']:<15} {item['unique_customers']:>6}")

    section("🕒 Orders by shift")
    for item in reports["orders_by_shift"]["items"]:
        lines.append(f"{item['shift']:<10} {item['total_orders']:>6}")

    return "\n".join(lines).lstrip("\n")


def main():
    """Main entry point for the script."""
    parser = argparse.ArgumentParser(
        description="Print the retail sales reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--url", default="http://localhost:8000", help="Base API URL")
    parser.add_argument("--date", default="2022-11-05", help="Day for the sales-on-date report")
    parser.add_argument("--year-month", default="2022-11", help="Month for the clothing report")
    parser.add_argument("--category", default="Beauty", help="Category for the average-age report")
    parser.add_argument("--threshold", type=float, default=1000, help="High-value threshold")
    parser.add_argument("--top", type=int, default=5, help="Number of top customers")
    parser.add_argument("--output", default=None, help="Write JSON to this file instead of printing")

    args = parser.parse_args()
    params = {
        "sale_date": args.date,
        "year_month": args.year_month,
        "category": args.category,
        "threshold": args.threshold,
        "top": args.top,
    }

    analyzer = SalesAnalyzer(api_url=args.url)
    try:
        reports = analyzer.collect(**params)
    except httpx.HTTPError as e:
        print(f"❌ Error fetching reports: {e}", file=sys.stderr)
        sys.exit(1)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump({"parameters": params, "reports": reports}, f, indent=2, ensure_ascii=False)
        print(f"💾 Report written to {args.output}")
    else:
        print(format_report(reports, params))


if __name__ == "__main__":
    main()
