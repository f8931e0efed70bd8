#!/usr/bin/env python3
"""Synthetic lead sheet generator for performance and manual testing.

Produces a CSV or XLSX file shaped like a real lead export:
- header row with loosely-labeled columns ("Driver Name", "Mobile #", ...)
- a configurable share of rows without an email (placeholder path)
- a configurable share of duplicate rows (same phone as an earlier row)
- a few rows with neither email nor phone (dropped by the parser)

Usage:
    python scripts/gen_lead_dataset.py --rows 5000 --output data/leads.csv
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

FIRST_NAMES = ["James", "Maria", "Robert", "Linda", "Ahmed", "Wei", "Olga", "Carlos", "Aisha", "Tom"]
LAST_NAMES = ["Smith", "Garcia", "Nguyen", "Brown", "Khan", "Ivanova", "Lopez", "Okafor", "Chen", "Miller"]
DRIVER_TYPES = ["Company Driver", "Owner Operator", "Lease Purchase", "undefined", ""]
CITIES = [("Dallas", "TX"), ("Reno", "NV"), ("Columbus", "OH"), ("Fresno", "CA"), ("Macon", "GA")]
PHONE_STYLES = ["({a}) {b}-{c}", "{a}-{b}-{c}", "+1 {a} {b} {c}", "{a}.{b}.{c}", "1{a}{b}{c}"]

HEADERS = ["Driver Name", "E-mail", "Mobile #", "Position", "Years Exp", "City", "State"]


def generate_leads(
    rows: int,
    *,
    missing_email_ratio: float = 0.2,
    duplicate_ratio: float = 0.05,
    invalid_ratio: float = 0.01,
    seed: int = 42,
) -> pd.DataFrame:
    """Generate `rows` synthetic lead rows.

    Args:
        rows: number of data rows
        missing_email_ratio: share of rows with a blank email cell
        duplicate_ratio: share of rows that repeat an earlier row's phone
        invalid_ratio: share of rows with neither email nor phone
        seed: random seed for reproducible data

    Returns:
        DataFrame with the columns of HEADERS (all values as strings)
    """
    rng = np.random.default_rng(seed)
    records: list[list[str]] = []
    phones: list[str] = []

    for i in range(rows):
        first = FIRST_NAMES[rng.integers(len(FIRST_NAMES))]
        last = LAST_NAMES[rng.integers(len(LAST_NAMES))]
        city, state = CITIES[rng.integers(len(CITIES))]

        roll = rng.random()
        if phones and roll < duplicate_ratio:
            phone = phones[rng.integers(len(phones))]
        else:
            digits = f"{5550000000 + i:010d}"
            style = PHONE_STYLES[rng.integers(len(PHONE_STYLES))]
            phone = style.format(a=digits[:3], b=digits[3:6], c=digits[6:])
            phones.append(phone)

        email = f"{first}.{last}.{i}@example.com".lower()
        if rng.random() < missing_email_ratio:
            email = ""
        if rng.random() < invalid_ratio:
            email, phone = "", ""

        records.append([
            f"{first} {last}",
            email,
            phone,
            DRIVER_TYPES[rng.integers(len(DRIVER_TYPES))],
            str(rng.integers(0, 25)),
            city,
            state,
        ])

    return pd.DataFrame(records, columns=HEADERS)


def write_dataset(df: pd.DataFrame, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".xlsx":
        df.to_excel(output, index=False, engine="openpyxl")
    else:
        df.to_csv(output, index=False)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a synthetic lead sheet (CSV or XLSX)")
    parser.add_argument("--rows", type=int, default=1000, help="Number of data rows (default: 1000)")
    parser.add_argument("--output", type=Path, default=Path("data/leads.csv"), help="Output .csv / .xlsx path")
    parser.add_argument("--missing-email", type=float, default=0.2, help="Share of rows without email")
    parser.add_argument("--duplicates", type=float, default=0.05, help="Share of duplicate-phone rows")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    args = parser.parse_args(argv)

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1

    df = generate_leads(
        args.rows,
        missing_email_ratio=args.missing_email,
        duplicate_ratio=args.duplicates,
        seed=args.seed,
    )
    write_dataset(df, args.output)
    print(f"Created lead sheet: {args.output} ({len(df):,} rows)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
