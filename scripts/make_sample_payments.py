#!/usr/bin/env python
from __future__ import annotations

import argparse
import csv
from pathlib import Path


HEADER = [
    "Matter",
    "Amount Collected",
    "Assigned Attorney",
    "Originating Attorney",
    "Own Origination %",
    "Notes",
]

ROWS = [
    ["Acme v. Widget", "$12,000", "Jane Partner", "Jane Partner", "", "Self-originated matter"],
    ["Estate of Brown", "50000", "Sam Associate", "Jane Partner", "20", ""],
    ["Harbor Lease", "", "Sam Associate", "Jane Partner", "20", "Amount pending"],
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Write a sample payment CSV for the commission calculator")
    parser.add_argument("--output", required=True, help="Output file path (.csv)")
    args = parser.parse_args()

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open("w", newline="", encoding="utf-8") as fp:
        writer = csv.writer(fp)
        writer.writerow(HEADER)
        writer.writerows(ROWS)

    print(f"Sample payment CSV written: {output}")


if __name__ == "__main__":
    main()
