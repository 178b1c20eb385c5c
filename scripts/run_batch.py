#!/usr/bin/env python
"""Run a payment CSV through the commission pipeline from the command line."""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from dotenv import load_dotenv

from commission_calc.core.csvio import parse_csv
from commission_calc.core.hashing import sha256_file
from commission_calc.core.log_config import setup_logging
from commission_calc.domain import RulesSnapshot
from commission_calc.exporters.commission_report_csv import export_commission_report
from commission_calc.infrastructure import client_from_env, configure_llm_client
from commission_calc.infrastructure.llm import ENV_HINT
from commission_calc.workers.pipeline import PipelineRequest, PipelineWorker


async def _run(payments: Path, rules: Path, output: Path) -> int:
    client = client_from_env()
    if client is None:
        print(ENV_HINT, file=sys.stderr)
        return 2
    configure_llm_client(client)

    snapshot = RulesSnapshot.from_text(rules.read_text(encoding="utf-8-sig"))
    if snapshot.is_empty:
        print(f"Rules file is empty: {rules}", file=sys.stderr)
        return 2

    records = parse_csv(payments.read_text(encoding="utf-8-sig")).records
    if not records:
        print(f"No rows found in payment CSV: {payments}", file=sys.stderr)
        return 2

    try:
        report = await PipelineWorker().run(
            PipelineRequest(rules=snapshot, records=records, source=f"{payments.name}@{sha256_file(payments)[:12]}")
        )
    finally:
        await client.aclose()

    export_commission_report(output, report)
    print(f"{report.results_count} rows ({report.failed_count} failed) written to {output}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Calculate commissions for every row of a payment CSV")
    parser.add_argument("--payments", required=True, help="Payment CSV file")
    parser.add_argument("--rules", required=True, help="Rules sheet text file")
    parser.add_argument("--output", default="commission_results.csv", help="Output CSV path")
    args = parser.parse_args()

    load_dotenv()
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))
    sys.exit(asyncio.run(_run(Path(args.payments), Path(args.rules), Path(args.output))))


if __name__ == "__main__":
    main()
