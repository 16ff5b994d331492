#!/usr/bin/env python3
"""
Import legacy khairat payments from a CSV file.

Expected columns: full_name, ic_passport_number, amount, payment_date, invoice_number
(amount in ringgit, e.g. 50.00; payment_date as YYYY-MM-DD).

Usage:
    python scripts/import_legacy_records.py --mosque-id <uuid> records.csv
    python scripts/import_legacy_records.py --mosque-id <uuid> records.csv --dry-run
"""

import asyncio
import csv
import sys
from datetime import date
from pathlib import Path
from uuid import UUID

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.database import AsyncSessionLocal
from app.models.legacy import LegacyRecord
from app.models.mosque import Mosque
from app.utils.money import ringgit_to_sen, sen_to_ringgit
from app.utils.validators import normalize_ic_passport

REQUIRED_COLUMNS = {"full_name", "amount", "payment_date"}


def parse_row(row: dict[str, str], line: int) -> dict:
    """Validate one CSV row and convert it to LegacyRecord fields."""
    full_name = (row.get("full_name") or "").strip()
    if not full_name:
        raise ValueError(f"line {line}: full_name is empty")

    amount = ringgit_to_sen((row.get("amount") or "").strip())
    if amount is None or amount <= 0:
        raise ValueError(f"line {line}: invalid amount {row.get('amount')!r}")

    try:
        payment_date = date.fromisoformat((row.get("payment_date") or "").strip())
    except ValueError:
        raise ValueError(f"line {line}: invalid payment_date {row.get('payment_date')!r}") from None

    ic_passport = (row.get("ic_passport_number") or "").strip()

    return {
        "full_name": full_name,
        "ic_passport_number": normalize_ic_passport(ic_passport) if ic_passport else None,
        "amount": amount,
        "payment_date": payment_date,
        "invoice_number": (row.get("invoice_number") or "").strip() or None,
    }


def read_csv(path: Path) -> list[dict]:
    """Read and validate the whole file before anything is written."""
    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        missing = REQUIRED_COLUMNS - set(reader.fieldnames or [])
        if missing:
            raise ValueError(f"missing columns: {', '.join(sorted(missing))}")
        # Line 1 is the header
        return [parse_row(row, line) for line, row in enumerate(reader, start=2)]


async def import_records(mosque_id: UUID, rows: list[dict], dry_run: bool = False) -> int:
    """Insert legacy records for a mosque in one transaction."""
    async with AsyncSessionLocal() as session:
        if not await session.get(Mosque, mosque_id):
            print(f"ERROR: Mosque {mosque_id} not found")
            sys.exit(1)

        session.add_all(LegacyRecord(mosque_id=mosque_id, **row) for row in rows)
        if dry_run:
            await session.rollback()
        else:
            await session.commit()
    return len(rows)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Import legacy khairat records")
    parser.add_argument("csv_file", type=Path, help="CSV file to import")
    parser.add_argument("--mosque-id", type=UUID, required=True, help="Owning mosque")
    parser.add_argument("--dry-run", action="store_true", help="Validate without saving")

    args = parser.parse_args()

    try:
        parsed = read_csv(args.csv_file)
    except ValueError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    count = asyncio.run(import_records(args.mosque_id, parsed, dry_run=args.dry_run))
    total = sum(row["amount"] for row in parsed)
    action = "Validated" if args.dry_run else "Imported"
    print(f"{action} {count} legacy records (RM {sen_to_ringgit(total)}) for mosque {args.mosque_id}")
