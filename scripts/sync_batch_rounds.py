"""Import batch round windows from a batch.json export into Supabase."""

from __future__ import annotations

import argparse
import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from uuid import UUID

from sqlalchemy.engine.url import make_url

from app.config import Settings
from app.services.premises.errors import PremisesVisitError
from app.services.premises.repositories import SupabaseRoundWindowRepository
from app.services.premises.rounds import parse_round_date

logger = logging.getLogger("scripts.sync_batch_rounds")


@dataclass
class SyncCounts:
    created: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class SyncReport:
    batches: SyncCounts = field(default_factory=SyncCounts)
    rounds: SyncCounts = field(default_factory=SyncCounts)
    errors: list[dict[str, Any]] = field(default_factory=list)


def program_from_batch(batch_name: str) -> str:
    upper = batch_name.upper()
    if "BANGKIT" in upper:
        return "Bangkit"
    if "MAJU" in upper:
        return "Maju"
    return "Unknown"


def _field(row: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = row.get(name)
        if value not in (None, ""):
            return value
    return None


def sync_rows(
    rows: Sequence[Mapping[str, Any]],
    repository: SupabaseRoundWindowRepository | None,
    *,
    execute: bool,
) -> SyncReport:
    """Upsert batches and their rounds.

    Without ``execute`` nothing is written; a repository, when given, is only
    queried so that existing batches and rounds are reported as skipped.
    """
    report = SyncReport()
    batch_ids: dict[str, UUID | None] = {}
    for index, row in enumerate(rows, start=1):
        batch_name = str(_field(row, "Batch", "batch") or "").strip()
        try:
            if not batch_name:
                raise ValueError("Missing Batch name")
            round_number = int(_field(row, "Mentoring Round", "mentoring_round") or 1)
            period = _field(row, "Period", "period")
            notes = _field(row, "Notes", "notes")
            start = parse_round_date(_field(row, "Start Month", "start_month"))
            end = parse_round_date(_field(row, "End Month", "end_month"), end_of_month=True)

            if batch_name not in batch_ids:
                if repository is None:
                    batch_id, created = None, True
                elif execute:
                    batch_id, created = repository.ensure_batch(
                        batch_name,
                        program=program_from_batch(batch_name),
                        description=notes or period,
                    )
                else:
                    batch_id = repository.find_batch(batch_name)
                    created = batch_id is None
                batch_ids[batch_name] = batch_id
                if created:
                    report.batches.created += 1
                else:
                    report.batches.skipped += 1

            batch_id = batch_ids[batch_name]
            if repository is None or batch_id is None:
                created = True
            elif execute:
                created = repository.ensure_round(
                    batch_id,
                    round_number,
                    start_date=start,
                    end_date=end,
                    description=period,
                )
            else:
                created = not repository.has_round(batch_id, round_number)
            if created:
                report.rounds.created += 1
                logger.info(
                    "sync_batch_rounds.round",
                    extra={"row": index, "batch": batch_name, "round": round_number, "dry_run": not execute},
                )
            else:
                report.rounds.skipped += 1
        except (PremisesVisitError, ValueError) as exc:
            report.rounds.failed += 1
            report.errors.append({"row": index, "batch": batch_name, "error": str(exc)})
            logger.error("sync_batch_rounds.row_failed", extra={"row": index, "error": str(exc)})
    return report


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync batch round windows into Supabase.")
    parser.add_argument(
        "--input",
        type=Path,
        default=Path("sync-data/batch.json"),
        help="Path to the batch.json export.",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override DATABASE_URL (falls back to .env).",
    )
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Write to the database. Without this flag the sync is a dry run.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    if not args.input.exists():
        logger.error("sync_batch_rounds.input_missing", extra={"path": str(args.input)})
        return 1
    rows = json.loads(args.input.read_text(encoding="utf-8"))

    repository = None
    database_url = args.database_url or Settings().database_url
    if args.execute and not database_url:
        raise RuntimeError("DATABASE_URL is required to sync batch rounds.")
    if database_url:
        logger.info("Using DATABASE_URL=%s", make_url(database_url).render_as_string(hide_password=True))
        repository = SupabaseRoundWindowRepository.from_url(database_url)

    report = sync_rows(rows, repository, execute=args.execute)
    print(f"DRY_RUN: {not args.execute}")
    print(f"Batches  created={report.batches.created} skipped={report.batches.skipped}")
    print(
        f"Rounds   created={report.rounds.created} skipped={report.rounds.skipped} "
        f"failed={report.rounds.failed}"
    )
    for error in report.errors:
        print(f"  row {error['row']} ({error['batch'] or '?'}): {error['error']}")
    return 1 if report.errors else 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())
