"""Operator tool: list or delete generation queue records and meditations."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.admin.queue import (
    MEDITATION_DELETE_NOTICE,
    OPERATOR_DELETE_NOTICE,
    AdministrativeQueueView,
    DeleteOutcome,
    DeleteResult,
    summarize_by_status,
)
from src.client.errors import ApiError, AuthorizationError, InvalidRecordId
from src.client.http import ApiClient
from src.client.session import StaticCredentials
from src.composition.summary import format_listen_count, format_queue_status


async def list_queue(view: AdministrativeQueueView) -> int:
    records = await view.list_records()
    if not records:
        print("Queue is empty.")
        return 0

    print(f"{'ID':>6}  {'USER':>6}  {'STATUS':<13} {'UPDATED':<20} JOB FILE")
    for r in records:
        updated = r.updated_at.strftime("%Y-%m-%d %H:%M:%S")
        print(
            f"{r.id:>6}  {r.user_id:>6}  {format_queue_status(r.status):<13} {updated:<20} {r.job_filename}"
        )

    print()
    summary = summarize_by_status(records)
    print("  ".join(f"{format_queue_status(s)}: {n}" for s, n in summary.items()))
    return 0


async def list_meditations(view: AdministrativeQueueView) -> int:
    meditations = await view.list_meditations()
    if not meditations:
        print("No meditations.")
        return 0

    print(f"{'ID':>6}  {'VISIBILITY':<10} {'LISTENS':>8}  TITLE")
    for m in meditations:
        print(f"{m.id:>6}  {m.visibility:<10} {format_listen_count(m.listen_count):>8}  {m.title}")
    return 0


def report_delete(kind: str, result: DeleteResult) -> None:
    if result.outcome is DeleteOutcome.ALREADY_GONE:
        print(f"{kind} {result.record_id} was already gone.")
    else:
        print(f"Deleted {kind.lower()} {result.record_id}.")


async def main(args: argparse.Namespace) -> int:
    async with ApiClient(StaticCredentials(args.token)) as api:
        view = AdministrativeQueueView(api)
        try:
            if args.command == "list":
                return await list_queue(view)
            if args.command == "meditations":
                return await list_meditations(view)

            deleting_queue = args.command == "delete"
            print(OPERATOR_DELETE_NOTICE if deleting_queue else MEDITATION_DELETE_NOTICE)
            if not args.yes:
                print("Re-run with --yes to delete.")
                return 1
            if deleting_queue:
                report_delete("Queue record", await view.delete_record(args.record_id))
            else:
                report_delete("Meditation", await view.delete_meditation(args.record_id))
            return 0
        except InvalidRecordId as exc:
            print(exc)
            return 2
        except AuthorizationError as exc:
            print(exc.user_message)
            return 1
        except ApiError as exc:
            print(f"Request failed: {exc.message}")
            return 1


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = argparse.ArgumentParser()
    parser.add_argument("--token", default=os.getenv("API_TOKEN"))
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="list queue records")
    sub.add_parser("meditations", help="list every meditation")
    for name in ("delete", "delete-meditation"):
        delete = sub.add_parser(name)
        delete.add_argument("record_id", type=int)
        delete.add_argument("--yes", action="store_true")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args)))
