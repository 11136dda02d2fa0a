from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Dict

ROOT_PATH = Path(__file__).resolve().parents[1]
if str(ROOT_PATH) not in sys.path:
    sys.path.insert(0, str(ROOT_PATH))

from sqlalchemy.engine.url import make_url

from backup_console.config import settings
from backup_console.errors import BackupConsoleError
from backup_console.extensions import db
from backup_console.models import BackupRecord
from backup_console.schemas import BackupFilter
from backup_console.services.exporter import save_artifact
from backup_console.services.lifecycle import BackupLifecycleController
from backup_console.services.repository import SqlBackupRepository
from seeds.setup_data import DEMO_BACKUP_IDS, seed_backups, seed_schools

log = logging.getLogger("seeds.manage_data")


def _sqlite_database_path() -> Path | None:
    url = make_url(settings.SQLALCHEMY_DATABASE_URI)
    if not url.drivername.startswith("sqlite"):
        return None

    database = url.database
    if not database or database == ":memory:":
        return None

    db_path = Path(database)
    if not db_path.is_absolute():
        db_path = Path(settings.ROOT_PATH) / db_path
    return db_path


def reset_database(keep_copy: bool = True) -> Dict[str, str]:
    db.remove_session()
    db.engine.dispose()

    sqlite_path = _sqlite_database_path()
    copy_path = None

    if sqlite_path and sqlite_path.exists() and keep_copy:
        copies_dir = Path(settings.ROOT_PATH) / "db_copies"
        copies_dir.mkdir(parents=True, exist_ok=True)
        copy_path = copies_dir / f"{sqlite_path.stem}_{datetime.now().strftime('%Y%m%d_%H%M%S')}{sqlite_path.suffix}"
        shutil.copy2(sqlite_path, copy_path)

    if sqlite_path and sqlite_path.exists():
        sqlite_path.unlink()

    db.create_all()

    return {
        "database": str(sqlite_path) if sqlite_path else settings.SQLALCHEMY_DATABASE_URI,
        "copy": str(copy_path) if copy_path else "",
    }


def seed_demo_data() -> int:
    db.create_all()
    schools = seed_schools()
    return len(seed_backups(schools))


def delete_demo_data() -> int:
    deleted = (
        db.session.query(BackupRecord)
        .filter(BackupRecord.id.in_(DEMO_BACKUP_IDS))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted


async def list_backups(criteria: BackupFilter) -> None:
    controller = BackupLifecycleController(SqlBackupRepository(db))
    await controller.load_schools()
    bundles = await controller.list_backups(criteria)
    print(f"{controller.filter_label()}: {len(bundles)} backup(s)")
    for bundle in bundles:
        when = datetime.fromtimestamp(bundle.timestamp / 1000).isoformat(sep=" ") if bundle.timestamp else "N/A"
        print(
            f"  {bundle.id:<24} {controller.school_name(bundle.school_id):<28} "
            f"{bundle.term or '-':<7} {bundle.academic_year or '-':<10} {when}"
        )


async def export_backup(backup_id: str, out_dir: str) -> Path:
    controller = BackupLifecycleController(SqlBackupRepository(db))
    artifact = await controller.export(backup_id)
    return save_artifact(artifact, out_dir)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Backup store management utilities.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reset_db = subparsers.add_parser("reset-database", help="Copy, delete, and recreate the database.")
    reset_db.add_argument("--no-copy", action="store_true", help="Skip keeping a copy of the sqlite file before reset.")

    subparsers.add_parser("seed-demo-data", help="Seed demo schools and term backups.")
    subparsers.add_parser("delete-demo-data", help="Delete the demo backups.")

    listing = subparsers.add_parser("list-backups", help="List backups, newest first.")
    listing.add_argument("--school", dest="school_id")
    listing.add_argument("--term", choices=["Term 1", "Term 2", "Term 3"])
    listing.add_argument("--academic-year", dest="academic_year")
    listing.add_argument("--date", type=date.fromisoformat, help="Capture day, YYYY-MM-DD (UTC).")

    export = subparsers.add_parser("export-backup", help="Write a backup's data to a JSON file.")
    export.add_argument("backup_id")
    export.add_argument("--out", default=None, help="Target directory (defaults to EXPORT_DIR).")

    return parser


def main() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    parser = _build_parser()
    args = parser.parse_args()

    try:
        if args.command == "reset-database":
            result = reset_database(keep_copy=not args.no_copy)
            print(f"Database recreated at: {result['database']}")
            if result["copy"]:
                print(f"Copy kept at: {result['copy']}")

        elif args.command == "seed-demo-data":
            count = seed_demo_data()
            print(f"Seeded {count} demo backups.")

        elif args.command == "delete-demo-data":
            print(f"Deleted {delete_demo_data()} demo backups.")

        elif args.command == "list-backups":
            criteria = BackupFilter(
                school_id=args.school_id, term=args.term, academic_year=args.academic_year, date=args.date
            )
            asyncio.run(list_backups(criteria))

        elif args.command == "export-backup":
            out_dir = args.out or str(Path(settings.ROOT_PATH) / settings.EXPORT_DIR)
            path = asyncio.run(export_backup(args.backup_id, out_dir))
            print(f"Backup written to: {path}")
    except BackupConsoleError as exc:
        log.error("%s", exc.message)
        sys.exit(1)
    finally:
        db.remove_session()


if __name__ == "__main__":
    main()
