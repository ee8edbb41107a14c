"""
Import a student spreadsheet from the command line.

Usage (from backend directory):
  python -m scripts.import_students path/to/students.xlsx --user-id <owner id> [--dry-run]

The sheet is validated exactly like an upload: any bad row rejects the whole
file and nothing is stored.
"""

import argparse
import sys
from pathlib import Path

from student_registry.core.database import get_session_local
from student_registry.core.logging import setup_logging
from student_registry.core.security import UserContext
from student_registry.services.directory import StorageError, StudentDirectory
from student_registry.services.normalizer import ImportValidationError, normalize_worksheet
from student_registry.services.workbook import get_workbook_service


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Import students from an .xlsx sheet")
    parser.add_argument("path", type=Path, help="Workbook to import")
    parser.add_argument("--user-id", required=True, help="Owner of the imported records")
    parser.add_argument("--dry-run", action="store_true", help="Validate only, store nothing")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logger = setup_logging()

    try:
        rows = get_workbook_service().read_rows(args.path.read_bytes())
        result = normalize_worksheet(rows)
        result.raise_for_errors()
    except OSError as e:
        logger.error(f"Cannot read {args.path}: {e}")
        return 1
    except ImportValidationError as e:
        logger.error(e.message)
        for error in e.errors:
            logger.error(f"  row {error.row_number} ({error.full_name}): {error.message}")
        return 1

    if args.dry_run:
        logger.info(f"{len(result.records)} records are valid; nothing stored (dry run)")
        return 0

    db = get_session_local()()
    try:
        directory = StudentDirectory(db, UserContext(user_id=args.user_id))
        students = directory.create_many([record.to_record() for record in result.records])
    except StorageError as e:
        logger.error(str(e))
        return 1
    finally:
        db.close()

    logger.info(f"Imported {len(students)} students for {args.user_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
