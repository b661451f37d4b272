# -*- coding: utf-8 -*-
"""
manage_backups.py: backups and CSV exchange from the command line.

Modes:
- python manage_backups.py create [--label NAME]   → JSON snapshot of all parts
- python manage_backups.py list                    → snapshots, newest first
- python manage_backups.py restore PATH            → replace all parts with a snapshot (history/favorites cleared)
- python manage_backups.py export-csv              → write parts_export_<timestamp>.csv
- python manage_backups.py import-csv PATH [--replace]
"""

import argparse
import sys

from app import create_app
from exceptions import InventoryError
from extensions import get_backup_service


def run(args):
    service = get_backup_service()

    if args.command == "create":
        path = service.create_backup(args.label)
        print(f"✅ Backup created: {path}")
    elif args.command == "list":
        backups = service.get_backups_list()
        if not backups:
            print("No backups yet.")
        for info in backups:
            print(f"{info.date:%Y-%m-%d %H:%M:%S}  {info.name}")
    elif args.command == "restore":
        count = service.restore_from_backup(args.path)
        print(f"✅ Restored {count} parts from {args.path}")
    elif args.command == "export-csv":
        path = service.export_to_csv()
        print(f"✅ Exported to {path}")
    elif args.command == "import-csv":
        result = service.import_from_csv(args.path, replace_existing=args.replace)
        print(f"✅ Imported {result.imported} parts ({result.skipped} skipped)")


def build_parser():
    parser = argparse.ArgumentParser(description="Parts inventory backups")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="create a JSON snapshot")
    create.add_argument("--label", default="", help="file name prefix (default: backup)")
    sub.add_parser("list", help="list snapshots, newest first")
    restore = sub.add_parser("restore", help="replace all parts with a snapshot")
    restore.add_argument("path")
    sub.add_parser("export-csv", help="export parts to CSV")
    import_csv = sub.add_parser("import-csv", help="import parts from CSV")
    import_csv.add_argument("path")
    import_csv.add_argument("--replace", action="store_true", help="replace existing parts instead of appending")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    app = create_app()
    with app.app_context():
        try:
            run(args)
        except InventoryError as exc:
            print(f"⚠️  {exc}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
