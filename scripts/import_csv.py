# scripts/import_csv.py
# Usage:
#   python scripts/import_csv.py --students data/students.csv --subjects data/subjects.csv
from __future__ import annotations
import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app import create_app  # noqa: E402
from blueprints.import_export import services  # noqa: E402
from blueprints.registry.errors import RegistryError  # noqa: E402


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import students/subjects from CSV")
    parser.add_argument("--students", type=Path, help="CSV: registration_id,full_name,email,mother_name,phone[,password,department_code]")
    parser.add_argument("--subjects", type=Path, help="CSV: code,name,units,curriculum_semester[,department_codes]")
    parser.add_argument("--config", default=None, help="config name: dev/test/prod")
    args = parser.parse_args(argv)
    if not (args.students or args.subjects):
        parser.error("nothing to import: pass --students and/or --subjects")

    app = create_app(args.config)
    with app.app_context():
        try:
            if args.students:
                report = services.import_students(args.students.read_text(encoding="utf-8-sig"))
                print(f"Students: inserted/updated {report.inserted}/{report.updated}")
            if args.subjects:
                report = services.import_subjects(args.subjects.read_text(encoding="utf-8-sig"))
                print(f"Subjects: inserted/updated {report.inserted}/{report.updated}")
        except RegistryError as ex:
            print(f"Import failed: {ex.message} {ex.details or ''}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
