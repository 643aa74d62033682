# scripts/dev_db_init.py
# Usage:
#   python scripts/dev_db_init.py
from __future__ import annotations
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app import create_app  # noqa: E402
from extensions import db  # noqa: E402
from seed import seed_demo_data  # noqa: E402


def main():
    app = create_app("dev")
    with app.app_context():
        db.create_all()
        seed_demo_data()
        db.session.commit()
        print("DB initialized and seeded ✅")


if __name__ == "__main__":
    main()
