import os
import sys
from datetime import date
from pathlib import Path

from sqlalchemy import select
from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.crm.models import Base, Customer  # noqa: E402
from app.crm.rbac import Position  # noqa: E402
from scripts._db_utils import create_script_engine, script_session  # noqa: E402


def create_tables(database_url: str) -> None:
    engine = create_script_engine(database_url)
    try:
        Base.metadata.create_all(bind=engine)
    finally:
        engine.dispose()


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the Admin customer in an idempotent way.
    Does NOT overwrite an existing admin's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.com").strip()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    admin_name = (os.environ.get("ADMIN_NAME") or "Administrator").strip()

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///crm.db").strip()

    with script_session(db_url) as s:
        admin = s.execute(select(Customer).where(Customer.email == admin_email)).scalar_one_or_none()
        if admin is None:
            s.add(
                Customer(
                    email=admin_email,
                    password=generate_password_hash(admin_password),
                    name=admin_name,
                    started_date=date.today(),
                    position_id=int(Position.ADMIN),
                )
            )

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    db_url = (os.environ.get("DATABASE_URL") or "sqlite:///crm.db").strip()
    create_tables(db_url)
    seed_only(database_url=db_url)


if __name__ == "__main__":
    main()
