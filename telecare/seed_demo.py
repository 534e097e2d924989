# telecare/seed_demo.py
from pathlib import Path

from dotenv import load_dotenv

ENV_PATH = Path(__file__).resolve().parent / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)

from telecare.db.session import SessionLocal  # noqa: E402
from telecare.models import init_db  # noqa: E402
from telecare.services.demo_seed import seed_demo  # noqa: E402
from telecare.utils.config import settings  # noqa: E402


def main():
    init_db()
    with SessionLocal() as db:
        user = seed_demo(db)
        if user is None:
            raise SystemExit("Set DEMO_USER_EMAIL and DEMO_USER_PASSWORD before seeding")
        print(f"Seeded demo user: {user.email} (id={user.id}), patient id={settings.demo_patient_id}")


if __name__ == "__main__":
    main()
