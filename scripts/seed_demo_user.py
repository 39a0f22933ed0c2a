"""Seed a verified demo user."""

from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from models import db
from models.user import User

DEMO_EMAIL = "demo@example.com"
DEMO_NAME = "Demo User"
DEMO_PASSWORD = "Secret1*3*5*"


def main() -> None:
    app = create_app()
    with app.app_context():
        db.create_all()
        user = User.find_by_email(DEMO_EMAIL)
        if user is None:
            user = User(email=DEMO_EMAIL, name=DEMO_NAME)
            action = "created"
        else:
            user.name = DEMO_NAME
            action = "updated"
        user.verified = True
        user.save(password=DEMO_PASSWORD, password_confirmation=DEMO_PASSWORD)
        print(f"Demo user {action}: {DEMO_EMAIL}")


if __name__ == "__main__":
    main()
