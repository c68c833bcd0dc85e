import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError

from app.db.session import SessionLocal
from app.core.security import hash_password
from app.models.user import User
from app.models.profile import Profile
from app.models.trip import Trip

# (origin, destination, price_usd, seats, seat_class, hour)
DEMO_TRIPS = [
    ("Luanda", "Benguela", Decimal("25.00"), 45, "economy", 7),
    ("Luanda", "Benguela", Decimal("40.00"), 20, "business", 9),
    ("Luanda", "Huambo", Decimal("30.00"), 45, "economy", 6),
    ("Benguela", "Luanda", Decimal("25.00"), 45, "economy", 14),
]


def ensure_user(db: Session, email: str, password: str, role: str, first_name: str, last_name: str = ""):
    u = db.query(User).filter(User.email == email).first()
    if u:
        return
    user_id = str(uuid.uuid4())
    db.add(User(id=user_id, email=email, role=role, password_hash=hash_password(password), is_active=True))
    db.add(Profile(id=user_id, first_name=first_name, last_name=last_name, role=role))
    db.commit()


def ensure_demo_trips(db: Session):
    if db.query(Trip.id).first():
        return
    tomorrow = (datetime.now(timezone.utc) + timedelta(days=1)).replace(minute=0, second=0, microsecond=0)
    for origin, destination, price, seats, seat_class, hour in DEMO_TRIPS:
        db.add(Trip(
            id=str(uuid.uuid4()),
            origin=origin,
            destination=destination,
            departure_time=tomorrow.replace(hour=hour),
            price_usd=price,
            total_seats=seats,
            available_seats=seats,
            seat_class=seat_class,
            status="scheduled",
        ))
    db.commit()


def run(db=None):
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM users LIMIT 1"))
        except ProgrammingError:
            db.rollback()
            print("[seed] users table not found yet. Skipping seeding (run alembic upgrade head).")
            return

        ensure_user(db, "admin@nawabus.com", "admin12345", "admin", "Admin")
        ensure_user(db, "agent@nawabus.com", "agent12345", "agent", "Counter", "Agent")
        ensure_demo_trips(db)
    finally:
        db.close()


if __name__ == "__main__":
    run()
