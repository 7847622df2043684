"""
Seed script for the ShiftRota development database.
Run with: python -m scripts.seed_data
"""

from datetime import date, timedelta

from app.db.database import Base, SessionLocal, engine
from app.db import models  # noqa: F401
from app.core.security import get_password_hash
from app.db.models.users import Users, Role, Gender
from app.db.models.availabilities import Availabilities, AvailabilityStatus
from app.services.realtime import ConnectionRegistry
from app.services.scheduling import SHIFT_CATALOG
from app.services.scheduling.reconciler import reconcile_confirm

WEEKDAYS = {"monday": 0, "thursday": 3, "friday": 4, "saturday": 5, "sunday": 6}


def clear_tables(db):
    """Delete every row, children before parents."""
    print("Clearing tables...")
    for table in reversed(Base.metadata.sorted_tables):
        db.execute(table.delete())
    db.commit()
    print("All tables cleared.")


def seed_users(db):
    print("Seeding users...")
    people = [
        ("admin@shiftrota.local", "Anna", "Admin", Gender.FEMALE, Role.ADMIN, "admin123"),
        ("marco@shiftrota.local", "Marco", "Rossi", Gender.MALE, Role.USER, "volunteer123"),
        ("luca@shiftrota.local", "Luca", "Bianchi", Gender.MALE, Role.USER, "volunteer123"),
        ("giulia@shiftrota.local", "Giulia", "Verdi", Gender.FEMALE, Role.USER, "volunteer123"),
        ("sara@shiftrota.local", "Sara", "Neri", Gender.FEMALE, Role.USER, "volunteer123"),
        ("elena@shiftrota.local", "Elena", "Gallo", Gender.FEMALE, Role.USER, "volunteer123"),
    ]
    users = []
    for email, firstname, surname, gender, role, password in people:
        user = Users(
            email=email,
            firstname=firstname,
            surname=surname,
            gender=gender,
            role=role,
            password_hash=get_password_hash(password),
        )
        db.add(user)
        users.append(user)
    db.commit()
    print(f"  Created {len(users)} users")
    return users


def next_weekday(start: date, weekday: int) -> date:
    return start + timedelta(days=(weekday - start.weekday()) % 7)


def seed_availabilities(db, volunteers):
    """Each volunteer offers every shift of the coming two weeks."""
    print("Seeding availabilities...")
    start = date.today() + timedelta(days=7)
    entries = []
    for week in range(2):
        for template in SHIFT_CATALOG:
            day = next_weekday(start, WEEKDAYS[template.day]) + timedelta(weeks=week)
            for user in volunteers:
                entries.append(Availabilities(user_id=user.id, shift=template, date=day, status=AvailabilityStatus.PENDING))
    db.add_all(entries)
    db.commit()
    print(f"  Created {len(entries)} availabilities")
    return entries


def confirm_first_week(db, entries, volunteers):
    """Confirm one male and one female volunteer per first-week shift."""
    print("Confirming first week...")
    registry = ConnectionRegistry()
    first_week_end = date.today() + timedelta(days=14)
    males = [u.id for u in volunteers if u.gender == Gender.MALE]
    females = [u.id for u in volunteers if u.gender == Gender.FEMALE]
    confirmed = 0
    for index, template in enumerate(SHIFT_CATALOG):
        chosen = {males[index % len(males)], females[index % len(females)]}
        for entry in entries:
            if entry.shift == template and entry.date < first_week_end and entry.user_id in chosen:
                reconcile_confirm(db, entry, registry)
                confirmed += 1
    print(f"  Confirmed {confirmed} availabilities")


def main():
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        clear_tables(db)
        users = seed_users(db)
        volunteers = [u for u in users if u.role == Role.USER]
        entries = seed_availabilities(db, volunteers)
        confirm_first_week(db, entries, volunteers)

        print("\n" + "=" * 50)
        print("Seeding complete!")
        print("=" * 50)
        print("\nTest accounts:")
        print("  Admin:     admin@shiftrota.local / admin123")
        print("  Volunteer: marco@shiftrota.local / volunteer123")
        print("             (luca, giulia, sara, elena follow same pattern)")
        print("=" * 50 + "\n")

    except Exception as e:
        db.rollback()
        print(f"\nError during seeding: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
