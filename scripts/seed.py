"""
Seed script for the daypart scheduler development database.

Creates a store with two placements, global and store-level daypart
definitions, a base schedule and one placement override.

Usage:
    python scripts/seed.py
"""
from datetime import time

from daypart_scheduler.db.base import Base
from daypart_scheduler.db.session import SessionLocal, engine
from daypart_scheduler.models import (
    DaypartDefinition,
    DaypartSchedule,
    Placement,
    PlacementDaypartOverride,
    Store,
)

WEEKDAYS = [1, 2, 3, 4, 5]
EVERY_DAY = [0, 1, 2, 3, 4, 5, 6]


def seed_database():
    """Seed the database with sample scheduling data."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    try:
        if session.query(Store).count() > 0:
            print("Database already seeded. Skipping...")
            return

        print("Seeding database...")

        store = Store(name="Downtown", timezone="America/Chicago")
        session.add(store)
        session.flush()

        drive_thru = Placement(store_id=store.id, name="Drive Thru")
        lobby = Placement(store_id=store.id, name="Lobby")
        session.add_all([drive_thru, lobby])
        session.flush()
        print(f"Created store {store.name} with placements: {drive_thru.name}, {lobby.name}")

        breakfast = DaypartDefinition(name="breakfast", display_label="Breakfast", color="#F5A623", sort_order=1)
        lunch = DaypartDefinition(name="lunch", display_label="Lunch", color="#7ED321", sort_order=2)
        dinner = DaypartDefinition(name="dinner", display_label="Dinner", color="#4A90E2", sort_order=3)
        late_night = DaypartDefinition(
            name="late_night", display_label="Late Night", color="#9013FE", sort_order=4, store_id=store.id
        )
        session.add_all([breakfast, lunch, dinner, late_night])
        session.flush()
        print("Created daypart definitions: breakfast, lunch, dinner, late_night (store-level)")

        session.add_all([
            DaypartSchedule(daypart_id=breakfast.id, days_of_week=WEEKDAYS, start_time=time(6, 0), end_time=time(11, 0)),
            DaypartSchedule(daypart_id=breakfast.id, days_of_week=[0, 6], start_time=time(7, 0), end_time=time(12, 0)),
            DaypartSchedule(daypart_id=lunch.id, days_of_week=EVERY_DAY, start_time=time(11, 0), end_time=time(16, 0)),
            DaypartSchedule(daypart_id=dinner.id, days_of_week=EVERY_DAY, start_time=time(16, 0), end_time=time(22, 0)),
            DaypartSchedule(daypart_id=late_night.id, days_of_week=[5, 6], start_time=time(22, 0), end_time=time(2, 0)),
        ])

        # The lobby opens later on weekdays
        session.add(PlacementDaypartOverride(
            placement_id=lobby.id,
            daypart_id=breakfast.id,
            days_of_week=WEEKDAYS,
            start_time=time(9, 0),
            end_time=time(11, 0),
        ))

        session.commit()
        print("Seed complete.")

    except Exception as e:
        session.rollback()
        print(f"Error seeding database: {e}")
        raise
    finally:
        session.close()


if __name__ == "__main__":
    seed_database()
