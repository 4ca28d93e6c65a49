#!/usr/bin/env python3
"""
Script to seed a demo clinic: one hospital, its staff, a guardian with two
animals, a Monday-Saturday template set and a recurring New Year closure.
"""

from datetime import date

from vetschedule.database import Base, SessionLocal, engine
from vetschedule.models import Closure, GuardianAnimal, Hospital, HospitalStaff, TimeTemplate

HOSPITAL_ID = "demo-hospital"
GUARDIAN_ID = "demo-guardian"
ANIMAL_IDS = ["demo-animal-1", "demo-animal-2"]

STAFF = [
    ("demo-admin", "OWNER"),
    ("demo-vet", "VET"),
    ("demo-reception", "RECEPTIONIST"),
]

# (day_of_week, start, end, slot_duration, max_concurrent); 0=Sunday
WEEKLY_TEMPLATES = [
    *[(day, "09:00", "12:00", 30, 2) for day in range(1, 6)],
    *[(day, "13:00", "18:00", 30, 1) for day in range(1, 6)],
    (6, "09:00", "13:00", 20, 1),
]


def seed_demo_clinic():
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()

    try:
        print("🔍 Seeding demo clinic...\n")

        if db.query(Hospital).filter(Hospital.id == HOSPITAL_ID).first():
            print(f"⚠️  Hospital '{HOSPITAL_ID}' already exists, nothing to do")
            return

        db.add(Hospital(id=HOSPITAL_ID, name="Demo Animal Hospital", phone="02-000-0000"))

        for user_id, position in STAFF:
            db.add(HospitalStaff(hospital_id=HOSPITAL_ID, user_id=user_id, position=position))
        print(f"1️⃣ Added {len(STAFF)} staff members")

        for animal_id in ANIMAL_IDS:
            db.add(GuardianAnimal(guardian_id=GUARDIAN_ID, animal_id=animal_id))
        print(f"2️⃣ Linked guardian '{GUARDIAN_ID}' to {len(ANIMAL_IDS)} animals")

        for day, start, end, duration, capacity in WEEKLY_TEMPLATES:
            db.add(
                TimeTemplate(
                    hospital_id=HOSPITAL_ID,
                    day_of_week=day,
                    start_time=start,
                    end_time=end,
                    slot_duration=duration,
                    max_concurrent=capacity,
                )
            )
        print(f"3️⃣ Added {len(WEEKLY_TEMPLATES)} time templates")

        db.add(
            Closure(
                hospital_id=HOSPITAL_ID,
                date=date(2000, 1, 1),
                reason="New Year's Day",
                is_recurring=True,
            )
        )
        print("4️⃣ Added recurring closure on January 1st")

        db.commit()
        print(f"\n✅ Demo clinic '{HOSPITAL_ID}' ready")

    except Exception as e:
        print(f"❌ Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_demo_clinic()
