"""
Seed script to create mock employees and company phone numbers.
Run with: python -m scripts.seed_mock_data
"""

import os
import random
from datetime import date, timedelta

from phone_registry.db.models import MobileNumber
from phone_registry.db.session import SessionLocal
from phone_registry.services import employee_service, number_service
from phone_registry.utils.dates import utc_today

FIRST_NAMES = [
    "Emma", "Olivia", "Ava", "Isabella", "Sophia", "Mia", "Charlotte", "Amelia",
    "James", "John", "Robert", "Michael", "William", "David", "Richard", "Joseph",
    "Harper", "Evelyn", "Daniel", "Matthew", "Anthony", "Grace", "Lucy", "Kevin",
]

LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
    "Rodriguez", "Martinez", "Wilson", "Anderson", "Thomas", "Taylor", "Moore",
    "Jackson", "Martin", "Lee", "Thompson", "White", "Harris", "Clark", "Lewis",
]

DEPARTMENTS = ["Sales", "Engineering", "Finance", "Operations", "Support", "Legal"]

VENDORS = ["China Mobile", "China Unicom", "China Telecom"]

PURPOSES = ["Sales hotline", "On-call rotation", "Field work", "Customer support", "Travel"]


def random_phone() -> str:
    return "1" + "".join(random.choice("0123456789") for _ in range(10))


def random_hire_date() -> date:
    return utc_today() - timedelta(days=random.randint(30, 3650))


def create_employees(db, count: int) -> list[str]:
    """Create employees with unique names and emails; returns business IDs."""
    employee_ids = []
    used_names: set[str] = set()
    for idx in range(count):
        first, last = random.choice(FIRST_NAMES), random.choice(LAST_NAMES)
        full_name = f"{first} {last}"
        if full_name in used_names:
            full_name = f"{full_name} {idx}"
        used_names.add(full_name)
        # Every tenth employee has no email on file (exercises batch error paths)
        email = None if idx % 10 == 9 else f"{first.lower()}.{last.lower()}{idx}@example.com"
        employee = employee_service.create_employee(
            db,
            full_name=full_name,
            email=email,
            department=random.choice(DEPARTMENTS),
            hire_date=random_hire_date(),
        )
        employee_ids.append(employee.employee_id)
    print(f"Created {count} employees")
    return employee_ids


def create_numbers(db, employee_ids: list[str], count: int) -> None:
    """Create numbers and assign roughly two thirds of them."""
    created = 0
    while created < count:
        phone = random_phone()
        if db.query(MobileNumber.id).filter(MobileNumber.phone_number == phone).first():
            continue
        applicant = random.choice(employee_ids)
        application_date = utc_today() - timedelta(days=random.randint(1, 900))
        number_service.create_number(
            db,
            phone_number=phone,
            application_date=application_date,
            applicant_employee_id=applicant,
            purpose=random.choice(PURPOSES),
            vendor=random.choice(VENDORS),
        )
        if random.random() < 0.66:
            number_service.assign_number(
                db,
                phone,
                random.choice(employee_ids),
                application_date + timedelta(days=random.randint(0, 30)),
            )
        created += 1
    print(f"Created {count} mobile numbers")


def main():
    """Main entry point."""
    print("Seeding mock data...")

    db = SessionLocal()

    try:
        employee_count = int(os.getenv("SEED_EMPLOYEES", "40"))
        number_count = int(os.getenv("SEED_NUMBERS", "60"))
        employee_ids = create_employees(db, employee_count)
        create_numbers(db, employee_ids, number_count)

        print("\nMock data seeded successfully!")
        print(f"  - {employee_count} employees created")
        print(f"  - {number_count} mobile numbers created")

    except Exception as e:
        print(f"ERROR: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
