"""
Demo records loaded at startup when SEED_DEMO_DATA is enabled.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from auth import hash_password
from database import count_documents, create_document
from schemas import Address, Delivery, DeliveryStatus, Hamper, HamperItem, Recipient, User, UserRole

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"
DEMO_COLLECTIONS = ("user", "recipient", "hamper", "delivery")


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def _address(street, city, state, postal_code):
    return Address(street=street, city=city, state=state, postal_code=postal_code, country="South Africa")


def seed_demo_data() -> Optional[dict]:
    """Load the demo data set into an empty store.

    Nothing is written if any of the demo collections already holds records,
    so a persistent database is never overwritten. Returns the created ids by
    collection, or None when seeding was skipped.
    """
    populated = [name for name in DEMO_COLLECTIONS if count_documents(name)]
    if populated:
        logger.info("Skipping demo data, existing records in: %s", ", ".join(populated))
        return None

    admin = create_document("user", User(
        username="admin", email="admin@assistmenow.org", password_hash=hash_password(DEMO_PASSWORD),
        role=UserRole.ADMIN, first_name="Admin", last_name="User", phone="+27123456789",
    ))
    staff = create_document("user", User(
        username="staff", email="staff@assistmenow.org", password_hash=hash_password(DEMO_PASSWORD),
        role=UserRole.STAFF, first_name="Staff", last_name="User", phone="+27987654321",
    ))

    people = [
        ("John", "Doe", "+27123456789", _address("123 Main St", "Johannesburg", "Gauteng", "2000"),
         "Family of 4, needs regular assistance"),
        ("Jane", "Smith", "+27987654321", _address("456 Oak Ave", "Cape Town", "Western Cape", "8000"),
         "Elderly, lives alone"),
        ("Michael", "Johnson", "+27456789123", _address("789 Pine St", "Durban", "KwaZulu-Natal", "4000"),
         "Family of 3"),
        ("Emily", "Brown", "+27789123456", _address("321 Cedar St", "Johannesburg", "Gauteng", "2000"),
         "Single parent with 2 children"),
        ("David", "Wilson", "+27321654987", _address("654 Maple St", "Pretoria", "Gauteng", "0001"),
         "Elderly couple"),
    ]
    recipients = [
        create_document("recipient", Recipient(
            first_name=first, last_name=last, email=f"{first}.{last}@example.com".lower(),
            phone=phone, address=address, notes=notes, created_by=admin["id"],
        ))
        for first, last, phone, address, notes in people
    ]

    bundles = [
        ("Basic Food Hamper", "Basic food supplies for a family of 4", [
            ("Rice", 2, "Grains"), ("Beans", 3, "Protein"),
            ("Canned Vegetables", 5, "Vegetables"), ("Cooking Oil", 1, "Oils"),
        ]),
        ("Hygiene Hamper", "Basic hygiene supplies", [
            ("Soap", 3, "Hygiene"), ("Toothpaste", 2, "Hygiene"),
            ("Toothbrushes", 4, "Hygiene"), ("Shampoo", 1, "Hygiene"),
        ]),
        ("Baby Hamper", "Supplies for infants", [
            ("Diapers", 20, "Baby"), ("Baby Wipes", 2, "Baby"),
            ("Baby Formula", 1, "Baby"), ("Baby Food", 5, "Baby"),
        ]),
        ("Winter Hamper", "Supplies for cold weather", [
            ("Blankets", 2, "Clothing"), ("Socks", 5, "Clothing"),
            ("Gloves", 2, "Clothing"), ("Hot Chocolate", 1, "Food"),
        ]),
    ]
    hampers = [
        create_document("hamper", Hamper(
            name=name, description=description, created_by=admin["id"],
            contents=[HamperItem(name=n, quantity=q, category=c) for n, q, c in items],
        ))
        for name, description, items in bundles
    ]

    schedule = [
        (0, 0, DeliveryStatus.DELIVERED, staff["id"], "2023-05-15T10:00:00", "2023-05-15T11:30:00",
         "Delivered successfully"),
        (1, 1, DeliveryStatus.PENDING, None, "2023-05-20T14:00:00", None, "Awaiting assignment"),
        (0, 1, DeliveryStatus.IN_TRANSIT, staff["id"], "2023-05-18T13:00:00", None, "On the way"),
        (1, 0, DeliveryStatus.FAILED, staff["id"], "2023-05-16T09:00:00", None, "Recipient not available"),
        (0, 0, DeliveryStatus.DELIVERED, staff["id"], "2023-05-17T14:00:00", "2023-05-17T14:45:00",
         "Delivered successfully"),
    ]
    deliveries = [
        create_document("delivery", Delivery(
            hamper_id=hampers[h]["id"], recipient_id=recipients[r]["id"], status=status,
            assigned_to=assignee, scheduled_date=_ts(scheduled),
            delivery_date=_ts(delivered) if delivered else None,
            notes=notes, created_by=admin["id"],
        ))
        for h, r, status, assignee, scheduled, delivered, notes in schedule
    ]

    logger.info(
        "Seeded %d users, %d recipients, %d hampers, %d deliveries",
        2, len(recipients), len(hampers), len(deliveries),
    )
    return {
        "user": [admin["id"], staff["id"]],
        "recipient": [r["id"] for r in recipients],
        "hamper": [h["id"] for h in hampers],
        "delivery": [d["id"] for d in deliveries],
    }
