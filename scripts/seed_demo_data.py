#!/usr/bin/env python3
"""
Demo data seeder.

Creates one login per role (password Demo@12345), two patient profiles (one
linked to the demo patient login), one upcoming appointment and one medical
record. Rows are looked up before they are created, so running the seeder
again leaves the data unchanged.

Run:
  python scripts/seed_demo_data.py
  python scripts/seed_demo_data.py --database-url sqlite:///./demo.db
"""

import argparse
import logging
import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

# Allow running from the repo root without installing the package
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))

from app.auth.auth_handler import AuthHandler  # noqa: E402
from app.config import get_settings  # noqa: E402
from app.database import Database  # noqa: E402
from app.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from app.models.medical_record import MedicalRecord  # noqa: E402
from app.models.patient import Gender, Patient  # noqa: E402
from app.models.user import Role, User  # noqa: E402

logger = logging.getLogger("seed_demo_data")

DEMO_PASSWORD = "Demo@12345"
DEMO_RECORD_TITLE = "Initial consultation"


def ensure_user(db: Session, auth: AuthHandler, role: Role) -> User:
    username = f"demo.{role.value}"
    user = db.query(User).filter(User.username == username).first()
    if user:
        return user
    user = User(
        username=username,
        email=f"{role.value}@demo.local",
        hashed_password=auth.get_password_hash(DEMO_PASSWORD),
        role=role.value,
    )
    db.add(user)
    db.flush()
    logger.info(f"Created {role.value} login {username}")
    return user


def ensure_patient(db: Session, first_name: str, last_name: str, **fields) -> Patient:
    patient = db.query(Patient).filter(
        Patient.first_name == first_name,
        Patient.last_name == last_name,
    ).first()
    if patient:
        return patient
    patient = Patient(first_name=first_name, last_name=last_name, **fields)
    db.add(patient)
    db.flush()
    logger.info(f"Created patient profile {first_name} {last_name}")
    return patient


def seed(database: Database, auth: Optional[AuthHandler] = None) -> None:
    database.create_all()
    auth = auth or AuthHandler()

    db = database.session()
    try:
        users = {role: ensure_user(db, auth, role) for role in Role}
        doctor = users[Role.DOCTOR]

        linked = ensure_patient(
            db, "Jane", "Doe",
            user_id=users[Role.PATIENT].id,
            primary_doctor_id=doctor.id,
            date_of_birth=date(1988, 5, 17),
            gender=Gender.FEMALE.value,
            email=users[Role.PATIENT].email,
            contact_number="555-0100",
        )
        ensure_patient(
            db, "John", "Roe",
            date_of_birth=date(1975, 11, 2),
            gender=Gender.MALE.value,
            contact_number="555-0101",
        )

        if not db.query(Appointment).filter(Appointment.patient_id == linked.id).first():
            db.add(Appointment(
                patient_id=linked.id,
                doctor_id=doctor.id,
                created_by_id=users[Role.STAFF].id,
                appointment_date=datetime.utcnow().replace(microsecond=0) + timedelta(days=7),
                status=AppointmentStatus.SCHEDULED.value,
                reason="Follow-up visit",
                location="Room 101",
            ))
            logger.info("Created demo appointment")

        if not db.query(MedicalRecord).filter(
            MedicalRecord.patient_id == linked.id,
            MedicalRecord.title == DEMO_RECORD_TITLE,
        ).first():
            db.add(MedicalRecord(
                patient_id=linked.id,
                doctor_id=doctor.id,
                created_by_id=doctor.id,
                title=DEMO_RECORD_TITLE,
                visit_date=date.today(),
                diagnosis="Seasonal allergies",
                treatment_plan="Antihistamines as needed",
            ))
            logger.info("Created demo medical record")

        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed demo logins and clinical data")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    database = Database(args.database_url or get_settings().database_url)
    try:
        seed(database)
    finally:
        database.dispose()

    logger.info(f"Demo data ready; every demo login uses password {DEMO_PASSWORD}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
