# FILE: hms_pharmacy/services/account_provisioning.py
"""
Login accounts for existing staff / doctor / patient rows.

Order of writes: identity principal -> `users` profile -> link on the
entity row. If the profile insert fails the principal is deleted again so
no orphan credential is left behind.
"""
from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hms_pharmacy.core.config import settings
from hms_pharmacy.models.accounts import Doctor, Patient, Staff, User
from hms_pharmacy.services.errors import ExternalServiceError, StorageError, ValidationError

logger = logging.getLogger(__name__)

ROLE_MAP: Dict[str, str] = {
    "Administrator": "admin",
    "Lab Technician": "technician",
    "Nurse": "nurse",
    "Pharmacist": "pharmacist",
    "Receptionist": "receptionist",
    "Doctor": "doctor",
    "Patient": "patient",
    "MD": "md",
}

# entity type -> (model, identifier column copied to users.employee_id)
ENTITY_TABLES: Dict[str, Tuple[Type, str]] = {
    "staff": (Staff, "employee_id"),
    "doctor": (Doctor, "license_number"),
    "patient": (Patient, "patient_id"),
}

_DIGITS = re.compile(r"^\d+$")


@dataclass
class AccountCreated:
    email: str
    password: str
    user_id: int
    auth_id: str


def normalize_login_email(value: str, domain: Optional[str] = None) -> str:
    email = (value or "").strip()
    if not email:
        raise ValidationError("Email is required", field="email")
    # mobile numbers are accepted as logins
    if _DIGITS.match(email):
        email = f"{email}@{domain or settings.DEFAULT_EMAIL_DOMAIN}"
    return email


def normalize_role(role: str) -> str:
    role = (role or "").strip()
    return ROLE_MAP.get(role, role.lower())


def generate_password() -> str:
    return secrets.token_urlsafe(12)


def create_user_account(
    db: Session,
    identity,
    entity_type: str,
    entity_id: int,
    email: str,
    name: str,
    role: str,
    password: Optional[str] = None,
) -> AccountCreated:
    if entity_type not in ENTITY_TABLES:
        raise ValidationError(f"Unknown entity type '{entity_type}'", field="entity_type")
    model, id_column = ENTITY_TABLES[entity_type]

    login = normalize_login_email(email)
    secret = password if password and password.strip() else generate_password()
    role_code = normalize_role(role)

    try:
        entity = db.get(model, entity_id)
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageError.from_exc(e) from e
    if entity is None:
        raise ValidationError(f"{entity_type} id={entity_id} not found", field="entity_id")

    auth_id = identity.create_user(login, secret, {"name": name, "role": role_code})
    if not auth_id:
        raise ExternalServiceError("Failed to create user", code="identity_unavailable")

    profile = User(
        auth_id=auth_id,
        email=login,
        name=name,
        role=role_code,
        status="active",
        employee_id=getattr(entity, id_column),
    )
    try:
        db.add(profile)
        db.commit()
        db.refresh(profile)
    except SQLAlchemyError as e:
        db.rollback()
        err = StorageError.from_exc(e)
        logger.warning("Profile insert for %s failed (%s), removing principal %s",
                       login, err.message, auth_id)
        try:
            identity.delete_user(auth_id)
        except ExternalServiceError as cleanup:
            logger.error("Could not remove principal %s: %s", auth_id, cleanup.message)
        err.message = f"Failed to create public user profile: {err.message}"
        raise err from e

    try:
        entity = db.get(model, entity_id)
        entity.email = login
        entity.user_id = profile.id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        err = StorageError.from_exc(e)
        err.message = f"Failed to link user to profile: {err.message}"
        raise err from e

    logger.info("Account %s created for %s id=%s", login, entity_type, entity_id)
    return AccountCreated(email=login, password=secret, user_id=profile.id, auth_id=auth_id)
