# FILE: hms_pharmacy/services/identity.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hms_pharmacy.core.config import settings
from hms_pharmacy.models.accounts import AuthPrincipal
from hms_pharmacy.services.errors import ExternalServiceError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


class LocalIdentityProvider:
    """
    Credential store kept in `auth_principals`.

    Failures are reported as ExternalServiceError so callers treat this the
    same way as a hosted identity service.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, email: str, password: str,
                    metadata: Optional[Dict[str, Any]] = None) -> str:
        principal = AuthPrincipal(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=pwd_context.hash(password),
            email_confirmed=True,
            user_metadata=metadata or {},
        )
        try:
            self.db.add(principal)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ExternalServiceError(
                "A user with this email address has already been registered",
                code="email_exists",
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ExternalServiceError(str(e), code="identity_unavailable") from e
        return principal.id

    def delete_user(self, user_id: str) -> None:
        try:
            self.db.query(AuthPrincipal).filter(AuthPrincipal.id == user_id).delete(
                synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ExternalServiceError(str(e), code="identity_unavailable") from e
