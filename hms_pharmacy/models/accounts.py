from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON

from hms_pharmacy.db.base import Base


class AuthPrincipal(Base):
    """
    Credential store behind the local identity provider.
    Profiles in `users` point here through `auth_id`.
    """
    __tablename__ = "auth_principals"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(String(36), primary_key=True)  # uuid4
    email = Column(String(191), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    email_confirmed = Column(Boolean, default=True, nullable=False)
    user_metadata = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class User(Base):
    __tablename__ = "users"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    auth_id = Column(String(36), unique=True, nullable=False)
    name = Column(String(120), nullable=False)
    email = Column(String(191), unique=True, nullable=False)
    role = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    employee_id = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Staff(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(String(64), unique=True, nullable=False)
    name = Column(String(120), nullable=False)
    email = Column(String(191), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    license_number = Column(String(100), unique=True, nullable=False)
    name = Column(String(120), nullable=False)
    email = Column(String(191), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(32), unique=True, nullable=False)  # UHID
    name = Column(String(120), nullable=False)
    email = Column(String(191), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
