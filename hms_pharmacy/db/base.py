# hms_pharmacy/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All pharmacy and account tables inherit from this."""
    pass
