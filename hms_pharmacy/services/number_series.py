# FILE: hms_pharmacy/services/number_series.py
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hms_pharmacy.core.config import settings
from hms_pharmacy.models.pharmacy import InvNumberSeries
from hms_pharmacy.services.errors import ExternalServiceError
from hms_pharmacy.utils.timezone import today_local

logger = logging.getLogger(__name__)


class SeriesPurchaseNumberGenerator:
    """
    Purchase numbers of the form PUR20251214001: prefix, local date and a
    per-day counter kept in inv_number_series (UNIQUE(key, date_key)).

    Each call commits its counter step on its own, so a number is used up
    even when the purchase later fails. Gaps are fine, reuse is not.
    """

    def __init__(self, db: Session, prefix: Optional[str] = None, pad: int = 3):
        self.db = db
        self.prefix = prefix or settings.PURCHASE_NUMBER_PREFIX
        self.pad = pad

    def _locked_row(self, date_key: int) -> Optional[InvNumberSeries]:
        return (
            self.db.query(InvNumberSeries)
            .filter(InvNumberSeries.key == self.prefix, InvNumberSeries.date_key == date_key)
            .with_for_update()
            .first()
        )

    def _take_seq(self, day: date) -> int:
        date_key = int(day.strftime("%Y%m%d"))
        row = self._locked_row(date_key)

        if row is None:
            row = InvNumberSeries(key=self.prefix, date_key=date_key, next_seq=1)
            self.db.add(row)
            try:
                self.db.flush()
            except IntegrityError:
                # another request opened the day first
                self.db.rollback()
                row = self._locked_row(date_key)
                if row is None:
                    raise

        seq = int(row.next_seq or 1)
        row.next_seq = seq + 1
        self.db.commit()
        return seq

    def __call__(self, day: Optional[date] = None) -> str:
        day = day or today_local()
        try:
            seq = self._take_seq(day)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Purchase number generation failed")
            raise ExternalServiceError(
                f"Could not generate purchase number: {e}",
                code="sequence_unavailable",
            ) from e
        return f"{self.prefix}{day.strftime('%Y%m%d')}{seq:0{self.pad}d}"
