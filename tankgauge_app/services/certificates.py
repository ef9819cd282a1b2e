from __future__ import annotations

from datetime import date
from enum import Enum

from tankgauge_app.config.limits import CERTIFICATE_WARNING_DAYS


class CertificateStatus(Enum):
    NOT_AVAILABLE = "N/A"
    EXPIRED = "VENCIDO"
    EXPIRING_SOON = "VENCE EM BREVE"
    VALID = "VALIDO"


def certificate_status(expiry_date: date | None, today: date | None = None) -> CertificateStatus:
    """Calibration certificate status relative to today (expiring within the warning window)."""
    if expiry_date is None:
        return CertificateStatus.NOT_AVAILABLE
    today = today or date.today()
    days_left = (expiry_date - today).days
    if days_left < 0:
        return CertificateStatus.EXPIRED
    if days_left <= CERTIFICATE_WARNING_DAYS:
        return CertificateStatus.EXPIRING_SOON
    return CertificateStatus.VALID
