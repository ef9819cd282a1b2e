"""Tests for value parsing helpers and certificate status."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from tankgauge_app.services.certificates import CertificateStatus, certificate_status
from tankgauge_app.utils.parsing import (
    br_to_number,
    number_to_br,
    parse_date,
    parse_datetime,
    parse_trim,
)


class TestNumbers:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [("1.234,56", 1234.56), ("12,5", 12.5), ("12.5", 12.5), ("-3", -3.0), (7, 7.0)],
    )
    def test_br_to_number(self, text, expected):
        assert br_to_number(text) == pytest.approx(expected)

    def test_blank_is_none(self):
        assert br_to_number("  ") is None
        assert br_to_number(None) is None

    @pytest.mark.parametrize("text", ["abc", "nan", "inf"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            br_to_number(text)

    def test_trim(self):
        assert parse_trim("+50") == 50
        with pytest.raises(ValueError):
            parse_trim("2,5")

    def test_number_to_br(self):
        assert number_to_br(1234.5) == "1234,50"
        assert number_to_br(None) == "—"


class TestDates:
    def test_parse_date_formats(self):
        assert parse_date("2025-03-04") == date(2025, 3, 4)
        assert parse_date("04/03/2025") == date(2025, 3, 4)
        assert parse_date("") is None

    def test_parse_date_invalid(self):
        with pytest.raises(ValueError):
            parse_date("31/02/2025")

    def test_parse_datetime(self):
        assert parse_datetime("2025-03-04T10:15") == datetime(2025, 3, 4, 10, 15)
        assert parse_datetime("04/03/2025 10:15") == datetime(2025, 3, 4, 10, 15)
        with pytest.raises(ValueError):
            parse_datetime("")


class TestCertificateStatus:
    today = date(2025, 6, 1)

    def test_statuses(self):
        assert certificate_status(None, self.today) is CertificateStatus.NOT_AVAILABLE
        assert certificate_status(date(2025, 5, 31), self.today) is CertificateStatus.EXPIRED
        assert certificate_status(date(2025, 6, 20), self.today) is CertificateStatus.EXPIRING_SOON
        assert certificate_status(date(2025, 9, 1), self.today) is CertificateStatus.VALID

    def test_values(self):
        assert CertificateStatus.EXPIRING_SOON.value == "VENCE EM BREVE"
