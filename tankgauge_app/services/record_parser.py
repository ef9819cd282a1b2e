"""
Parse the cadastral bulk-import text protocol into typed records.

One record per logical line, ';'-separated, each starting with a tag:

    BALSA;externalId;name;owner;issueDate;expiryDate;certificateNumber;notes...
    TANQUE;balsaExternalId;tankExternalId;tankName;maxCalibratedHeight;maxVolume
    CALIBRACAO;tankExternalId;trim;height;volume
    MEDICAO;balsaExternalId;tankExternalId;dateTime;opType;trim;height;volume;product;origin;destination;operator

Records are split where a line starts with a tag, so a record may span
physical lines (continuation lines must not start with a tag).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Tuple, Union

from tankgauge_app.models import MeasurementOperationType
from tankgauge_app.utils.parsing import br_to_number, parse_date, parse_datetime, parse_trim

RECORD_TAGS = ("BALSA", "TANQUE", "CALIBRACAO", "MEDICAO")
# A tag only starts a record at the beginning of a line, so a field value such
# as "RIO BALSA;" never splits a record
_TAG_RE = re.compile(r"^[ \t]*(?:%s);" % "|".join(RECORD_TAGS), re.MULTILINE)


@dataclass(slots=True)
class BatchParseError(Exception):
    """The text cannot be split into records at all (empty, or no known tag)."""
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


@dataclass(slots=True)
class RecordError(Exception):
    """A single record could not be applied; the batch may continue."""
    message: str
    line: int = 0
    tag: str = ""

    def __str__(self) -> str:
        prefix = f"Line {self.line}" if self.line else "Record"
        return f"{prefix} ({self.tag}): {self.message}" if self.tag else f"{prefix}: {self.message}"


@dataclass(slots=True)
class RecordValidationError(RecordError):
    """Required field missing or malformed."""


@dataclass(slots=True)
class RecordReferenceError(RecordError):
    """Record refers to a vessel or tank that cannot be resolved by external id."""


@dataclass(frozen=True, slots=True)
class RawRecord:
    line: int
    tag: str
    fields: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class BalsaRecord:
    line: int
    external_id: str
    name: str
    owner: str = ""
    issue_date: date | None = None
    expiry_date: date | None = None
    certificate_number: str = ""
    notes: str = ""


@dataclass(frozen=True, slots=True)
class TanqueRecord:
    line: int
    vessel_external_id: str
    external_id: str
    tank_name: str
    max_calibrated_height: float | None = None
    max_volume: float | None = None


@dataclass(frozen=True, slots=True)
class CalibracaoRecord:
    line: int
    tank_external_id: str
    trim: int
    height: float
    volume: float


@dataclass(frozen=True, slots=True)
class MedicaoRecord:
    line: int
    vessel_external_id: str
    tank_external_id: str
    date_time: datetime
    operation_type: MeasurementOperationType
    trim: int
    height: float
    volume: float
    product: str = ""
    origin: str = ""
    destination: str = ""
    operator: str = ""


@dataclass(frozen=True, slots=True)
class UnknownRecord:
    line: int
    tag: str


Record = Union[BalsaRecord, TanqueRecord, CalibracaoRecord, MedicaoRecord, UnknownRecord]


def split_records(text: str) -> List[RawRecord]:
    """
    Split raw import text into records on the tag lookahead.

    Non-blank text before the first tag becomes a record with its own
    (unknown) leading token.

    Raises:
        BatchParseError: text is empty or contains no known record tag
    """
    if not text or not text.strip():
        raise BatchParseError("Import text is empty.")
    starts = [m.start() for m in _TAG_RE.finditer(text)]
    if not starts:
        raise BatchParseError(
            f"No records found. Each record must start with one of: {', '.join(RECORD_TAGS)}."
        )
    bounds = ([0] if text[: starts[0]].strip() else []) + starts + [len(text)]
    records: List[RawRecord] = []
    for begin, end in zip(bounds, bounds[1:]):
        chunk = text[begin:end]
        if not chunk.strip():
            continue
        fields = tuple(p.strip() for p in chunk.split(";"))
        line = text.count("\n", 0, begin) + 1
        records.append(RawRecord(line=line, tag=fields[0], fields=fields))
    return records


def _field(fields: Tuple[str, ...], index: int) -> str:
    return fields[index] if index < len(fields) else ""


def _number(raw: RawRecord, index: int, name: str, required: bool = False) -> float | None:
    text = _field(raw.fields, index)
    try:
        value = br_to_number(text)
    except ValueError:
        raise RecordValidationError(f"{name} is not a number: {text!r}", raw.line, raw.tag) from None
    if value is None and required:
        raise RecordValidationError(f"{name} is required", raw.line, raw.tag)
    return value


def _trim(raw: RawRecord, index: int) -> int:
    text = _field(raw.fields, index)
    try:
        return parse_trim(text)
    except ValueError:
        raise RecordValidationError(f"invalid trim: {text!r}", raw.line, raw.tag) from None


def _require(raw: RawRecord, **values: str) -> None:
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise RecordValidationError(f"missing {', '.join(missing)}", raw.line, raw.tag)


def _parse_balsa(raw: RawRecord) -> BalsaRecord:
    f = raw.fields
    external_id, name = _field(f, 1), _field(f, 2)
    _require(raw, externalId=external_id, name=name)
    try:
        issue = parse_date(_field(f, 4))
        expiry = parse_date(_field(f, 5))
    except ValueError as exc:
        raise RecordValidationError(str(exc), raw.line, raw.tag) from None
    notes_parts = list(f[7:])
    while notes_parts and not notes_parts[-1]:
        notes_parts.pop()
    return BalsaRecord(
        line=raw.line,
        external_id=external_id,
        name=name,
        owner=_field(f, 3),
        issue_date=issue,
        expiry_date=expiry,
        certificate_number=_field(f, 6),
        notes=";".join(notes_parts),
    )


def _parse_tanque(raw: RawRecord) -> TanqueRecord:
    f = raw.fields
    vessel_id, tank_id, tank_name = _field(f, 1), _field(f, 2), _field(f, 3)
    _require(raw, balsaExternalId=vessel_id, tankExternalId=tank_id, tankName=tank_name)
    return TanqueRecord(
        line=raw.line,
        vessel_external_id=vessel_id,
        external_id=tank_id,
        tank_name=tank_name,
        max_calibrated_height=_number(raw, 4, "maxCalibratedHeight"),
        max_volume=_number(raw, 5, "maxVolume"),
    )


def _parse_calibracao(raw: RawRecord) -> CalibracaoRecord:
    tank_id = _field(raw.fields, 1)
    _require(raw, tankExternalId=tank_id)
    return CalibracaoRecord(
        line=raw.line,
        tank_external_id=tank_id,
        trim=_trim(raw, 2),
        height=_number(raw, 3, "height", required=True),
        volume=_number(raw, 4, "volume", required=True),
    )


def _parse_medicao(raw: RawRecord) -> MedicaoRecord:
    f = raw.fields
    vessel_id, tank_id = _field(f, 1), _field(f, 2)
    _require(raw, balsaExternalId=vessel_id, tankExternalId=tank_id)
    try:
        when = parse_datetime(_field(f, 3))
    except ValueError as exc:
        raise RecordValidationError(str(exc), raw.line, raw.tag) from None
    op_text = _field(f, 4)
    try:
        op_type = MeasurementOperationType(op_text)
    except ValueError:
        allowed = ", ".join(t.value for t in MeasurementOperationType)
        raise RecordValidationError(
            f"unknown operation type {op_text!r} (expected one of: {allowed})", raw.line, raw.tag
        ) from None
    return MedicaoRecord(
        line=raw.line,
        vessel_external_id=vessel_id,
        tank_external_id=tank_id,
        date_time=when,
        operation_type=op_type,
        trim=_trim(raw, 5),
        height=_number(raw, 6, "height", required=True),
        volume=_number(raw, 7, "volume", required=True),
        product=_field(f, 8),
        origin=_field(f, 9),
        destination=_field(f, 10),
        operator=_field(f, 11),
    )


def parse_record(raw: RawRecord) -> Record:
    """Typed record for a raw record; raises RecordValidationError on bad fields."""
    match raw.tag:
        case "BALSA":
            return _parse_balsa(raw)
        case "TANQUE":
            return _parse_tanque(raw)
        case "CALIBRACAO":
            return _parse_calibracao(raw)
        case "MEDICAO":
            return _parse_medicao(raw)
        case _:
            return UnknownRecord(line=raw.line, tag=raw.tag)
