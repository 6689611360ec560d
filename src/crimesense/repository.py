"""
repository.py
--------------
Typed CRUD over the local store for reports, police records and contact
messages. Every mutation publishes a change event on the collection's
channel so open views can refresh themselves.

The repository keeps no data of its own: reads always go to the store.
"""

import enum
import logging
import threading
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from crimesense.dates import normalize_date
from crimesense.db.store import LocalStore
from crimesense.errors import CrimeSenseError, ValidationError
from crimesense.events import ChangeBus, InProcessTransport, MarkerTransport, REPORTS, RECORDS, CONTACTS

logger = logging.getLogger(__name__)


class ReportStatus(str, enum.Enum):
    PENDING = "Pending"
    UNDER_INVESTIGATION = "Under Investigation"
    RESOLVED = "Resolved"


class RiskLevel(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


def utc_now_iso():
    """Current instant as an ISO-8601 string (UTC)."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Report:
    id: Optional[int]
    location: str
    type: str
    date: str
    description: str
    name: str = "Anonymous"
    contact: str = "Not provided"
    time: str = "00:00"
    status: str = ReportStatus.PENDING.value
    timestamp: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Report":
        return cls(**{k: row.get(k) for k in cls.__dataclass_fields__})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Record:
    id: Optional[int]
    name: str
    crime_type: str
    risk_level: str = RiskLevel.MEDIUM.value
    alias: Optional[str] = None
    last_known_location: Optional[str] = None
    notes: Optional[str] = None
    timestamp: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Record":
        return cls(**{k: row.get(k) for k in cls.__dataclass_fields__})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Contact:
    id: Optional[int]
    name: str = "Anonymous"
    email: str = "No email"
    message: str = "No message"
    timestamp: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Contact":
        return cls(**{k: row.get(k) for k in cls.__dataclass_fields__})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReadResult:
    """
    Outcome of a read that keeps "empty" apart from "could not read".
    `error` is None when the read succeeded (items may still be empty).
    """
    items: List[Any] = field(default_factory=list)
    error: Optional[CrimeSenseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------- input validation (used by the UI / REST layer) ----------------

REPORT_REQUIRED = ("location", "type", "date", "time", "description")
RECORD_REQUIRED = ("name", "crime_type", "risk_level")
CONTACT_REQUIRED = ("name", "email", "message")

REPORT_TEXT = ("name", "contact") + REPORT_REQUIRED
RECORD_TEXT = ("alias", "last_known_location", "notes") + RECORD_REQUIRED


def _check_text(data, fields, what):
    wrong = [name for name in fields if data.get(name) is not None and not isinstance(data[name], str)]
    if wrong:
        raise ValidationError(f"{what} fields must be text: {', '.join(wrong)}", wrong)


def _check_required(data, required, what):
    missing = [name for name in required if not str(data.get(name) or "").strip()]
    if missing:
        raise ValidationError(f"{what} is missing required fields: {', '.join(missing)}", missing)


def validate_report_input(data: Dict[str, Any]) -> None:
    _check_text(data, REPORT_TEXT, "Report")
    _check_required(data, REPORT_REQUIRED, "Report")


def validate_record_input(data: Dict[str, Any]) -> None:
    _check_text(data, RECORD_TEXT, "Record")
    _check_required(data, RECORD_REQUIRED, "Record")
    levels = {level.value for level in RiskLevel}
    if data["risk_level"] not in levels:
        raise ValidationError(
            f"Risk level must be one of {', '.join(sorted(levels))}", ["risk_level"]
        )


def validate_contact_input(data: Dict[str, Any]) -> None:
    _check_text(data, CONTACT_REQUIRED, "Contact message")
    _check_required(data, CONTACT_REQUIRED, "Contact message")


class CrimeRepository:
    """
    save/get/delete/list for each collection.

    Args:
        store: LocalStore to read and write (a default one is created lazily)
        bus: ChangeBus that mutations publish to
    """

    def __init__(self, store: Optional[LocalStore] = None, bus: Optional[ChangeBus] = None):
        self.store = store if store is not None else LocalStore()
        self.bus = bus if bus is not None else ChangeBus([InProcessTransport(), MarkerTransport(self.store)])

    # ---------------- reports ----------------

    def save_report(self, data: Dict[str, Any]) -> int:
        """
        Fill defaults, normalize the date, stamp the creation time and store
        the report. Returns the new report id.
        """
        report = {
            "name": data.get("name") or "Anonymous",
            "contact": data.get("contact") or "Not provided",
            "location": data.get("location") or "Unknown",
            "type": data.get("type") or "Other",
            "date": normalize_date(data.get("date")),
            "time": data.get("time") or "00:00",
            "description": data.get("description") or "No description",
            "status": ReportStatus.PENDING.value,
            "timestamp": utc_now_iso(),
        }

        new_id = self.store.add("reports", report)
        logger.info("Report saved with id %s", new_id)
        self.bus.publish(REPORTS)
        return new_id

    def get_all_reports(self) -> List[Report]:
        """
        All reports. On a read failure this logs the error and returns [];
        use fetch_reports() when the difference matters.
        """
        result = self.fetch_reports()
        if not result.ok:
            logger.error("Returning no reports after read failure: %s", result.error)
        return result.items

    def fetch_reports(self) -> ReadResult:
        try:
            rows = self.store.get_all("reports")
        except CrimeSenseError as e:
            return ReadResult([], e)
        return ReadResult([Report.from_row(row) for row in rows])

    def get_report_by_id(self, report_id) -> Optional[Report]:
        """The report, or None when no report has this id. Read errors propagate."""
        row = self.store.get_by_id("reports", report_id)
        return Report.from_row(row) if row is not None else None

    def delete_report(self, report_id) -> bool:
        self.store.delete("reports", report_id)
        self.bus.publish(REPORTS)
        return True

    def search_reports(self, type: Optional[str] = None, search: Optional[str] = None) -> List[Report]:
        """
        Reports matching an exact type and/or a case-insensitive search over
        location, description and type. Newest first.
        """
        reports = self.get_all_reports()

        if type:
            reports = [r for r in reports if r.type == type]

        if search:
            term = search.lower()
            reports = [
                r for r in reports
                if term in (r.location or "").lower()
                or term in (r.description or "").lower()
                or term in (r.type or "").lower()
            ]

        return sorted(reports, key=lambda r: r.id, reverse=True)

    # ---------------- records ----------------

    def save_record(self, data: Dict[str, Any]) -> int:
        record = {
            "name": data.get("name") or "Unknown",
            "alias": data.get("alias") or None,
            "crime_type": data.get("crime_type") or "Other",
            "risk_level": data.get("risk_level") or RiskLevel.MEDIUM.value,
            "last_known_location": data.get("last_known_location") or None,
            "notes": data.get("notes") or None,
            "timestamp": utc_now_iso(),
        }

        new_id = self.store.add("records", record)
        logger.info("Record saved with id %s", new_id)
        self.bus.publish(RECORDS)
        return new_id

    def get_all_records(self) -> List[Record]:
        """All records; [] (plus an error log) when the read fails."""
        result = self.fetch_records()
        if not result.ok:
            logger.error("Returning no records after read failure: %s", result.error)
        return result.items

    def fetch_records(self) -> ReadResult:
        try:
            rows = self.store.get_all("records")
        except CrimeSenseError as e:
            return ReadResult([], e)
        return ReadResult([Record.from_row(row) for row in rows])

    def delete_record(self, record_id) -> bool:
        self.store.delete("records", record_id)
        self.bus.publish(RECORDS)
        return True

    def search_records(self, search: Optional[str] = None) -> List[Record]:
        """Records whose name, alias, crime type or last location contain `search`. Newest first."""
        records = self.get_all_records()

        if search:
            term = search.lower()
            records = [
                r for r in records
                if term in (r.name or "").lower()
                or term in (r.alias or "").lower()
                or term in (r.crime_type or "").lower()
                or term in (r.last_known_location or "").lower()
            ]

        return sorted(records, key=lambda r: r.id, reverse=True)

    # ---------------- contacts ----------------

    def save_contact(self, data: Dict[str, Any]) -> int:
        contact = {
            "name": data.get("name") or "Anonymous",
            "email": data.get("email") or "No email",
            "message": data.get("message") or "No message",
            "timestamp": utc_now_iso(),
        }

        new_id = self.store.add("contacts", contact)
        logger.info("Contact message saved with id %s", new_id)
        self.bus.publish(CONTACTS)
        return new_id

    # ---------------- bulk reset ----------------

    def clear_all_data(self) -> bool:
        """Empty all three collections, then publish one reports change."""
        for collection in ("reports", "records", "contacts"):
            self.store.clear(collection)

        logger.info("All data cleared")
        self.bus.publish(REPORTS)
        return True


_repository = None
_repository_lock = threading.Lock()


def get_repository() -> CrimeRepository:
    """The process-wide repository, created on first use."""
    global _repository
    if _repository is None:
        with _repository_lock:
            if _repository is None:
                _repository = CrimeRepository()
    return _repository
