"""
models.py
----------
Defines the tables of the local store using SQLAlchemy ORM.
Each class here represents one collection (reports, records, contacts),
plus a small key/value table for store bookkeeping.
"""

from sqlalchemy import Column, Integer, String, Text, Index
from .session import Base


class ReportRow(Base):
    """
    An incident report submitted by a user.

    Dates are stored already normalized (yyyy-mm-dd); time is free text.
    """
    __tablename__ = "reports"

    # Primary key: AUTOINCREMENT so ids are never handed out twice
    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(255))
    contact = Column(String(255))
    location = Column(String(255), nullable=False)
    type = Column(String(128), nullable=False)
    date = Column(String(32), nullable=False)
    time = Column(String(32))
    description = Column(Text, nullable=False)

    # Pending | Under Investigation | Resolved
    status = Column(String(32), nullable=False, default="Pending")

    # ISO instant set once on creation
    timestamp = Column(String(64), nullable=False)

    __table_args__ = (
        Index("ix_reports_type", "type"),
        Index("ix_reports_location", "location"),
        Index("ix_reports_date", "date"),
        {"sqlite_autoincrement": True},
    )


class RecordRow(Base):
    """A suspect / person-of-interest entry kept by administrators."""
    __tablename__ = "records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    alias = Column(String(255))
    crime_type = Column(String(128), nullable=False)

    # Low | Medium | High
    risk_level = Column(String(16), nullable=False)

    last_known_location = Column(String(255))
    notes = Column(Text)
    timestamp = Column(String(64), nullable=False)

    __table_args__ = (
        Index("ix_records_name", "name"),
        Index("ix_records_crime_type", "crime_type"),
        {"sqlite_autoincrement": True},
    )


class ContactRow(Base):
    """A message sent through the contact form."""
    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255))
    email = Column(String(255))
    message = Column(Text)
    timestamp = Column(String(64), nullable=False)

    __table_args__ = (
        Index("ix_contacts_email", "email"),
        {"sqlite_autoincrement": True},
    )


class StoreMeta(Base):
    """Key/value bookkeeping: schema version and cross-process change markers."""
    __tablename__ = "store_meta"

    key = Column(String(128), primary_key=True)
    value = Column(String(255))


# Collection name -> ORM class
COLLECTIONS = {
    "reports": ReportRow,
    "records": RecordRow,
    "contacts": ContactRow,
}


def row_to_dict(row):
    """Turn an ORM row into a plain dict of its columns."""
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}
