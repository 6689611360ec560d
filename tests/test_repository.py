"""
Tests for the domain repository: default filling, date normalization,
notifications per channel, the read-failure fallback and search.
"""

import re

import pytest

from crimesense.errors import ReadError, WriteError, ValidationError
from crimesense.events import REPORTS, RECORDS, CONTACTS
from crimesense.repository import (
    CrimeRepository, Report, Record, ReportStatus,
    validate_report_input, validate_record_input, validate_contact_input,
    get_repository,
)

SCENARIO = {"location": "Main St", "type": "Theft", "date": "01-02-2024", "time": "10:00", "description": "x"}


def test_save_report_scenario(repository):
    new_id = repository.save_report(SCENARIO)
    report = repository.get_report_by_id(new_id)

    assert isinstance(new_id, int) and new_id > 0
    assert report.date == "2024-02-01"
    assert report.status == "Pending"
    assert report.name == "Anonymous"
    assert report.contact == "Not provided"
    assert report.location == "Main St"
    assert report.type == "Theft"
    assert report.time == "10:00"
    assert report.description == "x"
    assert re.match(r"^\d{4}-\d{2}-\d{2}T", report.timestamp)


def test_save_report_fills_missing_date_and_time(repository):
    new_id = repository.save_report({"location": "Elm St", "type": "Assault", "description": "y"})
    report = repository.get_report_by_id(new_id)

    assert re.match(r"^\d{4}-\d{2}-\d{2}$", report.date)
    assert report.time == "00:00"


def test_two_saves_give_distinct_ids(repository):
    first = repository.save_report(SCENARIO)
    second = repository.save_report(SCENARIO)

    assert first != second
    assert second > first
    assert {r.id for r in repository.get_all_reports()} == {first, second}


def test_save_report_notifies_exactly_once(repository, received):
    repository.bus.subscribe(REPORTS, received)
    repository.save_report(SCENARIO)

    assert len(received.events) == 1
    assert received.events[0].channel == REPORTS


def test_subscriber_added_after_save_gets_nothing(repository, received):
    repository.save_report(SCENARIO)
    repository.bus.subscribe(REPORTS, received)
    assert received.events == []


def test_failed_save_propagates_and_does_not_notify(repository, received, mocker):
    repository.bus.subscribe(REPORTS, received)
    mocker.patch.object(repository.store, "add", side_effect=WriteError("disk full"))

    with pytest.raises(WriteError):
        repository.save_report(SCENARIO)
    assert received.events == []


def test_record_save_does_not_touch_reports_channel(repository, received):
    record_events = []
    repository.bus.subscribe(REPORTS, received)
    repository.bus.subscribe(RECORDS, record_events.append)

    repository.save_record({"name": "Sam Doe", "crime_type": "Fraud", "risk_level": "High"})

    assert received.events == []
    assert len(record_events) == 1


def test_save_record_defaults(repository):
    new_id = repository.save_record({"name": "Sam Doe", "crime_type": "Fraud"})
    record = repository.get_all_records()[0]

    assert record.id == new_id
    assert record.risk_level == "Medium"
    assert record.alias is None
    assert record.last_known_location is None
    assert record.notes is None


def test_save_contact_publishes_on_contacts(repository, received):
    repository.bus.subscribe(CONTACTS, received)
    new_id = repository.save_contact({"name": "Ann", "email": "ann@example.com", "message": "Hi"})

    assert new_id > 0
    assert len(received.events) == 1
    contact = repository.store.get_by_id("contacts", new_id)
    assert contact["email"] == "ann@example.com"


def test_delete_report_publishes_and_removes(repository, received):
    new_id = repository.save_report(SCENARIO)
    repository.bus.subscribe(REPORTS, received)

    assert repository.delete_report(new_id) is True
    assert repository.get_report_by_id(new_id) is None
    assert len(received.events) == 1


def test_delete_missing_report_is_fine(repository):
    repository.save_report(SCENARIO)
    assert repository.delete_report(12345) is True
    assert len(repository.get_all_reports()) == 1


def test_delete_record_publishes_on_records(repository, received):
    new_id = repository.save_record({"name": "Sam", "crime_type": "Fraud", "risk_level": "Low"})
    repository.bus.subscribe(RECORDS, received)

    repository.delete_record(str(new_id))

    assert repository.get_all_records() == []
    assert len(received.events) == 1


def test_get_report_by_text_id(repository):
    new_id = repository.save_report(SCENARIO)
    assert repository.get_report_by_id(str(new_id)).id == new_id
    assert repository.get_report_by_id("999") is None


def test_clear_all_data(repository, received):
    repository.save_report(SCENARIO)
    repository.save_record({"name": "Sam", "crime_type": "Fraud", "risk_level": "Low"})
    repository.save_contact({"name": "Ann", "email": "a@b.c", "message": "m"})
    repository.bus.subscribe(REPORTS, received)

    assert repository.clear_all_data() is True

    assert repository.get_all_reports() == []
    assert repository.get_all_records() == []
    assert repository.store.get_all("contacts") == []
    assert len(received.events) == 1


def test_read_failure_falls_back_to_empty_list(repository, mocker, caplog):
    repository.save_report(SCENARIO)
    mocker.patch.object(repository.store, "get_all", side_effect=ReadError("corrupt"))

    assert repository.get_all_reports() == []
    assert repository.get_all_records() == []
    assert "read failure" in caplog.text


def test_fetch_tells_empty_from_failed(repository, mocker):
    empty = repository.fetch_reports()
    assert empty.ok and empty.items == []

    mocker.patch.object(repository.store, "get_all", side_effect=ReadError("corrupt"))
    failed = repository.fetch_reports()
    assert not failed.ok
    assert isinstance(failed.error, ReadError)
    assert not repository.fetch_records().ok


def test_search_reports(repository):
    repository.save_report({**SCENARIO, "type": "Theft", "location": "Central Park"})
    repository.save_report({**SCENARIO, "type": "Vandalism", "location": "Main Street", "description": "Graffiti"})
    repository.save_report({**SCENARIO, "type": "Theft", "location": "Harbor", "description": "Bike taken"})

    thefts = repository.search_reports(type="Theft")
    assert [r.location for r in thefts] == ["Harbor", "Central Park"]

    assert [r.type for r in repository.search_reports(search="graffiti")] == ["Vandalism"]
    assert [r.location for r in repository.search_reports(type="Theft", search="bike")] == ["Harbor"]
    assert len(repository.search_reports()) == 3


def test_search_records(repository):
    repository.save_record({"name": "Michael Johnson", "alias": "Mikey", "crime_type": "Burglary",
                            "risk_level": "High", "last_known_location": "West District"})
    repository.save_record({"name": "Sarah Williams", "crime_type": "Fraud", "risk_level": "Medium"})

    assert [r.name for r in repository.search_records("mikey")] == ["Michael Johnson"]
    assert [r.name for r in repository.search_records("fraud")] == ["Sarah Williams"]
    assert [r.name for r in repository.search_records()] == ["Sarah Williams", "Michael Johnson"]


def test_entities_convert_to_dicts(repository):
    new_id = repository.save_report(SCENARIO)
    data = repository.get_report_by_id(new_id).to_dict()
    assert data["id"] == new_id
    assert Report.from_row(data).to_dict() == data
    assert ReportStatus("Pending") is ReportStatus.PENDING

    record = Record(id=None, name="A", crime_type="B")
    assert record.to_dict()["risk_level"] == "Medium"


def test_validation_helpers():
    validate_report_input(SCENARIO)
    with pytest.raises(ValidationError) as info:
        validate_report_input({"location": "  ", "type": "Theft"})
    assert set(info.value.missing) == {"location", "date", "time", "description"}

    validate_record_input({"name": "A", "crime_type": "B", "risk_level": "Low"})
    with pytest.raises(ValidationError):
        validate_record_input({"name": "A", "crime_type": "B", "risk_level": "Extreme"})

    with pytest.raises(ValidationError):
        validate_contact_input({"name": "A"})


def test_validation_rejects_values_that_are_not_text():
    with pytest.raises(ValidationError) as info:
        validate_report_input({**SCENARIO, "date": 15032024, "time": 1030})
    assert info.value.missing == ["date", "time"]

    with pytest.raises(ValidationError) as info:
        validate_record_input({"name": "A", "crime_type": "B", "risk_level": ["High"]})
    assert info.value.missing == ["risk_level"]

    with pytest.raises(ValidationError):
        validate_contact_input({"name": "A", "email": 5, "message": "hi"})

    # Absent optional fields are fine
    validate_record_input({"name": "A", "crime_type": "B", "risk_level": "Low", "alias": None})


def test_save_report_keeps_non_text_date_as_text(repository):
    report = repository.get_report_by_id(repository.save_report({**SCENARIO, "date": 15032024}))
    assert report.date == "15032024"


def test_repository_opens_store_lazily(store, bus):
    repository = CrimeRepository(store, bus)
    assert not store.is_open
    repository.get_all_reports()
    assert store.is_open


def test_get_repository_is_a_singleton(mocker):
    mocker.patch("crimesense.repository._repository", None)
    assert get_repository() is get_repository()
