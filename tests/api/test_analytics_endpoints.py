"""
Tests for the /api/analytics endpoints.
"""

import pytest

from crimesense.api.app import create_app


@pytest.fixture
def client(repository):
    app = create_app(repository)
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def seeded(repository):
    for location, type_, date in [
        ("Central Park", "Theft", "2023-10-15"),
        ("Central Park", "Theft", "15-10-2023"),
        ("Main Street", "Vandalism", "2023-10-14"),
    ]:
        repository.save_report({
            "location": location, "type": type_, "date": date, "time": "12:00", "description": "d",
        })


def test_type_distribution(client, seeded):
    data = client.get("/api/analytics/type-distribution").get_json()
    assert data == [{"type": "Theft", "count": 2}, {"type": "Vandalism", "count": 1}]


def test_location_distribution(client, seeded):
    data = client.get("/api/analytics/location-distribution").get_json()
    assert data[0] == {"location": "Central Park", "count": 2}

    limited = client.get("/api/analytics/location-distribution?limit=1").get_json()
    assert len(limited) == 1

    # Bad limits fall back to the default
    assert len(client.get("/api/analytics/location-distribution?limit=abc").get_json()) == 2


def test_reports_over_time_merges_normalized_dates(client, seeded):
    data = client.get("/api/analytics/reports-over-time").get_json()
    assert data == [{"date": "2023-10-14", "count": 1}, {"date": "2023-10-15", "count": 2}]


def test_empty_store(client):
    assert client.get("/api/analytics/type-distribution").get_json() == []
