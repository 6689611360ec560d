"""
analytics.py
-------------
Aggregates behind the analytics charts (and the /api/analytics endpoints).
Each function takes a list of reports (Report objects or plain dicts) and
returns a list of {"<key>": ..., "count": n} dicts ready for a chart.
"""

from collections import Counter

from crimesense.dates import today_iso


def _field(report, name):
    if isinstance(report, dict):
        return report.get(name)
    return getattr(report, name, None)


def type_distribution(reports):
    """Reports per incident type, in the order types first appear."""
    counts = Counter(_field(r, "type") or "Unknown" for r in reports)
    return [{"type": t, "count": n} for t, n in counts.items()]


def location_distribution(reports, limit=10):
    """The `limit` locations with the most reports, busiest first."""
    counts = Counter(_field(r, "location") or "Unknown Location" for r in reports)
    return [{"location": loc, "count": n} for loc, n in counts.most_common(limit)]


def reports_over_time(reports, today=None):
    """Reports per day, oldest date first. Undated reports count as today."""
    fallback = today.isoformat() if today is not None else today_iso()
    counts = Counter(_field(r, "date") or fallback for r in reports)
    return [{"date": d, "count": counts[d]} for d in sorted(counts)]
