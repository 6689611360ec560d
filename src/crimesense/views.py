"""
views.py
---------
View refreshers: objects that hold what a page shows (a table, the charts,
the raw database dump) and re-read it from the repository whenever a change
event arrives on one of their channels.

Drawing is somebody else's job; these classes only keep the data current.
A view subscribes with a bound method, so once it is garbage-collected (or
close() is called) it gets no more callbacks.
"""

import json
import logging

from crimesense import analytics
from crimesense.events import REPORTS, RECORDS

logger = logging.getLogger(__name__)


class RefreshingView:
    """Base class: subscribe to `channels`, call refresh() on every change."""

    channels = ()

    def __init__(self, repository):
        self.repository = repository
        self.refresh_count = 0
        self.error = None
        self._subscriptions = [
            repository.bus.subscribe(channel, self.on_change) for channel in self.channels
        ]
        self.refresh()

    def on_change(self, event):
        logger.info("%s refreshing after %s change (%s)", type(self).__name__, event.channel, event.origin)
        self.refresh()

    def refresh(self):
        self.refresh_count += 1
        self.load()

    def load(self):
        raise NotImplementedError

    def close(self):
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []


class ReportsTableView(RefreshingView):
    """Reports table with the type filter and search box, newest first."""

    channels = (REPORTS,)

    def __init__(self, repository, type_filter=None, search=None):
        self.type_filter = type_filter
        self.search = search
        self.rows = []
        super().__init__(repository)

    def set_filters(self, type_filter=None, search=None):
        self.type_filter = type_filter
        self.search = search
        self.refresh()

    def load(self):
        self.rows = self.repository.search_reports(type=self.type_filter, search=self.search)


class RecordsTableView(RefreshingView):
    """Police records table with search, newest first."""

    channels = (RECORDS,)

    def __init__(self, repository, search=None):
        self.search = search
        self.rows = []
        super().__init__(repository)

    def set_search(self, search=None):
        self.search = search
        self.refresh()

    def load(self):
        self.rows = self.repository.search_records(search=self.search)


class AnalyticsView(RefreshingView):
    """
    Data for the three analytics charts. `empty` is True when there is
    nothing to chart; `error` is set when the reports could not be read.
    """

    channels = (REPORTS,)

    def __init__(self, repository):
        self.by_type = []
        self.by_location = []
        self.over_time = []
        self.empty = True
        super().__init__(repository)

    def load(self):
        result = self.repository.fetch_reports()
        self.error = result.error
        reports = result.items

        self.by_type = analytics.type_distribution(reports)
        self.by_location = analytics.location_distribution(reports)
        self.over_time = analytics.reports_over_time(reports)
        self.empty = not reports


class DatabaseViewer(RefreshingView):
    """Raw JSON dump of the reports and records collections."""

    channels = (REPORTS, RECORDS)

    def __init__(self, repository):
        self.reports_json = "[]"
        self.records_json = "[]"
        super().__init__(repository)

    def load(self):
        reports = [r.to_dict() for r in self.repository.get_all_reports()]
        records = [r.to_dict() for r in self.repository.get_all_records()]
        self.reports_json = json.dumps(reports, indent=2)
        self.records_json = json.dumps(records, indent=2)
