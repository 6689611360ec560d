# src/crimesense/api/analytics.py

from flask import Blueprint, request, jsonify

from crimesense import analytics


def create_analytics_blueprint(get_repository):
    """
    Factory for the chart data endpoints.

    Endpoints:
        GET /api/analytics/type-distribution
        GET /api/analytics/location-distribution   ?limit=<n> (default 10)
        GET /api/analytics/reports-over-time

    All three read every report and aggregate in Python; the collection is
    small (one city's reports).
    """
    bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")

    @bp.route("/type-distribution", methods=["GET"])
    def type_distribution():
        reports = get_repository().get_all_reports()
        return jsonify(analytics.type_distribution(reports)), 200

    @bp.route("/location-distribution", methods=["GET"])
    def location_distribution():
        try:
            limit = int(request.args.get("limit", 10))
        except ValueError:
            limit = 10
        if limit < 1:
            limit = 10

        reports = get_repository().get_all_reports()
        return jsonify(analytics.location_distribution(reports, limit=limit)), 200

    @bp.route("/reports-over-time", methods=["GET"])
    def reports_over_time():
        reports = get_repository().get_all_reports()
        return jsonify(analytics.reports_over_time(reports)), 200

    return bp
