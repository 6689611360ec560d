# src/crimesense/api/reports.py

from flask import Blueprint, request, jsonify

from crimesense.errors import ValidationError
from crimesense.repository import (
    validate_report_input,
    validate_record_input,
    validate_contact_input,
)


def _payload():
    """JSON body of the request, or {} when there is none."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _record_input(data):
    # The records form sends camelCase field names
    return {
        "name": data.get("name"),
        "alias": data.get("alias"),
        "crime_type": data.get("crime_type") or data.get("crimeType"),
        "risk_level": data.get("risk_level") or data.get("riskLevel"),
        "last_known_location": data.get("last_known_location") or data.get("lastKnownLocation"),
        "notes": data.get("notes"),
    }


def create_reports_blueprint(get_repository):
    """
    Factory that creates the reports/records/contact blueprint.

    Args:
        get_repository: zero-argument callable returning the CrimeRepository
            to use (called per request so tests can swap it).

    Endpoints:
        GET    /api/reports            ?type=<exact type>&search=<text>
        POST   /api/reports
        GET    /api/reports/<id>
        DELETE /api/reports/<id>
        GET    /api/records            ?search=<text>
        POST   /api/records
        DELETE /api/records/<id>
        POST   /api/contact

    Deleting is not authorized here; callers are expected to have checked
    that the user is an administrator.
    """
    bp = Blueprint("reports", __name__, url_prefix="/api")

    @bp.errorhandler(ValidationError)
    def handle_validation_error(e):
        return jsonify({"error": str(e), "missing": e.missing}), 400

    @bp.route("/reports", methods=["GET"])
    def list_reports():
        reports = get_repository().search_reports(
            type=request.args.get("type") or None,
            search=request.args.get("search") or None,
        )
        return jsonify([r.to_dict() for r in reports]), 200

    @bp.route("/reports", methods=["POST"])
    def create_report():
        data = _payload()
        validate_report_input(data)
        new_id = get_repository().save_report(data)
        return jsonify({"id": new_id}), 200

    @bp.route("/reports/<report_id>", methods=["GET"])
    def get_report(report_id):
        report = get_repository().get_report_by_id(report_id)
        if report is None:
            return jsonify({"error": "Report not found"}), 404
        return jsonify(report.to_dict()), 200

    @bp.route("/reports/<report_id>", methods=["DELETE"])
    def delete_report(report_id):
        get_repository().delete_report(report_id)
        return jsonify({"deleted": True}), 200

    @bp.route("/records", methods=["GET"])
    def list_records():
        records = get_repository().search_records(search=request.args.get("search") or None)
        return jsonify([r.to_dict() for r in records]), 200

    @bp.route("/records", methods=["POST"])
    def create_record():
        data = _record_input(_payload())
        validate_record_input(data)
        new_id = get_repository().save_record(data)
        return jsonify({"id": new_id}), 200

    @bp.route("/records/<record_id>", methods=["DELETE"])
    def delete_record(record_id):
        get_repository().delete_record(record_id)
        return jsonify({"deleted": True}), 200

    @bp.route("/contact", methods=["POST"])
    def create_contact():
        data = _payload()
        validate_contact_input(data)
        new_id = get_repository().save_contact(data)
        return jsonify({"id": new_id}), 200

    return bp
