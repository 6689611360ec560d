"""
app.py: Flask REST mirror for CrimeSense.

Serves the same data shapes the browser keeps in its local store:
- /api/reports, /api/records, /api/contact (see reports.py)
- /api/analytics/* chart data (see analytics.py)
- /health and Open API (Swagger) documentation at /swagger

Run with: python -m crimesense.api.app (starts on API_PORT, default 5000).
"""

import logging

from flask import Flask, jsonify
from flask_cors import CORS
from flask_swagger_ui import get_swaggerui_blueprint

from crimesense import config
from crimesense.errors import CrimeSenseError
from crimesense.repository import get_repository
from .analytics import create_analytics_blueprint
from .reports import create_reports_blueprint

logger = logging.getLogger(__name__)

SWAGGER_URL = "/swagger"
API_URL = "/swagger.json"

SWAGGER_CONFIG = {
    "app_name": "CrimeSense API",
    "deepLinking": True,
    "defaultModelsExpandDepth": -1,
}

_ID_PARAM = {"name": "id", "in": "path", "required": True, "schema": {"type": "integer"}}

OPENAPI_SPEC = {
    "openapi": "3.0.0",
    "info": {"title": "CrimeSense API", "version": "1.0.0"},
    "paths": {
        "/health": {"get": {"summary": "Health check", "responses": {"200": {"description": "OK"}}}},
        "/api/reports": {
            "get": {
                "summary": "List incident reports (newest first)",
                "tags": ["Reports"],
                "parameters": [
                    {"name": "type", "in": "query", "schema": {"type": "string"}},
                    {"name": "search", "in": "query", "schema": {"type": "string"}},
                ],
                "responses": {"200": {"description": "List of reports"}},
            },
            "post": {
                "summary": "Submit an incident report",
                "tags": ["Reports"],
                "responses": {
                    "200": {"description": "The new report id"},
                    "400": {"description": "Required fields missing"},
                },
            },
        },
        "/api/reports/{id}": {
            "get": {
                "summary": "Get one report",
                "tags": ["Reports"],
                "parameters": [_ID_PARAM],
                "responses": {"200": {"description": "The report"}, "404": {"description": "Not found"}},
            },
            "delete": {
                "summary": "Delete a report (administrators only)",
                "tags": ["Reports"],
                "parameters": [_ID_PARAM],
                "responses": {"200": {"description": "Deleted (or already absent)"}},
            },
        },
        "/api/records": {
            "get": {
                "summary": "List police records (newest first)",
                "tags": ["Records"],
                "parameters": [{"name": "search", "in": "query", "schema": {"type": "string"}}],
                "responses": {"200": {"description": "List of records"}},
            },
            "post": {
                "summary": "Add a police record",
                "tags": ["Records"],
                "responses": {
                    "200": {"description": "The new record id"},
                    "400": {"description": "Required fields missing"},
                },
            },
        },
        "/api/records/{id}": {
            "delete": {
                "summary": "Delete a police record (administrators only)",
                "tags": ["Records"],
                "parameters": [_ID_PARAM],
                "responses": {"200": {"description": "Deleted (or already absent)"}},
            },
        },
        "/api/analytics/type-distribution": {
            "get": {"summary": "Report count per incident type", "tags": ["Analytics"],
                    "responses": {"200": {"description": "[{type, count}]"}}},
        },
        "/api/analytics/location-distribution": {
            "get": {"summary": "Top 10 locations by report count", "tags": ["Analytics"],
                    "responses": {"200": {"description": "[{location, count}]"}}},
        },
        "/api/analytics/reports-over-time": {
            "get": {"summary": "Report count per day, oldest first", "tags": ["Analytics"],
                    "responses": {"200": {"description": "[{date, count}]"}}},
        },
        "/api/contact": {
            "post": {"summary": "Send a contact message", "tags": ["Contact"],
                     "responses": {"200": {"description": "The new message id"}}},
        },
    },
}


def create_app(repository=None):
    """
    Build the Flask app. Pass a CrimeRepository to serve it (tests do);
    otherwise the process-wide repository is used.
    """
    app = Flask(__name__)

    # Allow the static front-end (served from anywhere) to call us
    CORS(app)

    def current_repository():
        return repository if repository is not None else get_repository()

    app.register_blueprint(create_reports_blueprint(current_repository))
    app.register_blueprint(create_analytics_blueprint(current_repository))
    app.register_blueprint(get_swaggerui_blueprint(SWAGGER_URL, API_URL, config=SWAGGER_CONFIG))

    @app.errorhandler(CrimeSenseError)
    def handle_storage_error(e):
        app.logger.error(f"Storage error: {e}")
        return jsonify({"error": str(e)}), 500

    @app.route("/health", methods=["GET"])
    def health():
        """
        Health check: verifies the local store can be opened.
        Returns: {"status": "ok", "store": true}
        """
        try:
            current_repository().store.open()
            store_status = True
        except CrimeSenseError as e:
            app.logger.error(f"Store health check failed: {e}")
            store_status = False

        return jsonify({"status": "ok" if store_status else "error", "store": store_status})

    @app.route(API_URL, methods=["GET"])
    def swagger_spec():
        return jsonify(OPENAPI_SPEC)

    return app


if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL)
    logger.info("The CrimeSense API has started.")
    repo = get_repository()
    repo.bus.start_watching()
    create_app(repo).run(host=config.API_HOST, port=config.API_PORT)
