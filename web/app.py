"""Flask JSON API for fleet maintenance tracking."""

import base64
import binascii
import logging
from datetime import date
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from fleetpro.config import Settings
from fleetpro.due_status import DueStatus
from fleetpro.errors import (
    AdvisoryError,
    DuplicateVehicleError,
    InvalidVehicleError,
    PersistenceError,
    VehicleNotFoundError,
)
from fleetpro.evaluator import evaluate
from fleetpro.fleet import Fleet
from fleetpro.loader import (
    YamlFleetStore,
    record_from_dict,
    record_to_dict,
    vehicle_from_dict,
    vehicle_to_dict,
)
from fleetpro.log import setup_logging
from fleetpro.vehicle import Vehicle

logger = logging.getLogger(__name__)


def status_to_dict(status: DueStatus) -> Dict[str, Any]:
    """Serialize a DueStatus for JSON responses."""
    return {
        "overdue": status.overdue,
        "reason": status.reason.value,
        "usageOverdue": status.usage_overdue,
        "timeOverdue": status.time_overdue,
        "inspectionOverdue": status.inspection_overdue,
        "usageSinceService": status.usage_since_service,
        "monthsSinceService": status.months_since_service,
        "monthsSinceInspection": status.months_since_inspection,
        "nextServiceUsage": status.next_service_usage,
        "nextServiceDate": status.next_service_date.isoformat() if status.next_service_date else None,
        "nextInspectionDate": (
            status.next_inspection_date.isoformat() if status.next_inspection_date else None
        ),
    }


def vehicle_json(vehicle: Vehicle, status: Optional[DueStatus] = None) -> Dict[str, Any]:
    """Vehicle document plus its due status and usage unit."""
    d = vehicle_to_dict(vehicle)
    d["unit"] = vehicle.type.unit
    d["dueStatus"] = status_to_dict(status or evaluate(vehicle))
    return d


def _as_of() -> Optional[date]:
    """Optional ?asOf=YYYY-MM-DD reference date."""
    value = request.args.get("asOf")
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidVehicleError(f"Invalid asOf date '{value}', use YYYY-MM-DD")


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidVehicleError("Expected a JSON object body")
    return data


def _number(data: Dict[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidVehicleError(f"'{key}' must be a number")
    return value


def create_app(
    fleet: Optional[Fleet] = None,
    advisor=None,
    settings: Optional[Settings] = None,
) -> Flask:
    """
    Build the app around one Fleet.

    Without arguments the fleet is hydrated from FLEET_FILE and the advisor
    is created on first use from the environment.
    """
    settings = settings or Settings.from_env()
    if fleet is None:
        setup_logging(settings.log_level, settings.log_format)
        fleet = Fleet.load(YamlFleetStore(settings.fleet_file))

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config["FLEET"] = fleet
    app.config["ADVISOR"] = advisor

    def get_advisor():
        if app.config["ADVISOR"] is None:
            from fleetpro.advisor import FleetAdvisor

            app.config["ADVISOR"] = FleetAdvisor(settings)
        return app.config["ADVISOR"]

    # -- Error mapping -----------------------------------------------------

    @app.errorhandler(VehicleNotFoundError)
    def not_found(e):
        return jsonify(error="not_found", message=str(e)), 404

    @app.errorhandler(InvalidVehicleError)
    def invalid(e):
        logger.warning("Rejected request: %s", e)
        return jsonify(error="invalid_input", message=str(e)), 400

    @app.errorhandler(DuplicateVehicleError)
    def duplicate(e):
        return jsonify(error="duplicate", message=str(e)), 409

    @app.errorhandler(PersistenceError)
    def persistence_failed(e):
        return jsonify(error="persistence_failed", message="The fleet could not be saved"), 500

    @app.errorhandler(AdvisoryError)
    def advisory_failed(e):
        return jsonify(error="advisory_failed", message="The advisory service is unavailable"), 502

    # -- Dashboard ---------------------------------------------------------

    @app.route("/")
    def dashboard():
        """Totals, compliance and overdue vehicles (inspection first)."""
        now = _as_of()
        stats = fleet.stats(now)
        overdue = [vehicle_json(v, s) for v, s in fleet.overdue(now)]
        priority = {"INSPECTION": 0, "USAGE": 1, "TIME": 2}
        overdue.sort(key=lambda d: (priority[d["dueStatus"]["reason"]], d["vehicleNumber"]))
        return jsonify(
            stats={
                "total": stats.total,
                "road": stats.road,
                "construction": stats.construction,
                "overdue": stats.overdue,
                "compliancePercent": stats.compliance_percent,
            },
            overdue=overdue,
        )

    # -- Vehicles ----------------------------------------------------------

    @app.route("/vehicles", methods=["GET"])
    def list_vehicles():
        now = _as_of()
        return jsonify(vehicles=[vehicle_json(v, s) for v, s in fleet.statuses(now)])

    @app.route("/vehicles", methods=["POST"])
    def add_vehicle():
        vehicle = fleet.add_vehicle(vehicle_from_dict(_json_body()))
        return jsonify(vehicle_json(vehicle)), 201

    @app.route("/vehicles/<vehicle_id>", methods=["GET"])
    def get_vehicle(vehicle_id: str):
        vehicle = fleet.get(vehicle_id)
        return jsonify(vehicle_json(vehicle, evaluate(vehicle, _as_of())))

    @app.route("/vehicles/<vehicle_id>", methods=["PUT"])
    def update_vehicle(vehicle_id: str):
        data = _json_body()
        data["id"] = vehicle_id
        vehicle = fleet.update_vehicle(vehicle_from_dict(data))
        return jsonify(vehicle_json(vehicle))

    @app.route("/vehicles/<vehicle_id>", methods=["DELETE"])
    def delete_vehicle(vehicle_id: str):
        fleet.delete_vehicle(vehicle_id)
        return "", 204

    @app.route("/vehicles/<vehicle_id>/usage", methods=["POST"])
    def update_usage(vehicle_id: str):
        data = _json_body()
        vehicle = fleet.record_usage_update(
            vehicle_id,
            _number(data, "currentUsage"),
            allow_decrease=bool(data.get("allowDecrease")),
        )
        return jsonify(vehicle_json(vehicle))

    @app.route("/vehicles/<vehicle_id>/maintenance", methods=["GET"])
    def vehicle_history(vehicle_id: str):
        vehicle = fleet.get(vehicle_id)
        return jsonify(
            vehicleId=vehicle.id,
            unit=vehicle.type.unit,
            maintenanceHistory=[record_to_dict(r) for r in vehicle.maintenance_history],
        )

    @app.route("/vehicles/<vehicle_id>/maintenance", methods=["POST"])
    def add_maintenance(vehicle_id: str):
        data = _json_body()
        allow_decrease = bool(data.pop("allowDecrease", False))
        if "date" not in data:
            data["date"] = date.today().isoformat()
        vehicle = fleet.apply_maintenance_record(
            vehicle_id, record_from_dict(data), allow_decrease=allow_decrease
        )
        return jsonify(vehicle_json(vehicle)), 201

    # -- Advisory service --------------------------------------------------

    @app.route("/advice", methods=["POST"])
    def advice():
        query = _json_body().get("query")
        if not isinstance(query, str) or not query.strip():
            raise InvalidVehicleError("'query' must be a non-empty string")
        # Snapshot is taken first; the advisor never touches the fleet
        answer = get_advisor().advise(fleet.vehicles(), query)
        return jsonify(answer=answer)

    @app.route("/analyze-image", methods=["POST"])
    def analyze_image():
        upload = request.files.get("image")
        if upload is not None:
            image = upload.read()
            mime_type = upload.mimetype or "image/jpeg"
        else:
            data = _json_body()
            encoded = data.get("image")
            if not isinstance(encoded, str) or not encoded:
                raise InvalidVehicleError("Send an 'image' file or base64 'image' field")
            mime_type = data.get("mimeType") or "image/jpeg"
            payload = encoded.split(",", 1)[1] if encoded.startswith("data:") else encoded
            try:
                image = base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError):
                raise InvalidVehicleError("'image' is not valid base64")
        return jsonify(get_advisor().analyze_image(image, mime_type))

    return app


if __name__ == "__main__":
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    create_app().run(debug=True, host="0.0.0.0", port=5001)
