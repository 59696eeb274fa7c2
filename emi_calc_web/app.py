"""Flask JSON API for running and saving EMI calculations.

Configuration comes from the environment:

``EMI_CALC_DATABASE_URL``  SQLAlchemy URL of the calculation store
``EMI_CALC_LOG_LEVEL``     logging level name (default ``INFO``)
``EMI_CALC_PORT``          port for ``python -m emi_calc_web.app``
"""

import logging
import os
from typing import Optional

from flask import Flask, jsonify, request

from emi_calc.engine import simulate_inputs
from emi_calc.serialization import inputs_from_dict, result_to_dict
from emi_calc_web.calculation_store import CalculationStore, create_store_from_env

logger = logging.getLogger(__name__)


def _bad_request(exc: ValueError):
    logger.info("Rejected calculation payload: %s", exc)
    return jsonify({"message": str(exc), "field": getattr(exc, "field", None)}), 400


def _not_found():
    return jsonify({"message": "Calculation not found"}), 404


def create_app(database_url: Optional[str] = None, store: Optional[CalculationStore] = None) -> Flask:
    app = Flask(__name__)
    app.config["CALCULATION_STORE"] = store or create_store_from_env(
        database_url or os.environ.get("EMI_CALC_DATABASE_URL")
    )

    def get_store() -> CalculationStore:
        return app.config["CALCULATION_STORE"]

    @app.get("/api/calculations")
    def list_calculations():
        return jsonify(get_store().list_calculations())

    @app.post("/api/calculations")
    def create_calculation():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return _bad_request(ValueError("Request body must be a JSON object"))
        try:
            inputs = inputs_from_dict(payload)
            record = get_store().create_calculation(payload.get("name", ""), inputs)
        except ValueError as exc:
            return _bad_request(exc)
        return jsonify(record), 201

    @app.get("/api/calculations/<int:calculation_id>")
    def get_calculation(calculation_id: int):
        record = get_store().get_calculation(calculation_id)
        if record is None:
            return _not_found()
        return jsonify(record)

    @app.delete("/api/calculations/<int:calculation_id>")
    def delete_calculation(calculation_id: int):
        if not get_store().delete_calculation(calculation_id):
            return _not_found()
        return "", 204

    @app.get("/api/calculations/<int:calculation_id>/schedule")
    def calculation_schedule(calculation_id: int):
        inputs = get_store().get_inputs(calculation_id)
        if inputs is None:
            return _not_found()
        return jsonify(result_to_dict(simulate_inputs(inputs)))

    @app.post("/api/simulate")
    def simulate_calculation():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return _bad_request(ValueError("Request body must be a JSON object"))
        try:
            inputs = inputs_from_dict(payload)
        except ValueError as exc:
            return _bad_request(exc)
        return jsonify(result_to_dict(simulate_inputs(inputs)))

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("EMI_CALC_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.environ.get("EMI_CALC_PORT", "8710"))
    logger.info("Starting EMI calculator API on port %d", port)
    create_app().run(host="0.0.0.0", port=port, debug=False)
