"""JSON API for SEPSIS-ABX decision support.

Each request carries one patient record and is evaluated independently.
"""

import logging
from functools import wraps

from flask import Blueprint, Flask, current_app, jsonify, request

from . import __version__
from .config import config as default_config
from .evaluator import SepsisEvaluator
from .models import InvalidPatientDataError
from .regimens import REGIMENS

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def check_api_key(f):
    """Decorator to check API key for protected endpoints."""
    @wraps(f)
    def decorated(*args, **kwargs):
        api_key = current_app.config.get("API_KEY")

        # If no API key configured, allow all requests (dev mode)
        if not api_key:
            return f(*args, **kwargs)

        # Check key from query param or header
        provided_key = request.args.get("key") or request.headers.get("X-API-Key")

        if provided_key != api_key:
            return jsonify({"error": "Invalid or missing API key"}), 401

        return f(*args, **kwargs)

    return decorated


def _get_evaluator() -> SepsisEvaluator:
    return SepsisEvaluator(strict_enums=current_app.config.get("STRICT_ENUMS", False))


def _read_patient_json():
    """Return the JSON body, or an error response tuple."""
    body = request.get_json(silent=True)
    if body is None:
        return None, (jsonify({
            "error": "invalid_request",
            "message": "Request body must be a JSON object",
        }), 400)
    # Accept either the bare record or {"patient": {...}}
    if isinstance(body, dict) and isinstance(body.get("patient"), dict):
        body = body["patient"]
    return body, None


@api_bp.errorhandler(InvalidPatientDataError)
def handle_invalid_patient(error: InvalidPatientDataError):
    logger.info(f"Rejected patient record: {error}")
    return jsonify(error.to_dict()), 400


@api_bp.route("/health", methods=["GET"])
def health():
    """Liveness check."""
    return jsonify({"status": "ok", "version": __version__})


@api_bp.route("/risk", methods=["POST"])
@check_api_key
def risk():
    """Risk stratification only."""
    body, error = _read_patient_json()
    if error:
        return error

    evaluator = _get_evaluator()
    patient = evaluator.to_patient(body)
    assessment = evaluator.assessor.assess(patient)
    return jsonify(assessment.to_dict())


@api_bp.route("/evaluate", methods=["POST"])
@check_api_key
def evaluate():
    """Risk stratification followed by therapy recommendation."""
    body, error = _read_patient_json()
    if error:
        return error

    evaluation = _get_evaluator().evaluate(body)
    return jsonify(evaluation.to_dict())


@api_bp.route("/regimens", methods=["GET"])
def regimens():
    """Reference listing of the primary regimen branches."""
    listing = []
    for branch, template in REGIMENS.items():
        secondary = template.secondary or template.atypical_secondary
        listing.append({
            "branch": branch.value,
            "primary_antibiotic": template.primary.display_name,
            "frequency": template.frequency,
            "infusion_duration": template.infusion_duration,
            "secondary_antibiotic": secondary.antibiotic.display_name if secondary else None,
            "secondary_conditional": template.secondary is None and secondary is not None,
            "stewardship_notes": list(template.stewardship_notes),
        })
    return jsonify({"regimens": listing})


def create_app(config=None):
    """Create and configure the Flask application.

    Args:
        config: Optional configuration object or dict

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    # Load configuration
    if config is None:
        config = default_config

    if isinstance(config, dict):
        app.config.update(config)
    else:
        app.config.from_object(config)

    app.register_blueprint(api_bp, url_prefix="/api")

    return app
