#!/usr/bin/env python3
"""CLI entry point for SEPSIS-ABX.

Usage:
    sepsis-abx --patient patient.json          # Text report for one patient
    sepsis-abx --patient - --json < pt.json    # JSON export from stdin
    sepsis-abx --demo --verbose                # Built-in sample patient
    sepsis-abx --serve                         # Run the JSON API
"""

import argparse
import json
import logging
import sys

from .config import config
from .evaluator import SepsisEvaluator
from .models import InvalidPatientDataError
from .report import export_json, format_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_IO_ERROR = 1
EXIT_INVALID_INPUT = 2

# 72-year-old with community-acquired pneumonia, recent antibiotics, mild AKI
DEMO_PATIENT = {
    "age": 72,
    "weight": 78.0,
    "sex": "male",
    "heart_rate": 112,
    "systolic_bp": 96,
    "diastolic_bp": 58,
    "o2_saturation": 89,
    "respiratory_rate": 26,
    "temperature": 38.9,
    "wbc": 17.4,
    "crp": 186,
    "procalcitonin": 3.2,
    "lactate": 2.8,
    "creatinine": 142,
    "egfr": 44,
    "sofa_score": 5,
    "qsofa_score": 2,
    "recent_antibiotics": "within_90days",
    "recent_admission": False,
    "comorbidities": ["COPD", "type 2 diabetes"],
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def load_patient(path: str) -> dict:
    """Read a patient record from a JSON file, or stdin for '-'."""
    if path == "-":
        return json.load(sys.stdin)
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SEPSIS-ABX - Empiric antibiotic decision support for pneumonia-induced sepsis (55+)"
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--patient",
        type=str,
        help="Path to a patient JSON file ('-' reads stdin)",
    )
    source.add_argument(
        "--demo",
        action="store_true",
        help="Evaluate a built-in sample patient",
    )
    source.add_argument(
        "--serve",
        action="store_true",
        help=f"Run the JSON API (default: {config.API_HOST}:{config.API_PORT})",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the JSON export instead of the text report",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Reject unrecognised enum categories instead of defaulting them",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    if args.serve:
        from .api import create_app

        app = create_app()
        app.run(host=config.API_HOST, port=config.API_PORT, debug=config.DEBUG)
        return EXIT_OK

    if args.demo:
        data = DEMO_PATIENT
    else:
        try:
            data = load_patient(args.patient)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read patient record: {e}")
            return EXIT_IO_ERROR

    strict = True if args.strict else None
    evaluator = SepsisEvaluator(strict_enums=strict)
    try:
        evaluation = evaluator.evaluate(data)
    except InvalidPatientDataError as e:
        print(f"Invalid patient data: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT

    if args.json:
        print(export_json(evaluation))
    else:
        print(format_report(evaluation))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
