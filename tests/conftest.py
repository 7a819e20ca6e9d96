"""Shared fixtures for SEPSIS-ABX tests."""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sepsis_abx_src.models import PatientData


# Nominal, low-risk presentation: every rule sits below its threshold
NOMINAL_PATIENT = {
    "age": 60,
    "weight": 70.0,
    "sex": "female",
    "heart_rate": 90,
    "systolic_bp": 120,
    "diastolic_bp": 80,
    "o2_saturation": 96,
    "respiratory_rate": 18,
    "temperature": 37.5,
    "wbc": 10.0,
    "crp": 50,
    "procalcitonin": 1.0,
    "lactate": 0.5,
    "creatinine": 80,
    "egfr": 90,
    "sofa_score": 0,
    "qsofa_score": 0,
    "recent_antibiotics": "none",
    "recent_admission": False,
    "comorbidities": [],
}


@pytest.fixture
def patient_data() -> dict:
    """A fresh copy of the nominal patient mapping."""
    return dict(NOMINAL_PATIENT)


@pytest.fixture
def make_patient():
    """Factory building a PatientData from the nominal record plus overrides."""
    def _make(**overrides) -> PatientData:
        data = dict(NOMINAL_PATIENT)
        data.update(overrides)
        return PatientData.from_dict(data)
    return _make
