"""Risk stratification criteria and rule tables.

Thresholds and scores used by the risk assessor. Rules are kept as ordered
tables so a tier or risk factor can be added without touching the
assessor's control flow.

Mortality ladder (first match wins, most severe first):
    critical  SOFA >= 10 or lactate >= 4.0
    high      SOFA >= 6  or lactate >= 2.5
    moderate  SOFA >= 2  or lactate >= 1.5
    low       otherwise

Pathogen/MDR probabilities are additive scores clamped to fixed bounds.
"""

from dataclasses import dataclass
from typing import Callable

from .models import MortalityRisk, PatientData, RecentAntibioticExposure


# =============================================================================
# Mortality Risk Ladder
# =============================================================================

@dataclass(frozen=True)
class MortalityThreshold:
    """One rung of the mortality ladder."""
    tier: MortalityRisk
    min_sofa: int
    min_lactate: float

    def matches(self, patient: PatientData) -> bool:
        return patient.sofa_score >= self.min_sofa or patient.lactate >= self.min_lactate


MORTALITY_LADDER: tuple[MortalityThreshold, ...] = (
    MortalityThreshold(MortalityRisk.CRITICAL, min_sofa=10, min_lactate=4.0),
    MortalityThreshold(MortalityRisk.HIGH, min_sofa=6, min_lactate=2.5),
    MortalityThreshold(MortalityRisk.MODERATE, min_sofa=2, min_lactate=1.5),
)

DEFAULT_MORTALITY_RISK = MortalityRisk.LOW


# =============================================================================
# Additive Score Rules
# =============================================================================

@dataclass(frozen=True)
class ScoreAdjustment:
    """A named condition and the points it contributes when it holds."""
    name: str
    applies: Callable[[PatientData], bool]
    points: int


# eGFR below which renal impairment is significant (MDR risk, renal dosing)
SEVERE_RENAL_EGFR = 30
# eGFR below which mild impairment is noted
MILD_RENAL_EGFR = 60

MDR_BASE_SCORE = 10
MDR_MIN = 0
MDR_MAX = 80

MDR_RISK_FACTORS: tuple[ScoreAdjustment, ...] = (
    ScoreAdjustment(
        "antibiotics_within_30_days",
        lambda p: p.recent_antibiotics is RecentAntibioticExposure.WITHIN_30_DAYS,
        25,
    ),
    ScoreAdjustment(
        "antibiotics_within_90_days",
        lambda p: p.recent_antibiotics is RecentAntibioticExposure.WITHIN_90_DAYS,
        15,
    ),
    ScoreAdjustment("recent_admission", lambda p: p.recent_admission, 20),
    ScoreAdjustment("egfr_below_30", lambda p: p.egfr < SEVERE_RENAL_EGFR, 10),
)

TYPICAL_BASE_SCORE = 70
TYPICAL_MIN = 30
TYPICAL_MAX = 90
TYPICAL_AGE_THRESHOLD = 65

TYPICAL_ADJUSTMENTS: tuple[ScoreAdjustment, ...] = (
    ScoreAdjustment("age_over_65", lambda p: p.age > TYPICAL_AGE_THRESHOLD, 10),
    # UNKNOWN counts as exposed here: exposure has not been ruled out
    ScoreAdjustment(
        "any_recent_antibiotics",
        lambda p: p.recent_antibiotics is not RecentAntibioticExposure.NONE,
        -15,
    ),
)

ATYPICAL_BASE_SCORE = 25
ATYPICAL_MIN = 10
ATYPICAL_MAX = 50
ATYPICAL_QSOFA_THRESHOLD = 2
ATYPICAL_PROCALCITONIN_THRESHOLD = 0.5  # ng/mL

ATYPICAL_ADJUSTMENTS: tuple[ScoreAdjustment, ...] = (
    ScoreAdjustment("qsofa_2_or_more", lambda p: p.qsofa_score >= ATYPICAL_QSOFA_THRESHOLD, 15),
    ScoreAdjustment(
        "low_procalcitonin",
        lambda p: p.procalcitonin < ATYPICAL_PROCALCITONIN_THRESHOLD,
        10,
    ),
)


# =============================================================================
# Severity Narratives
# =============================================================================

SEVERITY_NARRATIVES: dict[MortalityRisk, str] = {
    MortalityRisk.CRITICAL: (
        "Septic shock with multiple organ dysfunction. "
        "Immediate aggressive therapy and ICU management required."
    ),
    MortalityRisk.HIGH: (
        "Severe sepsis with organ dysfunction. "
        "Close monitoring and aggressive early therapy essential."
    ),
    MortalityRisk.MODERATE: (
        "Sepsis with moderate risk. "
        "Early appropriate therapy and monitoring recommended."
    ),
    MortalityRisk.LOW: (
        "Lower severity sepsis. "
        "Standard therapy with close monitoring for deterioration."
    ),
}


def clamp(value: int, floor: int, ceiling: int) -> int:
    """Apply the ceiling then the floor, so the floor wins on conflict."""
    return max(min(value, ceiling), floor)


def apply_adjustments(
    base: int,
    adjustments: tuple[ScoreAdjustment, ...],
    patient: PatientData,
) -> tuple[int, list[str]]:
    """Sum the points of every adjustment that applies.

    Returns:
        Tuple of (raw score, names of the adjustments that fired)
    """
    score = base
    fired = []
    for adjustment in adjustments:
        if adjustment.applies(patient):
            score += adjustment.points
            fired.append(adjustment.name)
    return score, fired
