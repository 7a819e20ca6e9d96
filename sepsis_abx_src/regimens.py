"""Empiric regimen templates, dosing tables and renal adjustments."""

from dataclasses import dataclass
from typing import Callable, Optional

from .models import Antibiotic, PatientData, RegimenBranch, SecondaryAgent


# Branch selection thresholds (MDR probability, percent)
LOW_MDR_CEILING = 20
MODERATE_MDR_CEILING = 40

# SOFA score at or above which the higher dose tier is used
HIGH_DOSE_SOFA_THRESHOLD = 6

# Weight (kg) above which dosing must be verified
OBESITY_WEIGHT_KG = 100

# Atypical probability (percent) above which macrolide cover is added
ATYPICAL_COVERAGE_THRESHOLD = 20

# eGFR below which the severe renal sub-case applies
SEVERE_RENAL_SUBCASE_EGFR = 20

DEFAULT_DURATION_OF_THERAPY = (
    "5-7 days, reassess based on clinical response and culture results"
)


# =============================================================================
# Dose Rules
# =============================================================================

@dataclass(frozen=True)
class SofaDoseTable:
    """Two-tier dose keyed on SOFA score."""
    high_dose: str
    standard_dose: str
    sofa_threshold: int = HIGH_DOSE_SOFA_THRESHOLD

    def dose_for(self, patient: PatientData) -> str:
        if patient.sofa_score >= self.sofa_threshold:
            return self.high_dose
        return self.standard_dose


CEFTRIAXONE_DOSING = SofaDoseTable(high_dose="2 g", standard_dose="1-2 g")
MEROPENEM_DOSING = SofaDoseTable(high_dose="2 g", standard_dose="1 g")


def piperacillin_tazobactam_dose(patient: PatientData) -> str:
    """Piperacillin-tazobactam dose.

    Heavier or sicker patients are split out so a separate dose can be set
    for them; at present both paths use the same dose.
    """
    if patient.weight > OBESITY_WEIGHT_KG or patient.sofa_score >= HIGH_DOSE_SOFA_THRESHOLD:
        return "4.5 g"
    return "4.5 g"


# =============================================================================
# Regimen Templates
# =============================================================================

AZITHROMYCIN_COVER = SecondaryAgent(Antibiotic.AZITHROMYCIN, "500 mg", "Once daily")
LEVOFLOXACIN_COVER = SecondaryAgent(Antibiotic.LEVOFLOXACIN, "750 mg", "Once daily")


@dataclass(frozen=True)
class RegimenTemplate:
    """Fixed content of one primary regimen branch."""
    branch: RegimenBranch
    primary: Antibiotic
    dose_rule: Callable[[PatientData], str]
    frequency: str
    infusion_duration: str
    reasoning: str
    stewardship_notes: tuple[str, ...]
    secondary: Optional[SecondaryAgent] = None
    red_flags: tuple[str, ...] = ()
    # Low-MDR only: secondary added when atypical risk is high
    atypical_secondary: Optional[SecondaryAgent] = None
    atypical_reasoning: Optional[str] = None


LOW_MDR_REGIMEN = RegimenTemplate(
    branch=RegimenBranch.LOW_MDR,
    primary=Antibiotic.CEFTRIAXONE,
    dose_rule=CEFTRIAXONE_DOSING.dose_for,
    frequency="Once daily",
    infusion_duration="30 minutes",
    reasoning=(
        "High probability of typical pneumococcal pneumonia with low atypical risk. "
        "Ceftriaxone provides excellent coverage for S. pneumoniae and H. influenzae. "
        "Low MDR risk supports β-lactam monotherapy, consistent with stewardship principles."
    ),
    atypical_secondary=AZITHROMYCIN_COVER,
    atypical_reasoning=(
        "High probability of typical pneumococcal pneumonia with moderate atypical risk. "
        "Ceftriaxone provides excellent coverage for S. pneumoniae and H. influenzae. "
        "Azithromycin added for atypical coverage (Legionella, Mycoplasma). "
        "Low MDR risk supports narrower spectrum therapy."
    ),
    stewardship_notes=(
        "Low MDR risk - avoiding carbapenem preserves this class for resistant organisms",
        "Narrow-spectrum β-lactam appropriate based on patient profile",
        "Plan to de-escalate if cultures negative at 48-72 hours",
    ),
)

MODERATE_MDR_REGIMEN = RegimenTemplate(
    branch=RegimenBranch.MODERATE_MDR,
    primary=Antibiotic.PIPERACILLIN_TAZOBACTAM,
    dose_rule=piperacillin_tazobactam_dose,
    frequency="Every 6 hours",
    infusion_duration="4 hours (extended infusion)",
    secondary=AZITHROMYCIN_COVER,
    reasoning=(
        "Moderate MDR risk with typical pneumonia presentation. "
        "Piperacillin-tazobactam provides broader gram-negative coverage including ESBL risk. "
        "Extended infusion optimizes time-dependent killing. Azithromycin for atypical coverage."
    ),
    stewardship_notes=(
        "Extended infusion optimizes β-lactam pharmacodynamics",
        "Reassess at 48-72 hours for possible de-escalation based on cultures",
        "Monitor for Clostridioides difficile given broader spectrum",
    ),
)

HIGH_MDR_REGIMEN = RegimenTemplate(
    branch=RegimenBranch.HIGH_MDR,
    primary=Antibiotic.MEROPENEM,
    dose_rule=MEROPENEM_DOSING.dose_for,
    frequency="Every 8 hours",
    infusion_duration="3 hours (extended infusion)",
    secondary=LEVOFLOXACIN_COVER,
    reasoning=(
        "High MDR risk and/or severe sepsis/septic shock. "
        "Meropenem provides broad coverage including ESBL-producing organisms. "
        "Levofloxacin adds atypical and additional gram-negative coverage. "
        "Aggressive empiric therapy justified by severity and MDR risk factors."
    ),
    stewardship_notes=(
        "Carbapenem use justified by high MDR risk and clinical severity",
        "Critical to obtain quality cultures before administration",
        "Plan early de-escalation at 48-72 hours based on culture data",
    ),
    red_flags=(
        "High MDR risk - ensure blood and respiratory cultures obtained",
        "Consider infectious disease consultation for complex case",
    ),
)

REGIMENS: dict[RegimenBranch, RegimenTemplate] = {
    RegimenBranch.LOW_MDR: LOW_MDR_REGIMEN,
    RegimenBranch.MODERATE_MDR: MODERATE_MDR_REGIMEN,
    RegimenBranch.HIGH_MDR: HIGH_MDR_REGIMEN,
}


# =============================================================================
# Renal Adjustment
# =============================================================================

MILD_RENAL_NOTE = "Mild renal impairment - monitor creatinine, may require dose adjustment"
GENERIC_RENAL_NOTE = "Consult pharmacist for renal dosing adjustment"


def _ceftriaxone_renal(egfr: float) -> str:
    return "Ceftriaxone: No dose adjustment needed for renal impairment (biliary excretion)"


def _piperacillin_tazobactam_renal(egfr: float) -> str:
    if egfr < SEVERE_RENAL_SUBCASE_EGFR:
        return "Severe renal impairment: Reduce to 2.25 g every 6-8 hours, consult nephrology/ID"
    return "Moderate renal impairment: Consider 3.375 g every 6 hours or consult pharmacist"


def _meropenem_renal(egfr: float) -> str:
    if egfr < SEVERE_RENAL_SUBCASE_EGFR:
        return "Severe renal impairment: Reduce to 500 mg every 12-24 hours, consult nephrology/ID"
    return "Moderate renal impairment: Reduce to 500 mg-1 g every 12 hours"


RENAL_ADJUSTMENTS: dict[Antibiotic, Callable[[float], str]] = {
    Antibiotic.CEFTRIAXONE: _ceftriaxone_renal,
    Antibiotic.PIPERACILLIN_TAZOBACTAM: _piperacillin_tazobactam_renal,
    Antibiotic.MEROPENEM: _meropenem_renal,
}


def renal_adjustment_for(antibiotic: Antibiotic, egfr: float) -> str:
    """Renal dosing guidance for an agent when eGFR < 30.

    Agents without a specific rule get a consult-pharmacist note.
    """
    rule = RENAL_ADJUSTMENTS.get(antibiotic)
    if rule is None:
        return GENERIC_RENAL_NOTE
    return rule(egfr)


# =============================================================================
# Additive Red Flags
# =============================================================================

RED_FLAG_RENAL = "Significant renal impairment - verify dose with pharmacist"
RED_FLAG_IMMEDIATE_ADMINISTRATION = "High mortality risk - ensure immediate administration (<1 hour)"
RED_FLAG_LOADING_DOSE = "Consider loading dose for optimal early exposure"
RED_FLAG_OBESITY = "Obesity - verify weight-based dosing with pharmacist"
