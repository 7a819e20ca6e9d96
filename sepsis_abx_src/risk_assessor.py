"""Risk Assessor - deterministic risk stratification for pneumonia-induced sepsis.

Maps a PatientData snapshot to a RiskAssessment:
1. Mortality risk tier from the SOFA / lactate ladder
2. Probability of multidrug-resistant organisms (MDR)
3. Probability of typical pathogens (S. pneumoniae, H. influenzae)
4. Probability of atypical pathogens (Legionella, Mycoplasma)
5. Severity narrative for the mortality tier

The four outputs are computed independently from the same input.
"""

import logging

from .criteria import (
    ATYPICAL_ADJUSTMENTS,
    ATYPICAL_BASE_SCORE,
    ATYPICAL_MAX,
    ATYPICAL_MIN,
    DEFAULT_MORTALITY_RISK,
    MDR_BASE_SCORE,
    MDR_MAX,
    MDR_MIN,
    MDR_RISK_FACTORS,
    MORTALITY_LADDER,
    SEVERITY_NARRATIVES,
    TYPICAL_ADJUSTMENTS,
    TYPICAL_BASE_SCORE,
    TYPICAL_MAX,
    TYPICAL_MIN,
    MortalityThreshold,
    apply_adjustments,
    clamp,
)
from .models import MortalityRisk, PatientData, RiskAssessment

logger = logging.getLogger(__name__)


class RiskAssessor:
    """Stratifies mortality, MDR and pathogen risk.

    Stateless; one instance can serve any number of evaluations.
    """

    def __init__(self, ladder: tuple[MortalityThreshold, ...] = MORTALITY_LADDER):
        self.ladder = ladder

    def assess(self, patient: PatientData) -> RiskAssessment:
        """Produce a fresh RiskAssessment for one patient."""
        mortality_risk = self.mortality_risk(patient)
        assessment = RiskAssessment(
            mortality_risk=mortality_risk,
            mdr_probability=self.mdr_probability(patient),
            typical_pathogen_probability=self.typical_pathogen_probability(patient),
            atypical_pathogen_probability=self.atypical_pathogen_probability(patient),
            severity_level=SEVERITY_NARRATIVES[mortality_risk],
        )
        logger.debug(
            f"Risk assessed: mortality={assessment.mortality_risk.value} "
            f"mdr={assessment.mdr_probability}% "
            f"typical={assessment.typical_pathogen_probability}% "
            f"atypical={assessment.atypical_pathogen_probability}%"
        )
        return assessment

    def mortality_risk(self, patient: PatientData) -> MortalityRisk:
        for threshold in self.ladder:
            if threshold.matches(patient):
                return threshold.tier
        return DEFAULT_MORTALITY_RISK

    def mdr_probability(self, patient: PatientData) -> int:
        score, fired = apply_adjustments(MDR_BASE_SCORE, MDR_RISK_FACTORS, patient)
        if fired:
            logger.debug(f"MDR risk factors: {', '.join(fired)} (raw score {score})")
        return clamp(score, MDR_MIN, MDR_MAX)

    def typical_pathogen_probability(self, patient: PatientData) -> int:
        score, _ = apply_adjustments(TYPICAL_BASE_SCORE, TYPICAL_ADJUSTMENTS, patient)
        return clamp(score, TYPICAL_MIN, TYPICAL_MAX)

    def atypical_pathogen_probability(self, patient: PatientData) -> int:
        score, _ = apply_adjustments(ATYPICAL_BASE_SCORE, ATYPICAL_ADJUSTMENTS, patient)
        return clamp(score, ATYPICAL_MIN, ATYPICAL_MAX)


_default_assessor = RiskAssessor()


def assess_risk(patient: PatientData) -> RiskAssessment:
    """Stratify a patient's risk with the default ladder and score tables."""
    return _default_assessor.assess(patient)
