"""Therapy Recommender - empiric antibiotic selection from a risk assessment.

Primary regimen branches (mutually exclusive, checked in order):
1. Low MDR:      MDR < 20% and mortality risk not critical
2. Moderate MDR: 20% <= MDR < 40%
3. High MDR:     everything else (MDR >= 40%, or critical with MDR >= 20%)

Additive adjustments applied after the branch, independently:
- eGFR < 30:        agent-specific renal adjustment + pharmacist red flag
- 30 <= eGFR < 60:  mild impairment monitoring note
- high/critical:    immediate administration + loading dose red flags
- weight > 100 kg:  weight-based dosing red flag
"""

import logging

from .criteria import MILD_RENAL_EGFR, SEVERE_RENAL_EGFR
from .models import (
    MortalityRisk,
    PatientData,
    RegimenBranch,
    RiskAssessment,
    TherapyRecommendation,
)
from .regimens import (
    ATYPICAL_COVERAGE_THRESHOLD,
    DEFAULT_DURATION_OF_THERAPY,
    LOW_MDR_CEILING,
    MILD_RENAL_NOTE,
    MODERATE_MDR_CEILING,
    OBESITY_WEIGHT_KG,
    RED_FLAG_IMMEDIATE_ADMINISTRATION,
    RED_FLAG_LOADING_DOSE,
    RED_FLAG_OBESITY,
    RED_FLAG_RENAL,
    REGIMENS,
    RegimenTemplate,
    renal_adjustment_for,
)

logger = logging.getLogger(__name__)

URGENT_MORTALITY_TIERS = (MortalityRisk.HIGH, MortalityRisk.CRITICAL)


def select_branch(assessment: RiskAssessment) -> RegimenBranch:
    """Choose the primary regimen branch for a risk assessment."""
    mdr = assessment.mdr_probability
    if mdr < LOW_MDR_CEILING and assessment.mortality_risk is not MortalityRisk.CRITICAL:
        return RegimenBranch.LOW_MDR
    if LOW_MDR_CEILING <= mdr < MODERATE_MDR_CEILING:
        return RegimenBranch.MODERATE_MDR
    return RegimenBranch.HIGH_MDR


class TherapyRecommender:
    """Builds a TherapyRecommendation from patient data and its risk assessment.

    Never recomputes risk; the assessment is taken as given.
    """

    def __init__(self, regimens: dict[RegimenBranch, RegimenTemplate] = REGIMENS):
        self.regimens = regimens

    def recommend(
        self,
        patient: PatientData,
        assessment: RiskAssessment,
    ) -> TherapyRecommendation:
        branch = select_branch(assessment)
        recommendation = self._build_primary_regimen(
            self.regimens[branch], patient, assessment
        )
        logger.debug(
            f"Branch {branch.value}: {recommendation.primary_antibiotic.display_name} "
            f"{recommendation.dose} (secondary: {recommendation.secondary_antibiotic or 'none'})"
        )

        self._apply_renal_adjustment(recommendation, patient)
        self._apply_severity_flags(recommendation, assessment)
        self._apply_weight_flags(recommendation, patient)
        return recommendation

    def _build_primary_regimen(
        self,
        template: RegimenTemplate,
        patient: PatientData,
        assessment: RiskAssessment,
    ) -> TherapyRecommendation:
        secondary = template.secondary
        reasoning = template.reasoning
        if (
            template.atypical_secondary is not None
            and assessment.atypical_pathogen_probability > ATYPICAL_COVERAGE_THRESHOLD
        ):
            secondary = template.atypical_secondary
            reasoning = template.atypical_reasoning or reasoning

        return TherapyRecommendation(
            primary_antibiotic=template.primary,
            dose=template.dose_rule(patient),
            frequency=template.frequency,
            infusion_duration=template.infusion_duration,
            branch=template.branch,
            reasoning=reasoning,
            duration_of_therapy=DEFAULT_DURATION_OF_THERAPY,
            secondary=secondary,
            stewardship_notes=list(template.stewardship_notes),
            red_flags=list(template.red_flags),
        )

    def _apply_renal_adjustment(
        self,
        recommendation: TherapyRecommendation,
        patient: PatientData,
    ) -> None:
        if patient.egfr < SEVERE_RENAL_EGFR:
            recommendation.renal_adjustment = renal_adjustment_for(
                recommendation.primary_antibiotic, patient.egfr
            )
            recommendation.red_flags.append(RED_FLAG_RENAL)
        elif patient.egfr < MILD_RENAL_EGFR:
            recommendation.renal_adjustment = MILD_RENAL_NOTE

    def _apply_severity_flags(
        self,
        recommendation: TherapyRecommendation,
        assessment: RiskAssessment,
    ) -> None:
        if assessment.mortality_risk in URGENT_MORTALITY_TIERS:
            recommendation.red_flags.append(RED_FLAG_IMMEDIATE_ADMINISTRATION)
            recommendation.red_flags.append(RED_FLAG_LOADING_DOSE)

    def _apply_weight_flags(
        self,
        recommendation: TherapyRecommendation,
        patient: PatientData,
    ) -> None:
        if patient.weight > OBESITY_WEIGHT_KG:
            recommendation.red_flags.append(RED_FLAG_OBESITY)


_default_recommender = TherapyRecommender()


def recommend_therapy(patient: PatientData, assessment: RiskAssessment) -> TherapyRecommendation:
    """Recommend empiric therapy using the standard regimen templates."""
    return _default_recommender.recommend(patient, assessment)
