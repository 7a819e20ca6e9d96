"""Sepsis therapy evaluator.

Runs the two decision steps for one patient, strictly in sequence:
1. Risk Assessor      -> RiskAssessment
2. Therapy Recommender -> TherapyRecommendation

Each evaluation is independent; nothing is retained between calls.
"""

import logging
from typing import Optional, Union

from .config import config
from .models import PatientData, SepsisEvaluation
from .recommender import TherapyRecommender
from .risk_assessor import RiskAssessor

logger = logging.getLogger(__name__)


class SepsisEvaluator:
    """Evaluates a patient record end to end."""

    def __init__(
        self,
        assessor: Optional[RiskAssessor] = None,
        recommender: Optional[TherapyRecommender] = None,
        strict_enums: Optional[bool] = None,
    ):
        self.assessor = assessor or RiskAssessor()
        self.recommender = recommender or TherapyRecommender()
        self.strict_enums = config.STRICT_ENUMS if strict_enums is None else strict_enums

    def to_patient(self, data: Union[PatientData, dict]) -> PatientData:
        """Accept either a validated record or a raw mapping."""
        if isinstance(data, PatientData):
            return data
        return PatientData.from_dict(data, strict_enums=self.strict_enums)

    def evaluate(self, data: Union[PatientData, dict]) -> SepsisEvaluation:
        """
        Assess risk and recommend therapy for one patient.

        Args:
            data: PatientData, or a mapping validated via PatientData.from_dict

        Returns:
            SepsisEvaluation with the patient, risk assessment and recommendation

        Raises:
            InvalidPatientDataError: if a required value is missing or invalid
        """
        patient = self.to_patient(data)
        assessment = self.assessor.assess(patient)
        recommendation = self.recommender.recommend(patient, assessment)

        logger.info(
            f"Evaluation complete: {assessment.mortality_risk.value} mortality risk, "
            f"MDR {assessment.mdr_probability}% -> "
            f"{recommendation.primary_antibiotic.display_name}"
            + (f" + {recommendation.secondary_antibiotic}" if recommendation.secondary else "")
            + f" ({len(recommendation.red_flags)} red flag(s))"
        )
        return SepsisEvaluation(
            patient=patient,
            risk_assessment=assessment,
            therapy_recommendation=recommendation,
        )


def evaluate_patient(
    data: Union[PatientData, dict],
    strict_enums: Optional[bool] = None,
) -> SepsisEvaluation:
    """Convenience wrapper around SepsisEvaluator().evaluate()."""
    return SepsisEvaluator(strict_enums=strict_enums).evaluate(data)
