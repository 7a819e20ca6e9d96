"""SEPSIS-ABX Decision Support Module.

Empiric antibiotic decision support for pneumonia-induced sepsis in
patients aged 55 and over:

- Risk stratification (mortality tier, MDR, typical/atypical pathogens)
- Therapy recommendation (agent, dose, route, renal adjustment)
- Stewardship notes and red flags for the treating clinician
"""

__version__ = "1.0.0"

from .models import (
    Antibiotic,
    InvalidPatientDataError,
    MortalityRisk,
    PatientData,
    RecentAntibioticExposure,
    RegimenBranch,
    RiskAssessment,
    SecondaryAgent,
    SepsisEvaluation,
    Sex,
    TherapyRecommendation,
)
from .risk_assessor import RiskAssessor, assess_risk
from .recommender import TherapyRecommender, recommend_therapy, select_branch
from .evaluator import SepsisEvaluator, evaluate_patient

__all__ = [
    "Antibiotic",
    "InvalidPatientDataError",
    "MortalityRisk",
    "PatientData",
    "RecentAntibioticExposure",
    "RegimenBranch",
    "RiskAssessment",
    "SecondaryAgent",
    "SepsisEvaluation",
    "Sex",
    "TherapyRecommendation",
    "RiskAssessor",
    "assess_risk",
    "TherapyRecommender",
    "recommend_therapy",
    "select_branch",
    "SepsisEvaluator",
    "evaluate_patient",
]
