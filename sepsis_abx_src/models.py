"""Data models for SEPSIS-ABX empiric therapy decision support."""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class InvalidPatientDataError(ValueError):
    """A required clinical value is missing, malformed or non-finite."""

    def __init__(self, field_name: str, message: str):
        super().__init__(f"{field_name}: {message}")
        self.field = field_name
        self.message = message

    def to_dict(self) -> dict:
        return {
            "error": "invalid_patient_data",
            "field": self.field,
            "message": self.message,
        }


class Sex(Enum):
    """Patient sex as recorded on the intake form."""
    MALE = "male"
    FEMALE = "female"


class RecentAntibioticExposure(Enum):
    """Antibiotic exposure window before presentation."""
    NONE = "none"
    WITHIN_30_DAYS = "within_30days"
    WITHIN_90_DAYS = "within_90days"
    UNKNOWN = "unknown"  # Unrecognised category accepted in lenient mode

    @classmethod
    def parse(cls, value: Any, strict: bool = False) -> "RecentAntibioticExposure":
        """Map a raw category to a variant.

        Unrecognised values raise in strict mode. Otherwise they become
        UNKNOWN: no MDR exposure window is credited, but exposure is not
        ruled out either.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            raise InvalidPatientDataError("recent_antibiotics", "value is required")

        raw = str(value).strip().lower()
        for member in cls:
            if member is not cls.UNKNOWN and member.value == raw:
                return member

        if strict:
            known = [m.value for m in cls if m is not cls.UNKNOWN]
            raise InvalidPatientDataError(
                "recent_antibiotics",
                f"unknown category {value!r} (expected one of {known})",
            )
        logger.warning(
            f"Unrecognised recent_antibiotics value {value!r} - treating as unknown exposure"
        )
        return cls.UNKNOWN


class MortalityRisk(Enum):
    """Mortality risk tier, ordered from least to most severe."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _MORTALITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, MortalityRisk):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, MortalityRisk):
            return NotImplemented
        return self.rank <= other.rank


_MORTALITY_RANK = {
    MortalityRisk.LOW: 0,
    MortalityRisk.MODERATE: 1,
    MortalityRisk.HIGH: 2,
    MortalityRisk.CRITICAL: 3,
}


class Antibiotic(Enum):
    """Agents the recommender can select."""
    CEFTRIAXONE = "ceftriaxone"
    PIPERACILLIN_TAZOBACTAM = "piperacillin-tazobactam"
    MEROPENEM = "meropenem"
    AZITHROMYCIN = "azithromycin"
    LEVOFLOXACIN = "levofloxacin"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    Antibiotic.CEFTRIAXONE: "Ceftriaxone",
    Antibiotic.PIPERACILLIN_TAZOBACTAM: "Piperacillin-Tazobactam",
    Antibiotic.MEROPENEM: "Meropenem",
    Antibiotic.AZITHROMYCIN: "Azithromycin",
    Antibiotic.LEVOFLOXACIN: "Levofloxacin",
}


class RegimenBranch(Enum):
    """Primary regimen branch chosen by the recommender."""
    LOW_MDR = "low_mdr"            # Narrow beta-lactam +/- macrolide
    MODERATE_MDR = "moderate_mdr"  # Beta-lactam/beta-lactamase inhibitor + macrolide
    HIGH_MDR = "high_mdr"          # Carbapenem + fluoroquinolone (also critical illness)


# Web form field names -> record field names
FIELD_ALIASES: dict[str, str] = {
    "heartRate": "heart_rate",
    "systolicBP": "systolic_bp",
    "diastolicBP": "diastolic_bp",
    "o2Saturation": "o2_saturation",
    "respiratoryRate": "respiratory_rate",
    "sofaScore": "sofa_score",
    "qsofaScore": "qsofa_score",
    "recentAntibiotics": "recent_antibiotics",
    "recentAdmission": "recent_admission",
}

INTEGER_FIELDS = ("age", "sofa_score", "qsofa_score")

FLOAT_FIELDS = (
    "weight",
    "heart_rate",
    "systolic_bp",
    "diastolic_bp",
    "o2_saturation",
    "respiratory_rate",
    "temperature",
    "wbc",
    "crp",
    "procalcitonin",
    "lactate",
    "creatinine",
    "egfr",
)


def _coerce_number(field_name: str, value: Any) -> float:
    """Return value as a finite float or raise InvalidPatientDataError."""
    if value is None:
        raise InvalidPatientDataError(field_name, "value is required")
    # bool is an int subclass; a checkbox value is never a measurement
    if isinstance(value, bool):
        raise InvalidPatientDataError(field_name, f"expected a number, got {value!r}")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise InvalidPatientDataError(field_name, f"expected a number, got {value!r}") from None
    if not isinstance(value, (int, float)):
        raise InvalidPatientDataError(field_name, f"expected a number, got {type(value).__name__}")
    try:
        number = float(value)
    except OverflowError:
        raise InvalidPatientDataError(field_name, "value out of range") from None
    if not math.isfinite(number):
        raise InvalidPatientDataError(field_name, f"value must be finite, got {value!r}")
    return number


def _coerce_integer(field_name: str, value: Any) -> int:
    number = _coerce_number(field_name, value)
    if not number.is_integer():
        raise InvalidPatientDataError(field_name, f"expected a whole number, got {value!r}")
    return int(number)


def _coerce_bool(field_name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise InvalidPatientDataError(field_name, f"expected true or false, got {value!r}")


def _coerce_sex(value: Any) -> Sex:
    if isinstance(value, Sex):
        return value
    if value is None:
        raise InvalidPatientDataError("sex", "value is required")
    try:
        return Sex(str(value).strip().lower())
    except ValueError:
        raise InvalidPatientDataError("sex", f"expected 'male' or 'female', got {value!r}") from None


@dataclass(frozen=True)
class PatientData:
    """Snapshot of one patient's clinical data for a single evaluation."""
    # Demographics
    age: int
    weight: float  # kg
    sex: Sex

    # Vitals
    heart_rate: float  # bpm
    systolic_bp: float  # mmHg
    diastolic_bp: float  # mmHg
    o2_saturation: float  # %
    respiratory_rate: float  # breaths/min
    temperature: float  # Celsius

    # Labs
    wbc: float  # x10^9/L
    crp: float  # mg/L
    procalcitonin: float  # ng/mL
    lactate: float  # mmol/L
    creatinine: float  # umol/L
    egfr: float  # mL/min/1.73m2

    # Severity scores
    sofa_score: int
    qsofa_score: int

    # History
    recent_antibiotics: RecentAntibioticExposure
    recent_admission: bool
    comorbidities: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        for name in INTEGER_FIELDS + FLOAT_FIELDS:
            value = getattr(self, name)
            # Direct construction takes numbers only; strings are coerced in from_dict
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidPatientDataError(name, f"expected a number, got {value!r}")
            if name in INTEGER_FIELDS:
                object.__setattr__(self, name, _coerce_integer(name, value))
            else:
                _coerce_number(name, value)
        if not isinstance(self.sex, Sex):
            raise InvalidPatientDataError("sex", f"expected Sex, got {self.sex!r}")
        if not isinstance(self.recent_antibiotics, RecentAntibioticExposure):
            raise InvalidPatientDataError(
                "recent_antibiotics",
                f"expected RecentAntibioticExposure, got {self.recent_antibiotics!r}",
            )
        if not isinstance(self.recent_admission, bool):
            raise InvalidPatientDataError(
                "recent_admission", f"expected true or false, got {self.recent_admission!r}"
            )
        if not isinstance(self.comorbidities, frozenset):
            object.__setattr__(self, "comorbidities", frozenset(self.comorbidities))

    @classmethod
    def from_dict(cls, data: dict, strict_enums: bool = False) -> "PatientData":
        """Build a validated record from a plain mapping (JSON body, form, file).

        Accepts snake_case keys and the camelCase names used by the web form.
        """
        if not isinstance(data, dict):
            raise InvalidPatientDataError("patient", "expected a JSON object")

        normalized: dict[str, Any] = {}
        for key, value in data.items():
            name = FIELD_ALIASES.get(key, key)
            if name in normalized:
                raise InvalidPatientDataError(
                    name, f"given more than once (as {name!r} and its camelCase alias)"
                )
            normalized[name] = value

        values: dict[str, Any] = {}
        for name in INTEGER_FIELDS:
            values[name] = _coerce_integer(name, normalized.get(name))
        for name in FLOAT_FIELDS:
            values[name] = _coerce_number(name, normalized.get(name))

        values["sex"] = _coerce_sex(normalized.get("sex"))
        values["recent_antibiotics"] = RecentAntibioticExposure.parse(
            normalized.get("recent_antibiotics"), strict=strict_enums
        )
        if "recent_admission" not in normalized:
            raise InvalidPatientDataError("recent_admission", "value is required")
        values["recent_admission"] = _coerce_bool("recent_admission", normalized["recent_admission"])

        comorbidities = normalized.get("comorbidities") or []
        if isinstance(comorbidities, str) or not hasattr(comorbidities, "__iter__"):
            raise InvalidPatientDataError("comorbidities", "expected a list of strings")
        values["comorbidities"] = frozenset(
            str(tag).strip() for tag in comorbidities if str(tag).strip()
        )

        return cls(**values)

    def to_dict(self) -> dict:
        return {
            "age": self.age,
            "weight": self.weight,
            "sex": self.sex.value,
            "heart_rate": self.heart_rate,
            "systolic_bp": self.systolic_bp,
            "diastolic_bp": self.diastolic_bp,
            "o2_saturation": self.o2_saturation,
            "respiratory_rate": self.respiratory_rate,
            "temperature": self.temperature,
            "wbc": self.wbc,
            "crp": self.crp,
            "procalcitonin": self.procalcitonin,
            "lactate": self.lactate,
            "creatinine": self.creatinine,
            "egfr": self.egfr,
            "sofa_score": self.sofa_score,
            "qsofa_score": self.qsofa_score,
            "recent_antibiotics": self.recent_antibiotics.value,
            "recent_admission": self.recent_admission,
            "comorbidities": sorted(self.comorbidities),
        }


@dataclass
class RiskAssessment:
    """Output of the risk assessor; input to the therapy recommender."""
    mortality_risk: MortalityRisk
    mdr_probability: int  # percent, 0-80
    typical_pathogen_probability: int  # percent, 30-90
    atypical_pathogen_probability: int  # percent, 10-50
    severity_level: str

    def to_dict(self) -> dict:
        return {
            "mortality_risk": self.mortality_risk.value,
            "mdr_probability": self.mdr_probability,
            "typical_pathogen_probability": self.typical_pathogen_probability,
            "atypical_pathogen_probability": self.atypical_pathogen_probability,
            "severity_level": self.severity_level,
        }


@dataclass(frozen=True)
class SecondaryAgent:
    """Companion agent; its three fields are always set together."""
    antibiotic: Antibiotic
    dose: str
    frequency: str


@dataclass
class TherapyRecommendation:
    """Concrete empiric therapy plan."""
    primary_antibiotic: Antibiotic
    dose: str
    frequency: str
    infusion_duration: str
    branch: RegimenBranch
    reasoning: str
    duration_of_therapy: str
    route: str = "IV"
    secondary: Optional[SecondaryAgent] = None
    renal_adjustment: str = "None"
    stewardship_notes: list[str] = field(default_factory=list)
    red_flags: list[str] = field(default_factory=list)

    @property
    def secondary_antibiotic(self) -> Optional[str]:
        return self.secondary.antibiotic.display_name if self.secondary else None

    @property
    def secondary_dose(self) -> Optional[str]:
        return self.secondary.dose if self.secondary else None

    @property
    def secondary_frequency(self) -> Optional[str]:
        return self.secondary.frequency if self.secondary else None

    def to_dict(self) -> dict:
        result = {
            "primary_antibiotic": self.primary_antibiotic.display_name,
            "dose": self.dose,
            "frequency": self.frequency,
            "infusion_duration": self.infusion_duration,
            "route": self.route,
        }
        if self.secondary is not None:
            result["secondary_antibiotic"] = self.secondary_antibiotic
            result["secondary_dose"] = self.secondary_dose
            result["secondary_frequency"] = self.secondary_frequency
        result.update({
            "renal_adjustment": self.renal_adjustment,
            "reasoning": self.reasoning,
            "stewardship_notes": list(self.stewardship_notes),
            "red_flags": list(self.red_flags),
            "duration_of_therapy": self.duration_of_therapy,
            "branch": self.branch.value,
        })
        return result


@dataclass
class SepsisEvaluation:
    """A patient record with its risk assessment and therapy plan."""
    patient: PatientData
    risk_assessment: RiskAssessment
    therapy_recommendation: TherapyRecommendation

    def to_dict(self) -> dict:
        return {
            "patient": self.patient.to_dict(),
            "risk_assessment": self.risk_assessment.to_dict(),
            "therapy_recommendation": self.therapy_recommendation.to_dict(),
        }
