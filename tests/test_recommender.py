"""Unit tests for the SEPSIS-ABX therapy recommender.

Branches:
- Low MDR (MDR < 20%, not critical): ceftriaxone +/- azithromycin
- Moderate MDR (20-39%): piperacillin-tazobactam + azithromycin
- High MDR / severe: meropenem + levofloxacin, with culture/ID red flags
"""

import json

import pytest

from sepsis_abx_src.criteria import SEVERITY_NARRATIVES
from sepsis_abx_src.models import (
    Antibiotic,
    MortalityRisk,
    RegimenBranch,
    RiskAssessment,
)
from sepsis_abx_src.recommender import TherapyRecommender, recommend_therapy, select_branch
from sepsis_abx_src.regimens import (
    DEFAULT_DURATION_OF_THERAPY,
    GENERIC_RENAL_NOTE,
    MILD_RENAL_NOTE,
    RED_FLAG_IMMEDIATE_ADMINISTRATION,
    RED_FLAG_LOADING_DOSE,
    RED_FLAG_OBESITY,
    RED_FLAG_RENAL,
    renal_adjustment_for,
)
from sepsis_abx_src.risk_assessor import assess_risk

SECONDARY_KEYS = {"secondary_antibiotic", "secondary_dose", "secondary_frequency"}


def _assessment(
    mortality_risk: MortalityRisk = MortalityRisk.LOW,
    mdr: int = 10,
    atypical: int = 25,
    typical: int = 70,
) -> RiskAssessment:
    return RiskAssessment(
        mortality_risk=mortality_risk,
        mdr_probability=mdr,
        typical_pathogen_probability=typical,
        atypical_pathogen_probability=atypical,
        severity_level=SEVERITY_NARRATIVES[mortality_risk],
    )


def _recommend(patient):
    return recommend_therapy(patient, assess_risk(patient))


class TestBranchSelection:
    """Test primary regimen branch selection."""

    @pytest.mark.parametrize("mdr,risk,expected", [
        (10, MortalityRisk.LOW, RegimenBranch.LOW_MDR),
        (19, MortalityRisk.HIGH, RegimenBranch.LOW_MDR),
        (19, MortalityRisk.CRITICAL, RegimenBranch.HIGH_MDR),
        (20, MortalityRisk.LOW, RegimenBranch.MODERATE_MDR),
        (39, MortalityRisk.MODERATE, RegimenBranch.MODERATE_MDR),
        (25, MortalityRisk.CRITICAL, RegimenBranch.MODERATE_MDR),
        (40, MortalityRisk.LOW, RegimenBranch.HIGH_MDR),
        (80, MortalityRisk.CRITICAL, RegimenBranch.HIGH_MDR),
    ])
    def test_branch_boundaries(self, mdr, risk, expected):
        assert select_branch(_assessment(risk, mdr)) is expected

    def test_exclusive_and_exhaustive(self):
        """Test exactly one branch applies to every MDR x tier pair."""
        for risk in MortalityRisk:
            for mdr in range(0, 81):
                low = mdr < 20 and risk is not MortalityRisk.CRITICAL
                moderate = 20 <= mdr < 40
                high = not low and not moderate
                assert [low, moderate, high].count(True) == 1

                branch = select_branch(_assessment(risk, mdr))
                expected = (
                    RegimenBranch.LOW_MDR if low
                    else RegimenBranch.MODERATE_MDR if moderate
                    else RegimenBranch.HIGH_MDR
                )
                assert branch is expected


class TestLowMDRBranch:
    """Test the narrow-spectrum branch."""

    def test_ceftriaxone_with_atypical_cover(self, make_patient):
        """Test nominal patient gets ceftriaxone plus azithromycin (atypical 25% > 20%)."""
        rec = _recommend(make_patient())

        assert rec.branch is RegimenBranch.LOW_MDR
        assert rec.primary_antibiotic is Antibiotic.CEFTRIAXONE
        assert rec.dose == "1-2 g"
        assert rec.frequency == "Once daily"
        assert rec.infusion_duration == "30 minutes"
        assert rec.route == "IV"
        assert rec.secondary_antibiotic == "Azithromycin"
        assert rec.secondary_dose == "500 mg"
        assert rec.secondary_frequency == "Once daily"
        assert "Azithromycin added for atypical coverage" in rec.reasoning
        assert rec.red_flags == []

    def test_monotherapy_when_atypical_low(self, make_patient):
        """Test atypical probability <= 20% omits the macrolide."""
        rec = recommend_therapy(make_patient(), _assessment(atypical=20))

        assert rec.primary_antibiotic is Antibiotic.CEFTRIAXONE
        assert rec.secondary is None
        assert "β-lactam monotherapy" in rec.reasoning
        assert not SECONDARY_KEYS & rec.to_dict().keys()

    def test_high_sofa_dose(self, make_patient):
        """Test SOFA >= 6 uses the 2 g dose (high risk, MDR still low)."""
        rec = _recommend(make_patient(sofa_score=6))
        assert rec.primary_antibiotic is Antibiotic.CEFTRIAXONE
        assert rec.dose == "2 g"

    def test_stewardship_notes(self, make_patient):
        rec = _recommend(make_patient())
        assert len(rec.stewardship_notes) == 3
        assert rec.stewardship_notes[0].startswith("Low MDR risk")
        assert "de-escalate" in rec.stewardship_notes[2]


class TestModerateMDRBranch:
    """Test the beta-lactam/beta-lactamase inhibitor branch."""

    def test_piperacillin_tazobactam(self, make_patient):
        rec = _recommend(make_patient(recent_antibiotics="within_90days"))

        assert rec.branch is RegimenBranch.MODERATE_MDR
        assert rec.primary_antibiotic is Antibiotic.PIPERACILLIN_TAZOBACTAM
        assert rec.dose == "4.5 g"
        assert rec.frequency == "Every 6 hours"
        assert rec.infusion_duration == "4 hours (extended infusion)"
        assert rec.secondary_antibiotic == "Azithromycin"
        assert "Moderate MDR risk" in rec.reasoning
        assert any("Clostridioides difficile" in n for n in rec.stewardship_notes)
        assert rec.red_flags == []

    @pytest.mark.parametrize("weight,sofa", [(70, 0), (130, 0), (70, 8), (130, 8)])
    def test_dose_is_constant(self, make_patient, weight, sofa):
        """Test weight and SOFA do not change the dose."""
        patient = make_patient(weight=weight, sofa_score=sofa)
        rec = recommend_therapy(patient, _assessment(MortalityRisk.MODERATE, mdr=30))
        assert rec.dose == "4.5 g"


class TestHighMDRBranch:
    """Test the carbapenem branch."""

    def test_meropenem_for_high_mdr(self, make_patient):
        patient = make_patient(recent_antibiotics="within_30days", recent_admission=True)
        rec = _recommend(patient)

        assert rec.branch is RegimenBranch.HIGH_MDR
        assert rec.primary_antibiotic is Antibiotic.MEROPENEM
        assert rec.dose == "1 g"
        assert rec.frequency == "Every 8 hours"
        assert rec.infusion_duration == "3 hours (extended infusion)"
        assert rec.secondary_antibiotic == "Levofloxacin"
        assert rec.secondary_dose == "750 mg"
        assert rec.red_flags == [
            "High MDR risk - ensure blood and respiratory cultures obtained",
            "Consider infectious disease consultation for complex case",
        ]

    def test_high_sofa_dose(self, make_patient):
        rec = recommend_therapy(make_patient(sofa_score=7), _assessment(MortalityRisk.HIGH, mdr=50))
        assert rec.dose == "2 g"


class TestRenalAdjustment:
    """Test renal adjustments and the renal red flag."""

    @pytest.mark.parametrize("egfr,flagged", [
        (10, True), (19.9, True), (20, True), (29.9, True),
        (30, False), (59.9, False), (60, False), (90, False),
    ])
    def test_red_flag_iff_egfr_below_30(self, make_patient, egfr, flagged):
        rec = _recommend(make_patient(egfr=egfr))
        assert (RED_FLAG_RENAL in rec.red_flags) is flagged

    def test_no_adjustment_normal_function(self, make_patient):
        assert _recommend(make_patient(egfr=90)).renal_adjustment == "None"

    def test_mild_impairment(self, make_patient):
        rec = _recommend(make_patient(egfr=45))
        assert rec.renal_adjustment == MILD_RENAL_NOTE
        assert rec.red_flags == []

    def test_ceftriaxone(self, make_patient):
        rec = recommend_therapy(make_patient(egfr=25), _assessment(mdr=10))
        assert rec.renal_adjustment.startswith("Ceftriaxone: No dose adjustment")

    def test_piperacillin_tazobactam_moderate(self, make_patient):
        rec = _recommend(make_patient(egfr=25, recent_antibiotics="within_90days"))
        assert rec.primary_antibiotic is Antibiotic.PIPERACILLIN_TAZOBACTAM
        assert rec.renal_adjustment.startswith("Moderate renal impairment: Consider 3.375 g")

    def test_piperacillin_tazobactam_severe(self, make_patient):
        rec = _recommend(make_patient(egfr=15, recent_antibiotics="within_90days"))
        assert rec.renal_adjustment.startswith("Severe renal impairment: Reduce to 2.25 g")

    def test_meropenem_severe(self, make_patient):
        rec = recommend_therapy(make_patient(egfr=12), _assessment(mdr=60))
        assert rec.renal_adjustment.startswith("Severe renal impairment: Reduce to 500 mg every 12-24 hours")

    def test_unknown_agent_fallback(self):
        """Test agents without a renal rule get the pharmacist note."""
        assert renal_adjustment_for(Antibiotic.AZITHROMYCIN, 10) == GENERIC_RENAL_NOTE
        assert renal_adjustment_for(Antibiotic.LEVOFLOXACIN, 25) == GENERIC_RENAL_NOTE


class TestAdditiveRedFlags:
    """Test red flags appended after the branch."""

    @pytest.mark.parametrize("risk", [MortalityRisk.HIGH, MortalityRisk.CRITICAL])
    def test_severity_flags(self, make_patient, risk):
        rec = recommend_therapy(make_patient(), _assessment(risk, mdr=25))
        assert rec.red_flags == [RED_FLAG_IMMEDIATE_ADMINISTRATION, RED_FLAG_LOADING_DOSE]

    @pytest.mark.parametrize("risk", [MortalityRisk.LOW, MortalityRisk.MODERATE])
    def test_no_severity_flags(self, make_patient, risk):
        rec = recommend_therapy(make_patient(), _assessment(risk, mdr=25))
        assert rec.red_flags == []

    def test_weight_boundary(self, make_patient):
        assert RED_FLAG_OBESITY not in _recommend(make_patient(weight=100)).red_flags
        assert RED_FLAG_OBESITY in _recommend(make_patient(weight=100.5)).red_flags

    def test_flag_order_follows_check_order(self, make_patient):
        """Test branch flags, then renal, then severity, then weight."""
        patient = make_patient(egfr=25, weight=120, sofa_score=11)
        rec = recommend_therapy(patient, _assessment(MortalityRisk.CRITICAL, mdr=60))

        assert rec.red_flags == [
            "High MDR risk - ensure blood and respiratory cultures obtained",
            "Consider infectious disease consultation for complex case",
            RED_FLAG_RENAL,
            RED_FLAG_IMMEDIATE_ADMINISTRATION,
            RED_FLAG_LOADING_DOSE,
            RED_FLAG_OBESITY,
        ]


class TestScenarios:
    """End-to-end clinical scenarios."""

    def test_critical_forces_carbapenem(self, make_patient):
        """SOFA 11 with MDR 10% still gets meropenem + levofloxacin."""
        patient = make_patient(sofa_score=11, lactate=1.0, egfr=80)
        assessment = assess_risk(patient)
        rec = recommend_therapy(patient, assessment)

        assert assessment.mortality_risk is MortalityRisk.CRITICAL
        assert assessment.mdr_probability == 10
        assert rec.primary_antibiotic is Antibiotic.MEROPENEM
        assert rec.secondary_antibiotic == "Levofloxacin"
        assert rec.dose == "2 g"
        assert len(rec.red_flags) == 4
        assert rec.renal_adjustment == "None"

    def test_high_mdr_with_renal_impairment(self, make_patient):
        """Recent antibiotics, admission and eGFR 25 give MDR 65% and meropenem."""
        patient = make_patient(
            sofa_score=1,
            lactate=0.5,
            recent_antibiotics="within_30days",
            recent_admission=True,
            egfr=25,
            age=70,
            qsofa_score=0,
            procalcitonin=1.0,
        )
        assessment = assess_risk(patient)
        rec = recommend_therapy(patient, assessment)

        assert assessment.mortality_risk is MortalityRisk.LOW
        assert assessment.mdr_probability == 65
        assert rec.primary_antibiotic is Antibiotic.MEROPENEM
        assert rec.renal_adjustment == "Moderate renal impairment: Reduce to 500 mg-1 g every 12 hours"
        assert rec.red_flags[-1] == RED_FLAG_RENAL
        assert len(rec.red_flags) == 3

    def test_low_risk_ceftriaxone(self, make_patient):
        """Low-risk 60-year-old gets ceftriaxone 1-2 g."""
        patient = make_patient(sofa_score=0, egfr=90, age=60, qsofa_score=0, procalcitonin=1.0)
        assessment = assess_risk(patient)
        rec = recommend_therapy(patient, assessment)

        assert assessment.mortality_risk is MortalityRisk.LOW
        assert assessment.mdr_probability == 10
        assert assessment.atypical_pathogen_probability == 25
        assert rec.primary_antibiotic is Antibiotic.CEFTRIAXONE
        assert rec.dose == "1-2 g"

    def test_obese_low_risk(self, make_patient):
        """Weight 120 kg adds exactly one red flag to the low-MDR regimen."""
        rec = _recommend(make_patient(weight=120))
        assert rec.branch is RegimenBranch.LOW_MDR
        assert rec.red_flags == [RED_FLAG_OBESITY]


class TestRecommenderProperties:
    """Test structural properties of recommendations."""

    def test_duration_is_default(self, make_patient):
        for overrides in ({}, {"sofa_score": 12}, {"recent_antibiotics": "within_90days"}):
            assert _recommend(make_patient(**overrides)).duration_of_therapy == DEFAULT_DURATION_OF_THERAPY

    def test_secondary_all_or_nothing(self, make_patient):
        for atypical in (10, 20, 21, 50):
            for mdr in (5, 25, 60):
                rec = recommend_therapy(make_patient(), _assessment(mdr=mdr, atypical=atypical))
                present = SECONDARY_KEYS & rec.to_dict().keys()
                assert present in (set(), SECONDARY_KEYS)

    def test_idempotent(self, make_patient):
        """Test identical input yields identical serialized output."""
        patient = make_patient(sofa_score=11, egfr=25, weight=130)
        first = recommend_therapy(patient, assess_risk(patient))
        second = recommend_therapy(patient, assess_risk(patient))

        assert json.dumps(first.to_dict()) == json.dumps(second.to_dict())

    def test_templates_not_mutated(self, make_patient):
        """Test appending flags to one result leaves the next untouched."""
        patient = make_patient(sofa_score=11)
        first = _recommend(patient)
        first.red_flags.append("extra")
        first.stewardship_notes.clear()

        second = _recommend(patient)
        assert "extra" not in second.red_flags
        assert len(second.stewardship_notes) == 3

    def test_custom_recommender_instance(self, make_patient):
        patient = make_patient()
        assert TherapyRecommender().recommend(patient, assess_risk(patient)).to_dict() == \
            _recommend(patient).to_dict()
