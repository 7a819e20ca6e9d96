"""Console report and JSON export for sepsis evaluations."""

import json

from .models import SepsisEvaluation

RULE = "=" * 70


def format_report(evaluation: SepsisEvaluation) -> str:
    """Render an evaluation as a plain-text report for print-out."""
    patient = evaluation.patient
    risk = evaluation.risk_assessment
    rec = evaluation.therapy_recommendation

    lines = [
        RULE,
        "SEPSIS-ABX EMPIRIC THERAPY RECOMMENDATION",
        RULE,
        f"  Patient:      {patient.age} y, {patient.sex.value}, {patient.weight:g} kg",
        f"  SOFA/qSOFA:   {patient.sofa_score} / {patient.qsofa_score}",
        f"  Lactate:      {patient.lactate:g} mmol/L    eGFR: {patient.egfr:g}",
        "",
        "RISK STRATIFICATION",
        f"  Mortality:    {risk.mortality_risk.value.upper()}",
        f"  MDR:          {risk.mdr_probability}%",
        f"  Typical:      {risk.typical_pathogen_probability}%",
        f"  Atypical:     {risk.atypical_pathogen_probability}%",
        f"  Severity:     {risk.severity_level}",
        "",
        "THERAPY",
        f"  Primary:      {rec.primary_antibiotic.display_name} {rec.dose} {rec.route}, "
        f"{rec.frequency} (infuse over {rec.infusion_duration})",
    ]
    if rec.secondary is not None:
        lines.append(
            f"  Secondary:    {rec.secondary_antibiotic} {rec.secondary_dose}, "
            f"{rec.secondary_frequency}"
        )
    lines.extend([
        f"  Renal:        {rec.renal_adjustment}",
        f"  Duration:     {rec.duration_of_therapy}",
        "",
        "REASONING",
        f"  {rec.reasoning}",
    ])
    if rec.stewardship_notes:
        lines.append("")
        lines.append("STEWARDSHIP")
        lines.extend(f"  - {note}" for note in rec.stewardship_notes)
    if rec.red_flags:
        lines.append("")
        lines.append("RED FLAGS")
        lines.extend(f"  ! {flag}" for flag in rec.red_flags)
    lines.append(RULE)
    return "\n".join(lines)


def export_json(evaluation: SepsisEvaluation, indent: int = 2) -> str:
    """Serialize an evaluation for export to another system."""
    return json.dumps(evaluation.to_dict(), indent=indent, ensure_ascii=False)
