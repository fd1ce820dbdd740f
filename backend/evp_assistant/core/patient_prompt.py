"""
Patient prompt composer - turns a patient profile into a clinical question.
"""

from typing import List, Optional

from ..models.patient import PatientProfile

# (attribute, label, suffix) in the order they appear in the prompt
PROFILE_FIELDS = (
    ("age", "Age", " years"),
    ("sex", "Sex", ""),
    ("cancer_stage", "Cancer stage", ""),
    ("tnm_staging", "TNM staging", ""),
    ("histology", "Histology", ""),
    ("prior_therapies", "Prior therapies", ""),
    ("surgical_history", "Surgical history", ""),
    ("ecog_status", "ECOG performance status", ""),
    ("pdl1_status", "PD-L1 status", ""),
    ("nectin4_expression", "Nectin-4 expression", ""),
    ("renal_function", "Renal function (eGFR/CrCl)", ""),
    ("liver_function", "Liver function", ""),
    ("metastatic_sites", "Metastatic sites", ""),
)

PROMPT_INTRO = (
    "I have a patient with urothelial carcinoma and I'm considering Enfortumab Vedotin + "
    "Pembrolizumab therapy. Here is their clinical profile:"
)
PROMPT_ASK = (
    "Based on this patient's characteristics, what clinical considerations should I be aware of "
    "when thinking about EVP therapy? Please address eligibility, dosing considerations, potential "
    "toxicity risks based on their comorbidities, and any relevant monitoring recommendations."
)


def profile_lines(profile: PatientProfile) -> List[str]:
    lines = []
    for attr, label, suffix in PROFILE_FIELDS:
        value = getattr(profile, attr).strip()
        if value:
            lines.append(f"{label}: {value}{suffix}")
    comorbidities = [c.strip() for c in profile.comorbidities if c.strip()]
    if comorbidities:
        lines.append(f"Comorbidities: {', '.join(comorbidities)}")
    return lines


def compose_patient_prompt(profile: PatientProfile) -> Optional[str]:
    """Return the question text, or None when no field is filled in."""
    lines = profile_lines(profile)
    if not lines:
        return None
    bullets = "\n".join(f"- {line}" for line in lines)
    return f"{PROMPT_INTRO}\n\n{bullets}\n\n{PROMPT_ASK}"
