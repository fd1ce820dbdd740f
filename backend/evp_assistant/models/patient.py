"""
Patient Profile Model - structured input for composing a clinical question.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class PatientProfile(BaseModel):
    """Patient characteristics entered by the urologist; every field is optional."""
    model_config = ConfigDict(populate_by_name=True)

    age: str = ""
    sex: str = ""
    cancer_stage: str = Field("", alias="cancerStage")
    tnm_staging: str = Field("", alias="tnmStaging")
    histology: str = ""
    prior_therapies: str = Field("", alias="priorTherapies")
    surgical_history: str = Field("", alias="surgicalHistory")
    ecog_status: str = Field("", alias="ecogStatus")
    pdl1_status: str = Field("", alias="pdl1Status")
    nectin4_expression: str = Field("", alias="nectin4Expression")
    renal_function: str = Field("", alias="renalFunction")
    liver_function: str = Field("", alias="liverFunction")
    metastatic_sites: str = Field("", alias="metastaticSites")
    comorbidities: List[str] = Field(default_factory=list)


class PatientPromptResponse(BaseModel):
    prompt: str
