"""
Treatment timeline models.

LLM output arrives in camelCase or snake_case; both are accepted on input
and responses are always serialized in snake_case.
"""

from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from sophera.utils.validators import require_text

_INPUT_CONFIG = ConfigDict(use_enum_values=True, populate_by_name=True, extra="ignore")


def _either(snake: str, camel: str) -> AliasChoices:
    return AliasChoices(snake, camel)


# Models sometimes answer with fractional days; keep whichever number arrived
Days = int | float


class MilestoneCategory(str, Enum):
    TREATMENT = "treatment"
    ASSESSMENT = "assessment"
    RECOVERY = "recovery"
    FOLLOW_UP = "follow-up"


class PhaseCategory(str, Enum):
    NEOADJUVANT = "neoadjuvant"
    SURGERY = "surgery"
    ADJUVANT = "adjuvant"
    MONITORING = "monitoring"
    RECOVERY = "recovery"


class TimelineMilestone(BaseModel):
    model_config = _INPUT_CONFIG

    id: str
    name: str
    description: str = ""
    day: Days
    category: MilestoneCategory
    important: bool = False


class SideEffects(BaseModel):
    common: list[str] = Field(default_factory=list)
    severe: list[str] = Field(default_factory=list)
    timing: str = ""


class TimelinePhase(BaseModel):
    model_config = _INPUT_CONFIG

    id: str
    name: str
    description: str = ""
    start_day: Days = Field(validation_alias=_either("start_day", "startDay"))
    end_day: Days = Field(validation_alias=_either("end_day", "endDay"))
    category: PhaseCategory
    milestones: list[TimelineMilestone] = Field(default_factory=list)
    side_effects: SideEffects | None = Field(
        default=None, validation_alias=_either("side_effects", "sideEffects")
    )


class TreatmentTimeline(BaseModel):
    model_config = _INPUT_CONFIG

    treatment_name: str = Field(validation_alias=_either("treatment_name", "treatmentName"))
    treatment_type: str = Field(validation_alias=_either("treatment_type", "treatmentType"))
    duration: Days
    phases: list[TimelinePhase]
    disclaimer: str


class PatientFactors(BaseModel):
    model_config = _INPUT_CONFIG

    age: int | None = Field(default=None, ge=0, le=130)
    performance_status: str | None = Field(
        default=None, validation_alias=_either("performance_status", "performanceStatus")
    )
    comorbidities: list[str] = Field(default_factory=list)
    stage: str | None = None
    previous_treatments: list[str] = Field(
        default_factory=list,
        validation_alias=_either("previous_treatments", "previousTreatments"),
    )


class TimelineRequest(BaseModel):
    model_config = _INPUT_CONFIG

    treatment_name: str = Field(validation_alias=_either("treatment_name", "treatmentName"))
    patient_factors: PatientFactors | None = Field(
        default=None, validation_alias=_either("patient_factors", "patientFactors")
    )

    @field_validator("treatment_name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return require_text(v, "treatment_name")
