import operator
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, frozen=True)


class Region(str, Enum):
    EU = "EU"
    UK = "UK"
    US = "US"
    GLOBAL = "GLOBAL"


class PipelineStage(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    ANALYZING_JOB = "analyzing_job"
    GAP_ANALYSIS = "gap_analysis"
    TAILORING = "tailoring"
    VALIDATING_IDENTITY = "validating_identity"
    WRITING_COVER_LETTER = "writing_cover_letter"
    STORED = "stored"
    DONE = "done"
    FAILED = "failed"


# Pipeline inputs

class ProfileSource(CamelModel):
    raw_text: str = ""


class CvText(CamelModel):
    filename: str = "cv.txt"
    text: str = ""


class JobPosting(CamelModel):
    raw_text: str
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    keywords: list[str] = []


class GenerationOptions(CamelModel):
    generate_cover_letter: bool = True


# Verified facts

class ExperienceEntry(FrozenCamelModel):
    title: str = ""
    company: str = ""
    location: Optional[str] = None
    dates: str = ""
    achievements: list[str] = []


class EducationEntry(FrozenCamelModel):
    degree: str = ""
    institution: str = ""
    year: str = ""


class LanguageEntry(FrozenCamelModel):
    language: str
    level: Optional[str] = None


class ExtractedProfile(FrozenCamelModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    location: Optional[str] = None
    nationality: Optional[str] = None
    visa_status: Optional[str] = None
    current_title: Optional[str] = None
    years_experience: Optional[str] = None
    skills: list[str] = []
    experience: list[ExperienceEntry] = []   # order as given in the source
    education: list[EducationEntry] = []
    certifications: list[str] = []
    languages: list[LanguageEntry] = []


class JobRequirements(FrozenCamelModel):
    job_title: Optional[str] = None
    company: Optional[str] = None
    required_skills: list[str] = []
    preferred_skills: list[str] = []
    key_responsibilities: list[str] = []
    years_required: Optional[str] = None
    must_haves: list[str] = []
    keywords: list[str] = []


class GapAnalysis(FrozenCamelModel):
    matched_required: list[str] = []
    missing_required: list[str] = []
    matched_preferred: list[str] = []
    match_percentage: int = Field(default=70, ge=0, le=100)


# Generated content

class Contact(CamelModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    location: Optional[str] = None


class CompetencyGroup(CamelModel):
    category: str = "Skills"
    skills: list[str] = []


class CvExperience(CamelModel):
    title: str = ""
    company: str = ""
    location: Optional[str] = None
    dates: str = ""
    description: Optional[str] = None
    achievements: list[str] = []


class CvContent(CamelModel):
    name: str = ""
    contact: Contact = Field(default_factory=Contact)
    nationality: Optional[str] = None
    visa_status: Optional[str] = None
    headline: str = ""
    summary: str = ""
    core_competencies: list[CompetencyGroup] = []
    experience: list[CvExperience] = []
    education: list[EducationEntry] = []
    certifications: list[str] = []
    languages: list[LanguageEntry] = []


class CoverLetterContent(CamelModel):
    opening: str = ""
    body: list[str] = []
    closing: str = ""
    recipient_name: str = "Hiring Manager"
    company_name: str = ""
    job_title: str = ""


class TailorState(BaseModel):
    # Inputs
    profile_text: str = ""
    cv_texts: list[str] = []
    job_text: str = ""
    job_location: str = ""
    job_title: Optional[str] = None
    job_company: Optional[str] = None
    generate_cover_letter: bool = True

    # Stage outputs
    region: Optional[Region] = None
    profile: Optional[ExtractedProfile] = None
    requirements: Optional[JobRequirements] = None
    gap: Optional[GapAnalysis] = None
    cv: Optional[CvContent] = None
    cover_letter: Optional[CoverLetterContent] = None

    # Parallel branches append to these
    progress: Annotated[list[str], operator.add] = []
    fallbacks: Annotated[list[str], operator.add] = []

    # Only extraction writes these
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def from_inputs(
        cls,
        profile: ProfileSource,
        cv_texts: list[CvText],
        job: JobPosting,
        options: Optional[GenerationOptions] = None,
    ) -> "TailorState":
        options = options or GenerationOptions()
        return cls(
            profile_text=profile.raw_text,
            cv_texts=[cv.text for cv in cv_texts],
            job_text=job.raw_text,
            job_location=job.location or "",
            job_title=job.title,
            job_company=job.company,
            generate_cover_letter=options.generate_cover_letter,
        )


def to_wire(model: Optional[BaseModel]) -> Optional[dict[str, Any]]:
    """Dump a model with camelCase keys, or None."""
    if model is None:
        return None
    return model.model_dump(mode="json", by_alias=True)
