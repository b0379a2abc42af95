"""
CV Tailoring Agent

Rewrites and reorders the candidate's real experience for a target job, then
forces every identity field back to the verified facts. The model may
rephrase; it may not add employers, certifications, skills or languages.
"""

import json
import logging
import re
from typing import Any, Optional

from pydantic import ValidationError

from cv_tailor.agents.region_classifier import allows_compliance_fields
from cv_tailor.config.pipeline import MAX_TOKENS
from cv_tailor.errors import ExtractionParseError
from cv_tailor.graph.state import (
    CompetencyGroup,
    Contact,
    CvContent,
    CvExperience,
    ExperienceEntry,
    ExtractedProfile,
    GapAnalysis,
    JobRequirements,
    Region,
    to_wire,
)
from cv_tailor.llm.inference import InferenceClient, infer_json, load_prompt

logger = logging.getLogger(__name__)

# Overwritten from the profile after generation, never read from the model
_IDENTITY_KEYS = ("name", "contact", "nationality", "visaStatus", "education", "languages")


def build_tailoring_prompt(
    profile: ExtractedProfile,
    requirements: JobRequirements,
    gap: GapAnalysis,
) -> str:
    """
    Build the user message for the tailoring call.

    Args:
        profile: Verified candidate facts
        requirements: Job requirements
        gap: Skill gap report

    Returns:
        str: Prompt with verified data, requirements and gap analysis
    """
    sections = [
        "Create a tailored CV for this candidate. You MUST use ONLY the verified "
        "data provided below. DO NOT invent any information.",
        "## VERIFIED CANDIDATE DATA (USE ONLY THIS):\n"
        + json.dumps(to_wire(profile), indent=2, ensure_ascii=False),
        "## TARGET JOB REQUIREMENTS:\n"
        + json.dumps(to_wire(requirements), indent=2, ensure_ascii=False),
        "## GAP ANALYSIS:\n"
        f"- Matched Required Skills: {', '.join(gap.matched_required) or 'None identified'}\n"
        f"- Missing Required Skills: {', '.join(gap.missing_required) or 'None'}\n"
        f"- Matched Preferred Skills: {', '.join(gap.matched_preferred) or 'None identified'}",
        "## YOUR TASK:\n"
        "1. Create a professional CV using ONLY the verified candidate data\n"
        "2. Reposition and rephrase existing experience to highlight relevance to the job\n"
        "3. For missing skills, find transferable experience that relates "
        "(but DO NOT claim skills they don't have)\n"
        "4. Emphasize achievements that align with job responsibilities\n"
        "5. Use ATS-friendly keywords where the candidate genuinely has the experience",
    ]
    return "\n\n".join(sections)


def _drop_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_nulls(v) for v in value if v is not None]
    return value


def parse_cv_content(raw: dict[str, Any]) -> CvContent:
    """
    Validate the tailoring payload into `CvContent`.

    Identity sections are ignored here since they are replaced from the
    profile afterwards.

    Raises:
        ValidationError: Payload does not fit the CV shape
    """
    payload = {k: v for k, v in _drop_nulls(raw).items() if k not in _IDENTITY_KEYS}
    return CvContent.model_validate(payload)


def fallback_cv_content(profile: ExtractedProfile) -> CvContent:
    """
    Build CV content directly from the verified facts.

    Args:
        profile: Verified candidate facts

    Returns:
        CvContent: Never empty; contains only profile facts
    """
    companies = [e.company for e in profile.experience if e.company]
    if profile.current_title and companies:
        summary = f"{profile.current_title} with experience at {', '.join(companies[:3])}."
    elif profile.current_title:
        summary = f"{profile.current_title}."
    else:
        summary = "Experienced professional."

    competencies = []
    if profile.skills:
        competencies.append(CompetencyGroup(category="Skills", skills=list(profile.skills)))

    return CvContent(
        name=profile.name,
        headline=profile.current_title or "Professional",
        summary=summary,
        core_competencies=competencies,
        experience=[_experience_from_profile(e) for e in profile.experience],
        certifications=list(profile.certifications),
    )


async def draft_cv(
    profile: ExtractedProfile,
    requirements: JobRequirements,
    gap: GapAnalysis,
    inference: InferenceClient,
) -> Optional[CvContent]:
    """
    Run the tailoring call.

    Returns:
        CvContent before identity enforcement, or None if the response was unusable
    """
    try:
        raw = await infer_json(
            inference,
            build_tailoring_prompt(profile, requirements, gap),
            MAX_TOKENS["tailoring"],
            system=load_prompt("tailor"),
        )
        return parse_cv_content(raw)
    except (ExtractionParseError, ValidationError) as e:
        logger.warning(f"Tailoring response unusable, using fallback CV: {e}")
        return None


async def tailor_cv(
    profile: ExtractedProfile,
    requirements: JobRequirements,
    gap: GapAnalysis,
    inference: InferenceClient,
    region: Region = Region.GLOBAL,
) -> CvContent:
    """
    Produce tailored CV content that only contains verified facts.

    Args:
        profile: Verified candidate facts
        requirements: Job requirements
        gap: Skill gap report
        inference: Inference client
        region: Hiring region of the job

    Returns:
        CvContent: Tailored (or fallback) content after identity enforcement
    """
    cv = await draft_cv(profile, requirements, gap, inference) or fallback_cv_content(profile)
    return enforce_verified_identity(cv, profile, region)


def enforce_verified_identity(cv: CvContent, profile: ExtractedProfile, region: Region) -> CvContent:
    """
    Overwrite identity fields and filter content against the verified facts.

    - name, contact, education and languages come from the profile
    - nationality and visa status come from the profile for EU and UK roles only
    - experience is matched to profile roles by company; unknown employers are
      dropped, title, company, location and dates are restored, and verified
      roles the model left out are added back
    - certifications and competency skills not traceable to the profile are dropped

    Args:
        cv: Generated or fallback CV content
        profile: Verified candidate facts
        region: Hiring region of the job

    Returns:
        CvContent: A new, validated CV
    """
    compliance = allows_compliance_fields(region)
    experience = reconcile_experience(cv.experience, profile.experience)

    verified = cv.model_copy(update={
        "name": profile.name,
        "contact": Contact(
            email=profile.email,
            phone=profile.phone,
            linkedin=profile.linkedin,
            location=profile.location,
        ),
        "nationality": profile.nationality if compliance else None,
        "visa_status": profile.visa_status if compliance else None,
        "experience": experience,
        "education": list(profile.education),
        "certifications": filter_certifications(cv.certifications, profile.certifications),
        "core_competencies": filter_competencies(cv.core_competencies, profile.skills),
        "languages": list(profile.languages),
    })

    return verified


def _company_key(company: str) -> str:
    return re.sub(r"[^a-z0-9]", "", (company or "").lower())


def _title_key(title: str) -> str:
    return re.sub(r"\s+", " ", (title or "").strip().lower())


def reconcile_experience(
    generated: list[CvExperience],
    verified: list[ExperienceEntry],
) -> list[CvExperience]:
    """
    Map generated roles onto verified roles without losing any verified role.

    Companies are compared on their alphanumeric key; when no key is equal, a
    key that starts with the other one counts ("Beta" for "Beta AG"). Each
    verified role is used at most once and a role with the same title is
    preferred when a company appears several times. Verified roles the model
    left out are appended in profile order.

    Returns:
        list[CvExperience]: Generated order, verified title/company/location/dates,
        followed by the omitted verified roles
    """
    unused = list(verified)
    reconciled = []
    for entry in generated:
        match = _match_role(entry, unused)
        if match is None:
            continue
        unused.remove(match)
        reconciled.append(CvExperience(
            title=match.title,
            company=match.company,
            location=match.location,
            dates=match.dates,
            description=entry.description,
            achievements=entry.achievements or list(match.achievements),
        ))

    dropped = len(generated) - len(reconciled)
    if dropped > 0:
        logger.warning(f"Dropped {dropped} experience entries with unverified employers")
    if unused:
        logger.info(f"Restored {len(unused)} verified roles missing from the generated CV")
    return reconciled + [_experience_from_profile(e) for e in unused]


def _match_role(entry: CvExperience, unused: list[ExperienceEntry]) -> Optional[ExperienceEntry]:
    key = _company_key(entry.company)
    if not key:
        return None
    candidates = [v for v in unused if _company_key(v.company) == key]
    if not candidates:
        candidates = [
            v for v in unused
            if _company_key(v.company)
            and (_company_key(v.company).startswith(key) or key.startswith(_company_key(v.company)))
        ]
    if not candidates:
        return None
    same_title = [v for v in candidates if _title_key(v.title) == _title_key(entry.title)]
    return (same_title or candidates)[0]


def filter_certifications(generated: list[str], verified: list[str]) -> list[str]:
    """Keep certifications present in the profile, in the profile's spelling."""
    by_key = {c.casefold(): c for c in verified}
    kept = []
    for cert in generated:
        original = by_key.get(cert.strip().casefold())
        if original and original not in kept:
            kept.append(original)
    return kept


def filter_competencies(groups: list[CompetencyGroup], verified_skills: list[str]) -> list[CompetencyGroup]:
    """Keep competency skills traceable to a profile skill; drop empty groups."""
    known = [s.lower() for s in verified_skills if s and s.strip()]
    filtered = []
    for group in groups:
        skills = []
        for skill in group.skills:
            lowered = skill.strip().lower()
            if not lowered:
                continue
            if any(k in lowered or lowered in k for k in known) and skill not in skills:
                skills.append(skill)
        if skills:
            filtered.append(CompetencyGroup(category=group.category, skills=skills))
    return filtered


def _experience_from_profile(entry: ExperienceEntry) -> CvExperience:
    return CvExperience(
        title=entry.title,
        company=entry.company,
        location=entry.location,
        dates=entry.dates,
        achievements=list(entry.achievements),
    )
