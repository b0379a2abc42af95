"""
LangGraph node implementations for the CV tailoring pipeline.

Each node is a thin wrapper around a typed stage function from `agents/`.
Nodes return partial state updates; `progress` and `fallbacks` entries are
appended by the state reducers, so parallel branches never overwrite each
other. Only fact extraction can set `error`.
"""

from typing import Any, Dict

import structlog

from cv_tailor.agents.cover_letter import draft_cover_letter, fallback_cover_letter
from cv_tailor.agents.cv_writer import draft_cv, enforce_verified_identity, fallback_cv_content
from cv_tailor.agents.fact_extractor import extract_facts
from cv_tailor.agents.gap_analyzer import compare_skills
from cv_tailor.agents.job_analyst import draft_job_requirements
from cv_tailor.agents.region_classifier import classify_region
from cv_tailor.errors import ABORTING_ERRORS, TailorError
from cv_tailor.graph.state import JobPosting, JobRequirements, Region, TailorState
from cv_tailor.llm.inference import InferenceClient

logger = structlog.get_logger(__name__)

REGION_MESSAGES = {
    Region.EU: "Detected: EU role - will add compliance fields if available in your profile",
    Region.UK: "Detected: UK role - will add right-to-work fields if available in your profile",
    Region.US: "Detected: US role",
    Region.GLOBAL: "Detected: international role",
}


def _preview(items: list[str], limit: int) -> str:
    text = ", ".join(items[:limit])
    return text + ("..." if len(items) > limit else "")


def job_posting_from_state(state: TailorState) -> JobPosting:
    return JobPosting(
        raw_text=state.job_text,
        title=state.job_title,
        company=state.job_company,
        location=state.job_location or None,
    )


async def classify_region_node(state: TailorState, **kwargs) -> Dict[str, Any]:
    """
    Node: Tag the job with a hiring region.

    Args:
        state: Graph state containing job_text and job_location

    Returns:
        Update with region and a progress line
    """
    region = classify_region(state.job_text, state.job_location)
    logger.info("Region classified", region=region.value)
    return {"region": region, "progress": [REGION_MESSAGES[region]]}


async def extract_facts_node(state: TailorState, inference: InferenceClient, **kwargs) -> Dict[str, Any]:
    """
    Node: Extract verified candidate facts.

    Aborting errors are stored in state instead of raised, so the sibling
    branches still complete and the graph can route to END afterwards.

    Args:
        state: Graph state containing profile_text and cv_texts
        inference: Inference client

    Returns:
        Update with profile, or with error and error_code
    """
    try:
        logger.info("Starting fact extraction",
                    profile_length=len(state.profile_text),
                    cv_count=len(state.cv_texts))

        profile = await extract_facts(state.profile_text, state.cv_texts, inference)

        logger.info("Fact extraction completed",
                    skills_count=len(profile.skills),
                    experience_count=len(profile.experience))
        return {
            "profile": profile,
            "progress": [
                f"Found profile for: {profile.name}",
                f"Identified {len(profile.experience)} roles and "
                f"{len(profile.skills)} skills from your background",
            ],
        }

    except ABORTING_ERRORS as e:
        logger.error("Fact extraction failed", error_code=e.code, error=str(e))
        return {"error": e.user_message, "error_code": e.code}

    except Exception as e:
        logger.error("Fact extraction failed unexpectedly", error=str(e))
        return {"error": TailorError.user_message, "error_code": "extraction_failed"}


async def analyze_job_node(state: TailorState, inference: InferenceClient, **kwargs) -> Dict[str, Any]:
    """
    Node: Analyse job requirements, falling back to empty requirements.

    Args:
        state: Graph state containing job_text
        inference: Inference client

    Returns:
        Update with requirements (and a fallback marker when used)
    """
    try:
        requirements = await draft_job_requirements(state.job_text, inference)
    except Exception as e:
        logger.error("Job analysis failed", error=str(e))
        requirements = None

    update: Dict[str, Any] = {}
    if requirements is None:
        requirements = JobRequirements()
        update["fallbacks"] = ["job_analysis"]

    title = requirements.job_title or state.job_title or "Position"
    company = requirements.company or state.job_company or "Company"
    logger.info("Job analysis completed",
                required_count=len(requirements.required_skills),
                fallback="fallbacks" in update)

    update["requirements"] = requirements
    update["progress"] = [f"Job: {title} at {company}"]
    return update


async def compare_skills_node(state: TailorState, **kwargs) -> Dict[str, Any]:
    """
    Node: Compute the skill gap once all parallel branches finished.

    Args:
        state: Graph state containing profile and requirements

    Returns:
        Update with gap and progress lines; empty when extraction failed
    """
    if state.error or state.profile is None:
        return {}

    requirements = state.requirements or JobRequirements()
    gap = compare_skills(state.profile, requirements)

    progress = [f"Skills match: {gap.match_percentage}% of required skills"]
    if gap.matched_required:
        progress.append(f"✓ Matched: {_preview(gap.matched_required, 5)}")
    if gap.missing_required:
        progress.append(f"⚠ Gaps to address: {_preview(gap.missing_required, 4)}")
        progress.append(f"Strategy: Highlight transferable skills that relate to {gap.missing_required[0]}")
    progress.append("Strategy: Lead with quantified achievements that match job priorities")

    logger.info("Skill comparison completed", match_percentage=gap.match_percentage)
    return {"gap": gap, "progress": progress}


async def tailor_cv_node(state: TailorState, inference: InferenceClient, **kwargs) -> Dict[str, Any]:
    """
    Node: Draft the tailored CV, falling back to profile-only content.

    Args:
        state: Graph state containing profile, requirements and gap
        inference: Inference client

    Returns:
        Update with cv (not yet identity-checked)
    """
    try:
        cv = await draft_cv(state.profile, state.requirements or JobRequirements(), state.gap, inference)
    except Exception as e:
        logger.error("CV tailoring failed", error=str(e))
        cv = None

    update: Dict[str, Any] = {}
    if cv is None:
        cv = fallback_cv_content(state.profile)
        update["fallbacks"] = ["tailoring"]

    logger.info("CV tailoring completed", fallback="fallbacks" in update)
    update["cv"] = cv
    update["progress"] = ["Tailored CV drafted using only your real information"]
    return update


async def validate_identity_node(state: TailorState, **kwargs) -> Dict[str, Any]:
    """
    Node: Overwrite identity fields of the CV with the verified facts.

    Args:
        state: Graph state containing cv, profile and region

    Returns:
        Update with the verified cv
    """
    cv = enforce_verified_identity(state.cv, state.profile, state.region or Region.GLOBAL)
    logger.info("Identity validation completed", experience_count=len(cv.experience))
    return {"cv": cv, "progress": ["CV content generated with your verified information"]}


async def write_cover_letter_node(state: TailorState, inference: InferenceClient, **kwargs) -> Dict[str, Any]:
    """
    Node: Draft the cover letter, falling back to the neutral template.

    Args:
        state: Graph state containing profile, job inputs and requirements
        inference: Inference client

    Returns:
        Update with cover_letter
    """
    job = job_posting_from_state(state)
    try:
        letter = await draft_cover_letter(state.profile, job, inference, state.requirements)
    except Exception as e:
        logger.error("Cover letter drafting failed", error=str(e))
        letter = None

    update: Dict[str, Any] = {}
    if letter is None:
        letter = fallback_cover_letter(job, state.requirements)
        update["fallbacks"] = ["cover_letter"]

    logger.info("Cover letter completed", fallback="fallbacks" in update)
    update["cover_letter"] = letter
    update["progress"] = ["Cover letter drafted with your real achievements"]
    return update
