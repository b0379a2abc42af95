"""
Job Requirement Analysis Agent

Characterizes a job posting: title, company, required and preferred skills,
responsibilities and ATS keywords. A response that cannot be parsed yields
empty requirements instead of an error.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from cv_tailor.agents.fact_extractor import clean_scalar, clean_string_list, dedupe
from cv_tailor.config.pipeline import MAX_TOKENS
from cv_tailor.errors import ExtractionParseError
from cv_tailor.graph.state import JobRequirements
from cv_tailor.llm.inference import InferenceClient, infer_json, load_prompt

logger = logging.getLogger(__name__)


def build_job_prompt(job_text: str) -> str:
    return (
        "Analyze this job description and extract the requirements.\n\n"
        f"JOB DESCRIPTION:\n{job_text or 'No job description provided'}\n\n"
        "Return the JSON object described in your instructions."
    )


def parse_requirements(raw: dict[str, Any]) -> JobRequirements:
    """
    Build `JobRequirements` from a raw model payload.

    Raises:
        ValidationError: Payload does not fit the requirements shape
    """
    return JobRequirements(
        job_title=clean_scalar(raw.get("jobTitle")),
        company=clean_scalar(raw.get("company")),
        required_skills=dedupe(clean_string_list(raw.get("requiredSkills"))),
        preferred_skills=dedupe(clean_string_list(raw.get("preferredSkills"))),
        key_responsibilities=clean_string_list(raw.get("keyResponsibilities")),
        years_required=clean_scalar(raw.get("yearsRequired")),
        must_haves=clean_string_list(raw.get("mustHaves")),
        keywords=dedupe(clean_string_list(raw.get("keywords"))),
    )


async def draft_job_requirements(job_text: str, inference: InferenceClient) -> Optional[JobRequirements]:
    """
    Run the job analysis call.

    Args:
        job_text: Raw job description
        inference: Inference client

    Returns:
        JobRequirements, or None when the response could not be parsed
    """
    try:
        raw = await infer_json(
            inference,
            build_job_prompt(job_text),
            MAX_TOKENS["job_analysis"],
            system=load_prompt("job_analyst"),
        )
        requirements = parse_requirements(raw)
    except (ExtractionParseError, ValidationError) as e:
        logger.warning(f"Job analysis response unusable, falling back to empty requirements: {e}")
        return None

    logger.info(
        f"Job analysed: {requirements.job_title or 'untitled'} "
        f"({len(requirements.required_skills)} required, "
        f"{len(requirements.preferred_skills)} preferred skills)"
    )
    return requirements


async def analyze_job_requirements(job_text: str, inference: InferenceClient) -> JobRequirements:
    """
    Characterize a job posting.

    Args:
        job_text: Raw job description
        inference: Inference client

    Returns:
        JobRequirements: Parsed requirements, or empty requirements on failure
    """
    return await draft_job_requirements(job_text, inference) or JobRequirements()
