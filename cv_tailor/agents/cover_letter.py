"""
Cover Letter Agent

Drafts a short cover letter from the verified facts and the job posting, with
a factually neutral template when the model response cannot be used.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from cv_tailor.config.pipeline import COVER_LETTER_JOB_TEXT_LIMIT, MAX_TOKENS
from cv_tailor.errors import ExtractionParseError
from cv_tailor.graph.state import CoverLetterContent, ExtractedProfile, JobPosting, JobRequirements
from cv_tailor.llm.inference import InferenceClient, infer_json, load_prompt

logger = logging.getLogger(__name__)

DEFAULT_JOB_TITLE = "this position"
DEFAULT_COMPANY = "your company"


def resolve_job_title(job: Optional[JobPosting], requirements: Optional[JobRequirements]) -> Optional[str]:
    if job and job.title:
        return job.title
    if requirements and requirements.job_title:
        return requirements.job_title
    return None


def resolve_company(job: Optional[JobPosting], requirements: Optional[JobRequirements]) -> Optional[str]:
    if job and job.company:
        return job.company
    if requirements and requirements.company:
        return requirements.company
    return None


def build_cover_letter_prompt(
    profile: ExtractedProfile,
    job: JobPosting,
    job_title: Optional[str],
    company: Optional[str],
) -> str:
    """
    Build the user message for the cover letter call.

    Only a handful of verified facts are passed: title, experience length,
    the first ten skills and achievements from the two most recent roles.
    """
    achievements = []
    for entry in profile.experience[:2]:
        achievements.append("; ".join(entry.achievements[:2]) or entry.title)

    return (
        "Write a cover letter for this candidate. Use ONLY the verified information provided.\n\n"
        "## VERIFIED CANDIDATE DATA:\n"
        f"Name: {profile.name}\n"
        f"Current/Recent Title: {profile.current_title or 'Not stated'}\n"
        f"Years of Experience: {profile.years_experience or 'Not stated'}\n"
        f"Key Skills: {', '.join(profile.skills[:10])}\n"
        f"Recent Achievements: {' | '.join(a for a in achievements if a)}\n\n"
        "## TARGET JOB:\n"
        f"Title: {job_title or 'Not stated'}\n"
        f"Company: {company or 'Not stated'}\n"
        f"Location: {job.location or ''}\n\n"
        "Job Description Summary:\n"
        f"{(job.raw_text or '')[:COVER_LETTER_JOB_TEXT_LIMIT]}"
    )


def fallback_cover_letter(
    job: Optional[JobPosting],
    requirements: Optional[JobRequirements] = None,
) -> CoverLetterContent:
    """
    Neutral letter that makes no claims about the candidate.

    Args:
        job: Job posting (title and company used when present)
        requirements: Analysed requirements used when the posting lacks them

    Returns:
        CoverLetterContent: Template letter
    """
    job_title = resolve_job_title(job, requirements)
    company = resolve_company(job, requirements)
    return CoverLetterContent(
        opening=(
            f"I am writing to express my interest in the {job_title or 'position'} "
            f"role at {company or DEFAULT_COMPANY}."
        ),
        body=["With my background and experience, I am confident I can contribute to your team."],
        closing="I look forward to discussing this opportunity with you.",
        company_name=company or DEFAULT_COMPANY,
        job_title=job_title or DEFAULT_JOB_TITLE,
    )


def parse_cover_letter(raw: dict[str, Any]) -> CoverLetterContent:
    """
    Validate a cover letter payload.

    Raises:
        ValidationError: Payload does not fit the letter shape
        ExtractionParseError: Payload has neither opening nor body
    """
    payload = {k: v for k, v in raw.items() if v is not None}
    if isinstance(payload.get("body"), str):
        payload["body"] = [payload["body"]]
    letter = CoverLetterContent.model_validate(payload)
    if not letter.opening.strip() and not any(p.strip() for p in letter.body):
        raise ExtractionParseError("Cover letter response has no content")
    return letter


async def draft_cover_letter(
    profile: ExtractedProfile,
    job: JobPosting,
    inference: InferenceClient,
    requirements: Optional[JobRequirements] = None,
) -> Optional[CoverLetterContent]:
    """
    Run the cover letter call.

    Returns:
        CoverLetterContent with resolved title and company, or None if unusable
    """
    job_title = resolve_job_title(job, requirements)
    company = resolve_company(job, requirements)
    try:
        raw = await infer_json(
            inference,
            build_cover_letter_prompt(profile, job, job_title, company),
            MAX_TOKENS["cover_letter"],
            system=load_prompt("cover_letter"),
        )
        letter = parse_cover_letter(raw)
    except (ExtractionParseError, ValidationError) as e:
        logger.warning(f"Cover letter response unusable, using template: {e}")
        return None

    return letter.model_copy(update={
        "company_name": company or DEFAULT_COMPANY,
        "job_title": job_title or DEFAULT_JOB_TITLE,
    })


async def write_cover_letter(
    profile: ExtractedProfile,
    job: JobPosting,
    inference: InferenceClient,
    requirements: Optional[JobRequirements] = None,
) -> CoverLetterContent:
    """
    Write a cover letter from verified facts.

    Args:
        profile: Verified candidate facts
        job: Target job posting
        inference: Inference client
        requirements: Analysed requirements, used to resolve title and company

    Returns:
        CoverLetterContent: Drafted letter, or the neutral template
    """
    letter = await draft_cover_letter(profile, job, inference, requirements)
    return letter or fallback_cover_letter(job, requirements)
