"""
Skill Gap Analysis Agent

Deterministic comparison of the candidate's skills with the job's required
and preferred skills. No inference call is made here.

Matching is a case-insensitive substring test in both directions, so short
skills can match unrelated ones ("R" matches "HR").
"""

import logging
import math

from cv_tailor.config.pipeline import DEFAULT_MATCH_PERCENTAGE
from cv_tailor.graph.state import ExtractedProfile, GapAnalysis, JobRequirements

logger = logging.getLogger(__name__)


def skill_matches(requirement: str, candidate_skills: list[str]) -> bool:
    """
    Check a requirement against the candidate's skills.

    Args:
        requirement: Skill named by the job
        candidate_skills: Lower-cased, non-empty candidate skills

    Returns:
        True if either string contains the other for any candidate skill
    """
    wanted = requirement.lower()
    return any(skill in wanted or wanted in skill for skill in candidate_skills)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compare_skills(profile: ExtractedProfile, requirements: JobRequirements) -> GapAnalysis:
    """
    Compute matched and missing skills and the match percentage.

    Args:
        profile: Verified candidate facts
        requirements: Job requirements

    Returns:
        GapAnalysis: Lists in requirement order; percentage 0-100, or the
        default when the job names no required skills
    """
    candidate_skills = [s.lower() for s in profile.skills if s and s.strip()]
    required = requirements.required_skills
    preferred = requirements.preferred_skills

    matched_required = [s for s in required if skill_matches(s, candidate_skills)]
    missing_required = [s for s in required if s not in matched_required]
    matched_preferred = [s for s in preferred if skill_matches(s, candidate_skills)]

    if required:
        match_percentage = round_half_up(len(matched_required) / len(required) * 100)
    else:
        match_percentage = DEFAULT_MATCH_PERCENTAGE

    logger.info(
        f"Skill gap computed: {match_percentage}% "
        f"({len(matched_required)}/{len(required)} required matched)"
    )
    return GapAnalysis(
        matched_required=matched_required,
        missing_required=missing_required,
        matched_preferred=matched_preferred,
        match_percentage=match_percentage,
    )
