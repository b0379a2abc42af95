"""
Utility functions for LangGraph execution and monitoring.

This module provides helpers to run the tailoring graph with streamed node
updates, log execution, and summarise the analysis for the caller.
"""

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from cv_tailor.graph.state import ExtractedProfile, GapAnalysis, JobRequirements, TailorState

logger = logging.getLogger(__name__)

# State keys whose updates are appended rather than replaced
ADDITIVE_KEYS = ("progress", "fallbacks")

NodeCallback = Callable[[str, Dict[str, Any]], Awaitable[None]]


def log_execution_start(state: TailorState) -> None:
    """
    Log the start of graph execution.

    Args:
        state: Initial graph state
    """
    logger.info("🚀 Starting CV tailoring")
    logger.info(f"   Profile Length: {len(state.profile_text)} characters")
    logger.info(f"   CV Texts: {len(state.cv_texts)}")
    logger.info(f"   Job Length: {len(state.job_text)} characters")
    logger.info(f"   Cover Letter: {'yes' if state.generate_cover_letter else 'no'}")


def log_execution_end(values: Dict[str, Any], duration: float) -> None:
    """
    Log the end of graph execution.

    Args:
        values: Final merged state values
        duration: Execution duration in seconds
    """
    if values.get("error"):
        logger.error(f"❌ Tailoring failed after {duration:.2f}s: {values['error']}")
        return

    logger.info(f"✅ Tailoring completed successfully in {duration:.2f}s")
    fallbacks = values.get("fallbacks", [])
    if fallbacks:
        logger.info(f"   Fallbacks Used: {', '.join(fallbacks)}")


def merge_update(values: Dict[str, Any], update: Optional[Dict[str, Any]]) -> None:
    """
    Apply one node update to the running state values.

    Args:
        values: Accumulated state values, modified in place
        update: Partial update returned by a node (may be empty)
    """
    for key, value in (update or {}).items():
        if key in ADDITIVE_KEYS:
            values[key] = values.get(key, []) + list(value or [])
        else:
            values[key] = value


async def run_graph(
    graph,
    initial_state: TailorState,
    on_update: Optional[NodeCallback] = None,
) -> Dict[str, Any]:
    """
    Execute the graph, streaming node updates in completion order.

    Args:
        graph: Compiled LangGraph instance
        initial_state: Initial state for execution
        on_update: Awaited with (node_name, update) after each node finishes

    Returns:
        Final state values as a dict
    """
    start_time = time.time()
    log_execution_start(initial_state)

    values: Dict[str, Any] = dict(initial_state)
    try:
        async for chunk in graph.astream(initial_state, stream_mode="updates"):
            for node_name, update in chunk.items():
                merge_update(values, update)
                logger.info(f"🔄 {node_name}: completed")
                if on_update is not None:
                    await on_update(node_name, update or {})
    finally:
        log_execution_end(values, time.time() - start_time)

    return values


def build_analysis_summary(
    profile: ExtractedProfile,
    requirements: JobRequirements,
    gap: GapAnalysis,
) -> Dict[str, Any]:
    """
    Summarise what was found and how the CV was positioned.

    Args:
        profile: Verified candidate facts
        requirements: Job requirements
        gap: Skill gap report

    Returns:
        Dict with profileAnalysis, jobAnalysis, gapAnalysis and strategy
    """
    key_actions = [
        "Rephrased achievements to align with job priorities",
        "Reordered experience to emphasize relevant roles",
    ]
    if gap.matched_required:
        key_actions.append(f"Emphasized matching skills: {', '.join(gap.matched_required[:4])}")
    if gap.missing_required:
        key_actions.append("Addressed gaps through transferable experience")

    if gap.missing_required:
        approach = (
            "Highlighted transferable skills that relate to: "
            f"{', '.join(gap.missing_required[:3])}"
        )
    else:
        approach = "Strong skill match - emphasized most relevant achievements"

    return {
        "profileAnalysis": {
            "name": profile.name,
            "yearsExperience": profile.years_experience,
            "rolesFound": len(profile.experience),
            "skillsIdentified": len(profile.skills),
            "topSkills": profile.skills[:8],
        },
        "jobAnalysis": {
            "title": requirements.job_title or "Position",
            "company": requirements.company or "Company",
            "requiredSkillsCount": len(requirements.required_skills),
            "preferredSkillsCount": len(requirements.preferred_skills),
        },
        "gapAnalysis": {
            "matchPercentage": gap.match_percentage,
            "matchedSkills": list(gap.matched_required),
            "missingSkills": list(gap.missing_required),
            "matchedPreferred": list(gap.matched_preferred),
        },
        "strategy": {
            "approach": approach,
            "keyActions": key_actions,
        },
    }
