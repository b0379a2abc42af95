"""
LangGraph builder for the CV tailoring pipeline.

Region classification, fact extraction and job analysis run as parallel
branches from START and join at the skill comparison. The remaining stages
run in sequence, with conditional edges that end the run after a failed
extraction and skip the cover letter when it was not requested.
"""

import logging
from typing import Any, Callable, Dict, Optional

from langgraph.graph import StateGraph, START, END

from cv_tailor.graph.nodes import (
    analyze_job_node,
    classify_region_node,
    compare_skills_node,
    extract_facts_node,
    tailor_cv_node,
    validate_identity_node,
    write_cover_letter_node,
)
from cv_tailor.graph.state import TailorState
from cv_tailor.llm.inference import InferenceClient

logger = logging.getLogger(__name__)

PARALLEL_NODES = ["classify_region", "extract_facts", "analyze_job"]


def _should_continue(state) -> str:
    """
    Determine whether the run continues after the skill comparison.

    Args:
        state: Current graph state (dict or TailorState object)

    Returns:
        "continue" or END
    """
    if isinstance(state, dict):
        has_error = state.get("error") is not None
    else:
        has_error = state.error is not None

    if has_error:
        return END
    return "continue"


def _wants_cover_letter(state) -> str:
    """
    Determine whether a cover letter is written after identity validation.

    Args:
        state: Current graph state (dict or TailorState object)

    Returns:
        "cover_letter" or END
    """
    if isinstance(state, dict):
        wanted = state.get("generate_cover_letter", True)
    else:
        wanted = state.generate_cover_letter
    return "cover_letter" if wanted else END


def _with_inference(node_func: Callable, inference: Optional[InferenceClient]) -> Callable:
    """
    Bind the inference client to a node function.

    Args:
        node_func: Async node function taking the state and keyword arguments
        inference: Inference client passed to the node

    Returns:
        Async function of the state only, as LangGraph expects
    """
    async def wrapper(state: TailorState) -> Dict[str, Any]:
        return await node_func(state, inference=inference)

    wrapper.__name__ = node_func.__name__
    return wrapper


def build_graph(inference: InferenceClient):
    """
    Build a LangGraph workflow for CV tailoring.

    Pipeline:
    1. classify_region, extract_facts, analyze_job (parallel)
    2. compare_skills (ends the run if extraction failed)
    3. tailor_cv
    4. validate_identity
    5. write_cover_letter (optional)

    Args:
        inference: Inference client used by every model-backed node

    Returns:
        Compiled LangGraph that can be invoked with a TailorState

    Example:
        >>> graph = build_graph(ChatModelInference(llm))
        >>> result = await graph.ainvoke(TailorState(profile_text=..., job_text=...))
        >>> result["cv"].name
    """
    workflow = StateGraph(TailorState)

    workflow.add_node("classify_region", _with_inference(classify_region_node, inference))
    workflow.add_node("extract_facts", _with_inference(extract_facts_node, inference))
    workflow.add_node("analyze_job", _with_inference(analyze_job_node, inference))
    workflow.add_node("compare_skills", _with_inference(compare_skills_node, inference))
    workflow.add_node("tailor_cv", _with_inference(tailor_cv_node, inference))
    workflow.add_node("validate_identity", _with_inference(validate_identity_node, inference))
    workflow.add_node("write_cover_letter", _with_inference(write_cover_letter_node, inference))

    # Fan out, then join
    for node in PARALLEL_NODES:
        workflow.add_edge(START, node)
    workflow.add_edge(PARALLEL_NODES, "compare_skills")

    workflow.add_conditional_edges(
        "compare_skills",
        _should_continue,
        {
            "continue": "tailor_cv",
            END: END
        }
    )

    workflow.add_edge("tailor_cv", "validate_identity")

    workflow.add_conditional_edges(
        "validate_identity",
        _wants_cover_letter,
        {
            "cover_letter": "write_cover_letter",
            END: END
        }
    )

    workflow.add_edge("write_cover_letter", END)

    compiled_graph = workflow.compile()

    logger.info("CV tailoring graph built successfully")

    return compiled_graph
