"""
Inference seam for the tailoring stages.

Stages depend only on the `InferenceClient` protocol: a prompt goes in, raw
model text comes out. `ChatModelInference` adapts any LangChain chat model to
that protocol, and `infer_json` pulls the first JSON object out of a reply.
"""

import json
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

import structlog
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from cv_tailor.config.reliability import inference_retry, log_api_call
from cv_tailor.errors import ExtractionParseError

logger = structlog.get_logger(__name__)

PROMPTS_DIR = Path(__file__).parent / "prompts"

# Field names chat model classes use for the output token limit
_MAX_TOKEN_FIELDS = ("max_tokens", "max_output_tokens")


@runtime_checkable
class InferenceClient(Protocol):
    async def infer(self, prompt: str, max_tokens: int, system: Optional[str] = None) -> str:
        ...


class ChatModelInference:
    """InferenceClient backed by a LangChain chat model."""

    def __init__(self, llm: BaseChatModel):
        self.llm = llm

    def _limited(self, max_tokens: int) -> BaseChatModel:
        fields = type(self.llm).model_fields
        for name in _MAX_TOKEN_FIELDS:
            if name in fields:
                return self.llm.model_copy(update={name: max_tokens})
        return self.llm

    @inference_retry
    async def _ainvoke(self, llm: BaseChatModel, messages: list) -> Any:
        return await llm.ainvoke(messages)

    async def infer(self, prompt: str, max_tokens: int, system: Optional[str] = None) -> str:
        messages = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))

        with log_api_call(type(self.llm).__name__, "chat", request_size=len(prompt), max_tokens=max_tokens):
            response = await self._ainvoke(self._limited(max_tokens), messages)

        return message_text(response.content)


def message_text(content: Any) -> str:
    """Flatten message content, which may be a list of content blocks."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def extract_first_json_object(text: str) -> dict[str, Any]:
    """
    Return the first complete JSON object embedded in model output.

    Handles code fences and prose around the object.

    Raises:
        ExtractionParseError: If no JSON object can be decoded
    """
    decoder = json.JSONDecoder()
    start = text.find("{") if text else -1
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    raise ExtractionParseError("No JSON object found in model response")


async def infer_json(
    inference: InferenceClient,
    prompt: str,
    max_tokens: int,
    system: Optional[str] = None,
) -> dict[str, Any]:
    """Run one inference call and parse the first JSON object of the reply."""
    text = await inference.infer(prompt, max_tokens, system=system)
    logger.debug("Inference response received", response_length=len(text))
    return extract_first_json_object(text)


def load_prompt(name: str) -> str:
    """
    Load a system prompt from the prompts directory.

    Args:
        name: Prompt file stem, e.g. "extractor"

    Returns:
        Prompt text
    """
    prompt_path = PROMPTS_DIR / f"{name}.md"
    try:
        return prompt_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise RuntimeError(f"Prompt not found at {prompt_path}")
