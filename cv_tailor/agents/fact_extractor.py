"""
Fact Extraction Agent

Turns the candidate's raw profile and CV texts into an `ExtractedProfile`
containing only facts that literally occur in the source. The model is asked
for strict JSON; the response is then filtered so that placeholders, empty
entries and contact details that cannot be found in the source never reach
later stages.
"""

import logging
import re
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from cv_tailor.config.pipeline import (
    CV_TEXT_SEPARATOR,
    EXTRACTION_PARSE_RETRIES,
    MAX_TOKENS,
    MIN_PROFILE_CHARS,
)
from cv_tailor.errors import ExtractionParseError, InsufficientDataError, NameMissingError
from cv_tailor.graph.state import (
    EducationEntry,
    ExperienceEntry,
    ExtractedProfile,
    LanguageEntry,
)
from cv_tailor.llm.inference import InferenceClient, infer_json, load_prompt

logger = logging.getLogger(__name__)

# Values models emit instead of leaving a field empty
PLACEHOLDERS = frozenset({"null", "none", "n/a", "not found", "unknown", ""})

_URL_PREFIX = re.compile(r"^(https?://)?(www\.)?", re.IGNORECASE)


def combine_sources(profile_text: str, cv_texts: Iterable[str]) -> str:
    """
    Join profile text and CV texts into one extraction input.

    Args:
        profile_text: LinkedIn export or other profile text
        cv_texts: Texts of previously written CVs

    Returns:
        str: Profile text followed by the CV texts separated by rule lines
    """
    return f"{profile_text or ''}\n\n{CV_TEXT_SEPARATOR.join(cv_texts)}"


def build_extraction_prompt(source_text: str) -> str:
    return (
        "Extract ONLY the factual information from this person's CV/profile. "
        "Do not invent, assume, or add anything.\n\n"
        f"PROFILE/CV CONTENT:\n{source_text}\n\n"
        "Return the JSON object described in your instructions."
    )


async def extract_facts(
    profile_text: str,
    cv_texts: list[str],
    inference: InferenceClient,
) -> ExtractedProfile:
    """
    Extract verified candidate facts from profile and CV texts.

    Args:
        profile_text: Raw profile text (may be empty)
        cv_texts: Raw CV texts (may be empty)
        inference: Inference client used for the extraction call

    Returns:
        ExtractedProfile: Facts present in the source text

    Raises:
        InsufficientDataError: Combined input is shorter than the minimum length
        ExtractionParseError: No JSON object after the allowed retries
        NameMissingError: No usable name in the extraction
    """
    source_text = combine_sources(profile_text, cv_texts)
    if len(source_text.strip()) < MIN_PROFILE_CHARS:
        raise InsufficientDataError(
            f"Combined profile text has {len(source_text.strip())} characters, "
            f"need at least {MIN_PROFILE_CHARS}"
        )

    system_prompt = load_prompt("extractor")
    prompt = build_extraction_prompt(source_text)

    raw: Optional[dict[str, Any]] = None
    attempts = 1 + EXTRACTION_PARSE_RETRIES
    for attempt in range(1, attempts + 1):
        try:
            raw = await infer_json(inference, prompt, MAX_TOKENS["extraction"], system=system_prompt)
            break
        except ExtractionParseError as e:
            logger.warning(f"Extraction response not parsable (attempt {attempt}/{attempts}): {e}")

    if raw is None:
        raise ExtractionParseError(f"No JSON object in extraction response after {attempts} attempts")

    profile = clean_extraction(raw, source_text)
    logger.info(
        f"Extracted profile for {profile.name}: "
        f"{len(profile.experience)} roles, {len(profile.skills)} skills"
    )
    return profile


def clean_extraction(raw: dict[str, Any], source_text: str) -> ExtractedProfile:
    """
    Filter a raw extraction payload into an `ExtractedProfile`.

    Args:
        raw: JSON object returned by the model
        source_text: The text the model was asked to read

    Returns:
        ExtractedProfile: Cleaned, verified facts

    Raises:
        NameMissingError: Name is absent or a placeholder
        ExtractionParseError: Payload does not fit the profile shape
    """
    name = clean_scalar(raw.get("name"))
    if name is None:
        raise NameMissingError("Extraction returned no candidate name")

    data = {
        "name": name,
        "email": _verified(clean_scalar(raw.get("email")), source_text, _contains_text),
        "phone": _verified(clean_scalar(raw.get("phone")), source_text, _contains_digits),
        "linkedin": _verified(clean_scalar(raw.get("linkedin")), source_text, _contains_url),
        "location": clean_scalar(raw.get("location")),
        "nationality": clean_scalar(raw.get("nationality")),
        "visa_status": clean_scalar(raw.get("visaStatus")),
        "current_title": clean_scalar(raw.get("currentTitle")),
        "years_experience": clean_scalar(raw.get("yearsExperience")),
        "skills": dedupe(clean_string_list(raw.get("skills"))),
        "experience": _clean_experience(raw.get("experience")),
        "education": _clean_education(raw.get("education")),
        "certifications": dedupe(clean_string_list(raw.get("certifications"), key="name")),
        "languages": _clean_languages(raw.get("languages")),
    }

    try:
        return ExtractedProfile(**data)
    except ValidationError as e:
        raise ExtractionParseError(f"Extraction payload has an unexpected shape: {e}")


def clean_scalar(value: Any) -> Optional[str]:
    """Strip a scalar and map placeholder strings to None."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    if text.lower() in PLACEHOLDERS:
        return None
    return text


def clean_string_list(values: Any, key: Optional[str] = None) -> list[str]:
    """
    Keep the non-placeholder strings of a list.

    Args:
        values: Raw list from the model
        key: Field to read when an item is an object instead of a string

    Returns:
        list[str]: Cleaned strings in original order
    """
    if not isinstance(values, list):
        return []
    cleaned = []
    for item in values:
        if isinstance(item, dict) and key:
            item = item.get(key)
        text = clean_scalar(item)
        if text:
            cleaned.append(text)
    return cleaned


def dedupe(values: list[str]) -> list[str]:
    """Remove case-insensitive duplicates, keeping the first spelling."""
    seen = set()
    unique = []
    for value in values:
        folded = value.casefold()
        if folded not in seen:
            seen.add(folded)
            unique.append(value)
    return unique


def _verified(value: Optional[str], source_text: str, check) -> Optional[str]:
    if value is None:
        return None
    if check(value, source_text):
        return value
    logger.warning(f"Dropping contact value not found in source: {value!r}")
    return None


def _contains_text(value: str, source_text: str) -> bool:
    return value.casefold() in source_text.casefold()


def _contains_digits(value: str, source_text: str) -> bool:
    digits = re.sub(r"\D", "", value)
    if not digits:
        return False
    return digits in re.sub(r"\D", "", source_text)


def _contains_url(value: str, source_text: str) -> bool:
    bare = _URL_PREFIX.sub("", value).rstrip("/")
    return bool(bare) and bare.casefold() in source_text.casefold()


def _clean_experience(entries: Any) -> list[ExperienceEntry]:
    if not isinstance(entries, list):
        return []
    cleaned = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        title = clean_scalar(entry.get("title")) or ""
        company = clean_scalar(entry.get("company")) or ""
        if not title and not company:
            continue
        cleaned.append(ExperienceEntry(
            title=title,
            company=company,
            location=clean_scalar(entry.get("location")),
            dates=clean_scalar(entry.get("dates")) or "",
            achievements=clean_string_list(entry.get("achievements")),
        ))
    return cleaned


def _clean_education(entries: Any) -> list[EducationEntry]:
    if not isinstance(entries, list):
        return []
    cleaned = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        institution = clean_scalar(entry.get("institution"))
        if not institution:
            continue
        cleaned.append(EducationEntry(
            degree=clean_scalar(entry.get("degree")) or "",
            institution=institution,
            year=clean_scalar(entry.get("year")) or "",
        ))
    return cleaned


def _clean_languages(entries: Any) -> list[LanguageEntry]:
    if not isinstance(entries, list):
        return []
    cleaned = []
    for entry in entries:
        if isinstance(entry, dict):
            language = clean_scalar(entry.get("language") or entry.get("name"))
            level = clean_scalar(entry.get("level") or entry.get("proficiency"))
        else:
            language, level = clean_scalar(entry), None
        if language:
            cleaned.append(LanguageEntry(language=language, level=level))
    return cleaned
