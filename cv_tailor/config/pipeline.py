"""
Pipeline settings: token budgets, thresholds and session lifetime.

Values can be overridden through environment variables where noted.
"""

import os

# Maximum output tokens per inference stage
MAX_TOKENS = {
    "extraction": 3000,
    "job_analysis": 2000,
    "tailoring": 4000,
    "cover_letter": 2000,
}

# Combined profile + CV text below this length cannot be processed
MIN_PROFILE_CHARS = 100

# Match percentage reported when the job lists no required skills
DEFAULT_MATCH_PERCENTAGE = 70

# Extra attempts for the extraction call when the response has no JSON object
EXTRACTION_PARSE_RETRIES = 1

# Job description excerpt passed to the cover letter writer
COVER_LETTER_JOB_TEXT_LIMIT = 1500

# Generated documents are kept for one hour
DEFAULT_SESSION_MAX_AGE_MS = 60 * 60 * 1000

# Separator between uploaded CV texts in the extraction prompt
CV_TEXT_SEPARATOR = "\n\n---\n\n"


def session_max_age_ms() -> int:
    """Session lifetime in milliseconds, honouring SESSION_TTL_SECONDS."""
    raw = os.getenv("SESSION_TTL_SECONDS")
    if not raw:
        return DEFAULT_SESSION_MAX_AGE_MS
    try:
        seconds = int(raw)
    except ValueError:
        raise ValueError(f"SESSION_TTL_SECONDS must be an integer, got {raw!r}")
    if seconds <= 0:
        raise ValueError("SESSION_TTL_SECONDS must be positive")
    return seconds * 1000
