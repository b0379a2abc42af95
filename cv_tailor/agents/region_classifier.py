"""
Region Classification Agent

Tags a job posting with a coarse hiring region using keyword gazetteers. The
region decides whether nationality and work authorisation facts from the
candidate profile may be shown on the CV.
"""

import logging

from cv_tailor.graph.state import Region

logger = logging.getLogger(__name__)

EU_TERMS = (
    "germany", "german", "berlin", "munich",
    "france", "french", "paris",
    "netherlands", "dutch", "amsterdam",
    "spain", "spanish", "barcelona", "madrid",
    "italy", "italian", "rome", "milan",
    "ireland", "irish", "dublin",
    "portugal", "lisbon",
    "belgium", "brussels",
    "austria", "vienna",
    "sweden", "stockholm",
    "denmark", "copenhagen",
    "finland", "helsinki",
    "poland", "warsaw",
    "czech", "prague",
    "eu ", "european union", "europe",
)

UK_TERMS = (
    "uk", "united kingdom", "britain", "british",
    "london", "manchester", "edinburgh",
)

US_TERMS = (
    "usa", "united states", "america",
    "new york", "san francisco", "los angeles",
    "seattle", "austin", "boston", "chicago",
)

# Checked in order, first match wins
GAZETTEERS = (
    (Region.EU, EU_TERMS),
    (Region.UK, UK_TERMS),
    (Region.US, US_TERMS),
)

# Regions whose CVs conventionally carry nationality and visa status
COMPLIANCE_REGIONS = frozenset({Region.EU, Region.UK})


def classify_region(job_text: str, location: str = "") -> Region:
    """
    Classify the hiring region of a job posting.

    Plain substring matching on the lower-cased job text and location, so
    short terms can match inside longer words ("uk" in "Ukraine").

    Args:
        job_text: Raw job description
        location: Optional location string from the posting

    Returns:
        Region: EU, UK, US or GLOBAL when nothing matches
    """
    haystack = f"{job_text or ''} {location or ''}".lower()
    for region, terms in GAZETTEERS:
        if any(term in haystack for term in terms):
            logger.info(f"Region classified as {region.value}")
            return region
    return Region.GLOBAL


def allows_compliance_fields(region: Region | None) -> bool:
    """True when nationality and visa status may appear on the CV."""
    return region in COMPLIANCE_REGIONS
