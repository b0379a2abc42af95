"""
Heuristic parsing of pasted job descriptions.

Fills the optional title, company and location of a `JobPosting` before any
model sees the text. Title and company are taken from the first two lines,
which is how most pasted postings start.
"""

import re

from cv_tailor.graph.state import JobPosting

# Checked in order; the first pattern with a hit decides the location
LOCATION_PATTERNS = [
    re.compile(r"\b(remote|hybrid|on-site|onsite)\b", re.IGNORECASE),
    re.compile(r"\b(berlin|london|paris|amsterdam|dublin|munich|barcelona|rome|milan)\b", re.IGNORECASE),
    re.compile(r"\b(germany|uk|france|netherlands|ireland|spain|italy)\b", re.IGNORECASE),
    re.compile(r"\b(new york|san francisco|los angeles|seattle|austin|boston)\b", re.IGNORECASE),
    re.compile(r"\b(usa|us|united states|canada)\b", re.IGNORECASE),
]

KEYWORD_PATTERNS = [
    re.compile(r"\b(python|javascript|react|node|sql|aws|azure|gcp)\b", re.IGNORECASE),
    re.compile(r"\b(agile|scrum|kanban|jira|confluence)\b", re.IGNORECASE),
    re.compile(r"\b(project management|product management|stakeholder|cross-functional)\b", re.IGNORECASE),
    re.compile(r"\b(saas|b2b|b2c|enterprise|startup)\b", re.IGNORECASE),
    re.compile(r"\b(api|rest|graphql|microservices)\b", re.IGNORECASE),
    re.compile(r"\b(leadership|strategy|analytics|automation)\b", re.IGNORECASE),
]


def detect_location(text: str) -> str | None:
    """
    Find a location or work mode mentioned in the text.

    Returns:
        The matched text as written, or None
    """
    for pattern in LOCATION_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def extract_keywords(text: str) -> list[str]:
    """Lower-cased common job keywords, in order of first appearance per pattern."""
    found = {}
    for pattern in KEYWORD_PATTERNS:
        for match in pattern.finditer(text):
            found.setdefault(match.group(0).lower(), None)
    return list(found)


def parse_job_description(text: str) -> JobPosting:
    """
    Build a `JobPosting` from raw job text.

    Args:
        text: Pasted job description

    Returns:
        JobPosting with title (first line), company (second line), location
        and keywords; missing parts are None or empty
    """
    lines = (text or "").split("\n")
    title = lines[0].strip() if lines else ""
    company = lines[1].strip() if len(lines) > 1 else ""

    return JobPosting(
        raw_text=text or "",
        title=title or None,
        company=company or None,
        location=detect_location(text or ""),
        keywords=extract_keywords(text or ""),
    )
