"""
Markdown rendering utilities for tailored CVs and cover letters.
Pure string builders with no external markdown library dependencies.
"""

from datetime import datetime
from typing import List, Optional

from cv_tailor.graph.state import CoverLetterContent, CvContent, LanguageEntry

CONTACT_SEPARATOR = " • "


def render_section(title: str, content: str, level: int = 2) -> str:
    """
    Render a generic markdown section with title and content.

    Args:
        title: Section title
        content: Section content
        level: Heading level (1-6)

    Returns:
        Formatted markdown section

    Examples:
        >>> print(render_section("Summary", "This is the summary content.", 2))
        ## Summary

        This is the summary content.
    """
    if level < 1 or level > 6:
        level = 2

    heading_prefix = "#" * level

    return f"{heading_prefix} {title}\n\n{content.rstrip()}\n"


def render_bullet_list(items: List[str], indent: int = 0) -> str:
    """
    Render items as markdown bullet list with optional indentation.

    Args:
        items: List of items to render
        indent: Number of spaces to indent (for nested lists)

    Returns:
        Formatted markdown bullet list

    Examples:
        >>> print(render_bullet_list(["Item 1", "Item 2"]))
        - Item 1
        - Item 2
    """
    if not items:
        return ""

    indent_str = " " * indent
    lines = []

    for item in items:
        lines.append(f"{indent_str}- {item}")

    return "\n".join(lines) + "\n"


def render_horizontal_rule() -> str:
    """
    Render horizontal rule separator.

    Returns:
        Markdown horizontal rule
    """
    return "---\n"


def render_contact_line(cv: CvContent) -> str:
    """Join location, email, phone, LinkedIn and compliance fields that are present."""
    parts = [
        cv.contact.location,
        cv.contact.email,
        cv.contact.phone,
        cv.contact.linkedin,
        cv.nationality,
    ]
    if cv.visa_status:
        parts.append(f"Visa Status: {cv.visa_status}")
    return CONTACT_SEPARATOR.join(p for p in parts if p)


def render_languages(languages: List[LanguageEntry]) -> str:
    """
    Render languages as a comma separated line.

    Examples:
        >>> render_languages([LanguageEntry(language="English", level="Native")])
        'English (Native)'
    """
    rendered = []
    for entry in languages:
        if entry.level:
            rendered.append(f"{entry.language} ({entry.level})")
        else:
            rendered.append(entry.language)
    return ", ".join(rendered)


def render_cv_markdown(cv: CvContent) -> str:
    """
    Render a full CV as markdown.

    Sections without content are omitted.

    Args:
        cv: Verified CV content

    Returns:
        Markdown document
    """
    blocks = [f"# {cv.name.upper()}\n"]

    contact_line = render_contact_line(cv)
    if contact_line:
        blocks.append(f"{contact_line}\n")

    if cv.headline:
        blocks.append(f"**{cv.headline.upper()}**\n")

    blocks.append(render_horizontal_rule())

    if cv.summary:
        blocks.append(render_section("Professional Summary", cv.summary))

    if cv.core_competencies:
        lines = [f"**{group.category}:** {', '.join(group.skills)}" for group in cv.core_competencies]
        blocks.append(render_section("Core Competencies", render_bullet_list(lines)))

    if cv.experience:
        entries = []
        for job in cv.experience:
            heading = f"### {job.title} | {job.company}"
            meta = " | ".join(p for p in (job.location, job.dates) if p)
            entry = [heading, ""]
            if meta:
                entry.extend([f"*{meta}*", ""])
            if job.description:
                entry.extend([job.description, ""])
            if job.achievements:
                entry.append(render_bullet_list(job.achievements).rstrip())
            entries.append("\n".join(entry).rstrip())
        blocks.append(render_section("Professional Experience", "\n\n".join(entries)))

    if cv.education:
        lines = [
            " | ".join(p for p in (edu.degree, edu.institution, edu.year) if p)
            for edu in cv.education
        ]
        blocks.append(render_section("Education", render_bullet_list(lines)))

    if cv.certifications:
        blocks.append(render_section("Certifications", CONTACT_SEPARATOR.join(cv.certifications)))

    if cv.languages:
        blocks.append(render_section("Languages", render_languages(cv.languages)))

    return "\n".join(blocks)


def render_cover_letter_markdown(
    letter: CoverLetterContent,
    cv: CvContent,
    location: Optional[str] = None,
    today: Optional[str] = None,
) -> str:
    """
    Render a cover letter as markdown.

    Args:
        letter: Cover letter content
        cv: Verified CV content, used for the sender header and signature
        location: Job location shown under the company name
        today: Date line; defaults to the current date

    Returns:
        Markdown document
    """
    today = today or datetime.now().strftime("%d %B %Y")
    contact_parts = [cv.contact.location, cv.contact.email, cv.contact.phone, cv.contact.linkedin]

    lines = [f"# {cv.name.upper()}", ""]
    contact_line = CONTACT_SEPARATOR.join(p for p in contact_parts if p)
    if contact_line:
        lines.extend([contact_line, ""])

    lines.extend([today, "", letter.recipient_name])
    if letter.company_name:
        lines.append(letter.company_name)
    if location:
        lines.append(location)
    lines.extend(["", f"Dear {letter.recipient_name},", ""])

    for paragraph in [letter.opening, *letter.body, letter.closing]:
        if paragraph and paragraph.strip():
            lines.extend([paragraph.strip(), ""])

    lines.extend(["Best regards,", "", cv.name])
    return "\n".join(lines) + "\n"
