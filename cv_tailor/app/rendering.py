"""
Document renderers for generated CV and cover letter content.

The service only depends on the `DocumentRenderer` protocol, so a binary
format can be plugged in without touching the pipeline.
"""

from typing import Optional, Protocol

from cv_tailor.graph.state import CoverLetterContent, CvContent, Region
from cv_tailor.utils.md import render_cover_letter_markdown, render_cv_markdown


class DocumentRenderer(Protocol):
    extension: str

    def render_cv(self, cv: CvContent, region: Region) -> bytes:
        ...

    def render_cover_letter(
        self,
        letter: CoverLetterContent,
        cv: CvContent,
        region: Region,
        location: Optional[str] = None,
    ) -> bytes:
        ...


class MarkdownRenderer:
    """Renders documents as UTF-8 markdown."""

    extension = ".md"

    def __init__(self, today: Optional[str] = None):
        self.today = today

    def render_cv(self, cv: CvContent, region: Region) -> bytes:
        return render_cv_markdown(cv).encode("utf-8")

    def render_cover_letter(
        self,
        letter: CoverLetterContent,
        cv: CvContent,
        region: Region,
        location: Optional[str] = None,
    ) -> bytes:
        return render_cover_letter_markdown(letter, cv, location=location, today=self.today).encode("utf-8")
