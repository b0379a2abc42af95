"""
Unit tests for the cover letter agent.
"""

import asyncio

import pytest

from cv_tailor.agents.cover_letter import (
    fallback_cover_letter,
    parse_cover_letter,
    resolve_company,
    resolve_job_title,
    write_cover_letter,
)
from cv_tailor.errors import ExtractionParseError
from cv_tailor.graph.state import ExtractedProfile, ExperienceEntry, JobPosting, JobRequirements

from .fixtures import ScriptedInference, as_reply, cover_letter_payload, sample_job_text


@pytest.fixture
def profile():
    return ExtractedProfile(
        name="Jane Doe",
        current_title="Senior Product Manager",
        years_experience="7",
        skills=["Agile", "SQL"],
        experience=[
            ExperienceEntry(
                title="Senior Product Manager",
                company="Acme GmbH",
                achievements=["Led agile delivery for a team of 8 engineers"],
            ),
        ],
    )


@pytest.fixture
def job():
    return JobPosting(raw_text=sample_job_text(), title="Product Manager", company="Globex", location="Berlin")


class TestWriteCoverLetter:
    """Test drafting and the template fallback."""

    def test_drafted_letter(self, profile, job):
        inference = ScriptedInference({"cover_letter": [as_reply(cover_letter_payload())]})

        letter = asyncio.run(write_cover_letter(profile, job, inference))

        assert letter.opening.startswith("I am excited to apply")
        assert letter.body == ["At Acme GmbH I led agile delivery for a team of 8 engineers."]
        assert letter.recipient_name == "Hiring Manager"
        prompt = inference.calls[0]["prompt"]
        assert "Led agile delivery for a team of 8 engineers" in prompt
        assert "Company: Globex" in prompt

    def test_company_and_title_come_from_posting(self, profile, job):
        """The model's company and title are replaced by the resolved ones."""
        inference = ScriptedInference({"cover_letter": [as_reply(cover_letter_payload())]})

        letter = asyncio.run(write_cover_letter(profile, job, inference))

        assert letter.company_name == "Globex"
        assert letter.job_title == "Product Manager"

    def test_requirements_fill_missing_posting_fields(self, profile):
        job = JobPosting(raw_text="Some role")
        requirements = JobRequirements(job_title="Data Engineer", company="Initech")
        inference = ScriptedInference({"cover_letter": [as_reply(cover_letter_payload())]})

        letter = asyncio.run(write_cover_letter(profile, job, inference, requirements))

        assert letter.company_name == "Initech"
        assert letter.job_title == "Data Engineer"

    def test_unparsable_reply_uses_template(self, profile, job):
        inference = ScriptedInference({"cover_letter": ["Dear hiring manager, ..."]})

        letter = asyncio.run(write_cover_letter(profile, job, inference))

        assert letter.opening == "I am writing to express my interest in the Product Manager role at Globex."
        assert letter.company_name == "Globex"

    def test_long_job_text_is_truncated(self, profile):
        job = JobPosting(raw_text="x" * 5000)
        inference = ScriptedInference({"cover_letter": [as_reply(cover_letter_payload())]})

        asyncio.run(write_cover_letter(profile, job, inference))

        assert "x" * 1500 in inference.calls[0]["prompt"]
        assert "x" * 1501 not in inference.calls[0]["prompt"]


class TestFallbackCoverLetter:
    """Test the neutral template."""

    def test_template_without_title_or_company(self):
        letter = fallback_cover_letter(JobPosting(raw_text=""))

        assert letter.opening == "I am writing to express my interest in the position role at your company."
        assert letter.body == ["With my background and experience, I am confident I can contribute to your team."]
        assert letter.closing == "I look forward to discussing this opportunity with you."
        assert letter.company_name == "your company"
        assert letter.job_title == "this position"

    def test_template_makes_no_candidate_claims(self):
        letter = fallback_cover_letter(JobPosting(raw_text="", title="PM", company="Globex"))

        text = " ".join([letter.opening, *letter.body, letter.closing])
        assert "Jane" not in text
        assert "PM role at Globex" in text


class TestResolution:
    """Test title and company resolution order."""

    def test_posting_wins_over_requirements(self):
        job = JobPosting(raw_text="", title="PM", company="Globex")
        requirements = JobRequirements(job_title="Other", company="Other Co")

        assert resolve_job_title(job, requirements) == "PM"
        assert resolve_company(job, requirements) == "Globex"

    def test_none_when_unknown(self):
        assert resolve_job_title(None, None) is None
        assert resolve_company(JobPosting(raw_text=""), JobRequirements()) is None


class TestParseCoverLetter:
    """Test payload validation."""

    def test_body_string_becomes_list(self):
        letter = parse_cover_letter({"opening": "Hi", "body": "One paragraph"})

        assert letter.body == ["One paragraph"]

    def test_empty_letter_rejected(self):
        with pytest.raises(ExtractionParseError):
            parse_cover_letter({"opening": "", "body": []})
