"""
Unit tests for the fact extraction agent.
"""

import asyncio

import pytest
from pydantic import ValidationError

from cv_tailor.agents.fact_extractor import (
    clean_extraction,
    clean_scalar,
    combine_sources,
    dedupe,
    extract_facts,
)
from cv_tailor.errors import ExtractionParseError, InsufficientDataError, NameMissingError
from cv_tailor.graph.state import ExtractedProfile

from .fixtures import (
    ScriptedInference,
    as_reply,
    extraction_payload,
    sample_cv_text,
    sample_profile_text,
)


def run_extraction(inference, profile_text=None, cv_texts=None):
    return asyncio.run(extract_facts(
        sample_profile_text() if profile_text is None else profile_text,
        [sample_cv_text()] if cv_texts is None else cv_texts,
        inference,
    ))


class TestExtractFacts:
    """Test the extraction entry point."""

    def test_extracts_verified_profile(self):
        """A valid reply becomes a cleaned ExtractedProfile."""
        inference = ScriptedInference({"extraction": [as_reply(extraction_payload())]})

        profile = run_extraction(inference)

        assert isinstance(profile, ExtractedProfile)
        assert profile.name == "Jane Doe"
        assert profile.email == "jane@x.com"
        assert profile.skills == ["Agile", "SQL", "Stakeholder management"]
        assert [e.company for e in profile.experience] == ["Acme GmbH", "Beta AG"]
        assert profile.years_experience == "7"
        assert inference.calls[0]["max_tokens"] == 3000
        assert "precise data extractor" in inference.calls[0]["system"]

    def test_short_input_raises_insufficient_data(self):
        """Fewer than 100 characters of input is rejected before any call."""
        inference = ScriptedInference()

        with pytest.raises(InsufficientDataError):
            run_extraction(inference, profile_text="Jane Doe", cv_texts=[])

        assert inference.calls == []

    def test_whitespace_does_not_count(self):
        """Padding with whitespace does not reach the minimum length."""
        inference = ScriptedInference()

        with pytest.raises(InsufficientDataError):
            run_extraction(inference, profile_text=" " * 200 + "Jane", cv_texts=["\n" * 50])

    def test_missing_name_raises(self):
        """A reply without a name aborts extraction."""
        payload = extraction_payload()
        payload["name"] = "null"
        inference = ScriptedInference({"extraction": [as_reply(payload)]})

        with pytest.raises(NameMissingError):
            run_extraction(inference)

    def test_parse_failure_is_retried_once(self):
        """A reply without JSON is retried, and the second reply is used."""
        inference = ScriptedInference({
            "extraction": ["Sorry, I cannot help with that.", as_reply(extraction_payload())],
        })

        profile = run_extraction(inference)

        assert profile.name == "Jane Doe"
        assert inference.stages_called() == ["extraction", "extraction"]

    def test_parse_failure_twice_raises(self):
        """Two replies without JSON raise ExtractionParseError."""
        inference = ScriptedInference({"extraction": ["no json here"]})

        with pytest.raises(ExtractionParseError):
            run_extraction(inference)

        assert len(inference.calls) == 2

    def test_cv_texts_are_joined_with_separator(self):
        """All CV texts reach the prompt, separated by rule lines."""
        inference = ScriptedInference({"extraction": [as_reply(extraction_payload())]})

        run_extraction(inference, cv_texts=["First CV text", "Second CV text"])

        prompt = inference.calls[0]["prompt"]
        assert "First CV text\n\n---\n\nSecond CV text" in prompt


class TestCleanExtraction:
    """Test the filtering layer applied to model output."""

    def source(self):
        return combine_sources(sample_profile_text(), [sample_cv_text()])

    def test_placeholders_become_none(self):
        payload = extraction_payload()
        payload["location"] = "Not Found"
        payload["nationality"] = "unknown"

        profile = clean_extraction(payload, self.source())

        assert profile.location is None
        assert profile.nationality is None

    def test_education_without_institution_is_dropped(self):
        profile = clean_extraction(extraction_payload(), self.source())

        assert [e.institution for e in profile.education] == ["TU Munich"]

    def test_null_year_becomes_empty_string(self):
        payload = extraction_payload()
        payload["education"] = [{"degree": "MSc", "institution": "TU Munich", "year": "null"}]

        profile = clean_extraction(payload, self.source())

        assert profile.education[0].year == ""

    def test_skills_and_certifications_deduplicated(self):
        payload = extraction_payload()
        payload["certifications"] = ["CSPO", "cspo", "N/A"]

        profile = clean_extraction(payload, self.source())

        assert profile.skills == ["Agile", "SQL", "Stakeholder management"]
        assert profile.certifications == ["CSPO"]

    def test_email_not_in_source_is_dropped(self):
        payload = extraction_payload()
        payload["email"] = "jane.doe@invented.com"

        profile = clean_extraction(payload, self.source())

        assert profile.email is None

    def test_phone_compared_by_digits(self):
        payload = extraction_payload()
        payload["phone"] = "+4915123456789"

        profile = clean_extraction(payload, self.source())

        assert profile.phone == "+4915123456789"

    def test_invented_phone_is_dropped(self):
        payload = extraction_payload()
        payload["phone"] = "+1 555 0100"

        profile = clean_extraction(payload, self.source())

        assert profile.phone is None

    def test_linkedin_matched_without_scheme(self):
        profile = clean_extraction(extraction_payload(), self.source())

        assert profile.linkedin == "https://www.linkedin.com/in/janedoe"

    def test_invented_linkedin_is_dropped(self):
        payload = extraction_payload()
        payload["linkedin"] = "https://linkedin.com/in/someone-else"

        profile = clean_extraction(payload, self.source())

        assert profile.linkedin is None

    def test_languages_as_plain_strings(self):
        payload = extraction_payload()
        payload["languages"] = ["English", "German (Native)"]

        profile = clean_extraction(payload, self.source())

        assert [lang.language for lang in profile.languages] == ["English", "German (Native)"]
        assert profile.languages[0].level is None

    def test_missing_name_raises(self):
        payload = extraction_payload()
        del payload["name"]

        with pytest.raises(NameMissingError):
            clean_extraction(payload, self.source())

    def test_profile_is_frozen(self):
        profile = clean_extraction(extraction_payload(), self.source())

        with pytest.raises(ValidationError):
            profile.name = "Someone Else"


class TestHelpers:
    """Test small cleaning helpers."""

    @pytest.mark.parametrize("value", [None, "", "  ", "null", "None", "N/A", "not found", "Unknown"])
    def test_clean_scalar_placeholders(self, value):
        assert clean_scalar(value) is None

    def test_clean_scalar_keeps_values(self):
        assert clean_scalar("  Berlin ") == "Berlin"
        assert clean_scalar(7) == "7"

    def test_dedupe_keeps_first_spelling(self):
        assert dedupe(["SQL", "sql", "Python", "SQL"]) == ["SQL", "Python"]
