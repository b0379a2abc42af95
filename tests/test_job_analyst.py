"""
Unit tests for the job analysis agent.
"""

import asyncio

from cv_tailor.agents.job_analyst import analyze_job_requirements, draft_job_requirements, parse_requirements
from cv_tailor.graph.state import JobRequirements

from .fixtures import ScriptedInference, as_reply, job_payload, sample_job_text


class TestAnalyzeJobRequirements:
    """Test job requirement analysis and its fallback."""

    def test_parses_requirements(self):
        inference = ScriptedInference({"job_analysis": [as_reply(job_payload())]})

        requirements = asyncio.run(analyze_job_requirements(sample_job_text(), inference))

        assert requirements.job_title == "Product Manager"
        assert requirements.company == "Globex"
        assert requirements.required_skills == ["Agile", "SQL", "Roadmapping"]
        assert requirements.preferred_skills == ["Python"]
        assert requirements.years_required == "5+"
        assert inference.calls[0]["max_tokens"] == 2000

    def test_unparsable_reply_gives_empty_requirements(self):
        """Prose without JSON falls back to empty requirements."""
        inference = ScriptedInference({"job_analysis": ["I could not read the posting."]})

        requirements = asyncio.run(analyze_job_requirements(sample_job_text(), inference))

        assert requirements == JobRequirements()
        assert requirements.required_skills == []

    def test_draft_returns_none_on_bad_reply(self):
        inference = ScriptedInference({"job_analysis": ["not json"]})

        assert asyncio.run(draft_job_requirements(sample_job_text(), inference)) is None

    def test_empty_job_text_is_described(self):
        inference = ScriptedInference({"job_analysis": [as_reply(job_payload())]})

        asyncio.run(analyze_job_requirements("", inference))

        assert "No job description provided" in inference.calls[0]["prompt"]


class TestParseRequirements:
    """Test payload cleaning."""

    def test_placeholders_and_duplicates(self):
        requirements = parse_requirements({
            "jobTitle": "null",
            "requiredSkills": ["SQL", "sql", "", None],
            "keywords": ["data", "Data"],
        })

        assert requirements.job_title is None
        assert requirements.required_skills == ["SQL"]
        assert requirements.keywords == ["data"]

    def test_missing_fields_default_to_empty(self):
        requirements = parse_requirements({})

        assert requirements.preferred_skills == []
        assert requirements.must_haves == []
