"""
Tests for heuristic job description parsing.
"""

from cv_tailor.tools.job_text import detect_location, extract_keywords, parse_job_description

from .fixtures import sample_job_text


class TestParseJobDescription:
    """Test title, company and location detection."""

    def test_sample_posting(self):
        posting = parse_job_description(sample_job_text())

        assert posting.title == "Product Manager"
        assert posting.company == "Globex"
        assert posting.location == "Berlin"
        assert posting.raw_text == sample_job_text()

    def test_single_line(self):
        posting = parse_job_description("Data Engineer")

        assert posting.title == "Data Engineer"
        assert posting.company is None
        assert posting.location is None

    def test_empty_text(self):
        posting = parse_job_description("")

        assert posting.title is None
        assert posting.raw_text == ""
        assert posting.keywords == []


class TestDetectLocation:
    """Test location detection order."""

    def test_work_mode_first(self):
        assert detect_location("Remote role, team in Berlin") == "Remote"

    def test_city(self):
        assert detect_location("Office in Dublin") == "Dublin"

    def test_us_city(self):
        assert detect_location("Based in San Francisco") == "San Francisco"

    def test_none(self):
        assert detect_location("Great team, great product") is None


class TestExtractKeywords:
    """Test keyword extraction."""

    def test_keywords_lower_cased_and_unique(self):
        keywords = extract_keywords("Python, SQL and python. Agile team using Scrum.")

        assert keywords == ["python", "sql", "agile", "scrum"]

    def test_multi_word_keywords(self):
        assert "product management" in extract_keywords("Strong Product Management background")
