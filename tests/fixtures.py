"""
Test fixtures for the tailoring pipeline.

Contains sample candidate and job texts, the model responses that go with
them, and a scripted inference client that answers per pipeline stage.
"""

import json
from typing import Optional


def sample_profile_text():
    """
    Sample profile text for Jane Doe.

    Long enough for extraction and containing every contact detail the
    sample extraction response reports.
    """
    return """
Jane Doe
Senior Product Manager
jane@x.com | +49 151 2345 6789 | Berlin, Germany
linkedin.com/in/janedoe

EXPERIENCE
Senior Product Manager, Acme GmbH, Berlin, 2020 - Present
- Led agile delivery for a team of 8 engineers
- Cut reporting time by 30% with SQL dashboards

Product Owner, Beta AG, Munich, 2017 - 2020
- Introduced Scrum across three squads

SKILLS
Agile, SQL, Stakeholder management

EDUCATION
MSc Management, TU Munich, 2017

LANGUAGES
English (Fluent), German (Native)
"""


def sample_cv_text():
    """Sample CV text that repeats part of the profile."""
    return """
JANE DOE - CV
Senior Product Manager at Acme GmbH since 2020.
Certified Scrum Product Owner (CSPO).
"""


def sample_job_text():
    """Sample EU job posting requiring Agile, SQL and Roadmapping."""
    return """Product Manager
Globex
Berlin, Germany

We are looking for a Product Manager with strong Agile and SQL skills and
experience in roadmapping. Python is a plus.
"""


def extraction_payload():
    return {
        "name": "Jane Doe",
        "email": "jane@x.com",
        "phone": "+49 151 2345 6789",
        "linkedin": "https://www.linkedin.com/in/janedoe",
        "location": "Berlin, Germany",
        "nationality": "German",
        "visaStatus": None,
        "currentTitle": "Senior Product Manager",
        "yearsExperience": 7,
        "skills": ["Agile", "SQL", "Stakeholder management", "agile"],
        "experience": [
            {
                "title": "Senior Product Manager",
                "company": "Acme GmbH",
                "location": "Berlin",
                "dates": "2020 - Present",
                "achievements": [
                    "Led agile delivery for a team of 8 engineers",
                    "Cut reporting time by 30% with SQL dashboards",
                ],
            },
            {
                "title": "Product Owner",
                "company": "Beta AG",
                "location": "Munich",
                "dates": "2017 - 2020",
                "achievements": ["Introduced Scrum across three squads"],
            },
        ],
        "education": [
            {"degree": "MSc Management", "institution": "TU Munich", "year": "2017"},
            {"degree": "Online course", "institution": "null", "year": "null"},
        ],
        "certifications": ["CSPO", "N/A"],
        "languages": [
            {"language": "English", "level": "Fluent"},
            {"language": "German", "level": "Native"},
        ],
    }


def job_payload():
    return {
        "jobTitle": "Product Manager",
        "company": "Globex",
        "requiredSkills": ["Agile", "SQL", "Roadmapping"],
        "preferredSkills": ["Python"],
        "keyResponsibilities": ["Own the product roadmap"],
        "yearsRequired": "5+",
        "mustHaves": ["Agile"],
        "keywords": ["agile", "sql", "roadmap"],
    }


def tailored_cv_payload():
    """
    Tailoring response that tries to change identity fields.

    Name, email, languages, one employer, one certification and one
    competency skill are not in the verified facts.
    """
    return {
        "name": "John Smith",
        "contact": {"email": "john@fake.com", "phone": "000", "linkedin": None, "location": "Paris"},
        "nationality": "French",
        "visaStatus": "Blue Card",
        "headline": "Agile Product Manager",
        "summary": "Product manager with agile and SQL experience.",
        "coreCompetencies": [
            {"category": "Product", "skills": ["Agile", "SQL", "Kubernetes"]},
            {"category": "Cloud", "skills": ["Kubernetes"]},
        ],
        "experience": [
            {
                "title": "Head of Product",
                "company": "ACME GmbH",
                "location": "Remote",
                "dates": "2019 - Present",
                "description": "B2B analytics",
                "achievements": ["Led agile delivery for 8 engineers"],
            },
            {
                "title": "CTO",
                "company": "Fake Corp",
                "location": "Paris",
                "dates": "2010 - 2017",
                "achievements": ["Invented things"],
            },
        ],
        "education": [{"degree": "PhD", "institution": "Sorbonne", "year": "2010"}],
        "certifications": ["CSPO", "PMP"],
        "languages": [{"language": "French", "level": "Native"}],
    }


def cover_letter_payload():
    return {
        "opening": "I am excited to apply for the Product Manager role at Globex.",
        "body": ["At Acme GmbH I led agile delivery for a team of 8 engineers."],
        "closing": "I would welcome the chance to talk.",
        "recipientName": "Hiring Manager",
        "companyName": "Someone Else",
        "jobTitle": "Other Title",
    }


def as_reply(payload) -> str:
    """Wrap a payload the way chat models tend to answer."""
    return f"Here is the JSON:\n```json\n{json.dumps(payload)}\n```"


# Prompt openings used to route scripted replies to a stage
STAGE_MARKERS = {
    "extraction": "Extract ONLY the factual information",
    "job_analysis": "Analyze this job description",
    "tailoring": "Create a tailored CV",
    "cover_letter": "Write a cover letter",
}


class ScriptedInference:
    """
    Inference double answering each stage from its own reply queue.

    Stages run concurrently in the graph, so replies are keyed by stage
    rather than by call order. The last reply of a queue is repeated.
    """

    def __init__(self, replies: Optional[dict] = None):
        self.replies = {stage: list(values) for stage, values in (replies or {}).items()}
        self.calls = []

    @staticmethod
    def stage_of(prompt: str) -> str:
        for stage, marker in STAGE_MARKERS.items():
            if prompt.startswith(marker):
                return stage
        raise AssertionError(f"Unexpected prompt: {prompt[:60]!r}")

    async def infer(self, prompt: str, max_tokens: int, system: Optional[str] = None) -> str:
        stage = self.stage_of(prompt)
        self.calls.append({"stage": stage, "prompt": prompt, "max_tokens": max_tokens, "system": system})
        queue = self.replies.get(stage)
        if not queue:
            raise AssertionError(f"No scripted reply for stage {stage}")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def stages_called(self):
        return [call["stage"] for call in self.calls]


def happy_path_inference() -> ScriptedInference:
    """Scripted replies for a full successful run."""
    return ScriptedInference({
        "extraction": [as_reply(extraction_payload())],
        "job_analysis": [as_reply(job_payload())],
        "tailoring": [as_reply(tailored_cv_payload())],
        "cover_letter": [as_reply(cover_letter_payload())],
    })
