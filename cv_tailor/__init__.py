"""Fact-verified CV and cover letter tailoring pipeline."""

__version__ = "0.1.0"
