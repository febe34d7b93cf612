"""Contextual retrieval and synthesis for job-outreach emails."""

__version__ = "0.1.0"
