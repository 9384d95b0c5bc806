"""Formaloo nodes for workflow automation: form submission and webhook triggers."""

__version__ = "0.1.0"
