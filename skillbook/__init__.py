"""Skillbook - tooling for Markdown skill libraries used by AI coding assistants."""

__version__ = "0.1.0"
