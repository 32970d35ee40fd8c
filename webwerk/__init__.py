"""Webwerk - manage WordPress installations across many sites."""

__version__ = "2.0.0"
