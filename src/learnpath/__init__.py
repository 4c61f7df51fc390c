"""Skill-gap to learning-path generation pipeline."""

__version__ = "0.1.0"
