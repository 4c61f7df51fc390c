"""Exception types raised by the learning-path pipeline."""

from __future__ import annotations


class LearnPathError(Exception):
    """Base class for pipeline errors."""


class MissingRequiredFieldsError(LearnPathError, ValueError):
    """A skills gap is missing one of the fields needed to start a job."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            "Skills gap is missing required fields: " + ", ".join(missing)
        )


class CompletionError(LearnPathError):
    """The AI completion service failed after its retry budget."""


class TaxonomyServiceError(LearnPathError):
    """The skills taxonomy service could not produce a breakdown."""


class PromptNotFoundError(LearnPathError, FileNotFoundError):
    """No prompt template exists under the requested name."""
