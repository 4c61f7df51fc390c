"""Canonical competency shape produced by the competency extractor."""

from __future__ import annotations

from learnpath.models.base import CamelModel


class CompetencyRecord(CamelModel):
    name: str
    target_level: str | None = None
    query_template: str | None = None
    example_query: str | None = None
    # stage-1 only; fed back into the stage-2 prompt
    competency_type: str | None = None
    justification: str | None = None
