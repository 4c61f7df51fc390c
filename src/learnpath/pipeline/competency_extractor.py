"""Parse stage-1 and stage-2 completion output into competency records.

Both stages have produced several output shapes over time. Each stage has a
shape detector that returns exactly one variant, and each variant has its
own extractor into :class:`CompetencyRecord`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Union

from learnpath.models.competency import CompetencyRecord
from learnpath.utils.json_parser import coerce_completion

logger = logging.getLogger(__name__)

DEFAULT_COMPETENCY_TYPE = "Out-of-the-Box"
DEFAULT_TARGET_LEVEL = "Intermediate"


# --- shape variants ---


@dataclass(frozen=True)
class ExpandedCompetencyList:
    """Stage 1: ``{"expanded_competencies_list": [{competency_name, ...}]}``."""

    items: list[Any]


@dataclass(frozen=True)
class ExpandedSkills:
    """Stage 1 legacy: ``{"expandedSkills": ["name" | {name, description}]}``."""

    items: list[Any]


@dataclass(frozen=True)
class TaxonomyQueries:
    """Stage 2: ``competencies_for_skills_engine_processing`` plus a shared query template."""

    items: list[Any]
    query_template: str | None


@dataclass(frozen=True)
class CompetencyList:
    """Stage 2 legacy: ``{"competencies": [...]}`` or a bare list."""

    items: list[Any]


@dataclass(frozen=True)
class PlainText:
    """Unparseable output; one competency per non-empty line."""

    text: str


@dataclass(frozen=True)
class Unrecognized:
    value: Any


Stage1Shape = Union[ExpandedCompetencyList, ExpandedSkills, Unrecognized]
Stage2Shape = Union[TaxonomyQueries, CompetencyList, PlainText, Unrecognized]


def detect_stage1_shape(output: Any) -> Stage1Shape:
    value = coerce_completion(output)
    if isinstance(value, dict):
        if isinstance(value.get("expanded_competencies_list"), list):
            return ExpandedCompetencyList(value["expanded_competencies_list"])
        if isinstance(value.get("expandedSkills"), list):
            return ExpandedSkills(value["expandedSkills"])
    return Unrecognized(value)


def detect_stage2_shape(output: Any) -> Stage2Shape:
    value = coerce_completion(output)
    if isinstance(value, dict):
        if isinstance(value.get("competencies_for_skills_engine_processing"), list):
            return TaxonomyQueries(
                value["competencies_for_skills_engine_processing"],
                value.get("standard_skills_engine_query_template"),
            )
        if isinstance(value.get("competencies"), list):
            return CompetencyList(value["competencies"])
    if isinstance(value, list):
        return CompetencyList(value)
    if isinstance(value, str) and value:
        return PlainText(value)
    return Unrecognized(value)


# --- extractors ---


def _from_expanded_list(shape: ExpandedCompetencyList) -> list[CompetencyRecord]:
    records = []
    for item in shape.items:
        if not isinstance(item, dict) or not item.get("competency_name"):
            continue
        records.append(
            CompetencyRecord(
                name=item["competency_name"],
                target_level=item.get("target_level"),
                competency_type=item.get("competency_type"),
                justification=item.get("justification") or item["competency_name"],
            )
        )
    return records


def _from_expanded_skills(shape: ExpandedSkills) -> list[CompetencyRecord]:
    records = []
    for item in shape.items:
        if isinstance(item, dict):
            if not item.get("name"):
                continue
            records.append(
                CompetencyRecord(
                    name=str(item["name"]),
                    justification=item.get("description") or None,
                    competency_type=DEFAULT_COMPETENCY_TYPE,
                )
            )
        elif str(item).strip():
            records.append(CompetencyRecord(name=str(item).strip(), competency_type=DEFAULT_COMPETENCY_TYPE))
    return records


def _from_taxonomy_queries(shape: TaxonomyQueries) -> list[CompetencyRecord]:
    records = []
    for item in shape.items:
        if not isinstance(item, dict) or not item.get("competency_name"):
            continue
        records.append(
            CompetencyRecord(
                name=item["competency_name"],
                target_level=item.get("target_level"),
                query_template=shape.query_template,
                example_query=item.get("example_query_to_send"),
            )
        )
    return records


def _from_competency_list(shape: CompetencyList) -> list[CompetencyRecord]:
    records = []
    for item in shape.items:
        if isinstance(item, dict):
            name = item.get("name") or item.get("competency_name")
            if name:
                records.append(CompetencyRecord(name=str(name), target_level=item.get("target_level")))
        elif str(item).strip():
            records.append(CompetencyRecord(name=str(item).strip()))
    return records


def _from_plain_text(shape: PlainText) -> list[CompetencyRecord]:
    lines = (line.strip().lstrip("-*").strip() for line in shape.text.splitlines())
    return [CompetencyRecord(name=line) for line in lines if line]


def _from_unrecognized(shape: Unrecognized) -> list[CompetencyRecord]:
    logger.warning("Unrecognized competency output shape: %s", type(shape.value).__name__)
    return []


_EXTRACTORS: dict[type, Callable[[Any], list[CompetencyRecord]]] = {
    ExpandedCompetencyList: _from_expanded_list,
    ExpandedSkills: _from_expanded_skills,
    TaxonomyQueries: _from_taxonomy_queries,
    CompetencyList: _from_competency_list,
    PlainText: _from_plain_text,
    Unrecognized: _from_unrecognized,
}


def extract_stage1_competencies(output: Any) -> list[CompetencyRecord]:
    """Competencies from the skill-expansion output; empty when the shape is unknown."""
    shape = detect_stage1_shape(output)
    return _EXTRACTORS[type(shape)](shape)


def extract_stage2_competencies(output: Any) -> list[CompetencyRecord]:
    """Competencies prepared for the taxonomy service from the identification output."""
    shape = detect_stage2_shape(output)
    return _EXTRACTORS[type(shape)](shape)


def stage2_input(stage1_output: Any, competencies: list[CompetencyRecord]) -> str:
    """Prompt input for stage 2, falling back to the raw stage-1 output."""
    if not competencies:
        value = coerce_completion(stage1_output)
        if isinstance(value, str):
            return value
        return _dumps(value)
    payload = {
        "expanded_competencies_list": [
            {
                "competency_name": c.name,
                "competency_type": c.competency_type or DEFAULT_COMPETENCY_TYPE,
                "target_level": c.target_level or DEFAULT_TARGET_LEVEL,
                "justification": c.justification,
            }
            for c in competencies
        ]
    }
    return _dumps(payload)


def _dumps(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)
