"""Reshape stage-4 completion output into the canonical learning-path schema.

Modern output carries a ``learning_modules`` array and is rebuilt module by
module with a fixed field order. Anything else is treated as the legacy
step-list shape and wrapped into a single module.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Union

from learnpath.models.learning_path import CanonicalLearningPath, LearningModule, PathStep
from learnpath.utils.json_parser import coerce_completion

logger = logging.getLogger(__name__)

DEFAULT_PATH_TITLE = "Personalized Learning Path"
LEGACY_PATH_TITLE = "Learning Path"


@dataclass(frozen=True)
class ModernPathOutput:
    data: dict[str, Any]


@dataclass(frozen=True)
class LegacyPathOutput:
    """Step list from ``pathSteps``/``steps``, a bare list, or lines of text."""

    steps: list[Any]
    title: str | None = None
    total_hours: Any = None


PathShape = Union[ModernPathOutput, LegacyPathOutput]


def detect_path_shape(raw: Any) -> PathShape:
    value = coerce_completion(raw)
    if isinstance(value, dict):
        if isinstance(_pick(value, "learning_modules", "learningModules"), list):
            return ModernPathOutput(value)
        steps = _pick(value, "pathSteps", "path_steps", "steps")
        return LegacyPathOutput(
            steps=steps if isinstance(steps, list) else [],
            title=_pick(value, "path_title", "pathTitle"),
            total_hours=_pick(value, "total_estimated_duration_hours", "totalEstimatedDurationHours"),
        )
    if isinstance(value, list):
        return LegacyPathOutput(steps=value)
    if isinstance(value, str):
        return LegacyPathOutput(steps=[line.strip() for line in value.splitlines() if line.strip()])
    return LegacyPathOutput(steps=[])


def canonicalize_path(raw: Any, learner_id: str | None = None) -> CanonicalLearningPath:
    """Build a :class:`CanonicalLearningPath` from raw stage-4 output."""
    shape = detect_path_shape(raw)
    return _EXTRACTORS[type(shape)](shape, learner_id)


# --- modern shape ---


def _from_modern(shape: ModernPathOutput, learner_id: str | None) -> CanonicalLearningPath:
    data = shape.data
    modules = [
        _modern_module(m, position)
        for position, m in enumerate(_pick(data, "learning_modules", "learningModules"), start=1)
        if isinstance(m, dict)
    ]
    return CanonicalLearningPath(
        path_title=_pick(data, "path_title", "pathTitle") or DEFAULT_PATH_TITLE,
        learner_id=_pick(data, "learner_id", "learnerId") or learner_id,
        total_estimated_duration_hours=_number(
            _pick(data, "total_estimated_duration_hours", "totalEstimatedDurationHours")
        ),
        learning_modules=modules,
    )


def _modern_module(raw: dict[str, Any], position: int) -> LearningModule:
    raw_steps = _pick(raw, "steps")
    steps = None
    if isinstance(raw_steps, list):
        steps = [_modern_step(s) for s in raw_steps if isinstance(s, dict)]
    return LearningModule(
        module_order=_int(_pick(raw, "module_order", "moduleOrder", "order")),
        module_title=str(_pick(raw, "module_title", "moduleTitle", "title") or f"Module {position}"),
        estimated_duration_hours=_number(
            _pick(raw, "estimated_duration_hours", "estimatedDurationHours", "duration")
        ),
        skills_in_module=_str_list(_pick(raw, "skills_in_module", "skillsInModule")),
        steps=steps,
    )


def _modern_step(raw: dict[str, Any]) -> PathStep:
    return PathStep(
        step=_int(_pick(raw, "step", "step_number", "order")),
        title=str(_pick(raw, "title") or ""),
        description=str(_pick(raw, "description") or ""),
        estimated_time=_estimated_time(_pick(raw, "estimated_time", "estimatedTime")),
        skills_covered=_str_list(_pick(raw, "skills_covered", "skillsCovered")),
    )


# --- legacy shape ---


def _from_legacy(shape: LegacyPathOutput, learner_id: str | None) -> CanonicalLearningPath:
    logger.info("Stage-4 output is not module-based; using legacy step extraction")
    steps = [_legacy_step(item, position) for position, item in enumerate(shape.steps, start=1)]
    title = shape.title or LEGACY_PATH_TITLE
    modules = []
    if steps:
        modules.append(
            LearningModule(
                module_order=1,
                module_title=title,
                estimated_duration_hours=_number(shape.total_hours),
                steps=steps,
            )
        )
    return CanonicalLearningPath(
        path_title=title,
        learner_id=learner_id,
        total_estimated_duration_hours=_number(shape.total_hours),
        learning_modules=modules,
    )


def _legacy_step(item: Any, position: int) -> PathStep:
    if not isinstance(item, dict):
        return PathStep(step=position, title=str(item))
    number = _pick(item, "step", "order")
    return PathStep(
        step=_int(number) if number is not None else position,
        title=str(_pick(item, "title", "name") or ""),
        description=str(_pick(item, "description") or ""),
        estimated_time=_estimated_time(_pick(item, "estimated_time", "estimatedTime", "duration")),
        skills_covered=_str_list(_pick(item, "skills_covered", "skillsCovered", "skills")),
    )


_EXTRACTORS: dict[type, Callable[[Any, str | None], CanonicalLearningPath]] = {
    ModernPathOutput: _from_modern,
    LegacyPathOutput: _from_legacy,
}


# --- field helpers ---


def _pick(data: dict[str, Any], *keys: str) -> Any:
    """First present key wins; each field has a fixed list of accepted spellings."""
    for key in keys:
        if key in data:
            return data[key]
    return None


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("Dropping non-numeric duration %r", value)
        return None


def _estimated_time(value: Any) -> str | float | None:
    """Free-form step time; structured values are kept as their JSON text."""
    if value is None or (isinstance(value, (str, int, float)) and not isinstance(value, bool)):
        return value
    return json.dumps(value, ensure_ascii=False)


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    names = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("name")
        if item is not None and str(item).strip():
            names.append(str(item).strip())
    return names
