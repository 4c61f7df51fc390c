"""Pedagogical checks for a canonical learning path.

Every check runs on every call and all violations are collected, so the
retry prompt can ask the model to fix everything at once.
"""

from __future__ import annotations

from collections import Counter

from learnpath.models.learning_path import CanonicalLearningPath, LearningModule
from learnpath.models.validation import ValidationResult
from learnpath.pipeline.difficulty import average_difficulty


def validate_path(path: CanonicalLearningPath) -> ValidationResult:
    errors: list[str] = []
    errors += check_module_order(path)
    errors += check_difficulty_progression(path)
    errors += check_step_order(path)
    errors += check_skill_step_consistency(path)
    errors += check_global_uniqueness(path)
    return ValidationResult(valid=not errors, errors=errors)


def check_module_order(path: CanonicalLearningPath) -> list[str]:
    errors = []
    for index, module in enumerate(path.learning_modules, start=1):
        if module.module_order != index:
            errors.append(
                f"Module {index} ('{module.module_title}') has moduleOrder "
                f"{module.module_order}; expected {index}"
            )
    return errors


def _module_skills(module: LearningModule) -> list[str]:
    return module.skills_in_module or module.covered_skills()


def check_difficulty_progression(path: CanonicalLearningPath) -> list[str]:
    errors = []
    previous: tuple[int, float] | None = None
    for index, module in enumerate(path.learning_modules, start=1):
        skills = _module_skills(module)
        if not skills:
            continue
        score = average_difficulty(skills)
        if previous is not None and score < previous[1]:
            errors.append(
                f"Module {index} ('{module.module_title}') has average difficulty "
                f"{score:.2f}, lower than module {previous[0]} ({previous[1]:.2f}); "
                "modules must not get easier"
            )
        previous = (index, score)
    return errors


def check_step_order(path: CanonicalLearningPath) -> list[str]:
    errors = []
    for m_index, module in enumerate(path.learning_modules, start=1):
        for s_index, step in enumerate(module.steps or [], start=1):
            if step.step != s_index:
                errors.append(
                    f"Module {m_index}, step {s_index} ('{step.title}') is numbered "
                    f"{step.step}; expected {s_index}"
                )
    return errors


def check_skill_step_consistency(path: CanonicalLearningPath) -> list[str]:
    """skillsInModule must match, as a set and in order, the skills its steps cover.

    Modules that do not declare skillsInModule are skipped.
    """
    errors = []
    for m_index, module in enumerate(path.learning_modules, start=1):
        declared = list(dict.fromkeys(module.skills_in_module))
        if not declared:
            continue
        introduced = module.covered_skills()

        declared_common = [s for s in declared if s in introduced]
        introduced_common = [s for s in introduced if s in declared]
        if declared_common != introduced_common:
            errors.append(
                f"Module {m_index}: skillsInModule order {declared_common} does not "
                f"match the order steps introduce them {introduced_common}"
            )

        for skill in declared:
            if skill not in introduced:
                errors.append(
                    f"Module {m_index}: skill '{skill}' is listed in skillsInModule "
                    "but not covered by any step"
                )
        for skill in introduced:
            if skill not in declared:
                errors.append(
                    f"Module {m_index}: skill '{skill}' is covered by a step "
                    "but missing from skillsInModule"
                )
    return errors


def check_global_uniqueness(path: CanonicalLearningPath) -> list[str]:
    counts: Counter[str] = Counter(
        skill
        for module in path.learning_modules
        for step in module.steps or []
        for skill in step.skills_covered
    )
    return [
        f"Skill '{skill}' appears in skillsCovered {count} times across the path; "
        "each skill may be covered once"
        for skill, count in counts.items()
        if count > 1
    ]


def format_violations(errors: list[str]) -> str:
    """Feedback block appended to the path-creation prompt on retry."""
    lines = "\n".join(f"- {e}" for e in errors)
    return (
        "\n\nYour previous learning path failed validation. "
        f"Fix every issue below and return the complete corrected JSON:\n{lines}"
    )
