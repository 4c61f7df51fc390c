"""Keyword-based difficulty scoring for skill names.

Skills arrive from the taxonomy service for any domain, so there is no
per-skill knowledge base: a name is scored by the keywords it contains.
Novel terminology falls back to intermediate.
"""

from __future__ import annotations

from collections.abc import Iterable

FOUNDATIONAL = 1
INTERMEDIATE = 2
ADVANCED = 3

FOUNDATIONAL_KEYWORDS: tuple[str, ...] = (
    "basic",
    "introduction",
    "intro",
    "fundamentals",
    "getting started",
    "variables",
    "data types",
    "syntax",
    "hello world",
    "first steps",
)

ADVANCED_KEYWORDS: tuple[str, ...] = (
    "advanced",
    "expert",
    "master",
    "optimization",
    "performance",
    "memory management",
    "concurrency",
    "multithreading",
    "design patterns",
    "architecture",
    "enterprise",
    "scalability",
    "polymorphism",
    "inheritance",
    "templates",
    "generics",
    "metaprogramming",
)


def difficulty_score(skill: str) -> int:
    """Return 1 (foundational), 2 (intermediate) or 3 (advanced)."""
    name = skill.lower()
    if any(keyword in name for keyword in FOUNDATIONAL_KEYWORDS):
        return FOUNDATIONAL
    if any(keyword in name for keyword in ADVANCED_KEYWORDS):
        return ADVANCED
    return INTERMEDIATE


def average_difficulty(skills: Iterable[str]) -> float:
    scores = [difficulty_score(s) for s in skills]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)
