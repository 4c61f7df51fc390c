"""Prune a skill breakdown down to the skills a learner still lacks."""

from __future__ import annotations

from typing import Any

SKILL_LEVELS = ("microSkills", "nanoSkills")


def skill_name(entry: Any) -> str:
    """Name of a breakdown entry, which is either a string or a ``{name}`` object."""
    if isinstance(entry, dict):
        return str(entry.get("name") or entry.get("skill_name") or "")
    return str(entry)


def matches_any(name: str, remaining: list[str]) -> bool:
    """Case-insensitive substring match in either direction."""
    candidate = name.strip().lower()
    if not candidate:
        return False
    return any(candidate in other or other in candidate for other in remaining)


def filter_breakdown(
    breakdown: dict[str, dict[str, list[Any]]],
    remaining_skill_names: list[str],
) -> dict[str, dict[str, list[Any]]]:
    """Keep only skills that fuzzily match a remaining skill name.

    Competencies left with neither micro nor nano skills are dropped from
    the result entirely.
    """
    remaining = [n.strip().lower() for n in remaining_skill_names if n and n.strip()]

    filtered: dict[str, dict[str, list[Any]]] = {}
    for competency, levels in breakdown.items():
        kept = {
            level: [e for e in (levels or {}).get(level) or [] if matches_any(skill_name(e), remaining)]
            for level in SKILL_LEVELS
        }
        if any(kept.values()):
            filtered[competency] = kept
    return filtered


def extract_skill_names(raw_skill_data: Any) -> list[str]:
    """Flatten raw gap data into skill names, in first-seen order.

    Accepts a competency map (``{"Competency": ["Skill", ...]}``), a list of
    names or ``{name}`` objects, or any nesting of those. Keys of a
    competency map are grouping labels, not skills.
    """
    names: list[str] = []

    def walk(node: Any) -> None:
        if node is None:
            return
        if isinstance(node, str):
            if node.strip() and node not in names:
                names.append(node)
        elif isinstance(node, dict):
            if "name" in node and isinstance(node["name"], str):
                walk(node["name"])
            else:
                for value in node.values():
                    walk(value)
        elif isinstance(node, (list, tuple)):
            for item in node:
                walk(item)

    walk(raw_skill_data)
    return names
