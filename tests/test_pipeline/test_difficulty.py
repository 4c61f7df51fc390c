"""Tests for keyword difficulty scoring."""

import pytest

from learnpath.pipeline.difficulty import ADVANCED, FOUNDATIONAL, INTERMEDIATE, average_difficulty, difficulty_score


class TestDifficultyScore:
    @pytest.mark.parametrize(
        "skill",
        ["Python Basics", "Intro to SQL", "JavaScript syntax", "Data Types in Go", "Getting Started with Rust"],
    )
    def test_foundational(self, skill):
        assert difficulty_score(skill) == FOUNDATIONAL

    @pytest.mark.parametrize(
        "skill",
        ["Advanced Routing", "Query Optimization", "Concurrency in Java", "Design Patterns", "Generics"],
    )
    def test_advanced(self, skill):
        assert difficulty_score(skill) == ADVANCED

    def test_unknown_terms_are_intermediate(self):
        assert difficulty_score("React Hooks") == INTERMEDIATE

    def test_foundational_wins_over_advanced(self):
        # "intro" is checked before "architecture"
        assert difficulty_score("Intro to software architecture") == FOUNDATIONAL


class TestAverageDifficulty:
    def test_average(self):
        assert average_difficulty(["Basics", "Hooks", "Advanced state"]) == pytest.approx(2.0)

    def test_empty_is_zero(self):
        assert average_difficulty([]) == 0.0
