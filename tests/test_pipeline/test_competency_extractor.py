"""Tests for competency extraction from stage-1/stage-2 output."""

import json

from learnpath.models import CompetencyRecord
from learnpath.pipeline.competency_extractor import (
    CompetencyList,
    ExpandedCompetencyList,
    ExpandedSkills,
    PlainText,
    TaxonomyQueries,
    Unrecognized,
    detect_stage1_shape,
    detect_stage2_shape,
    extract_stage1_competencies,
    extract_stage2_competencies,
    stage2_input,
)


class TestStage1:
    def test_expanded_competencies_list(self, stage1_output):
        assert isinstance(detect_stage1_shape(stage1_output), ExpandedCompetencyList)

        records = extract_stage1_competencies(stage1_output)

        assert records == [
            CompetencyRecord(
                name="React Hooks",
                target_level="Intermediate",
                competency_type="Out-of-the-Box",
                justification="Core of modern React",
            )
        ]

    def test_legacy_expanded_skills_from_string(self):
        output = json.dumps({"expandedSkills": ["Hooks", {"name": "Redux", "description": "State"}, {"x": 1}]})

        assert isinstance(detect_stage1_shape(output), ExpandedSkills)
        records = extract_stage1_competencies(output)

        assert [r.name for r in records] == ["Hooks", "Redux"]
        assert records[1].justification == "State"

    def test_unrecognized_gives_nothing(self):
        assert isinstance(detect_stage1_shape("just prose"), Unrecognized)
        assert extract_stage1_competencies("just prose") == []


class TestStage2:
    def test_taxonomy_queries_carry_template(self, stage2_output):
        assert isinstance(detect_stage2_shape(stage2_output), TaxonomyQueries)

        (record,) = extract_stage2_competencies(stage2_output)

        assert record.name == "React Hooks"
        assert record.query_template == "Break down {competency}"
        assert record.example_query == "Break down React Hooks"

    def test_competencies_key_and_bare_list(self):
        wrapped = {"competencies": [{"name": "SQL"}, "Python"]}
        bare = [{"competency_name": "SQL"}, "Python"]

        assert isinstance(detect_stage2_shape(wrapped), CompetencyList)
        assert isinstance(detect_stage2_shape(bare), CompetencyList)
        assert [r.name for r in extract_stage2_competencies(wrapped)] == ["SQL", "Python"]
        assert [r.name for r in extract_stage2_competencies(bare)] == ["SQL", "Python"]

    def test_plain_text_lines(self):
        output = "- SQL\n* Python\n\n"

        assert isinstance(detect_stage2_shape(output), PlainText)
        assert [r.name for r in extract_stage2_competencies(output)] == ["SQL", "Python"]

    def test_empty_output(self):
        assert extract_stage2_competencies(None) == []


class TestStage2Input:
    def test_uses_defaults_for_missing_fields(self):
        payload = json.loads(stage2_input({}, [CompetencyRecord(name="SQL")]))

        assert payload == {
            "expanded_competencies_list": [
                {
                    "competency_name": "SQL",
                    "competency_type": "Out-of-the-Box",
                    "target_level": "Intermediate",
                    "justification": None,
                }
            ]
        }

    def test_falls_back_to_raw_output(self):
        assert stage2_input("free text answer", []) == "free text answer"
        assert json.loads(stage2_input({"other": 1}, [])) == {"other": 1}
