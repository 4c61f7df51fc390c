"""Tests for prompt template loading and rendering."""

import pytest

from learnpath.config import PROJECT_ROOT
from learnpath.errors import PromptNotFoundError
from learnpath.prompts.loader import (
    COMPETENCY_IDENTIFICATION_PROMPT,
    PATH_CREATION_PROMPT,
    SKILL_EXPANSION_PROMPT,
    PromptLoader,
    render_prompt,
)


class TestPromptLoader:
    def test_load_by_name(self, prompts_dir):
        assert PromptLoader(prompts_dir).load(SKILL_EXPANSION_PROMPT) == "Expand skills:\n{input}"

    def test_markdown_extension(self, tmp_path):
        (tmp_path / "custom.md").write_text("# Custom")
        assert PromptLoader(tmp_path).load("custom") == "# Custom"

    def test_missing_prompt_raises(self, tmp_path):
        with pytest.raises(PromptNotFoundError, match="nope"):
            PromptLoader(tmp_path).load("nope")

    def test_missing_prompt_is_a_file_not_found_error(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PromptLoader(tmp_path).load("nope")

    def test_list_prompts(self, prompts_dir):
        assert PromptLoader(prompts_dir).list_prompts() == [
            SKILL_EXPANSION_PROMPT,
            COMPETENCY_IDENTIFICATION_PROMPT,
            PATH_CREATION_PROMPT,
        ]

    def test_bundled_prompts_have_placeholders(self):
        loader = PromptLoader(PROJECT_ROOT / "prompts")
        assert "{input}" in loader.load(SKILL_EXPANSION_PROMPT)
        assert "{input}" in loader.load(COMPETENCY_IDENTIFICATION_PROMPT)
        path_prompt = loader.load(PATH_CREATION_PROMPT)
        for placeholder in ("{initialGap}", "{competencies}", "{expandedBreakdown}"):
            assert placeholder in path_prompt


class TestRenderPrompt:
    def test_substitutes_named_placeholders_only(self):
        template = 'Gap: {initialGap}\nExample: {"learning_modules": []}'

        rendered = render_prompt(template, initialGap='{"userId": "u1"}')

        assert rendered == 'Gap: {"userId": "u1"}\nExample: {"learning_modules": []}'

    def test_unknown_placeholders_are_left(self):
        assert render_prompt("{a} {b}", a="1") == "1 {b}"

    def test_substituted_values_are_not_rendered_again(self):
        template = "{initialGap}\n---\n{competencies}"

        rendered = render_prompt(template, initialGap='skill "{competencies}"', competencies="[C]")

        assert rendered == 'skill "{competencies}"\n---\n[C]'
