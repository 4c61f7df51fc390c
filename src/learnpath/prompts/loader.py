import re
from pathlib import Path

from learnpath.errors import PromptNotFoundError

PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")

PROMPT_EXTENSIONS = (".txt", ".md", "")

SKILL_EXPANSION_PROMPT = "prompt1-skill-expansion"
COMPETENCY_IDENTIFICATION_PROMPT = "prompt2-competency-identification"
PATH_CREATION_PROMPT = "prompt3-path-creation"


class PromptLoader:
    """Loads prompt templates by name from a directory."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self._cache: dict[str, str] = {}

    def load(self, name: str) -> str:
        """Return the template text for ``name``, trying known extensions."""
        if name in self._cache:
            return self._cache[name]
        for ext in PROMPT_EXTENSIONS:
            path = self.directory / f"{name}{ext}"
            if path.is_file():
                text = path.read_text(encoding="utf-8")
                self._cache[name] = text
                return text
        raise PromptNotFoundError(f"Prompt not found: {name} (in {self.directory})")

    def list_prompts(self) -> list[str]:
        """List available prompt names."""
        return sorted(p.stem for p in self.directory.glob("*") if p.is_file())


def render_prompt(template: str, **values: str) -> str:
    """Substitute ``{key}`` placeholders without touching other braces."""
    # One pass, so substituted text is never scanned for placeholders again
    return PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)
