"""HTTP client for the skills taxonomy service."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from learnpath.errors import TaxonomyServiceError
from learnpath.models.competency import CompetencyRecord
from learnpath.pipeline.skill_filter import SKILL_LEVELS

logger = logging.getLogger(__name__)

BREAKDOWN_PATH = "/api/skills/breakdown"


def competency_names(competencies: list[Any]) -> list[str]:
    names = []
    for index, comp in enumerate(competencies, start=1):
        if isinstance(comp, CompetencyRecord):
            names.append(comp.name)
        elif isinstance(comp, dict):
            names.append(str(comp.get("name") or comp.get("competency_name") or f"Competency {index}"))
        else:
            names.append(str(comp))
    return names


def fallback_breakdown(competencies: list[Any]) -> dict[str, dict[str, list[dict[str, str]]]]:
    """Deterministic placeholder breakdown used when the service is unavailable."""
    breakdown = {}
    for index, name in enumerate(competency_names(competencies)):
        breakdown[name] = {
            "microSkills": [
                {"id": f"micro-{index}-{n}", "name": f"{name} - Micro Skill {n}"} for n in (1, 2)
            ],
            "nanoSkills": [
                {"id": f"nano-{index}-{n}", "name": f"{name} - Nano Skill {n}"} for n in (1, 2)
            ],
        }
    return breakdown


class TaxonomyClient:
    """Async client for the taxonomy service's skill-breakdown endpoint."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        include_expansions: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.max_retries = max_retries
        self.include_expansions = include_expansions
        self.retry_wait = wait_exponential(min=1, max=8)
        self._transport = transport

    async def breakdown(
        self,
        competencies: list[Any],
        *,
        max_retries: int | None = None,
        use_fallback: bool = False,
        include_expansions: bool | None = None,
    ) -> dict[str, dict[str, list[Any]]]:
        """Request the micro/nano skill breakdown for each competency.

        With ``use_fallback`` the service is not contacted and the
        deterministic placeholder breakdown is returned.
        """
        if use_fallback:
            logger.warning("Using fallback skill breakdown for %d competencies", len(competencies))
            return fallback_breakdown(competencies)

        payload = {
            "competencies": competency_names(competencies),
            "includeExpansions": self.include_expansions if include_expansions is None else include_expansions,
        }
        attempts = max_retries or self.max_retries
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=self.retry_wait,
                retry=retry_if_exception_type(httpx.HTTPError),
                reraise=True,
            ):
                with attempt:
                    data = await self._post(payload)
        except httpx.HTTPError as exc:
            logger.warning("Taxonomy service failed after %d attempts: %s", attempts, exc)
            raise TaxonomyServiceError(f"Skill breakdown request failed: {exc}") from exc

        return self._normalize(data)

    async def _post(self, payload: dict[str, Any]) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport, trust_env=False) as client:
            response = await client.post(f"{self.base_url}{BREAKDOWN_PATH}", json=payload, headers=headers)
            response.raise_for_status()
            return response.json()

    @staticmethod
    def _normalize(data: Any) -> dict[str, dict[str, list[Any]]]:
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            data = data["data"]
        if not isinstance(data, dict):
            raise TaxonomyServiceError(f"Unexpected breakdown payload: {type(data).__name__}")

        normalized = {}
        for competency, levels in data.items():
            if not isinstance(levels, dict):
                continue
            normalized[competency] = {
                level: list(levels.get(level) or levels.get(_snake(level)) or []) for level in SKILL_LEVELS
            }
        return normalized


def _snake(level: str) -> str:
    return "micro_skills" if level == "microSkills" else "nano_skills"
