"""
LLM completion and project description generation.

The completion endpoint is treated as an opaque, non-deterministic function;
only the shape of its output is checked.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

import pydantic
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, Field

from orgflow.core.config import Settings
from orgflow.core.exceptions import GenerationError, ValidationError
from orgflow.schemas.chart import CamelModel

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"

PROJECT_SYSTEM_PROMPT = (
    "You are an expert project manager and technical consultant. Your task is to "
    "analyze project requirements and generate a comprehensive project description "
    "with implementation strategy. Respond with a single JSON object only."
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class CompletionClient(Protocol):
    async def complete(self, system_prompt: str, user_prompt: str) -> str: ...


class OpenAICompletionClient:
    """CompletionClient over the OpenAI chat completions API."""

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None) -> None:
        self.settings = settings
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            # Raises OpenAIError when no API key is configured
            self._client = AsyncOpenAI(api_key=self.settings.OPENAI_API_KEY or None, max_retries=0)
        return self._client

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        if not system_prompt.strip() or not user_prompt.strip():
            raise ValidationError("Prompts must not be empty")
        try:
            resp = await self._get_client().chat.completions.create(
                model=self.settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.settings.OPENAI_TEMPERATURE,
                max_tokens=self.settings.OPENAI_MAX_TOKENS,
            )
        except OpenAIError as exc:
            logger.error("OpenAI completion failed: %s", exc)
            raise GenerationError(f"LLM completion failed: {exc}") from exc

        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            raise GenerationError("No response content from the LLM")
        return content.strip()


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse an LLM reply as a JSON object, tolerating a markdown code fence."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match:
        stripped = match.group(1)
    try:
        value = json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise GenerationError(f"LLM response is not valid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise GenerationError("LLM response is not a JSON object")
    return value


# ---------------------------------------------------------------------------
# Project description
# ---------------------------------------------------------------------------

class ProjectSetup(CamelModel):
    """Project requirements collected by the setup form."""

    title: str = ""
    client_company: str = ""
    summary: str = ""
    description: str = ""
    objectives: list[str] = Field(default_factory=list)
    tech_stack: list[str] = Field(default_factory=list)
    start_date: str = ""
    completion_date: str = ""
    team_size: int | None = None
    risks: list[str] = Field(default_factory=list)


class ProjectDescription(BaseModel):
    summary: str
    steps: list[str] = Field(default_factory=list)
    milestones: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)


def _bullets(items: list[str]) -> str:
    cleaned = [i.strip() for i in items if i and i.strip()]
    return "\n".join(f"- {i}" for i in cleaned) if cleaned else NOT_SPECIFIED


def build_project_prompt(project: ProjectSetup) -> str:
    return f"""
Generate a comprehensive and detailed project description based on the following project setup information.
Include a step-by-step approach to build this project, highlighting key milestones, technical considerations, and potential challenges.

PROJECT INFORMATION:
Title: {project.title or NOT_SPECIFIED}
Client Company: {project.client_company or NOT_SPECIFIED}
Summary: {project.summary or NOT_SPECIFIED}
Description: {project.description or NOT_SPECIFIED}

OBJECTIVES:
{_bullets(project.objectives)}

TECHNICAL STACK:
{_bullets(project.tech_stack)}

TIMELINE:
Start Date: {project.start_date or NOT_SPECIFIED}
Completion Date: {project.completion_date or NOT_SPECIFIED}
Team Size: {project.team_size if project.team_size is not None else NOT_SPECIFIED}

KNOWN RISKS:
{_bullets(project.risks)}

Respond with JSON of the form:
{{"summary": "...", "steps": ["..."], "milestones": ["..."], "risks": ["..."]}}
""".strip()


class ProjectDescriptionService:
    def __init__(self, llm: CompletionClient) -> None:
        self.llm = llm

    async def generate(self, project: ProjectSetup) -> ProjectDescription:
        if not project.title.strip():
            raise ValidationError("Project title is required")
        text = await self.llm.complete(PROJECT_SYSTEM_PROMPT, build_project_prompt(project))
        data = parse_json_object(text)
        try:
            return ProjectDescription.model_validate(data)
        except pydantic.ValidationError as exc:
            raise GenerationError(f"LLM response has an unexpected structure: {exc}") from exc
