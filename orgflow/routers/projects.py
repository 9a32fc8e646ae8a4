"""
Project endpoints.

LLM-generated project descriptions for the project setup phase.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from orgflow.core.dependencies import get_completion_client, get_current_user
from orgflow.schemas.auth import CurrentUser
from orgflow.services.llm_service import (
    CompletionClient,
    ProjectDescription,
    ProjectDescriptionService,
    ProjectSetup,
)

router = APIRouter()


def get_project_description_service(
    llm: CompletionClient = Depends(get_completion_client),
) -> ProjectDescriptionService:
    return ProjectDescriptionService(llm)


@router.post(
    "/description",
    response_model=ProjectDescription,
    summary="Generate a project description",
)
async def generate_project_description(
    data: ProjectSetup,
    current_user: CurrentUser = Depends(get_current_user),
    service: ProjectDescriptionService = Depends(get_project_description_service),
) -> ProjectDescription:
    """
    Ask the LLM for a summary, build steps, milestones and risks.

    - 400 if the project has no title
    - 502 if the LLM fails or replies with an unexpected structure
    """
    return await service.generate(data)
