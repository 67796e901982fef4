"""
Story API endpoints used by the voice UI.

Provides:
- POST /generate-story   - Draft a story from a topic (no Jira side effects)
- POST /create-jira      - Create one issue from an already reviewed story
- POST /create-subtasks  - Split a created story into 3-5 linked sub-tasks
"""

from fastapi import APIRouter, Depends, HTTPException, status, Request

from jira_agent.api.auth import verify_api_key
from jira_agent.agents.subtasks import run_subtask_workflow
from jira_agent.config import settings, limiter
from jira_agent.constants import MAX_TOPIC_LENGTH_CHARS
from jira_agent.errors import GenerationError, IssueCreationError, SubtaskCountError
from jira_agent.schemas.story import (
    CreateJiraRequest,
    CreateSubtasksRequest,
    CreateSubtasksResponse,
    GenerateStoryRequest,
    GenerateStoryResponse,
    StoryBody,
)
from jira_agent.schemas.workflow import CreatedIssueResponse
from jira_agent.services.jira_client import get_jira_client
from jira_agent.services.story_generation import bound_subtasks, generate_story as draft_story
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stories"], dependencies=[Depends(verify_api_key)])


def clean_topic(topic: str) -> str:
    """Trim and bound a topic, rejecting blank input."""
    cleaned = (topic or "").strip()[:MAX_TOPIC_LENGTH_CHARS]
    if not cleaned:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing or invalid topic",
        )
    return cleaned


@router.post("/generate-story", response_model=GenerateStoryResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def generate_story(request: Request, body: GenerateStoryRequest):
    """Draft a story for review. Nothing is created in Jira."""
    topic = clean_topic(body.topic)
    try:
        story = await draft_story(topic)
    except GenerationError as e:
        logger.error(f"Story generation failed for topic '{topic}': {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )
    return GenerateStoryResponse(story=StoryBody(**story))


@router.post("/create-jira", response_model=CreatedIssueResponse)
async def create_jira(body: CreateJiraRequest):
    """Create a single Jira issue (a sub-task when ``optional_fields.parent_key`` is set)."""
    if not body.is_complete():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing title, description, or acceptance_criteria",
        )

    fields = {
        "title": body.title.strip(),
        "description": body.description.strip(),
        "acceptance_criteria": body.acceptance_criteria,
    }
    if body.optional_fields:
        fields.update(body.optional_fields.issue_options())
        if body.optional_fields.parent_key:
            fields["parent_key"] = body.optional_fields.parent_key

    try:
        issue = await get_jira_client().create_issue(fields)
    except IssueCreationError as e:
        logger.error(f"Jira issue creation failed for '{body.title}': {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
        )
    return CreatedIssueResponse(**issue)


@router.post("/create-subtasks", response_model=CreateSubtasksResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def create_subtasks(request: Request, body: CreateSubtasksRequest):
    """
    Generate subtasks for an existing parent issue and create them concurrently.

    Individual subtask failures do not fail the request: they are listed in
    ``failures`` and ``partial_success`` is set when some subtasks were created.
    """
    if not body.parent_key.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing parent_key",
        )
    if not body.is_complete():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing title, description, or acceptance_criteria",
        )

    subtasks = None
    if body.subtasks:
        try:
            subtasks = bound_subtasks([s.model_dump() for s in body.subtasks])
        except SubtaskCountError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e),
            )
    elif body.subtasks is not None:
        subtasks = []

    outcome = await run_subtask_workflow(
        parent_story={
            "title": body.title.strip(),
            "description": body.description.strip(),
            "acceptance_criteria": body.acceptance_criteria,
        },
        parent_key=body.parent_key.strip(),
        options=body.optional_fields.issue_options() if body.optional_fields else None,
        subtasks=subtasks,
    )

    if outcome.error:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=outcome.error,
        )

    return CreateSubtasksResponse.from_outcome(outcome)
