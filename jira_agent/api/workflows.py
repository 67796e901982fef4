"""
Workflow API endpoints for the human-in-the-loop story workflow.

Provides:
- POST /workflows                  - Generate + preview a story; the run pauses for approval
- POST /workflows/{run_id}/decide  - Submit the human answer (resumes the graph)

A rejection is an expected outcome (200 with ``status="rejected"``); a
workflow error is returned as 500.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Request

from jira_agent.api.auth import verify_api_key
from jira_agent.api.stories import clean_topic
from jira_agent.agents.graph import finalize_story, preview_story
from jira_agent.agents.subtasks import run_subtask_workflow
from jira_agent.config import settings, limiter
from jira_agent.constants import OUTCOME_CREATED, OUTCOME_ERROR
from jira_agent.errors import RunNotFoundError
from jira_agent.schemas.story import (
    CreateSubtasksResponse,
    DecisionRequest,
    DecisionResponse,
    StartWorkflowRequest,
    WorkflowPreviewResponse,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/workflows",
    tags=["workflows"],
    dependencies=[Depends(verify_api_key)],
)


@router.post("", response_model=WorkflowPreviewResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def start_workflow(request: Request, body: StartWorkflowRequest):
    """Run the workflow up to the approval gate and return the preview."""
    topic = clean_topic(body.topic)
    options = body.optional_fields.issue_options() if body.optional_fields else None
    parent_key = body.optional_fields.parent_key if body.optional_fields else None

    previewed = await preview_story(topic, options=options, parent_key=parent_key)

    if previewed.error:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=previewed.error,
        )
    return previewed


@router.post("/{run_id}/decide", response_model=DecisionResponse)
async def decide(run_id: str, body: DecisionRequest):
    """
    Submit the human decision for a paused run.

    Only "y"/"yes" approves; any other answer rejects. When approved and
    ``create_subtasks`` is set, the created story is split into subtasks.
    """
    try:
        result = await finalize_story(run_id, body.answer)
    except RunNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    if result.status == OUTCOME_ERROR:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.error,
        )

    response = DecisionResponse(result=result)

    if result.status == OUTCOME_CREATED and body.create_subtasks:
        outcome = await run_subtask_workflow(
            parent_story={
                "title": result.title or "",
                "description": result.description or "",
                "acceptance_criteria": result.acceptance_criteria,
            },
            parent_key=result.key or "",
            options=body.optional_fields.issue_options() if body.optional_fields else None,
            run_id=run_id,
        )
        if outcome.error:
            # The parent issue exists, so the subtask failure is reported, not raised
            logger.warning(f"Run {run_id}: Subtask creation failed: {outcome.error}")
        response.subtasks = CreateSubtasksResponse.from_outcome(outcome)
        response.subtasks_error = outcome.error

    return response
