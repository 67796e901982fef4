from pydantic import BaseModel, Field
from typing import List, Optional

from jira_agent.schemas.workflow import (
    CreatedIssueResponse,
    PreviewedStory,
    SubtaskFailure,
    SubtaskOutcome,
    TerminalState,
)


class OptionalFields(BaseModel):
    parent_key: Optional[str] = Field(None, description="Create the issue as a sub-task of this issue")
    due_date: Optional[str] = Field(None, description="Due date (YYYY-MM-DD)")
    start_date: Optional[str] = Field(None, description="Start date (YYYY-MM-DD)")
    labels: Optional[List[str]] = None

    def issue_options(self) -> dict:
        """The subset forwarded to every created issue (parent handled separately)."""
        return {
            key: value
            for key, value in (
                ("due_date", self.due_date),
                ("start_date", self.start_date),
                ("labels", self.labels),
            )
            if value
        }


class StoryBody(BaseModel):
    title: str = ""
    description: str = ""
    acceptance_criteria: List[str] = Field(default_factory=list)

    def is_complete(self) -> bool:
        return bool(self.title.strip() and self.description.strip() and self.acceptance_criteria)


class GenerateStoryRequest(BaseModel):
    topic: str = Field("", description="What the story should be about")


class GenerateStoryResponse(BaseModel):
    story: StoryBody


class CreateJiraRequest(StoryBody):
    optional_fields: Optional[OptionalFields] = None


class CreateSubtasksRequest(StoryBody):
    parent_key: str = Field("", description="Key of the already created parent issue")
    subtasks: Optional[List[StoryBody]] = Field(
        None, description="Pre-built subtasks; generated by the LLM when omitted"
    )
    optional_fields: Optional[OptionalFields] = None


class CreateSubtasksResponse(BaseModel):
    parent_key: str
    created_subtask_issues: List[CreatedIssueResponse]
    failures: List[SubtaskFailure]
    partial_success: bool

    @classmethod
    def from_outcome(cls, outcome: SubtaskOutcome) -> "CreateSubtasksResponse":
        return cls(
            parent_key=outcome.parent_key,
            created_subtask_issues=outcome.created_issues,
            failures=outcome.failures,
            partial_success=outcome.partial_success,
        )


class StartWorkflowRequest(BaseModel):
    topic: str = Field("", description="What the story should be about")
    optional_fields: Optional[OptionalFields] = None


class DecisionRequest(BaseModel):
    answer: str = Field("", description="Human answer; only 'y' or 'yes' approves")
    create_subtasks: bool = Field(False, description="Also split the created story into subtasks")
    optional_fields: Optional[OptionalFields] = None


class DecisionResponse(BaseModel):
    result: TerminalState
    subtasks: Optional[CreateSubtasksResponse] = None
    subtasks_error: Optional[str] = None


WorkflowPreviewResponse = PreviewedStory


class TranscribeResponse(BaseModel):
    transcript: str


class SpeakRequest(BaseModel):
    text: str = ""
