from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class TraceEntryResponse(BaseModel):
    role: str
    message: str


class CreatedIssueResponse(BaseModel):
    key: str
    url: str
    parent_key: Optional[str] = None
    parent_url: Optional[str] = None


class PreviewedStory(BaseModel):
    """Result of the first half of a run: the story awaiting a decision."""
    run_id: str
    topic: str
    awaiting_decision: bool
    title: Optional[str] = None
    description: Optional[str] = None
    acceptance_criteria: List[str] = Field(default_factory=list)
    preview: Optional[str] = None
    error: Optional[str] = None
    trace: List[TraceEntryResponse] = Field(default_factory=list)


class TerminalState(BaseModel):
    """How a main workflow run ended: created, rejected or error."""
    run_id: str
    status: Literal["created", "rejected", "error"]
    key: Optional[str] = None
    url: Optional[str] = None
    parent_key: Optional[str] = None
    parent_url: Optional[str] = None
    error: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    acceptance_criteria: List[str] = Field(default_factory=list)
    trace: List[TraceEntryResponse] = Field(default_factory=list)

    @property
    def rejected(self) -> bool:
        return self.status == "rejected"


class SubtaskFailure(BaseModel):
    title: str
    error: str


class SubtaskOutcome(BaseModel):
    """Aggregated result of the subtask fan-out."""
    parent_key: str
    created_issues: List[CreatedIssueResponse] = Field(default_factory=list)
    failures: List[SubtaskFailure] = Field(default_factory=list)
    error: Optional[str] = None
    trace: List[TraceEntryResponse] = Field(default_factory=list)

    @property
    def partial_success(self) -> bool:
        return bool(self.created_issues) and bool(self.failures)
