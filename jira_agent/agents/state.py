from typing import TypedDict, List, Optional, Annotated, Literal, Union, Any
import uuid


class GeneratedStory(TypedDict):
    """A drafted story. Subtasks share the same shape."""
    title: str
    description: str
    acceptance_criteria: List[str]


SubtaskItem = GeneratedStory


class CreatedIssue(TypedDict, total=False):
    key: str
    url: str
    parent_key: str
    parent_url: str


class IssueOptions(TypedDict, total=False):
    due_date: str
    start_date: str
    labels: List[str]


class TraceEntry(TypedDict):
    role: str       # "system" | "human" | "error"
    message: str


def append_trace(
    existing: Optional[List[TraceEntry]],
    new: Optional[List[TraceEntry]],
) -> List[TraceEntry]:
    """Reducer for ``trace``: entries are appended, never replaced."""
    return [*(existing or []), *(new or [])]


def concat_issues(
    existing: Optional[List[CreatedIssue]],
    new: Union[List[CreatedIssue], CreatedIssue, None],
) -> List[CreatedIssue]:
    """Reducer for ``created_issues``.

    Each create_issue run contributes one entry; concurrent branches merge
    in any order without losing entries. A bare issue dict is accepted as a
    single-item update.
    """
    if new is None:
        added: List[CreatedIssue] = []
    elif isinstance(new, dict):
        added = [new]
    else:
        added = list(new)
    return [*(existing or []), *added]


class WorkflowState(TypedDict, total=False):
    """State threaded through one workflow run.

    Every field is replaced by a present value and kept when the update
    omits it. ``trace`` and ``created_issues`` carry reducers instead, so
    LangGraph (and ``merge_state``) concatenate their updates.
    """

    run_id: str
    topic: str

    # Drafted story (set once by generate_story; all or nothing)
    title: Optional[str]
    description: Optional[str]
    acceptance_criteria: Optional[List[str]]

    # Optional Jira fields forwarded to every create_issue call
    options: Optional[IssueOptions]

    # Set only when the run creates subtasks under an existing issue
    parent_key: Optional[str]
    subtasks: Optional[List[SubtaskItem]]

    created_issues: Annotated[List[CreatedIssue], concat_issues]

    # ── Human approval ──
    approval: Optional[Literal["pending", "approved", "rejected"]]
    preview: Optional[str]

    error: Optional[str]

    trace: Annotated[List[TraceEntry], append_trace]


# Keys whose updates are concatenated rather than replaced
_CONCAT_FIELDS = {
    "trace": append_trace,
    "created_issues": concat_issues,
}


def merge_state(state: WorkflowState, update: dict[str, Any]) -> WorkflowState:
    """Apply a node's partial update to ``state`` and return the merged copy.

    Present values replace old ones, ``None`` never erases, ``trace`` and
    ``created_issues`` are concatenated. The input state is not mutated.
    """
    merged: WorkflowState = dict(state)  # type: ignore[assignment]
    for key, value in update.items():
        if value is None:
            continue
        reducer = _CONCAT_FIELDS.get(key)
        if reducer is not None:
            merged[key] = reducer(state.get(key), value)
        else:
            merged[key] = value
    return merged


def trace_entry(role: str, message: str) -> TraceEntry:
    return {"role": role, "message": message}


def new_run_id() -> str:
    return str(uuid.uuid4())


def initial_state(
    topic: str,
    run_id: Optional[str] = None,
    options: Optional[IssueOptions] = None,
) -> WorkflowState:
    """Fresh state for a single run. Never shared between runs."""
    state: WorkflowState = {
        "run_id": run_id or new_run_id(),
        "topic": topic,
        "created_issues": [],
        "trace": [],
    }
    if options:
        state["options"] = options
    return state


def story_from_state(state: WorkflowState) -> Optional[GeneratedStory]:
    """Return the drafted story, or None unless all three fields are present."""
    title = state.get("title")
    description = state.get("description")
    criteria = state.get("acceptance_criteria")
    if not title or not description or not criteria:
        return None
    return {
        "title": title,
        "description": description,
        "acceptance_criteria": list(criteria),
    }
