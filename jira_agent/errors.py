"""
Error taxonomy for the story workflow and its collaborators.

Collaborators (story generation, Jira client, Deepgram) raise these.
Workflow nodes catch them and report the message through the state's
``error`` field instead of letting them cross a stage boundary.
"""


class WorkflowError(Exception):
    """Base class for all workflow failures"""
    pass


class GenerationError(WorkflowError):
    """The LLM call behind story or subtask generation failed outright."""
    pass


class StoryValidationError(WorkflowError):
    """A required story field is missing when entering the preview stage."""
    pass


class IssueCreationError(WorkflowError):
    """The Jira API rejected or never received an issue creation request."""
    pass


class SubtaskCountError(WorkflowError):
    """Fewer usable subtasks were recovered than the fan-out requires."""

    def __init__(self, recovered: int, minimum: int):
        self.recovered = recovered
        self.minimum = minimum
        super().__init__(
            f"Recovered {recovered} usable subtask(s), at least {minimum} required"
        )


class RunNotFoundError(WorkflowError):
    """No paused workflow run exists for the given run id."""
    pass


class SpeechServiceError(WorkflowError):
    """Deepgram transcription or synthesis failed."""
    pass
