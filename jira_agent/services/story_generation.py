"""
Story generation service: LLM-drafted Jira stories and subtask breakdowns.

Both calls ask the model for strict JSON but tolerate prose around it. The
extracted JSON is validated through ``StoryDraft`` / ``SubtaskDraft``. A
reply that cannot be parsed still yields a usable story (degraded defaults);
only a failing model call raises ``GenerationError``.
"""
from langchain_core.messages import HumanMessage, SystemMessage
from jira_agent.services.llm import get_llm
from jira_agent.agents.state import GeneratedStory, SubtaskItem
from jira_agent.errors import GenerationError, SubtaskCountError
from jira_agent.config import settings
from jira_agent.constants import (
    DEFAULT_CRITERION,
    DEFAULT_SUBTASK_CRITERION,
    MAX_SUBTASKS,
    MIN_SUBTASKS,
)
from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)
from typing import Any, List, Optional
import json
import logging

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


STORY_SYSTEM_PROMPT = "You are a professional Product Manager creating a Jira story."

STORY_PROMPT = """The user wants a story about: "{topic}"

Create a well-structured Jira story with:

1. **Title** (Summary): A clear, concise story title (max 100 characters)
   - Use action-oriented language
   - Focus on the user value or feature
   - Example: "As a user, I want to filter search results by date"

2. **Description**: A detailed description (2-4 paragraphs) that includes:
   - User story format: "As a [user type], I want [goal] so that [benefit]"
   - Context and background
   - Technical considerations (if relevant)
   - Dependencies or related work

3. **Acceptance Criteria**: A list of 3-6 specific, testable criteria
   - Each criterion should be clear and measurable
   - Format: "Given [condition], when [action], then [result]"

Respond with only this JSON object:
{{
  "title": "Story title here",
  "description": "Full description with user story format and details",
  "acceptanceCriteria": [
    "Criterion 1",
    "Criterion 2",
    "Criterion 3"
  ]
}}
"""

SUBTASK_SYSTEM_PROMPT = (
    "You are a senior engineer splitting an approved Jira story into sub-tasks."
)

SUBTASK_PROMPT = """Parent story:

Title: {title}

Description:
{description}

Acceptance criteria:
{criteria}

Decide how many sub-tasks this story needs, between {min_items} and {max_items}
inclusive, and write exactly that many. Each sub-task must be independently
deliverable and have its own title (max 100 characters), a short description
and 2-4 testable acceptance criteria.

Respond with only a JSON array:
[
  {{
    "title": "Sub-task title",
    "description": "What this sub-task delivers",
    "acceptanceCriteria": ["Criterion 1", "Criterion 2"]
  }}
]
"""


def _response_text(response: Any) -> str:
    """Flatten a chat model response into plain text."""
    content = getattr(response, "content", response)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content)


def _extract_first(text: str, opener: str, kind: type) -> Optional[Any]:
    """Decode the first ``opener``-delimited JSON value of type ``kind`` in text."""
    start = text.find(opener)
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, kind):
            return value
        start = text.find(opener, start + 1)
    return None


def extract_json_object(text: str) -> Optional[dict]:
    return _extract_first(text, "{", dict)


def extract_json_array(text: str) -> Optional[list]:
    return _extract_first(text, "[", list)


def _criteria_items(value: Any) -> List[str]:
    """Acceptance criteria as a list of non-blank strings (possibly empty)."""
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, list):
        items = value
    else:
        items = []
    return [str(item).strip() for item in items if item is not None and str(item).strip()]


# The prompt asks for camelCase; hand-built items use the state's snake_case
_CRITERIA_ALIASES = AliasChoices("acceptanceCriteria", "acceptance_criteria")


class StoryDraft(BaseModel):
    """Story recovered from a model reply.

    Never rejects a reply: wrong types and blank values fall back to
    defaults built from the ``topic`` passed in the validation context.
    """
    title: str = ""
    description: str = ""
    acceptance_criteria: List[str] = Field(default_factory=list, validation_alias=_CRITERIA_ALIASES)

    @field_validator("title", "description", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return value.strip() if isinstance(value, str) else ""

    @field_validator("acceptance_criteria", mode="before")
    @classmethod
    def _criteria(cls, value: Any) -> List[str]:
        return _criteria_items(value)

    @model_validator(mode="after")
    def _apply_defaults(self, info: ValidationInfo) -> "StoryDraft":
        topic = (info.context or {}).get("topic", "")
        self.title = self.title or f"Story: {topic}"
        self.description = self.description or f"Story about {topic}"
        self.acceptance_criteria = self.acceptance_criteria or [DEFAULT_CRITERION]
        return self


class SubtaskDraft(BaseModel):
    """One subtask. Title and description are required; criteria default."""
    title: str
    description: str
    acceptance_criteria: List[str] = Field(
        default_factory=lambda: [DEFAULT_SUBTASK_CRITERION],
        validation_alias=_CRITERIA_ALIASES,
    )

    @field_validator("title", "description", mode="before")
    @classmethod
    def _required_text(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("must be a non-blank string")
        return value.strip()

    @field_validator("acceptance_criteria", mode="before")
    @classmethod
    def _criteria(cls, value: Any) -> List[str]:
        return _criteria_items(value) or [DEFAULT_SUBTASK_CRITERION]


def parse_story_reply(topic: str, reply: str) -> GeneratedStory:
    """Build a story from a raw model reply, defaulting any missing field."""
    data = extract_json_object(reply)
    if data is None:
        logger.warning(f"No JSON object in story reply for topic '{topic}', using defaults")
        data = {}

    draft = StoryDraft.model_validate(data, context={"topic": topic})
    return draft.model_dump()


def bound_subtasks(items: List[Any]) -> List[SubtaskItem]:
    """Keep the usable items, at most MAX_SUBTASKS of them.

    Applies to generated and caller-supplied subtasks alike.

    Raises:
        SubtaskCountError: fewer than MIN_SUBTASKS usable items
    """
    subtasks: List[SubtaskItem] = []
    for index, item in enumerate(items):
        try:
            subtasks.append(SubtaskDraft.model_validate(item).model_dump())
        except ValidationError as e:
            logger.warning(f"Dropping unusable subtask #{index + 1}: {e.error_count()} validation error(s)")

    if len(subtasks) > MAX_SUBTASKS:
        logger.warning(
            f"Got {len(subtasks)} subtasks, keeping the first {MAX_SUBTASKS}"
        )
        subtasks = subtasks[:MAX_SUBTASKS]

    if len(subtasks) < MIN_SUBTASKS:
        raise SubtaskCountError(len(subtasks), MIN_SUBTASKS)

    return subtasks


def parse_subtasks_reply(reply: str) -> List[SubtaskItem]:
    """Recover between MIN_SUBTASKS and MAX_SUBTASKS subtasks from a model reply.

    Raises:
        SubtaskCountError: fewer than MIN_SUBTASKS usable items were found
    """
    raw_items = extract_json_array(reply)
    if raw_items is None:
        logger.warning("No JSON array in subtask reply")
        raw_items = []
    return bound_subtasks(raw_items)


async def _complete(system_prompt: str, user_prompt: str) -> str:
    """Run one chat completion, wrapping any provider failure in GenerationError."""
    messages = [
        SystemMessage(content=system_prompt),
        HumanMessage(content=user_prompt),
    ]
    try:
        llm = get_llm()
        response = await llm.ainvoke(messages)
    except Exception as e:
        raise GenerationError(f"LLM call failed: {e}") from e
    return _response_text(response)


async def generate_story(topic: str) -> GeneratedStory:
    """Draft a story (title, description, acceptance criteria) for a topic."""
    logger.info(f"Generating story for topic '{topic}' with provider {settings.llm_provider}")
    reply = await _complete(STORY_SYSTEM_PROMPT, STORY_PROMPT.format(topic=topic))
    return parse_story_reply(topic, reply)


async def generate_subtasks(parent: GeneratedStory) -> list[SubtaskItem]:
    """Split an approved story into MIN_SUBTASKS..MAX_SUBTASKS subtasks."""
    criteria = "\n".join(f"- {c}" for c in parent["acceptance_criteria"])
    prompt = SUBTASK_PROMPT.format(
        title=parent["title"],
        description=parent["description"],
        criteria=criteria,
        min_items=MIN_SUBTASKS,
        max_items=MAX_SUBTASKS,
    )
    logger.info(f"Generating subtasks for '{parent['title']}'")
    reply = await _complete(SUBTASK_SYSTEM_PROMPT, prompt)
    return parse_subtasks_reply(reply)
