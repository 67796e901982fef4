"""
Jira client service: create issues through the Jira Cloud REST API (v3).

Used by the create_issue workflow node and by the /create-jira route.
Issue-type resolution is delegated to an ``IssueTypeResolver`` so sites
with custom issue type names (or fixed type IDs) can plug in their own rule.
"""
import asyncio
import httpx
import logging
from typing import Any, List, Optional, TypedDict

from jira_agent.agents.state import CreatedIssue
from jira_agent.config import settings
from jira_agent.constants import HTTP_TIMEOUT, JIRA_SUMMARY_MAX_CHARS
from jira_agent.errors import IssueCreationError

logger = logging.getLogger(__name__)


class IssueFields(TypedDict, total=False):
    title: str
    description: str
    acceptance_criteria: List[str]
    parent_key: str
    due_date: str
    start_date: str
    labels: List[str]


class IssueTypeResolver:
    """Pick an issue type ID from the project's issue types.

    The fallback IDs are site specific, so they come from configuration.
    With no match and no fallback, resolution fails loudly.
    """

    def __init__(
        self,
        story_fallback_id: Optional[str] = None,
        subtask_fallback_id: Optional[str] = None,
    ):
        self.story_fallback_id = story_fallback_id or None
        self.subtask_fallback_id = subtask_fallback_id or None

    def resolve(self, issue_types: list[dict], subtask: bool) -> str:
        found = self._find_subtask(issue_types) if subtask else self._find_story(issue_types)
        if found:
            return found
        fallback = self.subtask_fallback_id if subtask else self.story_fallback_id
        if fallback:
            return fallback
        kind = "sub-task" if subtask else "story"
        raise IssueCreationError(
            f"No {kind} issue type available in project and no fallback type ID configured"
        )

    @staticmethod
    def _name(issue_type: dict) -> str:
        return str(issue_type.get("name", "")).lower()

    def _find_story(self, issue_types: list[dict]) -> Optional[str]:
        candidates = [
            it for it in issue_types
            if not it.get("subtask") and "sub" not in self._name(it)
        ]
        for wanted in ("story", "task"):
            for it in candidates:
                if self._name(it) == wanted:
                    return str(it["id"])
        for it in candidates:
            name = self._name(it)
            if "story" in name or "task" in name:
                return str(it["id"])
        return str(candidates[0]["id"]) if candidates else None

    def _find_subtask(self, issue_types: list[dict]) -> Optional[str]:
        for it in issue_types:
            if it.get("subtask") is True or self._name(it) in ("sub-task", "subtask"):
                return str(it["id"])
        for it in issue_types:
            if "sub" in self._name(it):
                return str(it["id"])
        return None


def _paragraph(text: str, strong: bool = False) -> dict:
    node: dict[str, Any] = {"type": "text", "text": text}
    if strong:
        node["marks"] = [{"type": "strong"}]
    return {"type": "paragraph", "content": [node]}


def build_description_doc(description: str, acceptance_criteria: List[str]) -> dict:
    """Render description and criteria as an Atlassian Document Format doc."""
    content = [
        _paragraph(para.strip())
        for para in description.split("\n\n")
        if para.strip()
    ]
    content.append(_paragraph("Acceptance Criteria:", strong=True))
    content.extend(_paragraph(f"☐ {criterion}") for criterion in acceptance_criteria)
    return {"type": "doc", "version": 1, "content": content}


def build_issue_payload(
    fields: IssueFields,
    project_key: str,
    issue_type_id: str,
    start_date_field: str = "customfield_10015",
) -> dict:
    """Build the JSON body for POST /rest/api/3/issue."""
    jira_fields: dict[str, Any] = {
        "project": {"key": project_key},
        "summary": fields["title"][:JIRA_SUMMARY_MAX_CHARS],
        "description": build_description_doc(
            fields["description"], fields["acceptance_criteria"]
        ),
        "issuetype": {"id": issue_type_id},
    }
    if fields.get("parent_key"):
        jira_fields["parent"] = {"key": fields["parent_key"]}
    if fields.get("due_date"):
        jira_fields["duedate"] = fields["due_date"]
    if fields.get("start_date"):
        jira_fields[start_date_field] = fields["start_date"]
    if fields.get("labels"):
        jira_fields["labels"] = list(fields["labels"])
    return {"fields": jira_fields}


class JiraClient:
    """Thin async wrapper over the Jira REST endpoints the workflow needs."""

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        project_key: str,
        resolver: Optional[IssueTypeResolver] = None,
        start_date_field: str = "customfield_10015",
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.project_key = project_key
        self.resolver = resolver or IssueTypeResolver()
        self.start_date_field = start_date_field
        self._auth = httpx.BasicAuth(email, api_token)
        self._timeout = timeout
        self._transport = transport
        self._issue_types: Optional[list[dict]] = None
        # Concurrent sub-task branches share one cold-cache lookup
        self._issue_types_lock = asyncio.Lock()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=self._auth,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    def browse_url(self, key: str) -> str:
        return f"{self.base_url}/browse/{key}"

    async def fetch_issue_types(self) -> list[dict]:
        """Issue types of the configured project, cached after the first success."""
        async with self._issue_types_lock:
            if self._issue_types is not None:
                return self._issue_types
            try:
                async with self._client() as client:
                    response = await client.get(f"/rest/api/3/project/{self.project_key}")
                    response.raise_for_status()
                    project = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"Could not load issue types for project {self.project_key}: {e}")
                return []
            self._issue_types = list(project.get("issueTypes") or [])
            return self._issue_types

    async def resolve_issue_type_id(self, subtask: bool = False) -> str:
        issue_types = await self.fetch_issue_types()
        return self.resolver.resolve(issue_types, subtask=subtask)

    async def create_issue(self, fields: IssueFields) -> CreatedIssue:
        """Create one issue; a ``parent_key`` makes it a sub-task of that parent.

        Raises:
            IssueCreationError: missing content, unresolvable issue type,
                transport failure or a non-2xx response
        """
        if not fields.get("title") or not fields.get("description") or not fields.get("acceptance_criteria"):
            raise IssueCreationError("Missing story content")

        parent_key = fields.get("parent_key")
        issue_type_id = await self.resolve_issue_type_id(subtask=bool(parent_key))
        payload = build_issue_payload(
            fields, self.project_key, issue_type_id, self.start_date_field
        )

        try:
            async with self._client() as client:
                response = await client.post("/rest/api/3/issue", json=payload)
        except httpx.HTTPError as e:
            raise IssueCreationError(f"Jira request failed: {e}") from e

        if response.is_error:
            raise IssueCreationError(
                f"Jira API error ({response.status_code}): {response.text}"
            )

        try:
            key = response.json()["key"]
        except (ValueError, KeyError, TypeError) as e:
            raise IssueCreationError(f"Unexpected Jira response: {response.text}") from e

        created: CreatedIssue = {"key": key, "url": self.browse_url(key)}
        if parent_key:
            created["parent_key"] = parent_key
            created["parent_url"] = self.browse_url(parent_key)
        logger.info(f"Created Jira issue {key}" + (f" under {parent_key}" if parent_key else ""))
        return created


_client: Optional[JiraClient] = None


def get_jira_client() -> JiraClient:
    """
    Get or create the shared Jira client.
    Lazily initialized so imports don't fail when Jira isn't configured.
    """
    global _client
    if _client is None:
        missing = [
            name for name, value in (
                ("JIRA_EMAIL", settings.jira_email),
                ("JIRA_API_TOKEN", settings.jira_api_token),
                ("JIRA_DOMAIN or JIRA_BASE_URL", settings.jira_domain or settings.jira_base_url),
                ("JIRA_PROJECT_KEY", settings.jira_project_key),
            )
            if not value
        ]
        if missing:
            raise IssueCreationError(f"Jira is not configured (missing {', '.join(missing)})")
        _client = JiraClient(
            base_url=settings.jira_url,
            email=settings.jira_email,
            api_token=settings.jira_api_token,
            project_key=settings.jira_project_key,
            resolver=IssueTypeResolver(
                story_fallback_id=settings.jira_story_issue_type_id,
                subtask_fallback_id=settings.jira_subtask_issue_type_id,
            ),
            start_date_field=settings.jira_start_date_field,
        )
        logger.debug("Initialized shared Jira client")
    return _client
