"""
Command-line entry point: draft a story, approve it at the terminal, create it.

    jira-agent "password reset via email" --subtasks --label auth

Exit codes: 0 when the story was created or rejected, 1 on any error.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from jira_agent.agents.graph import run_main_workflow
from jira_agent.agents.state import IssueOptions
from jira_agent.agents.subtasks import run_subtask_workflow
from jira_agent.config import settings
from jira_agent.constants import MAX_TOPIC_LENGTH_CHARS, OUTCOME_ERROR, OUTCOME_REJECTED
from jira_agent.schemas.workflow import TerminalState

logger = logging.getLogger(__name__)

APPROVAL_PROMPT = "Approve this story? (yes/y to approve, anything else rejects): "


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jira-agent",
        description="Draft a Jira story with an LLM, approve it, and create it in Jira.",
    )
    parser.add_argument("topic", nargs="?", help="What the story is about (prompted when omitted)")
    parser.add_argument("--subtasks", action="store_true", help="Split the created story into 3-5 sub-tasks")
    parser.add_argument("--label", dest="labels", action="append", default=[], help="Label to add (repeatable)")
    parser.add_argument("--due-date", help="Due date, YYYY-MM-DD")
    parser.add_argument("--start-date", help="Start date, YYYY-MM-DD")
    return parser


def options_from_args(args: argparse.Namespace) -> Optional[IssueOptions]:
    options: IssueOptions = {}
    if args.due_date:
        options["due_date"] = args.due_date
    if args.start_date:
        options["start_date"] = args.start_date
    if args.labels:
        options["labels"] = list(args.labels)
    return options or None


def ask_for_approval(preview: str) -> str:
    print(preview)
    try:
        return input(APPROVAL_PROMPT)
    except EOFError:
        return ""


async def run(topic: str, options: Optional[IssueOptions], with_subtasks: bool) -> int:
    result: TerminalState = await run_main_workflow(topic, ask_for_approval, options=options)

    if result.status == OUTCOME_ERROR:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    if result.status == OUTCOME_REJECTED:
        print("Story rejected. Nothing was created in Jira.")
        return 0

    print(f"{result.key} {result.url}")

    if with_subtasks:
        outcome = await run_subtask_workflow(
            parent_story={
                "title": result.title or "",
                "description": result.description or "",
                "acceptance_criteria": result.acceptance_criteria,
            },
            parent_key=result.key or "",
            options=options,
            run_id=result.run_id,
        )
        if outcome.error:
            print(f"Warning: subtasks were not created: {outcome.error}", file=sys.stderr)
        for issue in outcome.created_issues:
            print(f"  {issue.key} {issue.url}")
        for failure in outcome.failures:
            print(f"  Warning: failed to create '{failure.title}': {failure.error}", file=sys.stderr)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    args = build_parser().parse_args(argv)

    topic = args.topic
    if topic is None:
        try:
            topic = input("What should the story be about? ")
        except EOFError:
            topic = ""
    topic = topic.strip()[:MAX_TOPIC_LENGTH_CHARS]
    if not topic:
        print("Error: a topic is required", file=sys.stderr)
        return 1

    try:
        return asyncio.run(run(topic, options_from_args(args), args.subtasks))
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
