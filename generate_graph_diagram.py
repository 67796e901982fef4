"""
Script to generate a diagram of the story workflow graph.
Writes the compiled LangGraph as Mermaid text (render it with any Mermaid viewer).

Usage: python generate_graph_diagram.py [output_path]
"""

import os
import sys

from jira_agent.agents.graph import story_graph


def create_graph_diagram(output_file: str = "workflow_graph.mmd") -> str:
    """Write the main workflow graph as Mermaid and return the path."""
    mermaid = story_graph.get_graph().draw_mermaid()

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(mermaid)

    print(f"Graph diagram saved to: {os.path.abspath(output_file)}")
    return output_file


if __name__ == "__main__":
    create_graph_diagram(*sys.argv[1:2])
