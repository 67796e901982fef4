"""
LangGraph agents package.

Core workflow components:
- state.py:     WorkflowState TypedDict and merge rules
- graph.py:     Main story workflow graph (generate → preview → approve → create)
- subtasks.py:  Subtask fan-out (generate → scatter create_issue → gather)
- nodes/:       All node implementations organized by phase
"""
