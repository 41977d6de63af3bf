# AGPL-3.0 License

"""
Action execution for PR-Annotator.

Applies a reconciled action plan to the hosting platform and reports
the outcome of every action.
"""

from pr_annotator.executor.action_executor import ActionExecutor
from pr_annotator.executor.action_result import ActionKind, ActionResult, ExecutionReport

__all__ = [
    "ActionExecutor",
    "ActionKind",
    "ActionResult",
    "ExecutionReport",
]
