"""LangSmith tracing for the edit loop.

The controller entry point opens a root run tagged with the loop type; the
LangGraph graph it invokes is linked under that run through the callbacks
in the graph run config. Task id and apply mode are attached as metadata.

Usage:
    @workflow_traceable(name="EditCode", workflow_type="edit_code")
    async def run_edit_code(deps, chat_history, prompt_info):
        add_trace_metadata({"task_id": deps.task_id})
        config = graph_run_config(recursion_limit=78, run_name="edit_code_graph")
        return await graph.ainvoke(state, config=config)
"""

from typing import Any, Callable, Optional, TypeVar

from langsmith import get_current_run_tree, traceable

F = TypeVar("F", bound=Callable[..., Any])


def workflow_traceable(name: str, workflow_type: str) -> Callable[[F], F]:
    """Root-run decorator for a loop entry point, tagged `workflow:<type>`."""
    return traceable(run_type="chain", name=name, tags=[f"workflow:{workflow_type}"])


def graph_run_config(recursion_limit: int, run_name: Optional[str] = None) -> dict[str, Any]:
    """Config for a graph invocation nested under the current trace.

    Args:
        recursion_limit: LangGraph step ceiling for this invocation
        run_name: Name of the graph run in the trace (defaults to the graph's)

    Returns:
        Config with the recursion limit and, inside a traced call, the child
        callbacks of the current run
    """
    config: dict[str, Any] = {"recursion_limit": recursion_limit}
    if run_name:
        config["run_name"] = run_name
    if run_tree := get_current_run_tree():
        config["callbacks"] = run_tree.get_child_callbacks()
    return config


def add_trace_metadata(metadata: dict[str, Any]) -> None:
    """Attach metadata to the current run; no-op outside a trace.

    None values are dropped so optional fields do not show up as "null" filters.
    """
    if run_tree := get_current_run_tree():
        run_tree.add_metadata({k: v for k, v in metadata.items() if v is not None})
