"""Execution of model tool calls during edit authoring."""

import logging
from typing import Any

from langchain_core.tools import BaseTool
from langsmith import traceable
from pydantic import ValidationError

from core.task_state import PauseAborted, PauseScope

from .errors import GuidanceRetrievalError
from .schemas import ToolResultInfo

logger = logging.getLogger(__name__)

SCHEMA_HINT = (
    "Hint: To fix this, follow the json schema correctly. In particular, don't put json within a string."
)


PAUSED_TOOL_RESPONSE = "Tool call aborted: the task was paused before it completed."


def _aborted_results(tool_calls: list[dict[str, Any]]) -> list[ToolResultInfo]:
    return [
        ToolResultInfo(
            response=PAUSED_TOOL_RESPONSE,
            tool_name=tool_call["name"],
            call_id=tool_call.get("id") or "",
            is_error=True,
        )
        for tool_call in tool_calls
    ]


@traceable(run_type="tool", name="execute_tool_call")
async def _execute_tool_call(
    tool: BaseTool,
    tool_name: str,
    tool_args: dict[str, Any],
) -> str:
    """Execute a single tool call with LangSmith tracing."""
    result = await tool.ainvoke(tool_args)
    return str(result) if result is not None else ""


async def handle_tool_calls(
    tool_calls: list[dict[str, Any]],
    tools: list[BaseTool],
    scope: PauseScope,
) -> list[ToolResultInfo]:
    """Run tool calls in order, one result per call.

    Tool failures (unknown tool, invalid arguments, handler errors) become
    error results for the model to act on. A pause aborts the current call;
    it and the remaining calls get "aborted" error results so that every tool
    call in history keeps a response. Guidance failures propagate.

    Args:
        tool_calls: AIMessage.tool_calls
        tools: The tools offered for this turn
        scope: Pause scope of the current iteration

    Returns:
        ToolResultInfo per tool call, in call order
    """
    tool_map = {tool.name: tool for tool in tools}
    results: list[ToolResultInfo] = []

    for index, tool_call in enumerate(tool_calls):
        tool_name = tool_call["name"]
        tool_args = tool_call.get("args") or {}
        call_id = tool_call.get("id") or ""

        if tool_name not in tool_map:
            logger.warning(f"Unknown tool requested: {tool_name}")
            results.append(
                ToolResultInfo(
                    response=f"unknown function name: {tool_name}",
                    tool_name=tool_name,
                    call_id=call_id,
                    is_error=True,
                )
            )
            continue

        try:
            response = await scope.run(_execute_tool_call(tool_map[tool_name], tool_name, tool_args))
            is_error = False
        except PauseAborted:
            logger.info(f"Tool calls aborted by pause at {tool_name}")
            results.extend(_aborted_results(tool_calls[index:]))
            break
        except GuidanceRetrievalError:
            raise
        except ValidationError as e:
            logger.warning(f"Tool {tool_name} called with invalid arguments: {e}")
            response = f"{e}\n\n{SCHEMA_HINT}"
            is_error = True
        except Exception as e:
            logger.warning(f"Tool {tool_name} failed: {e}")
            response = str(e) or type(e).__name__
            is_error = True

        logger.debug(f"Tool {tool_name} returned {len(response)} chars")
        results.append(
            ToolResultInfo(
                response=response,
                tool_name=tool_name,
                call_id=call_id,
                is_error=is_error,
            )
        )

    return results
