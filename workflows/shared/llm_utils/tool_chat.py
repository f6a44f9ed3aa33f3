"""Tool-enabled chat calls against a LangChain chat model.

ChatModelClient is the reference ToolChatClient: it binds the tool set to the
model for a single turn and returns the AIMessage (content plus tool_calls).
It never retries; failed calls propagate to the caller.
"""

import logging
from typing import Callable, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.tools import BaseTool
from langsmith import traceable

from .models import ModelConfig, check_tool_choice, get_llm_for_config

logger = logging.getLogger(__name__)


def prepare_messages(history: list[BaseMessage]) -> list[BaseMessage]:
    """Adapt chat history for providers that accept a single leading system message.

    Leading system messages are merged into one; later system messages
    (edit reports, pending-edit notes) are sent as user turns.
    """
    leading: list[str] = []
    index = 0
    while index < len(history) and isinstance(history[index], SystemMessage):
        leading.append(str(history[index].content))
        index += 1

    prepared: list[BaseMessage] = []
    if leading:
        prepared.append(SystemMessage(content="\n\n".join(leading)))
    for message in history[index:]:
        if isinstance(message, SystemMessage):
            prepared.append(HumanMessage(content=message.content))
        else:
            prepared.append(message)
    return prepared


@traceable(run_type="llm", name="tool_chat")
async def _invoke_with_tools(
    llm: BaseChatModel,
    messages: list[BaseMessage],
    tools: list[BaseTool],
    tool_choice: str,
) -> AIMessage:
    if tools:
        llm_with_tools = llm.bind_tools(tools, tool_choice=tool_choice)
    else:
        llm_with_tools = llm
    return await llm_with_tools.ainvoke(messages)


class ChatModelClient:
    """ToolChatClient backed by ChatAnthropic (or any BaseChatModel factory)."""

    def __init__(
        self,
        llm_factory: Optional[Callable[[ModelConfig], BaseChatModel]] = None,
    ):
        """Initialize the client.

        Args:
            llm_factory: Builds the chat model for a ModelConfig
                (default: get_llm_for_config)
        """
        self._llm_factory = llm_factory or get_llm_for_config

    async def complete(
        self,
        history: list[BaseMessage],
        tools: list[BaseTool],
        tool_choice: str,
        model_config: ModelConfig,
    ) -> AIMessage:
        """Run one model turn with the given tools bound.

        Args:
            history: Chat history to send
            tools: Tools the model may call
            tool_choice: "auto", "any" or a tool name
            model_config: Model selection

        Returns:
            The model's AIMessage, with tool_calls populated when it called tools

        Raises:
            ValueError: A forced tool_choice was requested with extended thinking
        """
        check_tool_choice(model_config, tool_choice)
        llm = self._llm_factory(model_config)
        messages = prepare_messages(history)
        logger.debug(
            f"Tool chat: {len(messages)} messages, tools={[t.name for t in tools]}, "
            f"tier={model_config.tier.name}"
        )
        response = await _invoke_with_tools(llm, messages, tools, tool_choice)
        logger.debug(f"Tool chat returned {len(response.tool_calls)} tool calls")
        return response
