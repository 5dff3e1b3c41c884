"""Chat graph implementation."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from langchain_core.language_models import BaseChatModel
from langgraph.graph import END, StateGraph

from toolgate.config import ModelConfig
from toolgate.graphs.convert import to_assistant_message, to_langchain_messages
from toolgate.graphs.edges import route_agent_output, route_error_output, route_tool_output
from toolgate.graphs.nodes import ChatRuntime, agent_node, error_handler_node, tools_node
from toolgate.graphs.state import ChatState, ToolCall
from toolgate.models.messages import Message
from toolgate.services.stream import DataStreamWriter
from toolgate.services.tokens import ModelRateLimiter, TokenCounter
from toolgate.tools.base import ToolServices
from toolgate.tools.registry import ToolRegistry
from toolgate.utils.logging import get_logger

logger = get_logger(__name__)


def create_chat_graph():
    """Create the chat graph.

    The graph runs the model, executes auto-executed tools and loops until
    the model answers in text or requests a tool that needs confirmation.

    Returns:
        Compiled LangGraph workflow
    """
    logger.info("Creating chat graph")

    workflow = StateGraph(ChatState)

    workflow.add_node("agent", agent_node)
    workflow.add_node("tools", tools_node)
    workflow.add_node("error", error_handler_node)

    workflow.set_entry_point("agent")

    workflow.add_conditional_edges(
        "agent",
        route_agent_output,
        {
            "tools": "tools",
            "error": "error",
            "end": END,
        },
    )

    workflow.add_conditional_edges(
        "tools",
        route_tool_output,
        {
            "agent": "agent",
            "error": "error",
            "end": END,
        },
    )

    workflow.add_conditional_edges(
        "error",
        route_error_output,
        {
            "agent": "agent",
            "end": END,
        },
    )

    # Stateless: every request carries the full transcript
    compiled = workflow.compile()

    logger.info("Chat graph created successfully")
    return compiled


def get_system_prompt(registry: ToolRegistry) -> str:
    """Generate the system prompt."""
    tool_lines = "\n".join(
        f"- {tool.name}{' (asks the user for approval first)' if tool.requires_confirmation else ''}"
        for tool in registry.list_descriptors()
    )

    return f"""You are a helpful, conversational AI assistant. Always respond to the user's questions in a friendly and informative way.

For normal conversation (greetings, general questions, chit-chat), answer directly and conversationally. \
Do not use tools unless the user clearly requests an action that matches a tool's function.

Available tools:
{tool_lines}

If you use a tool, always explain the result in a friendly, detailed way. Never just repeat the tool result \
or show raw JSON. If a tool result says the user denied the call, acknowledge it and do not retry.

Current date and time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"""


@dataclass
class ChatRunResult:
    """Outcome of one run of the chat graph."""

    message: Message | None
    pending_confirmations: list[ToolCall] = field(default_factory=list)
    usage: dict[str, int] = field(default_factory=dict)
    error: str | None = None


class ChatGraphManager:
    """Manager class for chat graph operations."""

    def __init__(
        self,
        model_config: ModelConfig | None = None,
        token_counter: TokenCounter | None = None,
        chat_model: BaseChatModel | None = None,
    ):
        """Initialize the chat graph manager.

        Args:
            model_config: Model settings (defaults read from the environment)
            token_counter: Token counter used for truncation
            chat_model: Model override, used instead of the Anthropic client
        """
        self.model_config = model_config or ModelConfig()
        self.token_counter = token_counter or TokenCounter()
        self.rate_limiter = ModelRateLimiter(
            requests_per_minute=self.model_config.requests_per_minute,
            tokens_per_minute=self.model_config.tokens_per_minute,
        )
        self.chat_model = chat_model
        self.graph = create_chat_graph()

    async def run(
        self,
        transcript: Sequence[Message],
        session_id: str,
        registry: ToolRegistry,
        channel: DataStreamWriter,
        services: ToolServices,
    ) -> ChatRunResult:
        """Run the model over a reconciled transcript.

        Args:
            transcript: Conversation so far, already reconciled
            session_id: Session identifier
            registry: Tools advertised to the model
            channel: Stream receiving text, tool calls and tool results
            services: Backing services for tool executions

        Returns:
            The new assistant message and run metadata
        """
        logger.info(f"Running chat graph for session {session_id}")

        initial_messages = to_langchain_messages(transcript, get_system_prompt(registry))
        initial_ids = {message.id for message in initial_messages}

        runtime = ChatRuntime(
            registry=registry,
            channel=channel,
            services=services,
            model_config=self.model_config,
            token_counter=self.token_counter,
            rate_limiter=self.rate_limiter,
            transcript=tuple(transcript),
            chat_model=self.chat_model,
        )
        config = {
            "configurable": {
                "thread_id": session_id,
                "runtime": runtime,
            },
            "recursion_limit": self.model_config.recursion_limit,
        }

        try:
            result = await self.graph.ainvoke({"messages": initial_messages, "session_id": session_id}, config)
        except Exception as e:
            logger.error(f"Graph execution error: {e}", exc_info=True)
            return ChatRunResult(message=None, error=str(e))

        new_messages = [message for message in result["messages"] if message.id not in initial_ids]
        pending = [ToolCall.model_validate(call) for call in result.get("pending_confirmations", [])]

        return ChatRunResult(
            message=to_assistant_message(new_messages),
            pending_confirmations=pending,
            usage={
                "promptTokens": result.get("total_input_tokens", 0),
                "completionTokens": result.get("total_output_tokens", 0),
            },
        )
