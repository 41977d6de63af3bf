# AGPL-3.0 License

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class ToolCall:
    """A function call requested by the model; ``arguments`` is the raw JSON text."""
    name: str
    arguments: str


class BaseAiHandler(ABC):
    """
    This class defines the interface for an AI handler to be used by the feedback source.
    """

    @abstractmethod
    def __init__(self):
        pass

    @abstractmethod
    async def chat_completion(
        self,
        model: str,
        system: str,
        user: str,
        temperature: float = 0.2,
        tools: Optional[list[dict]] = None,
        messages: Optional[list[dict]] = None,
    ) -> tuple[str, list[ToolCall], str]:
        """
        Run one chat completion.

        Args:
            model: Model identifier
            system: System prompt
            user: User prompt
            temperature: Sampling temperature
            tools: OpenAI-style tool definitions; when given the model must call one
            messages: Full conversation, used instead of system/user when given

        Returns:
            (content, tool_calls, finish_reason)
        """
        pass
