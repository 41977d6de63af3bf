# AGPL-3.0 License

from typing import Optional

import litellm
from litellm import acompletion

from pr_annotator.algo.ai_handlers.base_ai_handler import BaseAiHandler, ToolCall
from pr_annotator.config_loader import get_settings
from pr_annotator.log import get_logger


class LiteLLMAIHandler(BaseAiHandler):
    """
    AI handler backed by LiteLLM, so any provider LiteLLM supports can be
    selected through ``config.model``.
    """

    def __init__(self):
        settings = get_settings()
        if settings.get("openai.key"):
            litellm.api_key = settings.openai.key
        if settings.get("openai.api_base"):
            litellm.api_base = settings.openai.api_base

    async def chat_completion(
        self,
        model: str,
        system: str,
        user: str,
        temperature: float = 0.2,
        tools: Optional[list[dict]] = None,
        messages: Optional[list[dict]] = None,
    ) -> tuple[str, list[ToolCall], str]:
        if messages is None:
            messages = [{"role": "system", "content": system}, {"role": "user", "content": user}]

        kwargs = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "timeout": get_settings().config.get("ai_timeout", 120),
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "required"

        get_logger().debug(f"Sending {len(messages)} messages to {model}")
        try:
            response = await acompletion(**kwargs)
        except Exception as e:
            get_logger().warning(f"Error during LLM inference: {e}")
            raise

        if response is None or len(response.choices) == 0:
            raise ValueError("Empty response from AI")

        choice = response.choices[0]
        message = choice.message
        tool_calls = [
            ToolCall(name=call.function.name, arguments=call.function.arguments or "{}")
            for call in (getattr(message, "tool_calls", None) or [])
        ]
        finish_reason = choice.finish_reason or ""
        get_logger().debug(f"AI response finished with '{finish_reason}', {len(tool_calls)} tool call(s)")
        return message.content or "", tool_calls, finish_reason
