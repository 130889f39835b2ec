"""Chat model construction from the `models` section of config.yaml."""

from langchain_anthropic import ChatAnthropic
from langchain_google_genai import ChatGoogleGenerativeAI

from canvas.config import get_config


def get_chat_model(role: str):
    """Build the chat model configured for a role (primary, router, small, reflection)."""
    settings = get_config()["models"][role]
    provider = settings.get("provider", "anthropic")
    temperature = settings.get("temperature", 0)
    max_tokens = settings.get("max_tokens")

    if provider == "anthropic":
        kwargs = {"model": settings["model"], "temperature": temperature}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens
        return ChatAnthropic(**kwargs)

    if provider == "google":
        kwargs = {"model": settings["model"], "temperature": temperature}
        if max_tokens:
            kwargs["max_output_tokens"] = max_tokens
        return ChatGoogleGenerativeAI(**kwargs)

    raise ValueError(f"Unknown model provider '{provider}' for role '{role}'.")
