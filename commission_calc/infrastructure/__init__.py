"""Infrastructure layer exports."""

from .azure_openai import AzureOpenAIChatClient, ChatCompletionsClient
from .llm import (
    ChatModelClient,
    UnconfiguredChatClient,
    client_from_env,
    configure_llm_client,
    extract_json_object,
    get_llm_client,
    is_llm_configured,
)
from .rules_store import (
    FileRulesStore,
    InMemoryRulesStore,
    RulesStore,
    configure_rules_store,
    get_rules_store,
)

__all__ = [
    "AzureOpenAIChatClient",
    "ChatCompletionsClient",
    "ChatModelClient",
    "FileRulesStore",
    "InMemoryRulesStore",
    "RulesStore",
    "UnconfiguredChatClient",
    "client_from_env",
    "configure_llm_client",
    "configure_rules_store",
    "extract_json_object",
    "get_llm_client",
    "get_rules_store",
    "is_llm_configured",
]
