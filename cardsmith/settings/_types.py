"""Choice tables for CardSmith settings."""

LLM_TYPES: dict[str, str] = {
    "ollama": "Ollama (local)",
    "openai": "OpenAI-compatible API",
}

LOG_LEVELS: dict[str, str] = {
    "DEBUG": "Debug",
    "INFO": "Info",
    "WARNING": "Warning",
    "ERROR": "Error",
}

# How the output tool picks a sub-tool when no mode is requested
OUTPUT_ROUTING_STRATEGIES: dict[str, str] = {
    "rules": "Presence checks on task progress",
    "llm": "Ask the model to choose",
}
