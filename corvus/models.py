"""Model registry: known models per provider with pricing metadata."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ModelInfo:
    """A model with its cost and capability metadata."""
    id: str
    provider: str
    name: str
    description: str
    context_window: int
    input_cost_per_1m: float | None = None   # USD per 1M input tokens
    output_cost_per_1m: float | None = None  # USD per 1M output tokens

    @property
    def priced(self) -> bool:
        return self.input_cost_per_1m is not None and self.output_cost_per_1m is not None


# --- Model Registry ---
# First entry per provider is its default. Pricing as published; update as needed.
MODEL_REGISTRY: list[ModelInfo] = [
    # Anthropic
    ModelInfo("claude-3-5-sonnet-20241022", "anthropic", "Claude 3.5 Sonnet",
              "Best overall (recommended)", 200_000, 3.0, 15.0),
    ModelInfo("claude-3-5-haiku-20241022", "anthropic", "Claude 3.5 Haiku",
              "Fast and affordable", 200_000, 0.80, 4.0),
    ModelInfo("claude-3-opus-20240229", "anthropic", "Claude 3 Opus",
              "Most capable (expensive)", 200_000, 15.0, 75.0),
    # OpenAI
    ModelInfo("gpt-4o", "openai", "GPT-4o",
              "Latest and fastest (recommended)", 128_000, 2.50, 10.0),
    ModelInfo("gpt-4o-mini", "openai", "GPT-4o Mini",
              "Affordable and fast", 128_000, 0.15, 0.60),
    ModelInfo("gpt-4-turbo", "openai", "GPT-4 Turbo",
              "Previous generation", 128_000, 10.0, 30.0),
    ModelInfo("gpt-3.5-turbo", "openai", "GPT-3.5 Turbo",
              "Fastest and cheapest", 16_385, 0.50, 1.50),
    # Google
    ModelInfo("gemini-1.5-flash", "google", "Gemini 1.5 Flash",
              "Fast and affordable (recommended)", 1_000_000, 0.075, 0.30),
    ModelInfo("gemini-1.5-pro", "google", "Gemini 1.5 Pro",
              "Most capable", 2_000_000, 1.25, 5.0),
    ModelInfo("gemini-2.0-flash-exp", "google", "Gemini 2.0 Flash (Experimental)",
              "Next generation (free tier)", 1_000_000),
    # Groq
    ModelInfo("llama-3.3-70b-versatile", "groq", "Llama 3.3 70B",
              "Best overall (recommended)", 128_000, 0.05, 0.08),
    ModelInfo("llama-3.1-70b-versatile", "groq", "Llama 3.1 70B",
              "Previous generation", 128_000, 0.05, 0.08),
    ModelInfo("llama-3.1-8b-instant", "groq", "Llama 3.1 8B",
              "Fast and cheap", 128_000, 0.05, 0.08),
    ModelInfo("mixtral-8x7b-32768", "groq", "Mixtral 8x7B",
              "Good for complex tasks", 32_768, 0.24, 0.24),
    # Ollama (local, free)
    ModelInfo("qwen3-coder-next", "ollama", "Qwen3 Coder Next",
              "Optimized for agentic workflows & tools (recommended)", 128_000, 0.0, 0.0),
    ModelInfo("devstral-small-2", "ollama", "Devstral Small 2 (24B)",
              "Excels at using tools", 128_000, 0.0, 0.0),
    ModelInfo("qwen3-next", "ollama", "Qwen3 Next (80B)",
              "Strong performance, parameter efficient", 128_000, 0.0, 0.0),
    ModelInfo("ministral-3", "ollama", "Ministral 3 (8B)",
              "Lightweight, edge deployment", 128_000, 0.0, 0.0),
    ModelInfo("llama3.2", "ollama", "Llama 3.2 (3B)",
              "Small model (poor at tool calling)", 128_000, 0.0, 0.0),
    ModelInfo("llama3.1", "ollama", "Llama 3.1 (8B)",
              "Older but decent", 128_000, 0.0, 0.0),
]

PROVIDERS: tuple[str, ...] = ("anthropic", "openai", "google", "groq", "ollama")


def models_for(provider: str) -> list[ModelInfo]:
    return [m for m in MODEL_REGISTRY if m.provider == provider]


def default_model(provider: str) -> str:
    models = models_for(provider)
    if not models:
        raise ValueError(f"Unknown provider: {provider}")
    return models[0].id


def get_model_info(provider: str, model_id: str) -> ModelInfo | None:
    for m in models_for(provider):
        if m.id == model_id:
            return m
    return None


def is_valid_model(provider: str, model_id: str) -> bool:
    return get_model_info(provider, model_id) is not None
