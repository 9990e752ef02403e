from .settings import settings, Settings, MIN_LLM_TIMEOUT_MS

__all__ = ["settings", "Settings", "MIN_LLM_TIMEOUT_MS"]
