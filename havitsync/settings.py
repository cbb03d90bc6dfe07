import os


def get_env(name: str, default: str | None = None) -> str:
    v = os.getenv(name, default)
    if v is None:
        raise RuntimeError(f"Missing required env var: {name}")
    return v


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y")


GEMINI_API_KEY = get_env("GEMINI_API_KEY", "")
GEMINI_MODEL = get_env("GEMINI_MODEL", "gemini-2.0-flash")
# <= 0 disables the timeout around the model call
INSIGHT_TIMEOUT_SECONDS = float(get_env("INSIGHT_TIMEOUT_SECONDS", "30"))
DEMO_MODE = _flag("DEMO_MODE")
LOG_LEVEL = get_env("LOG_LEVEL", "INFO").upper()
