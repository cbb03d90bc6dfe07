from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Protocol

from google import genai

from . import settings

logger = logging.getLogger(__name__)


class InsightCapability(Protocol):
    def is_ready(self) -> bool: ...

    def try_initialize(self, api_key: str | None) -> bool: ...

    def generate(self, prompt: str) -> str: ...


class ClientNotReadyError(RuntimeError):
    pass


def _default_factory(api_key: str) -> Any:
    return genai.Client(api_key=api_key)


class GeminiClient:
    """Gemini text generation behind an initialize-once lifecycle.

    Construct one per application and hand it to the insight pipeline.
    ``try_initialize`` is a no-op once it has succeeded; after a failure the
    client stays unready and the next call tries again.
    """

    def __init__(
        self,
        model: str = settings.GEMINI_MODEL,
        client_factory: Callable[[str], Any] = _default_factory,
    ) -> None:
        self.model = model
        self._factory = client_factory
        self._client: Any = None
        self._lock = threading.Lock()

    def is_ready(self) -> bool:
        return self._client is not None

    def try_initialize(self, api_key: str | None) -> bool:
        with self._lock:
            if self._client is not None:
                return True
            if not api_key:
                logger.warning("Gemini API key not set; insights will use fallback content")
                return False
            try:
                client = self._factory(api_key)
            except Exception:
                logger.exception("Failed to initialize Gemini client")
                return False
            self._client = client
        logger.info("Gemini client initialized (model=%s)", self.model)
        return True

    def generate(self, prompt: str) -> str:
        client = self._client
        if client is None:
            raise ClientNotReadyError("Gemini client not initialized. Call try_initialize first.")
        resp = client.models.generate_content(model=self.model, contents=prompt)
        return resp.text or ""
