"""
OpenAI-compatible completion client — works with OpenAI, LM Studio, Groq,
Together.ai and any other provider that implements chat/completions.
"""

import logging

import requests

from ..exceptions import UnauthorizedError
from .base import LLMClient

logger = logging.getLogger(__name__)


class OpenAICompatibleClient(LLMClient):

    def __init__(self, base_url: str, model: str, api_key: str = "",
                 temperature: float = 0.2, timeout: float = 120.0, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _complete(self, messages: list[dict[str, str]]) -> str:
        est_tokens = int(sum(len(m["content"].split()) for m in messages) * 1.3)
        logger.debug("[LLM] Sending ~%d est. tokens to %s", est_tokens, self.model)

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "stream": False,
        }
        url = f"{self.base_url}/chat/completions"
        response = requests.post(url, headers=self._headers(), json=payload,
                                 timeout=(10, self.timeout))
        if response.status_code in (401, 403):
            raise UnauthorizedError(
                f"Provider rejected credentials ({response.status_code})")
        response.raise_for_status()
        data = response.json()

        usage = data.get("usage", {})
        logger.debug(
            "[LLM] Usage: prompt=%s completion=%s",
            usage.get("prompt_tokens"), usage.get("completion_tokens"),
        )

        response_text = data["choices"][0]["message"]["content"]
        logger.debug("[LLM] Response:\n%s", response_text)
        return response_text
