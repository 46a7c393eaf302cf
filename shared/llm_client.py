"""LLM chat client for the prediction council (Claude, OpenAI or Ollama)."""
import asyncio
import logging
from typing import Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"

DEFAULT_MODELS = {
    "claude": "claude-sonnet-4-20250514",
    "openai": "gpt-4o",
    "ollama": "gpt-oss:120b",
}


def _merge_fields(response: str, thinking: str) -> str:
    """Merge a response and its thinking trace into a single parseable text.

    Thinking is wrapped in <think> tags and prepended when both are present;
    whichever one is populated is returned alone otherwise.
    """
    r = (response or "").strip()
    t = (thinking or "").strip()
    if not t:
        return r
    if not r:
        return t
    return f"<think>{t}</think>\n{r}"


class LLMClient:
    """Provider-agnostic chat client over the providers' HTTP APIs."""

    def __init__(
        self,
        provider: str,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 1024,
        host: str = "https://ollama.com",
        timeout: float = 120.0,
    ):
        if provider not in DEFAULT_MODELS:
            raise ValueError(f"Unknown AI provider: {provider}")
        self.provider = provider
        self.api_key = api_key
        self.default_model = model or DEFAULT_MODELS[provider]
        self.max_tokens = max_tokens
        self.host = host.rstrip("/")
        self.timeout = timeout

    def _request(self, messages: List[Dict[str, str]], model: str, temperature: float) -> tuple[str, dict, dict]:
        if self.provider == "claude":
            headers = {
                "x-api-key": self.api_key or "",
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            }
            payload = {
                "model": model,
                "max_tokens": self.max_tokens,
                "temperature": temperature,
                "messages": messages,
            }
            return ANTHROPIC_URL, headers, payload

        if self.provider == "openai":
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
            payload = {
                "model": model,
                "max_tokens": self.max_tokens,
                "temperature": temperature,
                "messages": messages,
            }
            return OPENAI_URL, headers, payload

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        payload = {
            "model": model,
            "messages": messages,
            "options": {"temperature": temperature, "num_predict": self.max_tokens},
            "stream": False,
        }
        return f"{self.host}/api/chat", headers, payload

    def _extract(self, data: dict) -> tuple[str, str]:
        """Pull (response, thinking) text out of a provider payload."""
        if self.provider == "claude":
            text = "".join(
                block.get("text", "")
                for block in data.get("content", [])
                if block.get("type") == "text"
            )
            return text, ""
        if self.provider == "openai":
            choices = data.get("choices") or [{}]
            return choices[0].get("message", {}).get("content", "") or "", ""
        msg = data.get("message", {})
        return msg.get("content", ""), msg.get("thinking", "")

    def chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.3,
    ) -> Dict:
        """
        Send a chat completion request.

        Returns dict with 'response' text, 'thinking' text, 'merged' text
        (normalized for parsing) and 'model'.
        """
        use_model = model or self.default_model
        url, headers, payload = self._request(messages, use_model, temperature)

        logger.debug("LLM request", extra={
            "provider": self.provider,
            "model": use_model,
            "prompt_len": sum(len(m["content"]) for m in messages),
        })

        with httpx.Client(timeout=self.timeout) as client:
            resp = client.post(url, json=payload, headers=headers)
            resp.raise_for_status()

        response, thinking = self._extract(resp.json())
        logger.debug("LLM response", extra={"response_len": len(response)})
        return {
            "response": response,
            "thinking": thinking,
            "merged": _merge_fields(response, thinking),
            "model": use_model,
        }

    async def chat_async(self, *args, **kwargs) -> Dict:
        """Async wrapper -- runs chat() in a thread pool to avoid blocking the event loop."""
        return await asyncio.to_thread(self.chat, *args, **kwargs)
