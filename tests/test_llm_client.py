"""Tests for shared.llm_client request shaping and response extraction."""
import pytest

from shared.llm_client import LLMClient, _merge_fields

MESSAGES = [{"role": "user", "content": "BTC?"}]


def test_merge_fields():
    assert _merge_fields("answer", "") == "answer"
    assert _merge_fields("", "reasoning") == "reasoning"
    assert _merge_fields("answer", "reasoning") == "<think>reasoning</think>\nanswer"


def test_unknown_provider_rejected():
    with pytest.raises(ValueError):
        LLMClient(provider="gemini")


def test_claude_request_and_extract():
    client = LLMClient(provider="claude", api_key="sk-test")
    url, headers, payload = client._request(MESSAGES, client.default_model, 0.3)
    assert url.endswith("/v1/messages")
    assert headers["x-api-key"] == "sk-test"
    assert payload["max_tokens"] == 1024
    data = {"content": [{"type": "text", "text": '{"direction": '}, {"type": "text", "text": '"UP"}'}]}
    assert client._extract(data) == ('{"direction": "UP"}', "")


def test_openai_request_and_extract():
    client = LLMClient(provider="openai", api_key="sk-test", model="gpt-4o-mini")
    url, headers, payload = client._request(MESSAGES, client.default_model, 0.3)
    assert headers["Authorization"] == "Bearer sk-test"
    assert payload["model"] == "gpt-4o-mini"
    assert client._extract({"choices": [{"message": {"content": "hi"}}]}) == ("hi", "")
    assert client._extract({"choices": []}) == ("", "")


def test_ollama_request_and_extract():
    client = LLMClient(provider="ollama", host="http://localhost:11434/")
    url, headers, payload = client._request(MESSAGES, "gpt-oss:120b", 0.2)
    assert url == "http://localhost:11434/api/chat"
    assert "Authorization" not in headers
    assert payload["stream"] is False
    assert payload["options"]["temperature"] == 0.2
    assert client._extract({"message": {"content": "a", "thinking": "b"}}) == ("a", "b")
