from __future__ import annotations
import json
from typing import AsyncIterator

import httpx

from .config import settings


class LLM:
    name = "LLM"

    def stream(self, prompt: str) -> AsyncIterator[str]:
        """Send ``prompt`` as a single user message and yield generated text as it arrives."""
        raise NotImplementedError


def _decode_line(line: str) -> dict | None:
    data_str = line.strip()
    if data_str.startswith("data:"):
        data_str = data_str[5:].strip()
    if not data_str or data_str == "[DONE]":
        return None
    try:
        return json.loads(data_str)
    except json.JSONDecodeError:
        return None


async def _raise_for_status(r: httpx.Response, provider: str, key_env: str | None = None) -> None:
    if r.status_code < 400:
        return
    body = (await r.aread()).decode("utf-8", errors="replace")
    if r.status_code == 429:
        raise RuntimeError(f"{provider} rate limit exceeded. Please try again later.")
    if r.status_code in (401, 403) and key_env:
        raise RuntimeError(f"Invalid {provider} API key. Please check your {key_env} in the .env file.")
    raise RuntimeError(f"{provider} API error: {r.status_code} - {body}")


class GeminiLLM(LLM):
    name = "Gemini"

    def _payload(self, prompt: str) -> dict:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": settings.temperature,
                "topP": settings.top_p,
                "topK": settings.top_k,
                "maxOutputTokens": settings.max_output_tokens,
            },
        }

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        if not settings.gemini_api_key:
            raise RuntimeError("GOOGLE_GENAI_API_KEY is missing.")
        url = f"{settings.gemini_base_url}/models/{settings.gemini_model}:streamGenerateContent"
        headers = {"x-goog-api-key": settings.gemini_api_key}
        async with httpx.AsyncClient(timeout=settings.llm_timeout) as client:
            try:
                async with client.stream(
                    "POST", url, params={"alt": "sse"}, headers=headers, json=self._payload(prompt)
                ) as r:
                    await _raise_for_status(r, self.name, "GOOGLE_GENAI_API_KEY")
                    async for line in r.aiter_lines():
                        data = _decode_line(line)
                        if not data:
                            continue
                        for candidate in data.get("candidates", [])[:1]:
                            for part in (candidate.get("content") or {}).get("parts", []):
                                if part.get("text"):
                                    yield part["text"]
            except httpx.RequestError as e:
                raise RuntimeError(f"Cannot reach Gemini API at {settings.gemini_base_url}: {e}") from e


class OpenAILLM(LLM):
    name = "OpenAI"

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        if not settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY is missing.")
        headers = {"Authorization": f"Bearer {settings.openai_api_key}"}
        payload = {
            "model": settings.openai_model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": settings.temperature,
            "top_p": settings.top_p,
            "max_tokens": settings.max_output_tokens,
            "stream": True,
        }
        async with httpx.AsyncClient(timeout=settings.llm_timeout) as client:
            try:
                async with client.stream(
                    "POST", "https://api.openai.com/v1/chat/completions", headers=headers, json=payload
                ) as r:
                    await _raise_for_status(r, self.name, "OPENAI_API_KEY")
                    async for line in r.aiter_lines():
                        data = _decode_line(line)
                        if not data:
                            continue
                        for choice in data.get("choices", [])[:1]:
                            text = (choice.get("delta") or {}).get("content")
                            if text:
                                yield text
            except httpx.RequestError as e:
                raise RuntimeError(f"Cannot reach OpenAI API: {e}") from e


class OllamaLLM(LLM):
    name = "Ollama"

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        payload = {
            "model": settings.ollama_model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
            "options": {
                "temperature": settings.temperature,
                "top_p": settings.top_p,
                "top_k": settings.top_k,
                "num_predict": settings.max_output_tokens,
            },
        }
        async with httpx.AsyncClient(timeout=settings.llm_timeout) as client:
            try:
                async with client.stream("POST", f"{settings.ollama_base_url}/api/chat", json=payload) as r:
                    await _raise_for_status(r, self.name)
                    # Ollama streams one JSON object per line
                    async for line in r.aiter_lines():
                        data = _decode_line(line)
                        if not data:
                            continue
                        text = (data.get("message") or {}).get("content")
                        if text:
                            yield text
                        if data.get("done"):
                            break
            except httpx.ConnectError as e:
                raise RuntimeError(
                    f"Cannot connect to Ollama at {settings.ollama_base_url}. Make sure Ollama is running with 'ollama serve' and the model '{settings.ollama_model}' is pulled."
                ) from e


def get_llm() -> LLM:
    provider = settings.llm_provider.lower()
    if provider == "ollama":
        return OllamaLLM()
    if provider == "openai":
        return OpenAILLM()
    return GeminiLLM()
