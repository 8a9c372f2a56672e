import json
import requests
from flask import current_app
from study_assistant.errors import UpstreamServiceError


class OpenRouterService:
    """Wrapper around the OpenRouter API for chat completions."""

    SERVICE_NAME = "OpenRouter"

    def __init__(self):
        self.base_url = current_app.config["OPENROUTER_BASE_URL"]
        self.api_key = current_app.config["OPENROUTER_API_KEY"]
        self.default_model = current_app.config["DEFAULT_CHAT_MODEL"]

    def get_available_models(self):
        return current_app.config["CHAT_MODELS"]

    def resolve_model(self, model):
        """Fall back to the default model when the requested one isn't offered."""
        available = [m["id"] for m in self.get_available_models()]
        if not model or model not in available:
            return self.default_model
        return model

    def _headers(self):
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": "https://study-assistant.local",
            "X-Title": "Study Assistant",
        }

    def _post(self, payload, stream=False):
        try:
            resp = requests.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=payload,
                stream=stream,
                timeout=120,
            )
        except requests.RequestException as e:
            raise UpstreamServiceError(f"{self.SERVICE_NAME} request failed: {e}")
        if not resp.ok:
            err = UpstreamServiceError.from_response(self.SERVICE_NAME, resp)
            resp.close()
            raise err
        return resp

    @staticmethod
    def build_messages(system_prompt, messages):
        """Prefix the conversation with a system prompt."""
        out = []
        if system_prompt:
            out.append({"role": "system", "content": system_prompt})
        out.extend({"role": m["role"], "content": m["content"]} for m in messages)
        return out

    def chat_completion(self, messages, model=None, temperature=0.7, max_tokens=4096):
        """Non-streaming chat completion."""
        payload = {
            "model": model or self.default_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        resp = self._post(payload)
        try:
            return resp.json()["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError):
            raise UpstreamServiceError(f"{self.SERVICE_NAME} returned no completion", detail=resp.text[:500])

    def chat_completion_stream(self, messages, model=None, temperature=0.7, max_tokens=4096):
        """
        Streaming chat completion.

        The upstream request is made before this returns, so a failed request
        raises here instead of while iterating. The returned CompletionStream
        must be closed if it is not read to the end.
        """
        payload = {
            "model": model or self.default_model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": True,
        }
        resp = self._post(payload, stream=True)
        return CompletionStream(resp)


class CompletionStream:
    """Content deltas of an open SSE completion response."""

    def __init__(self, resp):
        self.resp = resp

    def __iter__(self):
        try:
            for line in self.resp.iter_lines():
                if not line:
                    continue
                line_str = line.decode("utf-8") if isinstance(line, bytes) else line
                if line_str.startswith("data: "):
                    data_str = line_str[6:]
                    if data_str.strip() == "[DONE]":
                        break
                    try:
                        chunk = json.loads(data_str)
                    except json.JSONDecodeError:
                        continue
                    delta = (chunk.get("choices") or [{}])[0].get("delta", {})
                    content = delta.get("content", "")
                    if content:
                        yield content
        finally:
            self.close()

    def close(self):
        self.resp.close()
