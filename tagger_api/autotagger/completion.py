from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from openai import AsyncOpenAI, OpenAIError

from .errors import ConfigurationError, ExternalServiceError


class CompletionService(Protocol):
    async def complete(self, role: str, prompt: str, credential: str) -> str:
        ...


@dataclass(frozen=True)
class OpenAICompletionService:
    """Chat completion through the OpenAI API.

    The role is sent as the system message and the rendered prompt as the user
    message. The answer is returned trimmed; it is not checked against the
    reference set.
    """

    model: str = "gpt-4o-mini"
    temperature: float = 0.0
    max_tokens: int = 100
    timeout: float = 30.0

    async def complete(self, role: str, prompt: str, credential: str) -> str:
        if not credential or not credential.strip():
            raise ConfigurationError("API key is not set")

        messages = []
        if role:
            messages.append({"role": "system", "content": role})
        messages.append({"role": "user", "content": prompt})

        try:
            client = AsyncOpenAI(api_key=credential, timeout=self.timeout)
            response = await client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            raise ExternalServiceError("completion", str(e)) from e

        if not response.choices:
            raise ExternalServiceError("completion", "Empty response")
        content = response.choices[0].message.content
        if content is None:
            raise ExternalServiceError("completion", "Response has no content")
        return content.strip()
