from __future__ import annotations

import json
import random
import time
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from openai import OpenAI, OpenAIError
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from lontario.core.config import settings


ChatMessage = dict[str, str]
SchemaT = TypeVar("SchemaT", bound=BaseModel)


@dataclass(frozen=True)
class OpenAIUsage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass(frozen=True)
class OpenAIStructuredResponse(Generic[SchemaT]):
    request_id: str
    response_id: str
    model: str
    parsed: SchemaT
    usage: OpenAIUsage


class OpenAIClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OpenAINotConfiguredError(OpenAIClientError):
    pass


class OpenAIClient:
    """
    Thin wrapper around the OpenAI SDK returning pydantic-validated structured
    output, so the rest of the app can be unit-tested without the network.
    """

    def __init__(self, *, api_key: str | None = None, model: str | None = None) -> None:
        key = api_key or settings.OPENAI_API_KEY
        if not key:
            raise OpenAINotConfiguredError("OPENAI_API_KEY is not configured")
        self.model = model or settings.OPENAI_MODEL
        if not self.model:
            raise OpenAINotConfiguredError("OPENAI_MODEL is not configured")
        self._client = OpenAI(api_key=key, timeout=settings.AI_OPENAI_TIMEOUT_SECONDS)
        self.max_retries = settings.AI_OPENAI_MAX_RETRIES

    def structured_completion(
        self,
        *,
        messages: Sequence[ChatMessage],
        schema: type[SchemaT],
        schema_name: str,
        request_id: str,
        temperature: float = 0.2,
        max_tokens: int | None = None,
    ) -> OpenAIStructuredResponse[SchemaT]:
        payload_messages = [
            {"role": message["role"], "content": message["content"]}
            for message in messages
            if message.get("role") and message.get("content")
        ]
        if not payload_messages:
            raise OpenAIClientError("At least one chat message is required")

        response_format = {
            "type": "json_schema",
            "json_schema": {"name": schema_name, "schema": schema.model_json_schema()},
        }

        last_exc: OpenAIError | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self._client.chat.completions.create(
                    model=self.model,
                    messages=payload_messages,  # type: ignore[arg-type]
                    temperature=temperature,
                    max_tokens=max_tokens,
                    response_format=response_format,  # type: ignore[arg-type]
                    extra_headers={"X-Request-ID": request_id},
                )
                break
            except OpenAIError as exc:
                last_exc = exc
                if attempt == self.max_retries or not self._is_retryable(exc):
                    raise OpenAIClientError(str(exc), status_code=self._status_of(exc)) from exc
                backoff = min(0.5 * (2 ** (attempt - 1)), 5.0)
                time.sleep(backoff + random.uniform(0, 0.25))
        else:  # pragma: no cover - loop always breaks or raises
            raise OpenAIClientError(str(last_exc) if last_exc else "Unknown OpenAI error")

        if not response.choices:
            raise OpenAIClientError("Model returned no choices")
        choice = response.choices[0]
        refusal = getattr(choice.message, "refusal", None)
        if refusal:
            raise OpenAIClientError(f"Model refused the request: {refusal}")

        content = choice.message.content or ""
        try:
            parsed = schema.model_validate_json(content)
        except (PydanticValidationError, json.JSONDecodeError) as exc:
            raise OpenAIClientError(f"Model returned an invalid {schema_name} payload") from exc

        usage = response.usage or None
        usage_payload = OpenAIUsage(
            prompt_tokens=int(getattr(usage, "prompt_tokens", 0) or 0),
            completion_tokens=int(getattr(usage, "completion_tokens", 0) or 0),
            total_tokens=int(getattr(usage, "total_tokens", 0) or 0),
        )
        return OpenAIStructuredResponse(
            request_id=request_id,
            response_id=getattr(response, "id", None) or request_id,
            model=response.model or self.model,
            parsed=parsed,
            usage=usage_payload,
        )

    @staticmethod
    def _status_of(exc: OpenAIError) -> int | None:
        status = getattr(exc, "status_code", None) or getattr(exc, "status", None)
        return status if isinstance(status, int) else None

    def _is_retryable(self, exc: OpenAIError) -> bool:
        status = self._status_of(exc)
        if isinstance(status, int):
            return status >= 500 or status in {408, 429}
        message = str(exc).lower()
        return "timeout" in message or "temporarily unavailable" in message
