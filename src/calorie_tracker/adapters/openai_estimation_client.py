"""OpenAI Responses API client for nutrition estimates."""

import json
from collections.abc import Callable
from dataclasses import dataclass

from openai import AsyncOpenAI

from calorie_tracker.services.estimation import (
    CredentialProvider,
    EstimationClient,
    EstimationError,
    MissingCredentialsError,
)


@dataclass
class OpenAIEstimationClient(EstimationClient):
    """Estimation client backed by the OpenAI Responses API.

    The API key is resolved per request so a key saved in settings takes
    effect without a restart.
    """

    credentials: CredentialProvider
    client_factory: Callable[..., AsyncOpenAI] = AsyncOpenAI

    async def complete(
        self,
        *,
        model: str,
        prompt: str,
        schema_name: str,
        schema: dict[str, object],
        image_data_url: str | None = None,
    ) -> dict[str, object]:
        """Call the Responses API with strict structured output."""
        api_key = self.credentials.get_api_key()
        if not api_key:
            raise MissingCredentialsError("API key not set")

        content: list[dict[str, object]] = [{"type": "input_text", "text": prompt}]
        if image_data_url:
            content.append({"type": "input_image", "image_url": image_data_url})
        request_payload: dict[str, object] = {
            "model": model,
            "input": [{"role": "user", "content": content}],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": schema_name,
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": False,
        }

        client = self.client_factory(api_key=api_key)
        try:
            response = await client.responses.create(**request_payload)
        finally:
            await client.close()
        output_text = response.output_text
        if not output_text:
            raise EstimationError("OpenAI returned an empty response")
        try:
            parsed = json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise EstimationError("OpenAI returned malformed JSON") from exc
        if not isinstance(parsed, dict):
            raise EstimationError("OpenAI returned a non-object payload")
        return parsed
