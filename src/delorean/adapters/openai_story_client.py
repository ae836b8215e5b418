"""OpenAI Responses API client for photo stories."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from delorean.services.stories import StoryClient, StoryResponse


@dataclass
class OpenAIStoryClient(StoryClient):
    """Story client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIStoryClient":
        """Create an OpenAI story client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def generate(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        image_data_url: str | None,
    ) -> StoryResponse:
        """Call OpenAI Responses API with the prompt and inlined image."""
        content: list[dict[str, object]] = [{"type": "input_text", "text": prompt}]
        if image_data_url:
            content.append({"type": "input_image", "image_url": image_data_url})
        request_payload: dict[str, object] = {
            "model": model,
            "input": [{"role": "user", "content": content}],
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        return to_story_response(response)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()


def to_story_response(raw: object) -> StoryResponse:
    """Reduce an SDK response object to the shapes text may live in."""
    text = getattr(raw, "output_text", None)
    wrapped = getattr(raw, "response", None)
    parts: list[str] = []
    for item in getattr(raw, "output", None) or []:
        for part in getattr(item, "content", None) or []:
            value = getattr(part, "text", None)
            if isinstance(value, str):
                parts.append(value)
    return StoryResponse(
        text=text if isinstance(text, str) else None,
        wrapped=to_story_response(wrapped) if wrapped is not None else None,
        parts=tuple(parts),
    )
