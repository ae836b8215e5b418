"""OpenAI text-to-speech client."""

from dataclasses import dataclass

from openai import AsyncOpenAI

from delorean.services.speech import SpeechClient


@dataclass
class OpenAISpeechClient(SpeechClient):
    """Speech client backed by the OpenAI audio API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAISpeechClient":
        """Create an OpenAI speech client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def synthesize(self, *, model: str, voice: str, text: str) -> bytes:
        """Return MP3 audio for the text."""
        response = await self.client.audio.speech.create(
            model=model,
            voice=voice,
            input=text,
            response_format="mp3",
        )
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()
