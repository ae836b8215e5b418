"""Shared test fixtures."""

import io
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from PIL import Image

from delorean.adapters.json_manifest_repository import JsonManifestRepository
from delorean.adapters.local_content_store import LocalContentStore
from delorean.config import Settings
from delorean.containers import AppContainer
from delorean.services.assets import AssetService
from delorean.services.images import ImageNormalizer
from delorean.services.legacy import LegacyStoryService
from delorean.services.speech import SpeechClient, SpeechService
from delorean.services.stories import (
    StoryClient,
    StoryGenerator,
    StoryResponse,
    StoryService,
)
from delorean.services.tunnels import TunnelService
from delorean.services.uploads import UploadService

EXIF_ORIENTATION = 0x0112


def image_bytes(
    size: tuple[int, int] = (40, 20),
    color: tuple[int, int, int] = (200, 80, 40),
    image_format: str = "JPEG",
    orientation: int | None = None,
) -> bytes:
    """Return an encoded test image, optionally tagged with an orientation."""
    image = Image.new("RGB", size, color)
    buffer = io.BytesIO()
    if orientation is not None:
        exif = Image.Exif()
        exif[EXIF_ORIENTATION] = orientation
        image.save(buffer, format=image_format, exif=exif)
    else:
        image.save(buffer, format=image_format)
    return buffer.getvalue()


@dataclass
class FakeStoryClient(StoryClient):
    """Fake story client returning canned replies."""

    reply: StoryResponse = field(
        default_factory=lambda: StoryResponse(
            text="You stood at the edge of the water, laughing."
        )
    )
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def generate(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        image_data_url: str | None,
    ) -> StoryResponse:
        self.calls.append(
            {"model": model, "prompt": prompt, "image_data_url": image_data_url}
        )
        if self.error is not None:
            raise self.error
        return self.reply


@dataclass
class FakeSpeechClient(SpeechClient):
    """Fake speech client returning fixed audio bytes."""

    audio: bytes = b"ID3fake-mp3-bytes"
    texts: list[str] = field(default_factory=list)

    async def synthesize(self, *, model: str, voice: str, text: str) -> bytes:
        self.texts.append(text)
        return self.audio


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        upload_dir=tmp_path / "uploads",
        audio_dir=tmp_path / "audio",
        openai_api_key="openai-key",
        public_base_url="http://testserver",
        environment="test",
    )


@pytest.fixture
def story_client() -> FakeStoryClient:
    return FakeStoryClient()


@pytest.fixture
def speech_client() -> FakeSpeechClient:
    return FakeSpeechClient()


def make_container(
    settings: Settings,
    story_client: StoryClient | None,
    speech_client: SpeechClient | None = None,
) -> AppContainer:
    image_store = LocalContentStore(settings.upload_dir)
    audio_store = LocalContentStore(settings.audio_dir)
    repository = JsonManifestRepository(
        path=settings.resolved_manifest_path,
        content_store=image_store,
        audio_store=audio_store,
    )
    tunnel_service = TunnelService(repository)
    generator = StoryGenerator(
        client=story_client,
        content_store=image_store,
        model=settings.openai_model,
    )
    speech_service = SpeechService(
        client=speech_client,
        audio_store=audio_store,
        model=settings.openai_tts_model,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        image_store=image_store,
        audio_store=audio_store,
        asset_service=AssetService(repository),
        upload_service=UploadService(
            repository=repository,
            content_store=image_store,
            normalizer=ImageNormalizer(),
            tunnels=tunnel_service,
        ),
        story_service=StoryService(
            repository=repository,
            generator=generator,
            tunnels=tunnel_service,
            speech=speech_service,
            narrate=settings.narrate_stories,
        ),
        speech_service=speech_service,
        tunnel_service=tunnel_service,
        legacy_story_service=LegacyStoryService(
            repository=repository,
            generator=generator,
            speech=speech_service,
        ),
        close_resources=close_resources,
    )


@pytest.fixture
def container(
    settings: Settings,
    story_client: FakeStoryClient,
    speech_client: FakeSpeechClient,
) -> AppContainer:
    return make_container(settings, story_client, speech_client)


@pytest.fixture
def unconfigured_container(settings: Settings) -> AppContainer:
    return make_container(settings, story_client=None, speech_client=None)
