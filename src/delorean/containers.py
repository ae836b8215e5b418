"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from delorean.adapters.json_manifest_repository import JsonManifestRepository
from delorean.adapters.local_content_store import LocalContentStore
from delorean.adapters.openai_speech_client import OpenAISpeechClient
from delorean.adapters.openai_story_client import OpenAIStoryClient
from delorean.config import Settings
from delorean.services.assets import AssetService, ContentStore
from delorean.services.images import ImageNormalizer
from delorean.services.legacy import LegacyStoryService
from delorean.services.speech import SpeechService, resolve_voice
from delorean.services.stories import StoryGenerator, StoryService
from delorean.services.tunnels import TunnelService
from delorean.services.uploads import UploadService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    image_store: ContentStore
    audio_store: ContentStore
    asset_service: AssetService
    upload_service: UploadService
    story_service: StoryService
    speech_service: SpeechService
    tunnel_service: TunnelService
    legacy_story_service: LegacyStoryService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    image_store = LocalContentStore(resolved_settings.upload_dir)
    audio_store = LocalContentStore(resolved_settings.audio_dir)
    repository = JsonManifestRepository(
        path=resolved_settings.resolved_manifest_path,
        content_store=image_store,
        audio_store=audio_store,
    )
    api_key = resolved_settings.openai_api_key
    story_client = OpenAIStoryClient.create(api_key) if api_key else None
    speech_client = OpenAISpeechClient.create(api_key) if api_key else None

    tunnel_service = TunnelService(repository)
    generator = StoryGenerator(
        client=story_client,
        content_store=image_store,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    speech_service = SpeechService(
        client=speech_client,
        audio_store=audio_store,
        model=resolved_settings.openai_tts_model,
        voice=resolve_voice(resolved_settings.openai_voice),
    )
    story_service = StoryService(
        repository=repository,
        generator=generator,
        tunnels=tunnel_service,
        speech=speech_service,
        narrate=resolved_settings.narrate_stories,
    )
    upload_service = UploadService(
        repository=repository,
        content_store=image_store,
        normalizer=ImageNormalizer(quality=resolved_settings.webp_quality),
        tunnels=tunnel_service,
        max_files=resolved_settings.max_upload_files,
        max_bytes=resolved_settings.max_upload_bytes,
    )
    legacy_story_service = LegacyStoryService(
        repository=repository,
        generator=generator,
        speech=speech_service,
    )

    async def close_resources() -> None:
        if story_client is not None:
            await story_client.close()
        if speech_client is not None:
            await speech_client.close()

    return AppContainer(
        settings=resolved_settings,
        image_store=image_store,
        audio_store=audio_store,
        asset_service=AssetService(repository),
        upload_service=upload_service,
        story_service=story_service,
        speech_service=speech_service,
        tunnel_service=tunnel_service,
        legacy_story_service=legacy_story_service,
        close_resources=close_resources,
    )
