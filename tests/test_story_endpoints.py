"""Tests for story, tunnel and legacy narrative endpoints."""

from fastapi.testclient import TestClient

from delorean.api.app import create_app
from delorean.containers import AppContainer
from delorean.services.uploads import UploadedFile
from tests.conftest import (
    FakeSpeechClient,
    FakeStoryClient,
    image_bytes,
    make_container,
)


def _client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


def _asset_id(container: AppContainer, context: str = "beach") -> str:
    [record] = container.upload_service.upload(
        [UploadedFile("beach.jpg", "image/jpeg", image_bytes())], [context]
    )
    return record.id


def test_story_endpoint_generates_story(container: AppContainer) -> None:
    asset_id = _asset_id(container)

    response = _client(container).post(f"/api/uploads/{asset_id}/story", json={})

    assert response.status_code == 200
    body = response.json()
    assert body["reused"] is False
    assert body["story"]["status"] == "ready"
    assert body["story"]["text"]
    assert body["asset"]["story"]["status"] == "ready"
    assert body["asset"]["url"].endswith(".webp")


def test_story_endpoint_accepts_missing_body(container: AppContainer) -> None:
    asset_id = _asset_id(container)

    response = _client(container).post(f"/api/uploads/{asset_id}/story")

    assert response.status_code == 200


def test_story_endpoint_reuses_and_forces(
    container: AppContainer, story_client: FakeStoryClient
) -> None:
    client = _client(container)
    asset_id = _asset_id(container)
    client.post(f"/api/uploads/{asset_id}/story", json={})

    reused = client.post(f"/api/uploads/{asset_id}/story", json={"context": "x"})
    forced = client.post(
        f"/api/uploads/{asset_id}/story", json={"context": "rain", "force": True}
    )

    assert reused.json()["reused"] is True
    assert forced.json()["reused"] is False
    assert forced.json()["asset"]["context"] == "rain"
    assert len(story_client.calls) == 2


def test_story_endpoint_unknown_asset(container: AppContainer) -> None:
    response = _client(container).post("/api/uploads/nope/story", json={})

    assert response.status_code == 404


def test_story_endpoint_missing_file_returns_410(container: AppContainer) -> None:
    asset_id = _asset_id(container)
    record = container.asset_service.get_asset(asset_id)
    container.image_store.delete(record.filename)

    response = _client(container).post(f"/api/uploads/{asset_id}/story", json={})

    assert response.status_code == 410
    assert container.asset_service.get_asset(asset_id).story.status == "pending"


def test_story_endpoint_without_provider_returns_503(
    unconfigured_container: AppContainer,
) -> None:
    response = _client(unconfigured_container).post(
        "/api/uploads/anything/story", json={}
    )

    assert response.status_code == 503
    assert "not configured" in response.json()["error"]


def test_story_endpoint_provider_failure_returns_502(
    container: AppContainer, story_client: FakeStoryClient
) -> None:
    asset_id = _asset_id(container)
    story_client.error = RuntimeError("quota exceeded")

    response = _client(container).post(f"/api/uploads/{asset_id}/story", json={})

    assert response.status_code == 502
    assert container.asset_service.get_asset(asset_id).story.status == "error"


def test_tunnel_commit_returns_cache_busted_assets(container: AppContainer) -> None:
    client = _client(container)
    tunnel_id = client.post("/api/tunnels/start").json()["tunnelId"]
    untracked = _asset_id(container)
    tracked = _asset_id(container)
    client.post(
        f"/api/uploads/{tracked}/story", params={"tunnelId": tunnel_id}, json={}
    )

    response = client.post(f"/api/tunnels/{tunnel_id}/commit")

    assert response.status_code == 200
    assets = response.json()["assets"]
    assert [asset["id"] for asset in assets] == [tracked]
    assert untracked not in [asset["id"] for asset in assets]
    assert assets[0]["url"].endswith(f"?v={tunnel_id}")
    assert client.post(f"/api/tunnels/{tunnel_id}/commit").status_code == 404


def test_narrated_story_exposes_audio_url(
    settings, speech_client: FakeSpeechClient
) -> None:
    settings.narrate_stories = True
    container = make_container(settings, FakeStoryClient(), speech_client)
    client = _client(container)
    asset_id = _asset_id(container)

    body = client.post(f"/api/uploads/{asset_id}/story", json={}).json()

    assert body["story"]["audioUrl"] == f"http://testserver/audio/{asset_id}.mp3"
    assert client.get(f"/audio/{asset_id}.mp3").content == speech_client.audio


def test_legacy_story_summarizes_memories(
    container: AppContainer, story_client: FakeStoryClient
) -> None:
    asset_id = _asset_id(container, context="first snow")

    response = _client(container).post(
        "/api/story",
        json={"memories": [{"id": asset_id}, {"context": "a long drive"}]},
    )

    assert response.status_code == 200
    assert response.json()["story"] == story_client.reply.text
    prompt = story_client.calls[0]["prompt"]
    assert "- first snow" in prompt
    assert "- a long drive" in prompt
    assert story_client.calls[0]["image_data_url"] is None


def test_legacy_story_requires_memories(container: AppContainer) -> None:
    response = _client(container).post("/api/story", json={"memories": []})

    assert response.status_code == 400


def test_legacy_narrate_returns_audio_path(
    container: AppContainer, speech_client: FakeSpeechClient
) -> None:
    client = _client(container)

    response = client.post("/api/narrate", json={"memories": [{"context": "lake"}]})

    assert response.status_code == 200
    body = response.json()
    assert body["audio"].startswith("/audio/") and body["audio"].endswith(".mp3")
    assert client.get(body["audio"]).content == speech_client.audio


def test_legacy_narrate_without_provider_returns_503(
    unconfigured_container: AppContainer,
) -> None:
    response = _client(unconfigured_container).post(
        "/api/narrate", json={"memories": [{"context": "lake"}]}
    )

    assert response.status_code == 503
