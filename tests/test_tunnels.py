"""Tests for tunnel sessions and cache-busted URLs."""

import pytest

from delorean.containers import AppContainer
from delorean.domain.errors import TunnelNotFound
from delorean.services.tunnels import cache_bust
from delorean.services.uploads import UploadedFile
from tests.conftest import image_bytes


def _upload_one(container: AppContainer, tunnel_id: str | None = None) -> str:
    [record] = container.upload_service.upload(
        [UploadedFile("a.jpg", "image/jpeg", image_bytes())], tunnel_id=tunnel_id
    )
    return record.id


def test_start_returns_distinct_open_sessions(container: AppContainer) -> None:
    first = container.tunnel_service.start()
    second = container.tunnel_service.start()

    assert first != second
    assert container.tunnel_service.is_open(first)
    assert container.tunnel_service.asset_ids(first) == []


def test_commit_returns_tracked_assets_in_manifest_order(
    container: AppContainer,
) -> None:
    outside = _upload_one(container)
    tunnel_id = container.tunnel_service.start()
    first = _upload_one(container, tunnel_id)
    second = _upload_one(container, tunnel_id)
    container.tunnel_service.track(tunnel_id, first)

    assets = container.tunnel_service.commit(tunnel_id)

    assert [record.id for record in assets] == [first, second]
    assert outside not in [record.id for record in assets]
    assert not container.tunnel_service.is_open(tunnel_id)


def test_commit_skips_deleted_assets(container: AppContainer) -> None:
    tunnel_id = container.tunnel_service.start()
    kept = _upload_one(container, tunnel_id)
    dropped = _upload_one(container, tunnel_id)
    container.asset_service.delete_asset(dropped)

    assets = container.tunnel_service.commit(tunnel_id)

    assert [record.id for record in assets] == [kept]


def test_commit_twice_raises(container: AppContainer) -> None:
    tunnel_id = container.tunnel_service.start()
    container.tunnel_service.commit(tunnel_id)

    with pytest.raises(TunnelNotFound):
        container.tunnel_service.commit(tunnel_id)


def test_tracking_unknown_session_is_ignored(container: AppContainer) -> None:
    container.tunnel_service.track("nope", "asset")

    assert container.tunnel_service.asset_ids("nope") == []
    assert not container.tunnel_service.is_open("nope")


def test_cache_bust_appends_version() -> None:
    assert cache_bust("http://h/uploads/a.webp", "t1") == "http://h/uploads/a.webp?v=t1"
    assert cache_bust("http://h/a.webp?w=2", "t1") == "http://h/a.webp?w=2&v=t1"
    assert cache_bust("http://h/a.webp?v=t1", "t1") == "http://h/a.webp?v=t1"
    assert cache_bust(None, "t1") is None
