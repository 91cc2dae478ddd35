from __future__ import annotations

import logging
from typing import Any, Dict, List

import pytest
import requests

from gcloud_kit.errors import RegistryError
from gcloud_kit.registry import (
    TagDiscoverer,
    normalize_repository,
    resolve_image,
    split_image,
)


class _FakeResponse:
    def __init__(self, payload: Dict[str, Any], status: int = 200) -> None:
        self._payload = payload
        self.status_code = status

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Dict[str, Any]:
        return self._payload


class _FakeRegistry:
    """count 개의 태그를 per_page 개씩 나눠서 돌려주는 가짜 Docker Hub."""

    def __init__(self, tags: List[str], per_page: int = 10, status: int = 200) -> None:
        self.tags = tags
        self.per_page = per_page
        self.status = status
        self.requests: List[Dict[str, Any]] = []

    def get(self, url: str, params: Dict[str, Any] | None = None, timeout: float | None = None) -> _FakeResponse:
        params = params or {}
        self.requests.append({"url": url, **params})
        page = int(params.get("page", 1))
        start = (page - 1) * self.per_page
        chunk = self.tags[start:start + self.per_page]
        return _FakeResponse(
            {"count": len(self.tags), "results": [{"name": t} for t in chunk]},
            status=self.status,
        )


def _versions(n: int) -> List[str]:
    return [f"{400 - i}.0.0-alpine" if i % 2 == 0 else f"{400 - i}.0.0" for i in range(n)]


def test_pagination_fetches_each_page_once() -> None:
    registry = _FakeRegistry(_versions(25), per_page=10)
    discoverer = TagDiscoverer("https://hub.example", session=registry)  # type: ignore[arg-type]

    tags = list(discoverer.iter_tags("google/cloud-sdk"))

    assert [r["page"] for r in registry.requests] == [1, 2, 3]
    assert len(tags) == 25
    assert len(set(tags)) == 25
    assert registry.requests[0]["url"] == "https://hub.example/v2/repositories/google/cloud-sdk/tags/"


def test_filter_is_applied_across_pages() -> None:
    registry = _FakeRegistry(_versions(25), per_page=10)
    discoverer = TagDiscoverer(session=registry)  # type: ignore[arg-type]

    tags = list(discoverer.iter_tags("google/cloud-sdk", r"-alpine$"))

    assert tags == [t for t in _versions(25) if t.endswith("-alpine")]


def test_latest_tag_stops_after_first_match() -> None:
    registry = _FakeRegistry(_versions(25), per_page=10)
    discoverer = TagDiscoverer(session=registry)  # type: ignore[arg-type]

    assert discoverer.latest_tag("google/cloud-sdk", r"^\d+\.\d+\.\d+-alpine$") == "400.0.0-alpine"
    assert len(registry.requests) == 1


def test_zero_tags_warns_and_yields_nothing(caplog: pytest.LogCaptureFixture) -> None:
    registry = _FakeRegistry([], per_page=10)
    discoverer = TagDiscoverer(session=registry)  # type: ignore[arg-type]

    with caplog.at_level(logging.WARNING):
        tags = list(discoverer.iter_tags("someone/empty"))

    assert tags == []
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_http_failure_raises_registry_error() -> None:
    registry = _FakeRegistry(_versions(3), status=404)
    discoverer = TagDiscoverer(session=registry)  # type: ignore[arg-type]

    with pytest.raises(RegistryError):
        list(discoverer.iter_tags("nope/missing"))


@pytest.mark.parametrize(
    "ref, expected",
    [
        ("google/cloud-sdk", ("google/cloud-sdk", None)),
        ("google/cloud-sdk:309.0.0-alpine", ("google/cloud-sdk", "309.0.0-alpine")),
        ("localhost:5000/tools/gcloud", ("localhost:5000/tools/gcloud", None)),
        ("localhost:5000/tools/gcloud:1.2", ("localhost:5000/tools/gcloud", "1.2")),
        ("alpine@sha256:abc", ("alpine", "@sha256:abc")),
    ],
)
def test_split_image(ref: str, expected) -> None:  # noqa: ANN001
    assert split_image(ref) == expected


def test_normalize_repository() -> None:
    assert normalize_repository("alpine") == "library/alpine"
    assert normalize_repository("google/cloud-sdk") == "google/cloud-sdk"
    assert normalize_repository("docker.io/google/cloud-sdk") == "google/cloud-sdk"
    assert normalize_repository("docker.io/alpine") == "library/alpine"


def test_resolve_image_keeps_pinned_tag() -> None:
    registry = _FakeRegistry(_versions(5))
    discoverer = TagDiscoverer(session=registry)  # type: ignore[arg-type]

    assert resolve_image("google/cloud-sdk:309.0.0-alpine", r"-alpine$", discoverer) == "google/cloud-sdk:309.0.0-alpine"
    assert registry.requests == []


def test_resolve_image_appends_latest_matching_tag() -> None:
    registry = _FakeRegistry(["latest", "slim", "401.0.0", "400.0.0-alpine"])
    discoverer = TagDiscoverer(session=registry)  # type: ignore[arg-type]

    assert resolve_image("google/cloud-sdk", r"^\d+\.\d+\.\d+-alpine$", discoverer) == "google/cloud-sdk:400.0.0-alpine"


def test_resolve_image_without_match_falls_back_to_untagged() -> None:
    registry = _FakeRegistry(["latest", "slim"])
    discoverer = TagDiscoverer(session=registry)  # type: ignore[arg-type]

    assert resolve_image("google/cloud-sdk", r"-alpine$", discoverer) == "google/cloud-sdk"
