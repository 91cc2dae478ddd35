"""
registry
--------

Docker Hub 호환 레지스트리의 태그 목록 API 를 조회해서,
태그가 고정되지 않은 이미지에 사용할 최신 번호 태그를 찾아주는 모듈.

페이지 구조 (Docker Hub v2):
    GET /v2/repositories/<namespace>/<name>/tags/?page=<n>&page_size=<k>
    -> {"count": 25, "next": "...", "results": [{"name": "309.0.0-alpine"}, ...]}
"""

from __future__ import annotations

import math
import re
from typing import Iterator, Optional, Tuple

import requests

from .config import DEFAULT_REGISTRY_API
from .errors import RegistryError
from .logging_utils import get_logger


logger = get_logger(__name__)

HUB_HOSTS = {"docker.io", "index.docker.io", "registry-1.docker.io", "registry.hub.docker.com", "hub.docker.com"}


def split_image(ref: str) -> Tuple[str, Optional[str]]:
    """
    이미지 참조를 (repository, tag) 로 나눈다. 태그가 없으면 tag 는 None.
    digest(@sha256:...) 로 고정된 이미지는 digest 를 태그 자리에 돌려준다.
    """
    if "@" in ref:
        repo, digest = ref.split("@", 1)
        return repo, "@" + digest
    head, _, last = ref.rpartition("/")
    if ":" in last:
        name, tag = last.split(":", 1)
        return (f"{head}/{name}" if head else name), tag
    return ref, None


def _looks_like_host(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


def normalize_repository(repository: str) -> str:
    """
    `name` -> `library/name`, `ns/name` 는 그대로.
    레지스트리 호스트가 붙어 있으면 떼어낸다 (호스트는 registry_api 로 지정).
    """
    parts = repository.split("/")
    if len(parts) > 1 and _looks_like_host(parts[0]):
        if parts[0] not in HUB_HOSTS:
            logger.debug("레지스트리 호스트 %s 를 제외하고 조회합니다.", parts[0])
        parts = parts[1:]
    if len(parts) == 1:
        parts = ["library", parts[0]]
    return "/".join(parts)


class TagDiscoverer:
    """
    태그 목록 API 클라이언트. 인증 없이 GET 만 사용한다.
    """

    def __init__(
        self,
        api_base: str = DEFAULT_REGISTRY_API,
        *,
        session: Optional[requests.Session] = None,
        page_size: int = 100,
        timeout: float = 30.0,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.session = session or requests.Session()
        self.page_size = page_size
        self.timeout = timeout

    def _tags_url(self, repository: str) -> str:
        return f"{self.api_base}/v2/repositories/{normalize_repository(repository)}/tags/"

    def _get_page(self, repository: str, page: int) -> dict:
        url = self._tags_url(repository)
        logger.debug("태그 페이지 조회: %s (page=%d)", url, page)
        try:
            response = self.session.get(
                url,
                params={"page": page, "page_size": self.page_size},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise RegistryError(f"{repository} 태그 목록을 가져오지 못했습니다: {e}") from e
        except ValueError as e:
            raise RegistryError(f"{repository} 태그 목록 응답이 JSON 이 아닙니다: {e}") from e

    def iter_tags(self, repository: str, pattern: Optional[str] = None) -> Iterator[str]:
        """
        pattern(정규식, re.search) 에 맞는 태그 이름을 레지스트리 페이지 순서대로 하나씩 돌려준다.

        첫 페이지로 전체 개수와 페이지당 개수를 알아낸 뒤 ceil(count / per_page) 페이지까지 조회한다.
        필요한 만큼만 소비하면 나머지 페이지는 요청하지 않는다.
        """
        matcher = re.compile(pattern) if pattern else None

        first = self._get_page(repository, 1)
        count = int(first.get("count") or 0)
        results = first.get("results") or []
        if count == 0 or not results:
            logger.warning("%s 에 태그가 없습니다.", repository)
            return

        per_page = len(results)
        pages = math.ceil(count / per_page)
        logger.debug("%s: 태그 %d 개, %d 페이지", repository, count, pages)

        seen: set[str] = set()
        for page in range(1, pages + 1):
            data = first if page == 1 else self._get_page(repository, page)
            for item in data.get("results") or []:
                name = item.get("name")
                if not name or name in seen:
                    continue
                seen.add(name)
                if matcher is None or matcher.search(name):
                    yield name

    def latest_tag(self, repository: str, pattern: Optional[str] = None) -> Optional[str]:
        return next(self.iter_tags(repository, pattern), None)


def resolve_image(ref: str, pattern: Optional[str], discoverer: Optional[TagDiscoverer] = None) -> str:
    """
    태그가 없는 이미지면 레지스트리에서 가장 최근의 맞는 태그를 붙여 돌려준다.
    찾지 못하면 경고 후 그대로 돌려준다 (docker 가 latest 를 사용).
    """
    repository, tag = split_image(ref)
    if tag:
        return ref

    discoverer = discoverer or TagDiscoverer()
    logger.info("%s 의 최신 태그를 찾습니다 (filter=%s)", repository, pattern)
    found = discoverer.latest_tag(repository, pattern)
    if not found:
        logger.warning("%s 에서 조건에 맞는 태그를 찾지 못해 latest 를 사용합니다.", repository)
        return ref
    resolved = f"{repository}:{found}"
    logger.info("사용할 이미지: %s", resolved)
    return resolved
