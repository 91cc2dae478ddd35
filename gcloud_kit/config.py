from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, List, Optional

from dotenv import load_dotenv


ENV_FILES_DEFAULT_ORDER = [".env", ".env.gcloud"]

DEFAULT_DOCKER_IMAGE = "google/cloud-sdk"
DEFAULT_DOCKER_TAGS = r"^\d+\.\d+\.\d+-alpine$"
DEFAULT_ZONE = "europe-north1-b"
DEFAULT_DISK_SIZE = "10GB"
DEFAULT_DISK_TYPE = "pd-standard"
DEFAULT_REGISTRY_API = "https://hub.docker.com"


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


def _get_verbosity(name: str, default: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return 1 if raw.strip().lower() in {"true", "yes", "y", "on"} else 0


def _opt(name: str) -> Optional[str]:
    # 빈 문자열은 "설정 안 됨" 으로 취급한다.
    return os.getenv(name) or None


@dataclass(frozen=True)
class KitConfig:
    """
    한 번의 실행 동안 바뀌지 않는 공통 설정.

    docker_image 가 빈 값이면 로컬 gcloud 를 사용한다.
    """

    docker_image: Optional[str] = DEFAULT_DOCKER_IMAGE
    docker_tags: str = DEFAULT_DOCKER_TAGS
    key: Optional[str] = None
    project: Optional[str] = None
    zone: Optional[str] = DEFAULT_ZONE
    volume: Optional[str] = None
    verbosity: int = 1
    registry_api: str = DEFAULT_REGISTRY_API

    @property
    def use_docker(self) -> bool:
        return bool(self.docker_image)

    @classmethod
    def from_env(cls) -> "KitConfig":
        return cls(
            # GCLOUD_DOCKER="" 는 로컬 gcloud 를 의미하므로 None 과 구분한다.
            docker_image=os.getenv("GCLOUD_DOCKER", DEFAULT_DOCKER_IMAGE) or None,
            docker_tags=os.getenv("GCLOUD_DOCKER_TAGS") or DEFAULT_DOCKER_TAGS,
            key=_opt("GCLOUD_KEY"),
            project=_opt("GCLOUD_PROJECT"),
            zone=os.getenv("GCLOUD_ZONE") or DEFAULT_ZONE,
            volume=_opt("GCLOUD_VOLUME"),
            verbosity=_get_verbosity("VERBOSE", 1),
            registry_api=os.getenv("DOCKER_REGISTRY_API") or DEFAULT_REGISTRY_API,
        )

    def with_overrides(self, **overrides: Any) -> "KitConfig":
        """
        CLI 플래그 값으로 덮어쓴 새 설정을 돌려준다. None 인 값은 무시한다.
        --docker="" 처럼 빈 문자열을 준 경우는 로컬 gcloud 로 전환한다.
        """
        known = {f.name for f in fields(self)}
        changes = {k: v for k, v in overrides.items() if k in known and v is not None}
        if changes.get("docker_image") == "":
            changes["docker_image"] = None
        return replace(self, **changes)


@dataclass(frozen=True)
class DiskOptions:
    name: Optional[str] = None
    device: Optional[str] = None
    machine: Optional[str] = None
    size: Optional[str] = DEFAULT_DISK_SIZE
    type: Optional[str] = DEFAULT_DISK_TYPE

    @classmethod
    def from_env(cls) -> "DiskOptions":
        return cls(
            name=_opt("GCLOUD_DISK_NAME"),
            device=_opt("GCLOUD_DISK_DEV"),
            machine=_opt("GCLOUD_DISK_MACHINE"),
            size=os.getenv("GCLOUD_DISK_SIZE", DEFAULT_DISK_SIZE),
            type=os.getenv("GCLOUD_DISK_TYPE", DEFAULT_DISK_TYPE),
        )

    def with_overrides(self, **overrides: Any) -> "DiskOptions":
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in overrides.items() if k in known and v is not None})


@dataclass(frozen=True)
class TagsOptions:
    machine: Optional[str] = None

    @classmethod
    def from_env(cls) -> "TagsOptions":
        return cls(machine=_opt("GCLOUD_TAGS_MACHINE"))
