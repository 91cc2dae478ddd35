"""
gcp_auth
--------

프로젝트 ID 결정과 서비스 계정 키를 이용한 gcloud 로그인을 담당하는 모듈.

프로젝트 ID 우선순위:
    1) --project / GCLOUD_PROJECT
    2) 키 파일(JSON)의 project_id
    3) 재사용하는 볼륨에 이미 로그인된 서비스 계정 이메일
"""

from __future__ import annotations

import json
import os
import re
from typing import Optional

from .config import KitConfig
from .errors import AbortError
from .logging_utils import get_logger
from .runner import DockerRunner, GcloudRunner
from .volume import CredentialVolume


logger = get_logger(__name__)

_SA_EMAIL = re.compile(r"^[^@\s]+@([a-z][a-z0-9-]*[a-z0-9])\.iam\.gserviceaccount\.com$")


def project_from_key(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise AbortError(f"서비스 계정 키 파일을 읽을 수 없습니다: {path} ({e})") from e
    except ValueError as e:
        raise AbortError(f"서비스 계정 키 파일이 JSON 형식이 아닙니다: {path}") from e
    if not isinstance(data, dict):
        return None
    return data.get("project_id") or None


def project_from_account(account: str) -> Optional[str]:
    m = _SA_EMAIL.match(account.strip())
    return m.group(1) if m else None


def project_from_volume(runner: GcloudRunner) -> Optional[str]:
    """
    볼륨에 저장된 활성 계정 이메일에서 프로젝트 ID 를 추정한다.
    """
    result = runner.run(["config", "list", "--format=value(core.account)"])
    if not result.ok:
        return None
    return project_from_account(result.stdout)


def resolve_project(cfg: KitConfig, runner: Optional[GcloudRunner] = None) -> str:
    """
    runner 는 재사용 볼륨에서 추정할 때만 사용한다 (project 가 없는 상태의 실행기).
    """
    if cfg.project:
        return cfg.project

    project: Optional[str] = None
    if cfg.key:
        project = project_from_key(cfg.key)
        if project:
            logger.info("키 파일에서 프로젝트 ID %s 를 추출했습니다.", project)
    if not project and runner is not None:
        project = project_from_volume(runner)
        if project:
            logger.info("볼륨의 자격증명에서 프로젝트 ID %s 를 추정했습니다.", project)

    if not project:
        raise AbortError("You must provide a GCloud project identifier")
    return project


def login(
    runner: GcloudRunner,
    key: Optional[str],
    *,
    app_name: str,
    volume: Optional[CredentialVolume] = None,
) -> None:
    """
    서비스 계정 키로 gcloud 에 로그인한다. 키가 없으면 아무것도 하지 않는다.

    Docker 모드에서는 키 파일을 컨테이너에 직접 마운트하지 않고,
    자격증명 볼륨 안에 `<app>_<파일명>` 으로 복사한 뒤 그 사본으로 로그인한다.
    """
    if not key:
        logger.debug("키가 없어 로그인을 건너뜁니다 (기존 자격증명 사용).")
        return

    logger.info("GCloud 로그인: %s", key)
    key_file = key
    if isinstance(runner, DockerRunner):
        if volume is None:
            raise AbortError("Docker 모드 로그인에는 자격증명 볼륨이 필요합니다.")
        dst = f"{app_name}_{os.path.basename(key)}"
        key_file = volume.copy_in(key, runner.image, dst)

    result = runner.run(["auth", "activate-service-account", "--key-file", key_file])
    if not result.ok:
        detail = result.summary()
        raise AbortError("Could not login at GCloud" + (f"\n{detail}" if detail else ""))
