"""
volume
------

gcloud 인증/설정 정보를 여러 번의 컨테이너 실행 사이에 유지하기 위한
Docker 볼륨의 생성, 재사용, 정리를 담당하는 모듈.
"""

from __future__ import annotations

import os
import secrets
import string
from typing import Optional

from .errors import AbortError
from .logging_utils import get_logger
from .subprocess_utils import run_command


logger = get_logger(__name__)

# gcloud 가 인증/설정을 저장하는 위치. 볼륨은 항상 여기에 마운트한다.
CONFIG_DIR = "/root/.config/gcloud"

# GCP 리소스 이름 규칙에 맞도록 소문자 + 숫자만 사용
DEFAULT_CHARSET = string.ascii_lowercase + string.digits


def random_suffix(length: int = 8, charset: str = DEFAULT_CHARSET) -> str:
    return "".join(secrets.choice(charset) for _ in range(length))


def volume_exists(name: str, *, docker: str = "docker") -> bool:
    return run_command([docker, "volume", "inspect", name]).ok


class CredentialVolume:
    """
    실행 1회당 하나의 자격증명 볼륨.

    - name 을 주지 않으면 `<app>-<8자리 랜덤>` 으로 만들고, release() 시 삭제한다.
    - name 을 주면 있으면 재사용, 없으면 생성하며 어느 경우든 삭제하지 않는다.
      여러 번의 실행에서 같은 인증 정보를 쓰기 위한 용도다.
    """

    def __init__(self, app_name: str, name: Optional[str] = None, *, docker: str = "docker") -> None:
        self.app_name = app_name
        self.requested = name
        self.docker = docker
        self.name: Optional[str] = None
        self.keep = bool(name)
        self.reused = False

    def acquire(self) -> str:
        if self.name is not None:
            return self.name

        if self.requested:
            name = self.requested
            if volume_exists(name, docker=self.docker):
                logger.info("기존 Docker 볼륨 %s 을(를) 재사용합니다.", name)
                self.name = name
                self.reused = True
                return name
            logger.info("Docker 볼륨 %s 을(를) 생성합니다. (실행 후에도 유지)", name)
        else:
            name = f"{self.app_name}-{random_suffix()}"
            logger.info("자격증명을 임시로 저장할 Docker 볼륨 %s 을(를) 생성합니다.", name)

        run_command([self.docker, "volume", "create", name], check=True)
        self.name = name
        return name

    def release(self) -> None:
        if self.name is None:
            return
        name, self.name = self.name, None
        if self.keep:
            logger.debug("Docker 볼륨 %s 은(는) 유지합니다.", name)
            return
        if volume_exists(name, docker=self.docker):
            logger.info("Docker 볼륨 %s 을(를) 삭제합니다.", name)
            run_command([self.docker, "volume", "rm", name])

    def copy_in(self, path: str, image: str, dst_name: Optional[str] = None) -> str:
        """
        로컬 파일 내용을 일회성 컨테이너의 tee 로 볼륨에 복사하고,
        CONFIG_DIR 기준의 경로를 돌려준다.

        볼륨은 이름 충돌을 피하기 위해 랜덤 디렉토리에 마운트한다.
        """
        if self.name is None:
            raise AbortError("볼륨을 만들기 전에는 파일을 복사할 수 없습니다.")
        dst = dst_name or os.path.basename(path)
        mount = f"/{self.app_name}_{random_suffix()}"
        # 내용은 해석하지 않고 바이트 그대로 넘긴다 (.p12 키 포함).
        try:
            with open(path, "rb") as f:
                content = f.read()
        except OSError as e:
            raise AbortError(f"키 파일을 읽을 수 없습니다: {path} ({e})") from e
        run_command(
            [
                self.docker, "run", "-i", "--rm",
                "-v", f"{self.name}:{mount}",
                image,
                "tee", f"{mount}/{dst}",
            ],
            stdin=content,
            check=True,
            log_output=False,
        )
        return f"{CONFIG_DIR}/{dst}"

    def __enter__(self) -> "CredentialVolume":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.release()
