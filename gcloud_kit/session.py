"""
session
-------

모든 명령이 공유하는 준비/정리 단계.

    with open_session(cfg, "gcloud-disk") as session:
        session.runner.run(["compute", "zones", "list"])

준비: 이미지 태그 결정 -> docker 확인 -> 이미지 pull -> 자격증명 볼륨 -> 프로젝트 ID -> 로그인
정리: with 블록을 어떻게 빠져나가든(예외, Ctrl-C, SIGTERM 포함) 임시 볼륨을 삭제한다.
"""

from __future__ import annotations

import signal
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator, Optional

from .config import KitConfig
from .errors import AbortError, CommandError
from .gcp_auth import login, resolve_project
from .logging_utils import get_logger
from .registry import TagDiscoverer, resolve_image
from .runner import DockerRunner, GcloudRunner, make_runner
from .subprocess_utils import run_command
from .volume import CredentialVolume, volume_exists


logger = get_logger(__name__)


@dataclass(frozen=True)
class Session:
    cfg: KitConfig
    runner: GcloudRunner
    app_name: str
    volume: Optional[CredentialVolume] = None


@contextmanager
def terminate_as_exit() -> Iterator[None]:
    """
    SIGTERM/SIGHUP 을 SystemExit 로 바꿔서 finally 블록의 정리가 실행되게 한다.
    메인 스레드가 아니면 핸들러를 설치할 수 없으므로 그대로 둔다.
    """

    def _handler(signum, frame) -> None:  # noqa: ANN001, ARG001
        raise SystemExit(128 + signum)

    previous = {}
    for name in ("SIGTERM", "SIGHUP"):
        sig = getattr(signal, name, None)
        if sig is None:
            continue
        try:
            previous[sig] = signal.signal(sig, _handler)
        except ValueError:
            continue
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def check_docker(docker: str = "docker") -> None:
    try:
        ok = run_command([docker, "--version"]).ok
    except CommandError:
        ok = False
    if not ok:
        raise AbortError("You must have an installation of Docker accessible to you")


def pull_image(image: str, docker: str = "docker") -> None:
    logger.info("gcloud 실행용 이미지 %s 를 pull 합니다.", image)
    run_command([docker, "image", "pull", image], check=True)


@contextmanager
def open_session(
    cfg: KitConfig,
    app_name: str,
    *,
    discoverer: Optional[TagDiscoverer] = None,
) -> Iterator[Session]:
    with terminate_as_exit():
        if not cfg.use_docker:
            project = resolve_project(cfg)
            runner = make_runner(cfg, project=project)
            login(runner, cfg.key, app_name=app_name)
            yield Session(replace(cfg, project=project), runner, app_name)
            return

        # 클라우드/도커 호출 전에 확인할 수 있는 것은 먼저 확인한다.
        if not cfg.key and not cfg.volume:
            raise AbortError("You must provide a service account key for authentication")
        # 키가 있으면 볼륨을 만들기 전에 키에서 프로젝트를 확정한다.
        # 볼륨에서 추정하는 것은 키 없이 기존 볼륨을 재사용할 때뿐이다.
        project = None
        if cfg.project or cfg.key or not cfg.volume:
            project = resolve_project(cfg)

        image = resolve_image(
            cfg.docker_image or "",
            cfg.docker_tags,
            discoverer or TagDiscoverer(cfg.registry_api),
        )
        check_docker()
        if not cfg.key and not volume_exists(cfg.volume or ""):
            raise AbortError(
                f"볼륨 {cfg.volume} 이(가) 없습니다. 처음 사용할 때는 서비스 계정 키가 필요합니다."
            )
        pull_image(image)

        volume = CredentialVolume(app_name, cfg.volume)
        try:
            volume_name = volume.acquire()
            if project is None:
                probe = DockerRunner(image, volume_name) if volume.reused else None
                project = resolve_project(cfg, probe)
            runner = make_runner(cfg, image=image, volume=volume_name, project=project)
            login(runner, cfg.key, app_name=app_name, volume=volume)
            yield Session(
                replace(cfg, project=project, docker_image=image),
                runner,
                app_name,
                volume,
            )
        finally:
            volume.release()
