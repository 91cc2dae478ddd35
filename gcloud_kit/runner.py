"""
runner
------

gcloud 호출을 로컬 바이너리 또는 일회성 Docker 컨테이너로 보내는 실행기.

호출하는 쪽에서는 `runner.run(["compute", "zones", "list"])` 처럼
gcloud 다음 인자만 넘기면 되고, 어느 쪽으로 실행되는지는 신경 쓰지 않는다.
프로젝트가 정해져 있으면 모든 호출 앞에 `--project <id>` 를 붙인다.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .config import KitConfig
from .errors import CommandError
from .subprocess_utils import RunResult, run_command
from .volume import CONFIG_DIR


class GcloudRunner(ABC):
    def __init__(self, project: Optional[str] = None) -> None:
        self.project = project

    def gcloud_args(self, args: Sequence[str]) -> List[str]:
        prefix = ["--project", self.project] if self.project else []
        return ["gcloud", *prefix, *args]

    @abstractmethod
    def command(self, args: Sequence[str], *, interactive: bool = False) -> List[str]:
        """실제로 실행할 전체 argv."""

    def run(
        self,
        args: Sequence[str],
        *,
        capture: bool = True,
        interactive: bool = False,
    ) -> RunResult:
        """
        종료 코드와 상관없이 RunResult 를 돌려준다.
        interactive=True 면 터미널의 stdin 을 gcloud 에 연결한다 (확인 프롬프트 등).
        """
        return run_command(
            self.command(args, interactive=interactive),
            capture=capture,
        )

    def check(self, args: Sequence[str], message: Optional[str] = None) -> RunResult:
        result = self.run(args)
        if not result.ok:
            detail = result.summary()
            text = message or f"gcloud {' '.join(args)} 실패 (exit={result.returncode})"
            raise CommandError(
                text + (f"\n{detail}" if detail else ""),
                cmd=self.command(args),
                returncode=result.returncode,
            )
        return result

    def succeeds(self, args: Sequence[str]) -> bool:
        return self.run(args).ok


class LocalRunner(GcloudRunner):
    """로컬에 설치된 gcloud 를 그대로 사용한다."""

    def __init__(self, project: Optional[str] = None, *, binary: str = "gcloud") -> None:
        super().__init__(project)
        self.binary = binary

    def command(self, args: Sequence[str], *, interactive: bool = False) -> List[str]:
        argv = self.gcloud_args(args)
        argv[0] = self.binary
        return argv


class DockerRunner(GcloudRunner):
    """
    호출마다 `docker run --rm` 으로 컨테이너를 새로 띄운다.
    자격증명 볼륨을 gcloud 설정 디렉토리에 마운트하므로
    같은 볼륨을 쓰는 호출끼리는 로그인 상태가 이어진다.
    """

    def __init__(
        self,
        image: str,
        volume: str,
        project: Optional[str] = None,
        *,
        docker: str = "docker",
    ) -> None:
        super().__init__(project)
        self.image = image
        self.volume = volume
        self.docker = docker

    def command(self, args: Sequence[str], *, interactive: bool = False) -> List[str]:
        argv = [self.docker, "run", "--rm"]
        if interactive:
            argv.append("-i")
        argv += ["-v", f"{self.volume}:{CONFIG_DIR}", self.image]
        return argv + self.gcloud_args(args)


def make_runner(
    cfg: KitConfig,
    *,
    image: Optional[str] = None,
    volume: Optional[str] = None,
    project: Optional[str] = None,
) -> GcloudRunner:
    """
    설정에 따라 실행기를 고른다. Docker 모드에서는 이미지와 볼륨이 모두 있어야 한다.
    """
    project = project if project is not None else cfg.project
    if not cfg.use_docker:
        return LocalRunner(project)
    if not (image and volume):
        raise ValueError("Docker 모드에서는 image 와 volume 이 필요합니다.")
    return DockerRunner(image, volume, project)
