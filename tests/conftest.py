"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 gcloud_kit 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.
"""

from __future__ import annotations

import os
import sys
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from gcloud_kit.runner import GcloudRunner
from gcloud_kit.subprocess_utils import RunResult


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


ENV_VARS = [
    "GCLOUD_DOCKER",
    "GCLOUD_DOCKER_TAGS",
    "GCLOUD_KEY",
    "GCLOUD_PROJECT",
    "GCLOUD_ZONE",
    "GCLOUD_VOLUME",
    "VERBOSE",
    "DOCKER_REGISTRY_API",
    "GCLOUD_DISK_NAME",
    "GCLOUD_DISK_DEV",
    "GCLOUD_DISK_MACHINE",
    "GCLOUD_DISK_SIZE",
    "GCLOUD_DISK_TYPE",
    "GCLOUD_TAGS_MACHINE",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv 후 delenv 로 등록해 두면 load_dotenv 가 바꾼 값도 테스트 후 원복된다.
    for name in ENV_VARS:
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)


class FakeRunner(GcloudRunner):
    """
    gcloud 실행기 대역. handler(args) -> (returncode, stdout) 로 응답을 정하고 호출을 기록한다.
    """

    def __init__(
        self,
        handler: Callable[[List[str]], Tuple[int, str]],
        project: Optional[str] = "test-project",
    ) -> None:
        super().__init__(project)
        self.handler = handler
        self.calls: List[List[str]] = []
        self.interactive: List[bool] = []

    def command(self, args: Sequence[str], *, interactive: bool = False) -> List[str]:
        return self.gcloud_args(args)

    def run(self, args: Sequence[str], *, capture: bool = True, interactive: bool = False) -> RunResult:
        self.calls.append(list(args))
        self.interactive.append(interactive)
        code, out = self.handler(list(args))
        return RunResult(returncode=code, stdout=out, stderr="")

    def called(self, *prefix: str) -> List[List[str]]:
        return [c for c in self.calls if c[: len(prefix)] == list(prefix)]


@pytest.fixture
def fake_runner() -> Callable[..., FakeRunner]:
    return FakeRunner
