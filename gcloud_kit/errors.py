"""
errors
------

gcloud-kit 에서 사용하는 예외 계층.
CLI 는 GcloudKitError 를 잡아 경고로 출력한 뒤 exit_code 로 종료한다.
"""

from __future__ import annotations

from typing import Sequence


class GcloudKitError(RuntimeError):
    exit_code = 1


class AbortError(GcloudKitError):
    """필수 설정 누락 등 더 진행할 수 없는 상태."""


class VerificationError(GcloudKitError):
    """zone, 머신, 디스크 타입 등이 GCP 에 존재하지 않을 때."""


class RegistryError(GcloudKitError):
    """Docker 레지스트리 태그 조회 실패."""


class CommandError(GcloudKitError):
    """실패하면 안 되는 외부 명령이 0 이 아닌 코드로 끝났을 때."""

    def __init__(self, message: str, *, cmd: Sequence[str] = (), returncode: int = 1) -> None:
        super().__init__(message)
        self.cmd = list(cmd)
        self.returncode = returncode
