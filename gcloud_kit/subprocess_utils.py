from __future__ import annotations

import subprocess
from dataclasses import dataclass
from textwrap import shorten
from typing import Mapping, Sequence, Union

from .errors import CommandError
from .logging_utils import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def summary(self, width: int = 2000) -> str:
        """실패 메시지에 붙일 출력 요약 (stderr 우선)."""
        text = (self.stderr or "").strip() or (self.stdout or "").strip()
        return shorten(text, width=width) if text else ""


def _as_text(output: Union[str, bytes, None]) -> str:
    if isinstance(output, bytes):
        return output.decode("utf-8", errors="replace")
    return output or ""


def run_command(
    cmd: Sequence[str],
    *,
    stdin: Union[str, bytes, None] = None,
    capture: bool = True,
    check: bool = False,
    log_output: bool = True,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    - capture=True : stdout/stderr 를 캡처해서 RunResult 로 돌려준다.
    - capture=False: 터미널로 그대로 흘린다 (gcloud passthrough 용). stdout/stderr 는 빈 문자열.
    - check=True   : 0 이 아닌 종료 코드를 CommandError 로 바꾼다.
    - log_output=False: stdout 을 debug 로그에 남기지 않는다 (키 파일 내용 등).
    - stdin 이 bytes 면 그대로 전달한다 (.p12 같은 바이너리 키). 출력은 항상 str 로 돌려준다.

    명령 자체를 찾을 수 없거나 timeout 을 넘기면 check 와 상관없이 CommandError.
    """
    logger.debug("명령 실행: %s", " ".join(cmd))
    binary = isinstance(stdin, bytes)
    try:
        proc = subprocess.run(  # noqa: S603
            list(cmd),
            input=stdin,
            capture_output=capture,
            text=not binary,
            timeout=timeout,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        raise CommandError(
            f"필요한 명령을 찾을 수 없습니다: {cmd[0]} (gcloud/docker 가 설치되어 있는지 확인하세요)",
            cmd=cmd,
        ) from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(
            f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {' '.join(cmd)}",
            cmd=cmd,
        ) from e

    result = RunResult(
        returncode=proc.returncode,
        stdout=_as_text(proc.stdout),
        stderr=_as_text(proc.stderr),
    )
    if result.stdout and log_output:
        logger.debug("명령 stdout: %s", shorten(result.stdout.strip(), width=2000))
    if result.stderr:
        logger.debug("명령 stderr: %s", shorten(result.stderr.strip(), width=2000))

    if check and not result.ok:
        detail = result.summary() if log_output else shorten(result.stderr.strip(), width=2000)
        raise CommandError(
            f"명령 실행 실패: {' '.join(cmd)} (exit={result.returncode})"
            + (f"\n{detail}" if detail else ""),
            cmd=cmd,
            returncode=result.returncode,
        )
    return result
