"""
gcp_tags
--------

Compute Engine VM 에 네트워크 태그를 붙이는 모듈.
이미 붙어 있는 태그는 건너뛰므로 여러 번 실행해도 결과가 같다.
"""

from __future__ import annotations

import json
from typing import Iterable, List

from .errors import VerificationError
from .logging_utils import get_logger
from .runner import GcloudRunner


logger = get_logger(__name__)


def existing_tags(runner: GcloudRunner, machine: str, zone: str) -> List[str]:
    """
    인스턴스의 현재 네트워크 태그. 인스턴스가 없으면 VerificationError.
    """
    result = runner.run([
        "compute", "instances", "describe", machine,
        f"--zone={zone}",
        "--format=json(tags.items)",
    ])
    if not result.ok:
        raise VerificationError(f"Machine {machine} does not seem to exist")
    try:
        data = json.loads(result.stdout or "{}")
    except ValueError as e:
        raise VerificationError(f"{machine} 의 태그 정보를 해석할 수 없습니다: {e}") from e
    return list((data.get("tags") or {}).get("items") or [])


def ensure_tags(runner: GcloudRunner, machine: str, zone: str, tags: Iterable[str]) -> List[str]:
    """
    요청한 태그 중 없는 것만 add-tags 로 추가하고, 추가한 태그 목록을 돌려준다.
    """
    logger.info("머신 확인: %s (%s)", machine, zone)
    present = set(existing_tags(runner, machine, zone))

    added: List[str] = []
    for tag in tags:
        if tag in present:
            logger.warning("Tag %s already present at %s", tag, machine)
            continue
        logger.info("네트워크 태그 %s 를 인스턴스 %s 에 추가합니다.", tag, machine)
        runner.check(
            ["compute", "instances", "add-tags", machine, "--zone", zone, "--tags", tag],
            message=f"Could not add tag {tag} to {machine}",
        )
        present.add(tag)
        added.append(tag)
    return added
