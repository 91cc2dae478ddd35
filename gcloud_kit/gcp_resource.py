"""
gcp_resource
------------

`gcloud <group> <command> list` 로 이름을 확인하고, 없을 때만
`gcloud <group> <command> create <resource> ...` 를 실행하는 범용 모듈.
list/create 를 지원하는 대부분의 gcloud 명령 그룹에 쓸 수 있다.

    ensure_resource(runner, "compute", "firewall-rules", "alt-http",
                    ["--allow=tcp:8080", "--direction=INGRESS"])
"""

from __future__ import annotations

from typing import List, Sequence

from .logging_utils import get_logger
from .runner import GcloudRunner


logger = get_logger(__name__)


# projects 처럼 name 이 표시 이름인 그룹은 projectId 가 create 인자와 같다.
# 없는 필드는 빈 값으로 출력된다.
LIST_FORMAT = "--format=value(name,projectId)"


def list_names(runner: GcloudRunner, group: str, command: str) -> List[str]:
    result = runner.run([group, command, "list", LIST_FORMAT])
    if not result.ok:
        logger.debug("%s %s list 실패 (exit=%d), 리소스가 없는 것으로 봅니다.", group, command, result.returncode)
        return []
    names: List[str] = []
    for line in result.stdout.splitlines():
        names.extend(value.strip() for value in line.split("\t") if value.strip())
    return names


def name_matches(name: str, resource: str) -> bool:
    """
    list 가 출력한 name 이 create 에 넘기는 리소스 이름과 같은지.

    일부 명령은 name 을 전체 경로(projects/.../xxx)로 출력하고,
    서비스 계정은 마지막 경로가 `<id>@<project>.iam.gserviceaccount.com` 이다.
    """
    last = name.rsplit("/", 1)[-1]
    return resource in (name, last, last.split("@", 1)[0])


def resource_exists(runner: GcloudRunner, group: str, command: str, resource: str) -> bool:
    return any(name_matches(name, resource) for name in list_names(runner, group, command))


def ensure_resource(
    runner: GcloudRunner,
    group: str,
    command: str,
    resource: str,
    extra: Sequence[str] = (),
) -> int:
    """
    리소스가 있으면 0, 없으면 create 의 종료 코드를 그대로 돌려준다.
    """
    if resource_exists(runner, group, command, resource):
        logger.info("Resource %s/%s/%s seems to already exist", group, command, resource)
        return 0

    logger.info("리소스 생성: %s/%s/%s", group, command, resource)
    result = runner.run([group, command, "create", resource, *extra], capture=False)
    if not result.ok:
        logger.warning("%s/%s/%s 생성 실패 (exit=%d)", group, command, resource, result.returncode)
    return result.returncode
