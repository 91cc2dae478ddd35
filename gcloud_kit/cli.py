import sys
from dataclasses import replace
from typing import Callable, Optional, Tuple

import click

from .config import DiskOptions, KitConfig, TagsOptions, load_env_files
from .errors import AbortError, GcloudKitError
from .gcp_disk import ensure_disk, prepare_disk_options
from .gcp_resource import ensure_resource
from .gcp_tags import ensure_tags
from .logging_utils import get_logger, setup_logging
from .session import open_session


logger = get_logger(__name__)

# 첫 위치 인자 이후는 옵션 파싱을 멈추고 그대로 넘긴다. (`--` 도 동일)
PASSTHROUGH_SETTINGS = {
    "allow_interspersed_args": False,
    "help_option_names": ["-h", "--help"],
}


def common_options(f: Callable) -> Callable:
    """모든 명령이 공유하는 인증/프로젝트/Docker 옵션."""
    decorators = [
        click.option(
            "-C",
            "--chdir",
            "chdir",
            type=click.Path(file_okay=False, dir_okay=True, exists=True),
            default=".",
            help=".env / .env.gcloud 를 읽을 디렉토리 (기본: 현재 디렉토리)",
        ),
        click.option("-k", "--key", "key", default=None, help="서비스 계정 키 파일(JSON) 경로"),
        click.option(
            "-p",
            "--project",
            "project",
            default=None,
            help="GCP 프로젝트. 비우면 키 파일이나 볼륨의 자격증명에서 추정합니다.",
        ),
        click.option("-z", "--zone", "zone", default=None, help="대상 zone"),
        click.option(
            "--docker",
            "docker_image",
            default=None,
            help="gcloud 를 실행할 Docker 이미지. 태그가 없으면 최신 태그를 찾아 사용하고, "
            "빈 값이면 로컬 gcloud 를 사용합니다.",
        ),
        click.option(
            "--volume",
            "volume",
            default=None,
            help="자격증명을 저장할 Docker 볼륨 이름. 비우면 임시 볼륨을 만들고 종료 시 삭제합니다.",
        ),
        click.option("--silent", "silent", is_flag=True, help="경고 외의 로그를 출력하지 않습니다."),
    ]
    for decorator in reversed(decorators):
        f = decorator(f)
    return f


def _load_config(app_name: str, chdir: str, silent: bool, **flags: Optional[str]) -> KitConfig:
    load_env_files(chdir)
    cfg = KitConfig.from_env().with_overrides(**flags)
    if silent:
        cfg = replace(cfg, verbosity=0)
    setup_logging(cfg.verbosity, app_name)
    logger.debug("Config loaded: %s", cfg)
    return cfg


def _fail(e: GcloudKitError) -> None:
    logger.warning("%s", e)
    sys.exit(e.exit_code)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def main() -> None:
    """gcloud 를 (Docker 컨테이너 안에서) 실행해 반복적인 GCP 작업을 자동화하는 CLI"""


@main.command(name="disk")
@common_options
@click.option("-n", "--name", "--disk", "name", default=None, help="디스크 이름")
@click.option(
    "-d",
    "--device",
    "device",
    default=None,
    help="/dev/disk/by-id/google-* 에 나타날 디바이스 이름 (기본: 디스크 이름)",
)
@click.option("-m", "--machine", "machine", default=None, help="디스크를 연결할 머신 이름")
@click.option("-s", "--size", "size", default=None, help="디스크 크기 (예: 20GB, 1TB)")
@click.option("-t", "--type", "disk_type", default=None, help="디스크 타입 (예: pd-standard, pd-ssd)")
def disk(
    chdir: str,
    key: Optional[str],
    project: Optional[str],
    zone: Optional[str],
    docker_image: Optional[str],
    volume: Optional[str],
    silent: bool,
    name: Optional[str],
    device: Optional[str],
    machine: Optional[str],
    size: Optional[str],
    disk_type: Optional[str],
) -> None:
    """
    디스크를 만들고 (머신이 주어지면) Compute Engine VM 에 연결합니다.

    머신만 지정하면 디스크 이름은 `<machine>-<8자리 랜덤>` 이 되고,
    디바이스 이름은 디스크 이름과 같아집니다.
    """
    app_name = "gcloud-disk"
    cfg = _load_config(
        app_name, chdir, silent,
        key=key, project=project, zone=zone, docker_image=docker_image, volume=volume,
    )
    try:
        opts = prepare_disk_options(
            DiskOptions.from_env().with_overrides(
                name=name, device=device, machine=machine, size=size, type=disk_type,
            ),
            cfg.zone,
        )
        with open_session(cfg, app_name) as session:
            ensure_disk(session.runner, opts, session.cfg.zone or "")
    except GcloudKitError as e:
        _fail(e)


@main.command(name="tags", context_settings=PASSTHROUGH_SETTINGS)
@common_options
@click.option("-m", "--machine", "machine", default=None, help="태그를 붙일 머신 이름")
@click.argument("tags", nargs=-1, type=click.UNPROCESSED)
def tags(
    chdir: str,
    key: Optional[str],
    project: Optional[str],
    zone: Optional[str],
    docker_image: Optional[str],
    volume: Optional[str],
    silent: bool,
    machine: Optional[str],
    tags: Tuple[str, ...],
) -> None:
    """Compute Engine VM 에 네트워크 태그를 붙입니다. (이미 있는 태그는 건너뜀)"""
    app_name = "gcloud-tags"
    cfg = _load_config(
        app_name, chdir, silent,
        key=key, project=project, zone=zone, docker_image=docker_image, volume=volume,
    )
    try:
        machine = machine or TagsOptions.from_env().machine
        if not machine:
            raise AbortError("You must provide a machine to attach tags to")
        if not cfg.zone:
            raise AbortError("You must provide a zone")
        with open_session(cfg, app_name) as session:
            ensure_tags(session.runner, machine, session.cfg.zone or "", tags)
    except GcloudKitError as e:
        _fail(e)


@main.command(name="ifcreate", context_settings=PASSTHROUGH_SETTINGS)
@common_options
@click.argument("group")
@click.argument("command")
@click.argument("resource")
@click.argument("extra", nargs=-1, type=click.UNPROCESSED)
def ifcreate(
    chdir: str,
    key: Optional[str],
    project: Optional[str],
    zone: Optional[str],
    docker_image: Optional[str],
    volume: Optional[str],
    silent: bool,
    group: str,
    command: str,
    resource: str,
    extra: Tuple[str, ...],
) -> None:
    """
    `gcloud GROUP COMMAND list` 에 RESOURCE 가 없을 때만
    `gcloud GROUP COMMAND create RESOURCE EXTRA...` 를 실행합니다.

    \b
    예) 8080 포트용 방화벽 규칙 alt-http 를 없을 때만 생성:
        gcloud-ifcreate -k svc.json compute firewall-rules alt-http \\
            --allow=tcp:8080 --direction=INGRESS
    """
    app_name = "gcloud-ifcreate"
    cfg = _load_config(
        app_name, chdir, silent,
        key=key, project=project, zone=zone, docker_image=docker_image, volume=volume,
    )
    code = 0
    try:
        with open_session(cfg, app_name) as session:
            code = ensure_resource(session.runner, group, command, resource, extra)
    except GcloudKitError as e:
        _fail(e)
    sys.exit(code)


@main.command(name="run", context_settings=PASSTHROUGH_SETTINGS)
@common_options
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def run(
    chdir: str,
    key: Optional[str],
    project: Optional[str],
    zone: Optional[str],
    docker_image: Optional[str],
    volume: Optional[str],
    silent: bool,
    args: Tuple[str, ...],
) -> None:
    """
    로그인 후 나머지 인자를 그대로 gcloud 에 넘기고, gcloud 의 종료 코드로 끝납니다.

    이름 있는 --volume 을 쓰면 첫 실행에서만 키가 필요하고,
    이후에는 볼륨 이름만으로 같은 자격증명을 재사용합니다. (볼륨 삭제는 직접 해야 합니다)
    """
    app_name = "gcloud-kit"
    cfg = _load_config(
        app_name, chdir, silent,
        key=key, project=project, zone=zone, docker_image=docker_image, volume=volume,
    )
    code = 0
    try:
        with open_session(cfg, app_name) as session:
            code = session.runner.run(list(args), capture=False, interactive=True).returncode
    except GcloudKitError as e:
        _fail(e)
    sys.exit(code)


def _standalone(cmd: click.Command) -> Callable[[], None]:
    """
    콘솔 스크립트 진입점. 사용법 오류는 click 기본값(2) 대신 1 로 종료한다.
    """

    def entry() -> None:
        try:
            cmd.main(standalone_mode=False)
        except click.UsageError as e:
            e.show()
            sys.exit(1)
        except click.ClickException as e:
            e.show()
            sys.exit(e.exit_code)
        except click.Abort:
            click.echo("Aborted!", err=True)
            sys.exit(1)

    return entry


cli_main = _standalone(main)
disk_main = _standalone(disk)
tags_main = _standalone(tags)
ifcreate_main = _standalone(ifcreate)
