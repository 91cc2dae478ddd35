"""
gcp_disk
--------

영구 디스크를 (없을 때만) 만들고, 머신이 지정되면 해당 VM 에 붙이는 모듈.

머신만 주고 디스크 이름을 생략하면 `<machine>-<8자리 랜덤>` 을 이름으로 쓴다.
디바이스 이름을 생략하면 디스크 이름과 같게 둔다. 리눅스에서는
/dev/disk/by-id/google-<device> 로 찾을 수 있다.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import List, Optional

from .config import DiskOptions
from .errors import AbortError, VerificationError
from .logging_utils import get_logger
from .runner import GcloudRunner
from .volume import random_suffix


logger = get_logger(__name__)


def prepare_disk_options(opts: DiskOptions, zone: Optional[str]) -> DiskOptions:
    """
    클라우드 호출 전에 필수값을 확인하고 이름/디바이스 기본값을 채운다.
    """
    if not opts.size:
        raise AbortError("You must provide a size for the disk")
    if not opts.type:
        raise AbortError("You must provide a type for the disk")

    name, device = opts.name, opts.device
    if opts.machine:
        if not name:
            name = f"{opts.machine}-{random_suffix()}"
            logger.info("머신 이름으로 디스크 이름을 생성했습니다: %s", name)
        if not device:
            device = name
            logger.info("%s 를 머신에서의 디바이스 이름으로 사용합니다.", device)
    else:
        logger.warning("The disk will not be attached to a machine!")

    if not name:
        raise AbortError("You must provide a (unique) disk name")
    if not zone:
        raise AbortError("You must provide a zone for the disk")
    return replace(opts, name=name, device=device)


def _values(runner: GcloudRunner, args: List[str]) -> List[str]:
    result = runner.run(args)
    if not result.ok:
        return []
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def verify_zone(runner: GcloudRunner, zone: str) -> None:
    zones = _values(runner, ["compute", "zones", "list", f"--filter=name={zone}", "--format=value(name)"])
    if zone not in zones:
        raise VerificationError(f"Zone {zone} does not exist at GCloud")


def verify_machine(runner: GcloudRunner, machine: str, zone: str) -> None:
    if not runner.succeeds(["compute", "instances", "describe", machine, f"--zone={zone}"]):
        raise VerificationError(f"Machine {machine} does not seem to exist")


def verify_disk_type(runner: GcloudRunner, disk_type: str, zone: str) -> None:
    types = _values(runner, [
        "compute", "disk-types", "list",
        f"--zones={zone}",
        f"--filter=name={disk_type}",
        "--format=value(name)",
    ])
    if disk_type not in types:
        raise VerificationError(f"Disk type {disk_type} not available in {zone}")


def attached_devices(runner: GcloudRunner, machine: str, zone: str) -> List[str]:
    result = runner.check(
        ["compute", "instances", "describe", machine, f"--zone={zone}", "--format=json(disks)"],
    )
    try:
        data = json.loads(result.stdout or "{}")
    except ValueError:
        return []
    return [d.get("deviceName", "") for d in data.get("disks") or []]


def ensure_disk(runner: GcloudRunner, opts: DiskOptions, zone: str) -> bool:
    """
    opts 는 prepare_disk_options 를 거친 값이어야 한다.
    디스크를 새로 만들었으면 True, 이미 있었으면 False.
    """
    if not opts.name:
        raise AbortError("You must provide a (unique) disk name")

    logger.info("파라미터 확인: zone")
    verify_zone(runner, zone)
    if opts.machine:
        logger.info("파라미터 확인: machine")
        verify_machine(runner, opts.machine, zone)
    logger.info("파라미터 확인: disk type")
    verify_disk_type(runner, opts.type or "", zone)

    created = False
    if runner.succeeds(["compute", "disks", "describe", opts.name, f"--zone={zone}"]):
        logger.warning(
            "Disk %s already exists in %s, will not change nor recreate", opts.name, zone,
        )
    else:
        logger.info("디스크 생성: %s", opts.name)
        runner.check(
            [
                "compute", "disks", "create", opts.name,
                f"--zone={zone}",
                f"--size={opts.size}",
                f"--type={opts.type}",
            ],
            message=f"Could not create disk {opts.name}",
        )
        created = True

    if opts.machine:
        device = opts.device or opts.name
        logger.info("디스크 %s 를 %s 에 연결합니다.", opts.name, opts.machine)
        runner.check(
            [
                "compute", "instances", "attach-disk", opts.machine,
                f"--zone={zone}",
                f"--disk={opts.name}",
                f"--device-name={device}",
            ],
            message=f"Could not attach disk {opts.name} to {opts.machine}!",
        )
        if device not in attached_devices(runner, opts.machine, zone):
            raise VerificationError("Disk not attached!")
        logger.info("디스크 %s 를 %s 에 연결했습니다.", opts.name, opts.machine)

    return created
