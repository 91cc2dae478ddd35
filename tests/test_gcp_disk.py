import json
import re

import pytest

from gcloud_kit.config import DiskOptions
from gcloud_kit.errors import AbortError, CommandError, VerificationError
from gcloud_kit.gcp_disk import ensure_disk, prepare_disk_options


def test_generated_name_and_device_default() -> None:
    opts = prepare_disk_options(DiskOptions(machine="web-1"), "europe-north1-b")

    assert re.fullmatch(r"web-1-[a-z0-9]{8}", opts.name or "")
    assert opts.device == opts.name


def test_explicit_device_is_kept() -> None:
    opts = prepare_disk_options(DiskOptions(machine="web-1", name="data", device="dev0"), "z")

    assert opts.name == "data"
    assert opts.device == "dev0"


@pytest.mark.parametrize(
    "opts, zone, message",
    [
        (DiskOptions(size=None, name="d"), "z", "size"),
        (DiskOptions(type=None, name="d"), "z", "type"),
        (DiskOptions(), "z", "disk name"),
        (DiskOptions(name="d"), None, "zone"),
    ],
)
def test_missing_parameters_abort(opts: DiskOptions, zone, message: str) -> None:  # noqa: ANN001
    with pytest.raises(AbortError) as excinfo:
        prepare_disk_options(opts, zone)

    assert message in str(excinfo.value)


class _Compute:
    """zones / disk-types / disks / instances 를 흉내내는 가짜 gcloud."""

    def __init__(self, *, disks=(), zone="europe-north1-b", types=("pd-standard", "pd-ssd"), attach_works=True):  # noqa: ANN001
        self.disks = set(disks)
        self.zone = zone
        self.types = types
        self.attach_works = attach_works
        self.attached = []

    def __call__(self, args):  # noqa: ANN001
        group, verb = args[1], args[2]
        if group == "zones" and verb == "list":
            return 0, f"{self.zone}\n"
        if group == "disk-types":
            wanted = next(a.split("=", 1)[1] for a in args if a.startswith("--filter="))
            wanted = wanted.split("=", 1)[1]
            return 0, "".join(f"{t}\n" for t in self.types if t == wanted)
        if group == "disks" and verb == "describe":
            return (0, "") if args[3] in self.disks else (1, "")
        if group == "disks" and verb == "create":
            self.disks.add(args[3])
            return 0, ""
        if group == "instances" and verb == "attach-disk":
            device = next(a.split("=", 1)[1] for a in args if a.startswith("--device-name="))
            if self.attach_works:
                self.attached.append(device)
            return 0, ""
        if group == "instances" and verb == "describe":
            return 0, json.dumps({"disks": [{"deviceName": "boot"}] + [{"deviceName": d} for d in self.attached]})
        return 1, ""


def test_disk_is_created_and_attached(fake_runner) -> None:
    compute = _Compute()
    fake = fake_runner(compute)
    opts = prepare_disk_options(DiskOptions(machine="web-1", size="20GB", type="pd-ssd"), "europe-north1-b")

    created = ensure_disk(fake, opts, "europe-north1-b")

    assert created
    assert fake.called("compute", "disks", "create") == [
        ["compute", "disks", "create", opts.name, "--zone=europe-north1-b", "--size=20GB", "--type=pd-ssd"],
    ]
    assert compute.attached == [opts.device]


def test_existing_disk_is_not_recreated(fake_runner) -> None:
    fake = fake_runner(_Compute(disks={"data"}))

    created = ensure_disk(fake, prepare_disk_options(DiskOptions(name="data"), "europe-north1-b"), "europe-north1-b")

    assert not created
    assert fake.called("compute", "disks", "create") == []
    assert fake.called("compute", "instances", "attach-disk") == []


def test_unknown_zone_fails_before_create(fake_runner) -> None:
    fake = fake_runner(_Compute(zone="us-east1-b"))

    with pytest.raises(VerificationError):
        ensure_disk(fake, DiskOptions(name="data"), "europe-north1-b")

    assert fake.called("compute", "disks", "create") == []


def test_zone_must_match_exactly(fake_runner) -> None:
    # "europe-north1-b" 를 포함하는 다른 이름이 있어도 통과하면 안 된다.
    fake = fake_runner(_Compute(zone="europe-north1-bb"))

    with pytest.raises(VerificationError):
        ensure_disk(fake, DiskOptions(name="data"), "europe-north1-b")


def test_unavailable_disk_type_fails(fake_runner) -> None:
    fake = fake_runner(_Compute(types=("pd-standard",)))

    with pytest.raises(VerificationError) as excinfo:
        ensure_disk(fake, DiskOptions(name="data", type="pd-extreme"), "europe-north1-b")

    assert "pd-extreme" in str(excinfo.value)


def test_missing_machine_fails(fake_runner) -> None:
    compute = _Compute()

    def handler(args):  # noqa: ANN001
        if args[1:3] == ["instances", "describe"]:
            return 1, ""
        return compute(args)

    fake = fake_runner(handler)

    with pytest.raises(VerificationError):
        ensure_disk(fake, DiskOptions(name="data", machine="ghost", device="data"), "europe-north1-b")


def test_attachment_is_verified(fake_runner) -> None:
    fake = fake_runner(_Compute(attach_works=False))
    opts = prepare_disk_options(DiskOptions(machine="web-1"), "europe-north1-b")

    with pytest.raises(VerificationError) as excinfo:
        ensure_disk(fake, opts, "europe-north1-b")

    assert "not attached" in str(excinfo.value)


def test_create_failure_aborts(fake_runner) -> None:
    compute = _Compute()

    def handler(args):  # noqa: ANN001
        if args[1:3] == ["disks", "create"]:
            return 1, ""
        return compute(args)

    fake = fake_runner(handler)

    with pytest.raises(CommandError) as excinfo:
        ensure_disk(fake, DiskOptions(name="data"), "europe-north1-b")

    assert "Could not create disk data" in str(excinfo.value)


def test_ensure_disk_without_name_aborts_before_any_call(fake_runner) -> None:
    fake = fake_runner(_Compute())

    with pytest.raises(AbortError):
        ensure_disk(fake, DiskOptions(machine="web-1"), "europe-north1-b")

    assert fake.calls == []
