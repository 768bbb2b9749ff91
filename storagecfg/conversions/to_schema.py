# Copyright 2024 Canonical, Ltd.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""Storage Config to the wire document."""

import functools
from typing import Any, Dict

from storagecfg.models.config import (
    Boot,
    Config,
    Drive,
    Encryption,
    Filesystem,
    LogicalVolume,
    Partition,
    Search,
    Size,
    VolumeGroup,
)
from storagecfg.types import reveal


def _put(r: Dict[str, Any], key: str, value) -> None:
    if value is not None:
        r[key] = to_json(value)


@functools.singledispatch
def to_json(obj):
    raise NotImplementedError(f"cannot convert {type(obj).__name__} to json")


@to_json.register(str)
@to_json.register(int)
@to_json.register(bool)
def _to_json_scalar(value):
    return value


@to_json.register(Search)
def _to_json_search(search: Search):
    if not search.optional and search.max is None:
        return search.name_pattern
    r = {"name": search.name_pattern}
    if search.optional:
        r["optional"] = True
    if search.max is not None:
        r["max"] = search.max
    return r


@to_json.register(Size)
def _to_json_size(size: Size):
    r = {"default": size.is_default}
    if size.min is not None:
        r["min"] = size.min
    if size.max is not None:
        r["max"] = size.max
    return r


@to_json.register(Filesystem)
def _to_json_filesystem(fs: Filesystem):
    r = {}
    if fs.reuse:
        r["reuse"] = True
    if fs.type is not None:
        r["type"] = fs.type.fs_kind.value
        if fs.type.btrfs is not None:
            r["btrfs"] = {"snapshots": fs.type.btrfs.snapshots}
    _put(r, "mountPath", fs.mount_path)
    return r


@to_json.register(Encryption)
def _to_json_encryption(encryption: Encryption):
    r = {"method": encryption.method.value}
    if encryption.password is not None:
        r["password"] = reveal(encryption.password)
    if encryption.pbkd_function is not None:
        r["pbkdFunction"] = encryption.pbkd_function.value
    return r


def _block_device(r: Dict[str, Any], device) -> Dict[str, Any]:
    _put(r, "filesystem", device.filesystem)
    _put(r, "encryption", device.encryption)
    _put(r, "size", device.size)
    return r


@to_json.register(Partition)
def _to_json_partition(partition: Partition):
    r = {}
    _put(r, "search", partition.search)
    _put(r, "alias", partition.alias)
    if partition.delete:
        r["delete"] = True
    if partition.delete_if_needed:
        r["deleteIfNeeded"] = True
    return _block_device(r, partition)


@to_json.register(LogicalVolume)
def _to_json_logical_volume(lv: LogicalVolume):
    r = {}
    _put(r, "name", lv.name)
    _put(r, "alias", lv.alias)
    return _block_device(r, lv)


@to_json.register(VolumeGroup)
def _to_json_volume_group(vg: VolumeGroup):
    return {
        "name": vg.name,
        "physicalVolumes": list(vg.physical_volumes),
        "logicalVolumes": [to_json(lv) for lv in vg.logical_volumes],
    }


@to_json.register(Drive)
def _to_json_drive(drive: Drive):
    r = {"search": to_json(drive.search)}
    _put(r, "alias", drive.alias)
    if drive.ptable_type is not None:
        r["ptableType"] = drive.ptable_type.value
    _block_device(r, drive)
    if drive.partitions:
        r["partitions"] = [to_json(p) for p in drive.partitions]
    return r


@to_json.register(Boot)
def _to_json_boot(boot: Boot):
    r = {"configure": boot.configure}
    _put(r, "device", boot.device)
    return r


@to_json.register(Config)
def _to_json_config(config: Config):
    r = {}
    _put(r, "boot", config.boot)
    if config.drives:
        r["drives"] = [to_json(d) for d in config.drives]
    if config.volume_groups:
        r["volumeGroups"] = [to_json(vg) for vg in config.volume_groups]
    return r


def config_to_json(config: Config) -> Dict[str, Any]:
    """The storage section of the wire document describing `config`."""
    return to_json(config)
