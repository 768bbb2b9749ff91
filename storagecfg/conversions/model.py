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

"""The simplified storage model shown by the user interface.

The UI model is a flattened view of a Config: devices are named by the
device they search for, filesystems by their type name, and sizes are plain
numbers.  Passwords are never part of it."""

import logging
from typing import Any, Dict, List, Optional

import attr

from storagecfg.models.config import (
    ANY_DEVICE,
    Boot,
    BtrfsOptions,
    Config,
    Drive,
    Filesystem,
    FilesystemType,
    LogicalVolume,
    Partition,
    Search,
    Size,
    VolumeGroup,
)
from storagecfg.conversions.from_schema import enum_from_json
from storagecfg.serialize import deserialize, named_field, serialize
from storagecfg.types import FilesystemKind, PtableType, SpacePolicy

log = logging.getLogger("storagecfg.conversions.model")


@attr.s(auto_attribs=True)
class ModelSize:
    default: bool = False
    min: Optional[int] = None
    max: Optional[int] = None


@attr.s(auto_attribs=True)
class ModelFilesystem:
    default: bool = True
    type: Optional[str] = None
    snapshots: bool = False
    reuse: bool = named_field("reuseIfPossible", False)


@attr.s(auto_attribs=True)
class ModelPartition:
    name: Optional[str] = None
    alias: Optional[str] = None
    mount_path: Optional[str] = named_field("mountPath", None)
    filesystem: Optional[ModelFilesystem] = None
    size: Optional[ModelSize] = None
    delete: bool = False
    delete_if_needed: bool = named_field("deleteIfNeeded", False)


@attr.s(auto_attribs=True)
class ModelDrive:
    name: Optional[str] = None
    alias: Optional[str] = None
    mount_path: Optional[str] = named_field("mountPath", None)
    filesystem: Optional[ModelFilesystem] = None
    ptable_type: Optional[str] = named_field("ptableType", None)
    space_policy: Optional[str] = named_field("spacePolicy", None)
    partitions: List[ModelPartition] = attr.Factory(list)


@attr.s(auto_attribs=True)
class ModelLogicalVolume:
    lv_name: Optional[str] = named_field("lvName", None)
    alias: Optional[str] = None
    mount_path: Optional[str] = named_field("mountPath", None)
    filesystem: Optional[ModelFilesystem] = None
    size: Optional[ModelSize] = None


@attr.s(auto_attribs=True)
class ModelVolumeGroup:
    vg_name: str = named_field("vgName")
    target_devices: List[str] = named_field("targetDevices", attr.Factory(list))
    logical_volumes: List[ModelLogicalVolume] = named_field(
        "logicalVolumes", attr.Factory(list)
    )


@attr.s(auto_attribs=True)
class ModelBootDevice:
    default: bool = True
    name: Optional[str] = None


@attr.s(auto_attribs=True)
class ModelBoot:
    configure: bool = True
    device: Optional[ModelBootDevice] = None


@attr.s(auto_attribs=True)
class ModelConfig:
    boot: Optional[ModelBoot] = None
    drives: List[ModelDrive] = attr.Factory(list)
    volume_groups: List[ModelVolumeGroup] = named_field(
        "volumeGroups", attr.Factory(list)
    )


def _drive_name(drive: Drive) -> Optional[str]:
    if drive.search.name_pattern == ANY_DEVICE:
        return None
    return drive.search.name_pattern


def size_to_model(size: Optional[Size]) -> Optional[ModelSize]:
    if size is None:
        return None
    return ModelSize(default=size.is_default, min=size.min, max=size.max)


def filesystem_to_model(fs: Optional[Filesystem]) -> Optional[ModelFilesystem]:
    if fs is None:
        return None
    model = ModelFilesystem(default=fs.type is None, reuse=fs.reuse)
    if fs.type is not None:
        model.type = fs.type.fs_kind.value
        model.snapshots = fs.type.snapshots
    return model


def partition_to_model(partition: Partition) -> ModelPartition:
    model = ModelPartition(
        alias=partition.alias,
        filesystem=filesystem_to_model(partition.filesystem),
        size=size_to_model(partition.size),
        delete=partition.delete,
        delete_if_needed=partition.delete_if_needed,
    )
    if partition.search is not None:
        model.name = partition.search.name_pattern
    if partition.filesystem is not None:
        model.mount_path = partition.filesystem.mount_path
    return model


def drive_to_model(drive: Drive) -> ModelDrive:
    model = ModelDrive(
        name=_drive_name(drive),
        alias=drive.alias,
        filesystem=filesystem_to_model(drive.filesystem),
        space_policy=drive.space_policy().value,
        partitions=[
            partition_to_model(p) for p in drive.partitions if not p.is_space_rule
        ],
    )
    if drive.filesystem is not None:
        model.mount_path = drive.filesystem.mount_path
    if drive.ptable_type is not None:
        model.ptable_type = drive.ptable_type.value
    return model


def logical_volume_to_model(lv: LogicalVolume) -> ModelLogicalVolume:
    model = ModelLogicalVolume(
        lv_name=lv.name,
        alias=lv.alias,
        filesystem=filesystem_to_model(lv.filesystem),
        size=size_to_model(lv.size),
    )
    if lv.filesystem is not None:
        model.mount_path = lv.filesystem.mount_path
    return model


def volume_group_to_model(vg: VolumeGroup) -> ModelVolumeGroup:
    return ModelVolumeGroup(
        vg_name=vg.name,
        target_devices=list(vg.physical_volumes),
        logical_volumes=[logical_volume_to_model(lv) for lv in vg.logical_volumes],
    )


def boot_to_model(boot: Boot, drives: List[Drive]) -> ModelBoot:
    model = ModelBoot(configure=boot.configure, device=ModelBootDevice())
    if boot.device is None:
        return model
    model.device.default = False
    model.device.name = boot.device
    for drive in drives:
        if drive.alias == boot.device and _drive_name(drive) is not None:
            model.device.name = _drive_name(drive)
            break
    return model


def config_to_model(config: Config) -> ModelConfig:
    model = ModelConfig(
        drives=[drive_to_model(d) for d in config.drives],
        volume_groups=[volume_group_to_model(vg) for vg in config.volume_groups],
    )
    if config.boot is not None:
        model.boot = boot_to_model(config.boot, config.drives)
    return model


def size_from_model(model: Optional[ModelSize]) -> Optional[Size]:
    if model is None:
        return None
    return Size(is_default=model.default, min=model.min, max=model.max)


def filesystem_from_model(
    model: Optional[ModelFilesystem], mount_path: Optional[str]
) -> Optional[Filesystem]:
    if model is None:
        if mount_path is None:
            return None
        return Filesystem(mount_path=mount_path)
    fs = Filesystem(reuse=model.reuse, mount_path=mount_path)
    if model.type is not None:
        fs_kind = enum_from_json(FilesystemKind, model.type, "filesystem.type")
        fs.type = FilesystemType(fs_kind=fs_kind)
        if fs_kind == FilesystemKind.BTRFS:
            fs.type.btrfs = BtrfsOptions(snapshots=model.snapshots)
    return fs


def partition_from_model(model: ModelPartition) -> Partition:
    partition = Partition(
        alias=model.alias,
        delete=model.delete,
        delete_if_needed=model.delete_if_needed,
        filesystem=filesystem_from_model(model.filesystem, model.mount_path),
        size=size_from_model(model.size),
    )
    if model.name is not None:
        partition.search = Search(name_pattern=model.name)
    return partition


def _space_partitions(
    partitions: List[Partition], policy: Optional[SpacePolicy]
) -> List[Partition]:
    if policy is None or policy == SpacePolicy.CUSTOM:
        return partitions
    kept = []
    for partition in partitions:
        if partition.delete or partition.delete_if_needed:
            log.debug("space policy %s replaces %s", policy.value, partition)
            continue
        kept.append(partition)
    rule = Partition.space_rule(policy)
    if rule is not None:
        kept.insert(0, rule)
    return kept


def drive_from_model(model: ModelDrive) -> Drive:
    policy = None
    if model.space_policy is not None:
        policy = enum_from_json(SpacePolicy, model.space_policy, "spacePolicy")
    partitions = [partition_from_model(p) for p in model.partitions]
    drive = Drive(
        alias=model.alias,
        filesystem=filesystem_from_model(model.filesystem, model.mount_path),
        partitions=_space_partitions(partitions, policy),
    )
    if model.name is not None:
        drive.search = Search(name_pattern=model.name)
    if model.ptable_type is not None:
        drive.ptable_type = enum_from_json(
            PtableType, model.ptable_type, "ptableType"
        )
    return drive


def logical_volume_from_model(model: ModelLogicalVolume) -> LogicalVolume:
    return LogicalVolume(
        name=model.lv_name,
        alias=model.alias,
        filesystem=filesystem_from_model(model.filesystem, model.mount_path),
        size=size_from_model(model.size),
    )


def volume_group_from_model(model: ModelVolumeGroup) -> VolumeGroup:
    return VolumeGroup(
        name=model.vg_name,
        physical_volumes=list(model.target_devices),
        logical_volumes=[logical_volume_from_model(lv) for lv in model.logical_volumes],
    )


def boot_from_model(model: ModelBoot, drives: List[Drive]) -> Boot:
    boot = Boot(configure=model.configure)
    if model.device is None or model.device.default:
        return boot
    name = model.device.name
    for i, drive in enumerate(drives):
        if name in (drive.alias, _drive_name(drive)):
            # the boot device is referenced by alias in the config
            if drive.alias is None:
                drive.alias = f"boot-disk{i}"
            boot.device = drive.alias
            return boot
    log.warning("boot device %s is not one of the model drives", name)
    boot.device = name
    return boot


def config_from_model(model: ModelConfig) -> Config:
    config = Config(
        drives=[drive_from_model(d) for d in model.drives],
        volume_groups=[volume_group_from_model(vg) for vg in model.volume_groups],
    )
    if model.boot is not None:
        config.boot = boot_from_model(model.boot, config.drives)
    return config


def model_to_json(model: ModelConfig) -> Dict[str, Any]:
    return serialize(ModelConfig, model)


def model_from_json(data: Dict[str, Any]) -> ModelConfig:
    return deserialize(ModelConfig, data)
