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

"""Storage Config from proposal settings."""

import logging
from typing import List, Optional

import attr

from storagecfg.legacy.settings import ProposalSettings
from storagecfg.legacy.volume import Volume
from storagecfg.models.config import (
    Boot,
    BtrfsOptions,
    Config,
    Drive,
    Encryption,
    Filesystem,
    FilesystemType,
    LogicalVolume,
    Partition,
    Search,
    VolumeGroup,
)
from storagecfg.models.devices import DeviceInventory
from storagecfg.types import FilesystemKind, SpaceAction, SpacePolicy

log = logging.getLogger("storagecfg.legacy.to_config")

DEFAULT_VG_NAME = "system"


class ConfigFromSettings:
    """`inventory` tells which drive holds each device of the custom space
    actions.  Without it, the actions go to the first drive."""

    def __init__(
        self,
        settings: ProposalSettings,
        inventory: Optional[DeviceInventory] = None,
    ):
        self.settings = settings
        self.inventory = inventory

    def convert(self) -> Config:
        config = Config()
        config.drives = self._drives()
        if self.settings.use_lvm:
            config.volume_groups = [self._volume_group(config.drives)]
        elif config.drives:
            config.drives[0].partitions = [
                self._partition(v) for v in self.settings.volumes
            ]
        self._add_space_rules(config.drives)
        config.boot = Boot(
            configure=self.settings.propose_boot, device=self._boot_alias()
        )
        return config

    def _add_space_rules(self, drives: List[Drive]) -> None:
        # rules on existing partitions go before the new partitions
        policy = self.settings.space_policy
        rules = [[] for _ in drives]
        if policy == SpacePolicy.CUSTOM:
            for device, action in self.settings.space_actions.items():
                i = self._drive_holding(drives, device)
                if i is None:
                    continue
                rules[i].append(
                    Partition(
                        search=Search(device),
                        delete=action == SpaceAction.FORCE_DELETE,
                        delete_if_needed=action == SpaceAction.RESIZE,
                    )
                )
        else:
            for drive_rules in rules:
                rule = Partition.space_rule(policy)
                if rule is not None:
                    drive_rules.append(rule)
        for drive, drive_rules in zip(drives, rules):
            drive.partitions[:0] = drive_rules

    def _drive_holding(self, drives: List[Drive], device: str) -> Optional[int]:
        if not drives:
            return None
        if self.inventory is None:
            return 0
        found = self.inventory.find_by_any_name(device)
        for i, drive in enumerate(drives):
            if found is not None and drive.search.name_pattern == found.parent:
                return i
        log.warning("no candidate device holds %s, ignoring its space action", device)
        return None

    def _drive_alias(self, index: int) -> str:
        return f"disk{index}"

    def _drives(self) -> List[Drive]:
        devices = self.settings.candidate_devices
        if not devices:
            return [Drive(alias=self._drive_alias(0))]
        return [
            Drive(search=Search(name), alias=self._drive_alias(i))
            for i, name in enumerate(devices)
        ]

    def _boot_alias(self) -> Optional[str]:
        device = self.settings.boot_device
        if device is None:
            return None
        for i, name in enumerate(self.settings.candidate_devices):
            if name == device:
                return self._drive_alias(i)
        log.debug("boot device %s is not a candidate device", device)
        return None

    def _volume_group(self, drives: List[Drive]) -> VolumeGroup:
        return VolumeGroup(
            name=DEFAULT_VG_NAME,
            physical_volumes=[d.alias for d in drives],
            logical_volumes=[self._logical_volume(v) for v in self.settings.volumes],
        )

    def _logical_volume(self, volume: Volume) -> LogicalVolume:
        return LogicalVolume(
            name=self._lv_name(volume.mount_path),
            filesystem=self._filesystem(volume),
            encryption=self._encryption(),
            size=self._size(volume),
        )

    def _lv_name(self, mount_path: str) -> str:
        if mount_path == "/":
            return "root"
        return mount_path.strip("/").replace("/", "_") or "root"

    def _partition(self, volume: Volume) -> Partition:
        return Partition(
            filesystem=self._filesystem(volume),
            encryption=self._encryption(),
            size=self._size(volume),
        )

    def _filesystem(self, volume: Volume) -> Filesystem:
        fs_type = None
        if volume.fs_type is not None:
            fs_type = FilesystemType(fs_kind=volume.fs_type)
            if volume.fs_type == FilesystemKind.BTRFS and volume.snapshots is not None:
                fs_type.btrfs = BtrfsOptions(snapshots=volume.snapshots)
        return Filesystem(type=fs_type, mount_path=volume.mount_path)

    def _encryption(self) -> Optional[Encryption]:
        if not self.settings.use_encryption:
            return None
        return Encryption(
            method=self.settings.encryption_method,
            password=self.settings.encryption_password,
            pbkd_function=self.settings.pbkd_function,
        )

    def _size(self, volume: Volume):
        if volume.size is None:
            return None
        return attr.evolve(volume.size)


def config_from_settings(
    settings: ProposalSettings, inventory: Optional[DeviceInventory] = None
) -> Config:
    return ConfigFromSettings(settings, inventory).convert()
