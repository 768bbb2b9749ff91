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

"""Proposal settings from a storage Config."""

import logging
from typing import Dict, Iterator, Optional, Tuple

import attr

from storagecfg.common.search import ConfigSearchSolver, ResolvedConfig
from storagecfg.legacy.settings import ProposalSettings, ProposalSettingsBuilder
from storagecfg.legacy.volume import Volume
from storagecfg.models.config import (
    Config,
    Filesystem,
    Size,
    normalize_mount_path,
)
from storagecfg.models.devices import DeviceInventory
from storagecfg.types import FilesystemKind, SpaceAction, SpacePolicy

log = logging.getLogger("storagecfg.legacy.from_config")


def volume_from_filesystem(
    filesystem: Filesystem, size: Optional[Size]
) -> Optional[Volume]:
    if filesystem.mount_path is None:
        return None
    if filesystem.reuse:
        # the engine only knows about new volumes
        log.debug("not proposing reused filesystem at %s", filesystem.mount_path)
        return None
    snapshots = None
    if filesystem.fs_kind == FilesystemKind.BTRFS and filesystem.type.btrfs:
        snapshots = filesystem.type.btrfs.snapshots
    if size is not None:
        size = attr.evolve(size)
    return Volume(
        mount_path=filesystem.mount_path,
        fs_type=filesystem.fs_kind,
        size=size,
        snapshots=snapshots,
    )


def _filesystems(resolved: ResolvedConfig) -> Iterator[Tuple[Filesystem, Size]]:
    for drive in resolved.drives:
        if drive.config.filesystem is not None:
            yield drive.config.filesystem, drive.config.size
        for partition in drive.partitions:
            if partition.config.delete or partition.config.filesystem is None:
                continue
            yield partition.config.filesystem, partition.config.size
    for lv in resolved.config.all_logical_volumes():
        if lv.filesystem is not None:
            yield lv.filesystem, lv.size


def _boot_device(config: Config, resolved: ResolvedConfig) -> Optional[str]:
    if config.boot is None or config.boot.device is None:
        return None
    for drive in resolved.drives:
        if drive.config.alias == config.boot.device:
            return drive.device.name
    log.warning("boot device %r is not a known drive alias", config.boot.device)
    return None


def _space_settings(
    resolved: ResolvedConfig,
) -> Tuple[SpacePolicy, Dict[str, SpaceAction]]:
    policies = {drive.config.space_policy() for drive in resolved.drives}
    if not policies:
        return SpacePolicy.KEEP, {}
    if len(policies) == 1 and SpacePolicy.CUSTOM not in policies:
        return policies.pop(), {}
    # a custom policy, or different policies per drive, is described action
    # by action
    actions = {}
    for drive in resolved.drives:
        for partition in drive.partitions:
            if partition.device is None:
                continue
            if partition.config.delete:
                actions[partition.device.name] = SpaceAction.FORCE_DELETE
            elif partition.config.delete_if_needed:
                actions[partition.device.name] = SpaceAction.RESIZE
    return SpacePolicy.CUSTOM, actions


def settings_from_config(
    config: Config,
    inventory: DeviceInventory,
    resolved: Optional[ResolvedConfig] = None,
) -> ProposalSettings:
    if resolved is None:
        resolved = ConfigSearchSolver(inventory).solve(config)

    builder = ProposalSettingsBuilder()
    builder.candidate_devices(resolved.device_names())
    builder.use_lvm(bool(config.volume_groups))

    encryption = next(config.encryptions(), None)
    if encryption is not None:
        builder.encryption_password(encryption.password)
        builder.encryption_method(encryption.method)
        builder.pbkd_function(encryption.pbkd_function)

    if config.boot is not None:
        builder.boot(config.boot.configure, _boot_device(config, resolved))

    builder.space(*_space_settings(resolved))

    mount_paths = set()
    for filesystem, size in _filesystems(resolved):
        volume = volume_from_filesystem(filesystem, size)
        if volume is None:
            continue
        # a drive matching several disks yields its filesystems once per
        # disk, and several swap filesystems make a single swap volume
        mount_path = normalize_mount_path(volume.mount_path)
        if mount_path in mount_paths:
            log.debug("%s is already proposed, skipping", volume.mount_path)
            continue
        mount_paths.add(mount_path)
        builder.add_volume(volume)

    return builder.build()
