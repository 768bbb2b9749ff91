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

"""Settings used to calculate a storage proposal.

ProposalSettings is an immutable value, usually put together with a
ProposalSettingsBuilder.  The planning engine wants a single mutable
EngineSettings object instead; engine_settings() creates it in one go from
the final ProposalSettings, its volumes merged with the templates and the
device inventory."""

import logging
from typing import Dict, List, Optional, Sequence

import attr

from storagecfg.legacy.generator import ENGINE_UNLIMITED
from storagecfg.legacy.volume import Volume, VolumeSpec
from storagecfg.models.devices import DeviceInventory
from storagecfg.types import (
    EncryptionMethod,
    PbkdFunction,
    Secret,
    SpaceAction,
    SpacePolicy,
)

log = logging.getLogger("storagecfg.legacy.settings")


@attr.s(auto_attribs=True, frozen=True)
class ProposalSettings:
    # Device names of the disks that can be used for the installation.  When
    # empty, the first disk of the inventory is used.
    candidate_devices: List[str] = attr.Factory(list)
    use_lvm: bool = False
    encryption_password: Optional[Secret] = attr.ib(
        default=None, converter=Secret.wrap
    )
    encryption_method: EncryptionMethod = EncryptionMethod.LUKS2
    pbkd_function: Optional[PbkdFunction] = None
    # Whether to create the partitions needed for booting, and where.  When
    # boot_device is None the first candidate device is used.
    propose_boot: bool = True
    boot_device: Optional[str] = None
    # How to make room on the candidate devices.  The actions, by device
    # name, are only used by the custom policy.
    space_policy: SpacePolicy = SpacePolicy.KEEP
    space_actions: Dict[str, SpaceAction] = attr.Factory(dict)
    volumes: List[Volume] = attr.Factory(list)

    @property
    def use_encryption(self) -> bool:
        return self.encryption_password is not None

    DISPLAYED_SETTINGS = (
        "candidate_devices",
        "use_lvm",
        "use_encryption",
        "space_policy",
    )

    def __str__(self):
        lines = ["Storage ProposalSettings", "  general settings:"]
        for name in self.DISPLAYED_SETTINGS:
            lines.append(f"    {name}: {getattr(self, name)}")
        lines.append("  volumes:")
        lines.extend(f"    {v.mount_path}" for v in self.volumes)
        return "\n".join(lines)


class ProposalSettingsBuilder:
    """Accumulates proposal settings without mutating any shared object."""

    def __init__(self, base: Optional[ProposalSettings] = None):
        if base is None:
            base = ProposalSettings()
        self._settings = base

    def _set(self, **kw) -> "ProposalSettingsBuilder":
        self._settings = attr.evolve(self._settings, **kw)
        return self

    def candidate_devices(self, devices: Sequence[str]):
        return self._set(candidate_devices=list(devices))

    def use_lvm(self, value: bool):
        return self._set(use_lvm=value)

    def encryption_password(self, password):
        return self._set(encryption_password=password)

    def encryption_method(self, method: EncryptionMethod):
        return self._set(encryption_method=method)

    def pbkd_function(self, function: Optional[PbkdFunction]):
        return self._set(pbkd_function=function)

    def boot(self, configure: bool, device: Optional[str] = None):
        return self._set(propose_boot=configure, boot_device=device)

    def space(self, policy: SpacePolicy, actions=None):
        return self._set(space_policy=policy, space_actions=dict(actions or {}))

    def volumes(self, volumes: Sequence[Volume]):
        return self._set(volumes=list(volumes))

    def add_volume(self, volume: Volume):
        for existing in self._settings.volumes:
            if existing.mounted_at(volume.mount_path):
                raise ValueError(f"duplicated volume {volume.mount_path}")
        return self._set(volumes=self._settings.volumes + [volume])

    def build(self) -> ProposalSettings:
        return self._settings


@attr.s(auto_attribs=True)
class EngineVolume:
    mount_point: str
    fs_type: Optional[str]
    fs_types: List[str]
    min_size: int
    max_size: int
    ignore_fallback_sizes: bool
    ignore_snapshots_sizes: bool
    snapshots: bool
    snapshots_configurable: bool
    snapshots_size: int
    snapshots_percentage: int
    fallback_for_min_size: Optional[str]
    fallback_for_max_size: Optional[str]
    fallback_for_max_size_lvm: Optional[str]
    proposed: bool
    proposed_configurable: bool

    @classmethod
    def from_spec(cls, spec: VolumeSpec) -> "EngineVolume":
        if spec.max_size is None:
            max_size = ENGINE_UNLIMITED
        else:
            max_size = spec.max_size
        return cls(
            mount_point=spec.mount_path,
            fs_type=spec.fs_type.value if spec.fs_type is not None else None,
            fs_types=[t.value for t in spec.fs_types],
            min_size=spec.min_size,
            max_size=max_size,
            ignore_fallback_sizes=not spec.auto_size,
            ignore_snapshots_sizes=not spec.auto_size,
            snapshots=spec.snapshots,
            snapshots_configurable=spec.snapshots_configurable,
            snapshots_size=spec.snapshots_size or 0,
            snapshots_percentage=spec.snapshots_percentage or 0,
            fallback_for_min_size=spec.fallback_for_min_size,
            fallback_for_max_size=spec.fallback_for_max_size,
            fallback_for_max_size_lvm=spec.fallback_for_max_size_lvm,
            proposed=spec.proposed,
            proposed_configurable=spec.proposed_configurable,
        )


@attr.s(auto_attribs=True)
class EngineSettings:
    """The object handed over to the planning engine, which may modify it."""

    candidate_devices: List[str]
    use_lvm: bool
    encryption_password: Optional[Secret]
    encryption_method: str
    pbkd_function: Optional[str]
    propose_boot: bool
    boot_device: Optional[str]
    space_policy: str
    space_actions: Dict[str, str]
    volumes: List[EngineVolume]


def calculate_candidate_devices(
    settings: ProposalSettings, inventory: DeviceInventory
) -> List[str]:
    if settings.candidate_devices:
        return list(settings.candidate_devices)
    disks = inventory.disks()
    if not disks:
        log.warning("no disk available to use as candidate device")
        return []
    # TODO: pick the best disk (size, not removable) instead of the first one
    return [disks[0].name]


def engine_settings(
    settings: ProposalSettings,
    specs: Sequence[VolumeSpec],
    inventory: DeviceInventory,
) -> EngineSettings:
    """`specs` are the volumes of `settings` already merged with the
    templates, see merge_volumes()."""
    candidates = calculate_candidate_devices(settings, inventory)
    boot_device = settings.boot_device
    if settings.propose_boot and boot_device is None and candidates:
        boot_device = candidates[0]
    log.debug("engine settings from %s", settings)
    if settings.pbkd_function is not None:
        pbkd_function = settings.pbkd_function.value
    else:
        pbkd_function = None
    return EngineSettings(
        candidate_devices=candidates,
        use_lvm=settings.use_lvm,
        encryption_password=settings.encryption_password,
        encryption_method=settings.encryption_method.value,
        pbkd_function=pbkd_function,
        propose_boot=settings.propose_boot,
        boot_device=boot_device,
        space_policy=settings.space_policy.value,
        space_actions={
            device: action.value for device, action in settings.space_actions.items()
        },
        volumes=[EngineVolume.from_spec(s) for s in specs],
    )
