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

"""Merging explicit volume requests with the configured templates, and
projecting the devices planned by the engine back into volumes."""

import logging
from typing import Any, List, Mapping, Optional, Sequence

import attr

from storagecfg.common import sizes
from storagecfg.legacy.volume import PlannedDevice, Volume, VolumeInfo, VolumeSpec
from storagecfg.types import DeviceType

log = logging.getLogger("storagecfg.legacy.generator")

# The engine reports unlimited sizes with this value
ENGINE_UNLIMITED = -1


def assign_size_relevant_volumes(specs: Sequence[VolumeSpec], *, lvm=False):
    for spec in specs:
        spec.size_relevant_volumes = sizes.size_relevant_volumes(spec, specs, lvm=lvm)


def merge_volumes(
    explicit: Sequence[Volume], templates: Sequence[VolumeSpec], *, lvm=False
) -> List[VolumeSpec]:
    """Combine the explicit volume requests with the volume templates.

    Explicit volumes come first, in the order given, each one on top of the
    template with the same mount path if there is one.  The remaining
    templates follow, switched off unless they are mandatory.  Without any
    explicit volume the templates are returned as they are."""
    if not explicit:
        result = [attr.evolve(t) for t in templates]
        assign_size_relevant_volumes(result, lvm=lvm)
        return result

    result = []
    used = set()
    for volume in explicit:
        for i, template in enumerate(templates):
            if i not in used and template.mounted_at(volume.mount_path):
                used.add(i)
                spec = attr.evolve(template, **volume.overrides())
                break
        else:
            log.debug("no template for %s, adding a new volume", volume.mount_path)
            spec = volume.to_spec()
        spec.proposed = True
        result.append(spec)

    for i, template in enumerate(templates):
        if i in used:
            continue
        spec = attr.evolve(template)
        if not spec.mandatory:
            spec.proposed = False
        result.append(spec)

    assign_size_relevant_volumes(result, lvm=lvm)
    return result


def _engine_size(value) -> Optional[int]:
    if value is None or value == ENGINE_UNLIMITED:
        return None
    return int(value)


def planned_device_from_engine(raw: Mapping[str, Any]) -> PlannedDevice:
    # Planned logical volumes are the only ones with a lv_type
    if "lv_type" in raw:
        device_type = DeviceType.LOGICAL_VOLUME
    else:
        device_type = DeviceType.PARTITION
    return PlannedDevice(
        device_type=device_type,
        mount_path=raw.get("mount_point"),
        min_size=_engine_size(raw.get("min")) or 0,
        max_size=_engine_size(raw.get("max")),
    )


def planned_devices_from_engine(raw_devices) -> List[PlannedDevice]:
    return [planned_device_from_engine(raw) for raw in raw_devices]


class VolumesGenerator:
    def __init__(
        self,
        specs: Sequence[VolumeSpec],
        planned_devices: Sequence[PlannedDevice] = (),
        *,
        lvm=False,
        encrypted=False,
    ):
        self.specs = list(specs)
        self.planned_devices = list(planned_devices)
        self.lvm = lvm
        self.encrypted = encrypted

    def volumes(self, only_proposed=False) -> List[VolumeInfo]:
        specs = self.specs
        if only_proposed:
            specs = [s for s in specs if s.proposed]
        r = []
        for spec in specs:
            info = VolumeInfo.from_spec(spec, self.specs, lvm=self.lvm)
            info.encrypted = self.encrypted
            planned = self._planned_device_for(spec)
            if planned is not None:
                info.device_type = planned.device_type
                info.min_size = planned.min_size
                info.max_size = planned.max_size
            r.append(info)
        return r

    def _planned_device_for(self, spec: VolumeSpec) -> Optional[PlannedDevice]:
        for device in self.planned_devices:
            if spec.mounted_at(device.mount_path):
                return device
        return None
