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

"""Read-only view of the detected devices.

The inventory is supplied by the probing subsystem; the configuration code
only looks devices up in it."""

import enum
from typing import List, Optional

import attr

from storagecfg.serialize import deserialize, named_field


class DeviceKind(enum.Enum):
    DISK = "disk"
    PARTITION = "partition"
    RAID = "raid"
    MULTIPATH = "multipath"


@attr.s(auto_attribs=True, frozen=True)
class Device:
    name: str
    kind: DeviceKind = DeviceKind.DISK
    aliases: List[str] = attr.ib(factory=list, converter=list)
    size: int = 0
    # name of the disk holding a partition
    parent: Optional[str] = None
    # type of the filesystem already present on the device, if any
    filesystem: Optional[str] = None
    mount_point: Optional[str] = named_field("mountPoint", default=None)

    def has_name(self, name: str) -> bool:
        return name == self.name or name in self.aliases


class DeviceInventory:
    def __init__(self, devices=()):
        self._devices = list(devices)

    @classmethod
    def from_json(cls, data) -> "DeviceInventory":
        return cls(deserialize(List[Device], data))

    def __iter__(self):
        return iter(self._devices)

    def __len__(self):
        return len(self._devices)

    def disks(self) -> List[Device]:
        return [d for d in self._devices if d.kind != DeviceKind.PARTITION]

    def partitions_of(self, disk: Device) -> List[Device]:
        return [
            d
            for d in self._devices
            if d.kind == DeviceKind.PARTITION and d.parent == disk.name
        ]

    def find_by_any_name(self, name: str) -> Optional[Device]:
        for device in self._devices:
            if device.has_name(name):
                return device
        return None
