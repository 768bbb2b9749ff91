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

"""Volumes as understood by the planning engine.

VolumeSpec is a complete volume description (a template from the product
configuration, or a template merged with an explicit request).  Volume is an
explicit request where every knob left as None is taken from the template.
VolumeInfo is what gets reported back once the engine has planned devices."""

import logging
from typing import Any, Dict, List, Optional

import attr

from storagecfg.common import sizes
from storagecfg.errors import UnsupportedValue
from storagecfg.models.config import Size, dehumanize_size, same_mount_path
from storagecfg.types import DeviceType, FilesystemKind

log = logging.getLogger("storagecfg.legacy.volume")

UNLIMITED_WORDS = ("unlimited", "")


def fs_kind_from_value(value: str, path: str) -> FilesystemKind:
    try:
        return FilesystemKind(value.lower())
    except (ValueError, AttributeError):
        raise UnsupportedValue(path, value, [k.value for k in FilesystemKind])


def _parse_size(value, path) -> Optional[int]:
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if value is None or str(value).strip().lower() in UNLIMITED_WORDS:
        return None
    try:
        return dehumanize_size(str(value))
    except ValueError as e:
        raise UnsupportedValue(path, value) from e


def _parse_percentage(value, path) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise UnsupportedValue(path, value) from e


@attr.s(auto_attribs=True)
class VolumeSpec:
    mount_path: str
    fs_type: Optional[FilesystemKind] = None
    fs_types: List[FilesystemKind] = attr.Factory(list)
    min_size: int = 0
    # None means unlimited
    max_size: Optional[int] = None
    # automatic size limits, as opposed to fixed ones
    auto_size: bool = True
    snapshots: bool = False
    snapshots_configurable: bool = False
    snapshots_size: Optional[int] = None
    snapshots_percentage: Optional[int] = None
    fallback_for_min_size: Optional[str] = None
    fallback_for_max_size: Optional[str] = None
    fallback_for_max_size_lvm: Optional[str] = None
    proposed: bool = True
    proposed_configurable: bool = False
    size_relevant_volumes: List[str] = attr.Factory(list)

    @property
    def mandatory(self) -> bool:
        """A volume the user cannot switch off."""
        return self.proposed and not self.proposed_configurable

    def mounted_at(self, path: Optional[str]) -> bool:
        return same_mount_path(self.mount_path, path)

    @classmethod
    def from_config_data(cls, data: Dict[str, Any], path="volumes") -> "VolumeSpec":
        """Build a template from an entry of the product configuration."""
        kw = {"mount_path": data["mount_path"]}
        if "fs_type" in data:
            kw["fs_type"] = fs_kind_from_value(data["fs_type"], f"{path}.fs_type")
        if "fs_types" in data:
            kw["fs_types"] = [
                fs_kind_from_value(v, f"{path}.fs_types[{i}]")
                for i, v in enumerate(data["fs_types"])
            ]
        elif "fs_type" in data:
            kw["fs_types"] = [kw["fs_type"]]
        for key in "min_size", "snapshots_size":
            if key in data:
                kw[key] = _parse_size(data[key], f"{path}.{key}")
        if "max_size" in data:
            kw["max_size"] = _parse_size(data["max_size"], f"{path}.max_size")
        if "snapshots_percentage" in data:
            kw["snapshots_percentage"] = _parse_percentage(
                data["snapshots_percentage"], f"{path}.snapshots_percentage"
            )
        for key in (
            "auto_size",
            "snapshots",
            "snapshots_configurable",
            "fallback_for_min_size",
            "fallback_for_max_size",
            "fallback_for_max_size_lvm",
            "proposed",
            "proposed_configurable",
        ):
            if key in data:
                kw[key] = data[key]
        return cls(**kw)


@attr.s(auto_attribs=True)
class Volume:
    """An explicit volume request.  Knobs left as None are not set."""

    mount_path: str
    fs_type: Optional[FilesystemKind] = None
    size: Optional[Size] = None
    snapshots: Optional[bool] = None

    def mounted_at(self, path: Optional[str]) -> bool:
        return same_mount_path(self.mount_path, path)

    def overrides(self) -> Dict[str, Any]:
        """The VolumeSpec fields this request sets."""
        r = {"mount_path": self.mount_path}
        if self.fs_type is not None:
            r["fs_type"] = self.fs_type
        if self.snapshots is not None:
            r["snapshots"] = self.snapshots
        if self.size is not None:
            r["auto_size"] = self.size.is_default
            if self.size.min is not None:
                r["min_size"] = self.size.min
            r["max_size"] = self.size.max
        return r

    def to_spec(self) -> VolumeSpec:
        spec = VolumeSpec(**self.overrides())
        if spec.fs_type is not None:
            spec.fs_types = [spec.fs_type]
        return spec


@attr.s(auto_attribs=True, frozen=True)
class PlannedDevice:
    """A device planned by the engine, tagged with its kind."""

    device_type: DeviceType
    mount_path: Optional[str]
    min_size: int
    max_size: Optional[int] = None


@attr.s(auto_attribs=True)
class VolumeInfo:
    mount_path: str
    device_type: DeviceType = DeviceType.PARTITION
    optional: bool = False
    encrypted: bool = False
    fixed_size_limits: bool = False
    adaptive_sizes: bool = False
    min_size: int = 0
    max_size: Optional[int] = None
    fs_types: List[FilesystemKind] = attr.Factory(list)
    fs_type: Optional[FilesystemKind] = None
    snapshots: bool = False
    snapshots_configurable: bool = False
    snapshots_affect_sizes: bool = False
    size_relevant_volumes: List[str] = attr.Factory(list)

    @classmethod
    def from_spec(cls, spec: VolumeSpec, siblings=(), lvm=False) -> "VolumeInfo":
        adaptive = sizes.adaptive_sizes(spec, siblings, lvm=lvm)
        return cls(
            mount_path=spec.mount_path,
            device_type=DeviceType.LOGICAL_VOLUME if lvm else DeviceType.PARTITION,
            optional=spec.proposed_configurable,
            fixed_size_limits=not spec.auto_size or not adaptive,
            adaptive_sizes=adaptive,
            min_size=spec.min_size,
            max_size=spec.max_size,
            fs_types=list(spec.fs_types),
            fs_type=spec.fs_type,
            snapshots=spec.snapshots,
            snapshots_configurable=spec.snapshots_configurable,
            snapshots_affect_sizes=sizes.snapshots_affect_sizes(spec),
            size_relevant_volumes=list(spec.size_relevant_volumes),
        )
