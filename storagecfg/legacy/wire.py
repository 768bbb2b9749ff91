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

"""The flat key/value form of the proposal settings used by the legacy
service interface.

Every known key maps to a typed setter in an explicit table; keys that are
not in the tables are ignored."""

import logging
from typing import Any, Callable, Dict, List, Optional

from storagecfg.errors import MalformedDocument, UnsupportedValue
from storagecfg.legacy.generator import ENGINE_UNLIMITED
from storagecfg.legacy.settings import ProposalSettings, ProposalSettingsBuilder
from storagecfg.legacy.volume import Volume, VolumeInfo, fs_kind_from_value
from storagecfg.models.config import Size
from storagecfg.types import (
    EncryptionMethod,
    PbkdFunction,
    Secret,
    SpaceAction,
    SpacePolicy,
)

log = logging.getLogger("storagecfg.legacy.wire")


def _expect(value, typ, path):
    # exact type: True is not accepted as an int
    if type(value) is not typ:
        raise UnsupportedValue(path, value, [typ.__name__])
    return value


def _expect_str_list(value, path) -> List[str]:
    _expect(value, list, path)
    return [_expect(v, str, f"{path}[{i}]") for i, v in enumerate(value)]


def _enum_value(enum_cls, value, path):
    try:
        return enum_cls(value)
    except ValueError:
        raise UnsupportedValue(path, value, [m.value for m in enum_cls])


def _wire_size(value: Optional[int]) -> int:
    if value is None:
        return ENGINE_UNLIMITED
    return value


def _size_from_wire(value, path) -> Optional[int]:
    _expect(value, int, path)
    if value == ENGINE_UNLIMITED:
        return None
    if value < 0:
        raise UnsupportedValue(path, value)
    return value


# Volume keys.  The setters fill a dict of keyword arguments for Volume and
# the size fields, which are put together once all keys have been seen.

VolumeSetter = Callable[[Dict[str, Any], Any, str], None]


def _set_mount_point(draft, value, path):
    draft["mount_path"] = _expect(value, str, path)


def _set_fs_type(draft, value, path):
    draft["fs_type"] = fs_kind_from_value(_expect(value, str, path), path)


def _set_min_size(draft, value, path):
    draft["min"] = _size_from_wire(value, path)


def _set_max_size(draft, value, path):
    draft["max"] = _size_from_wire(value, path)


def _set_fixed_size_limits(draft, value, path):
    draft["is_default"] = not _expect(value, bool, path)


def _set_snapshots(draft, value, path):
    draft["snapshots"] = _expect(value, bool, path)


VOLUME_SETTERS: Dict[str, VolumeSetter] = {
    "MountPoint": _set_mount_point,
    "FsType": _set_fs_type,
    "MinSize": _set_min_size,
    "MaxSize": _set_max_size,
    "FixedSizeLimits": _set_fixed_size_limits,
    "Snapshots": _set_snapshots,
}

_SIZE_KEYS = ("is_default", "min", "max")


def volume_from_wire(data: Dict[str, Any], path="Volumes") -> Volume:
    _expect(data, dict, path)
    draft = {}
    for key, value in data.items():
        setter = VOLUME_SETTERS.get(key)
        if setter is None:
            log.debug("ignoring unknown volume key %r at %s", key, path)
            continue
        setter(draft, value, f"{path}.{key}")
    if "mount_path" not in draft:
        raise MalformedDocument(path, "MountPoint is required")
    size_kw = {k: draft.pop(k) for k in _SIZE_KEYS if k in draft}
    if size_kw:
        draft["size"] = Size(**size_kw)
    return Volume(**draft)


def volume_to_wire(volume: Volume) -> Dict[str, Any]:
    r = {"MountPoint": volume.mount_path}
    if volume.fs_type is not None:
        r["FsType"] = volume.fs_type.value
    if volume.size is not None:
        r["FixedSizeLimits"] = not volume.size.is_default
        if volume.size.min is not None:
            r["MinSize"] = volume.size.min
        r["MaxSize"] = _wire_size(volume.size.max)
    if volume.snapshots is not None:
        r["Snapshots"] = volume.snapshots
    return r


# Settings keys.  The setters feed a ProposalSettingsBuilder.

SettingsSetter = Callable[[ProposalSettingsBuilder, Any, str], None]


def _set_candidate_devices(builder, value, path):
    builder.candidate_devices(_expect_str_list(value, path))


def _set_lvm(builder, value, path):
    builder.use_lvm(_expect(value, bool, path))


def _set_encryption_password(builder, value, path):
    if isinstance(value, Secret):
        value = value.reveal()
    _expect(value, str, path)
    # an empty password means no encryption
    builder.encryption_password(value or None)


def _set_encryption_method(builder, value, path):
    builder.encryption_method(_enum_value(EncryptionMethod, value, path))


def _set_pbkd_function(builder, value, path):
    builder.pbkd_function(_enum_value(PbkdFunction, value, path))


def _set_configure_boot(builder, value, path):
    current = builder.build()
    builder.boot(_expect(value, bool, path), current.boot_device)


def _set_boot_device(builder, value, path):
    current = builder.build()
    builder.boot(current.propose_boot, _expect(value, str, path) or None)


def _set_space_policy(builder, value, path):
    current = builder.build()
    builder.space(_enum_value(SpacePolicy, value, path), current.space_actions)


def _set_space_actions(builder, value, path):
    # a list of {"Device": name, "Action": action} entries
    _expect(value, list, path)
    actions = {}
    for i, entry in enumerate(value):
        entry_path = f"{path}[{i}]"
        _expect(entry, dict, entry_path)
        if "Device" not in entry or "Action" not in entry:
            raise MalformedDocument(entry_path, "Device and Action are required")
        device = _expect(entry["Device"], str, f"{entry_path}.Device")
        actions[device] = _enum_value(
            SpaceAction, entry["Action"], f"{entry_path}.Action"
        )
    builder.space(builder.build().space_policy, actions)


def _set_volumes(builder, value, path):
    _expect(value, list, path)
    builder.volumes(
        [volume_from_wire(v, f"{path}[{i}]") for i, v in enumerate(value)]
    )


SETTINGS_SETTERS: Dict[str, SettingsSetter] = {
    "CandidateDevices": _set_candidate_devices,
    "LVM": _set_lvm,
    "EncryptionPassword": _set_encryption_password,
    "EncryptionMethod": _set_encryption_method,
    "PbkdFunction": _set_pbkd_function,
    "ConfigureBoot": _set_configure_boot,
    "BootDevice": _set_boot_device,
    "SpacePolicy": _set_space_policy,
    "SpaceActions": _set_space_actions,
    "Volumes": _set_volumes,
}


def settings_from_wire(data: Dict[str, Any]) -> ProposalSettings:
    if not isinstance(data, dict):
        raise MalformedDocument("", "settings must be a mapping")
    builder = ProposalSettingsBuilder()
    for key, value in data.items():
        setter = SETTINGS_SETTERS.get(key)
        if setter is None:
            log.debug("ignoring unknown settings key %r", key)
            continue
        setter(builder, value, key)
    return builder.build()


def settings_to_wire(settings: ProposalSettings) -> Dict[str, Any]:
    """The flat form of `settings`.  The password stays wrapped in a Secret,
    it is up to the transport to reveal it."""
    r = {
        "CandidateDevices": list(settings.candidate_devices),
        "LVM": settings.use_lvm,
        "EncryptionMethod": settings.encryption_method.value,
        "ConfigureBoot": settings.propose_boot,
        "SpacePolicy": settings.space_policy.value,
        "SpaceActions": [
            {"Device": device, "Action": action.value}
            for device, action in settings.space_actions.items()
        ],
        "Volumes": [volume_to_wire(v) for v in settings.volumes],
    }
    if settings.encryption_password is not None:
        r["EncryptionPassword"] = settings.encryption_password
    if settings.pbkd_function is not None:
        r["PbkdFunction"] = settings.pbkd_function.value
    if settings.boot_device is not None:
        r["BootDevice"] = settings.boot_device
    return r


def volume_info_to_wire(info: VolumeInfo) -> Dict[str, Any]:
    return {
        "MountPoint": info.mount_path,
        "DeviceType": info.device_type.value,
        "Optional": info.optional,
        "Encrypted": info.encrypted,
        "FixedSizeLimits": info.fixed_size_limits,
        "AdaptiveSizes": info.adaptive_sizes,
        "MinSize": info.min_size,
        "MaxSize": _wire_size(info.max_size),
        "FsTypes": [t.value for t in info.fs_types],
        "FsType": info.fs_type.value if info.fs_type is not None else "",
        "Snapshots": info.snapshots,
        "SnapshotsConfigurable": info.snapshots_configurable,
        "SnapshotsAffectSizes": info.snapshots_affect_sizes,
        "SizeRelevantVolumes": list(info.size_relevant_volumes),
    }

