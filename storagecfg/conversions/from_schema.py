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

"""Storage Config from the wire document."""

import logging
from typing import Any, Dict, List, Optional

from jsonschema.exceptions import best_match
from jsonschema.validators import validator_for

from storagecfg.conversions.schema import STORAGE_SCHEMA
from storagecfg.errors import MalformedDocument, UnsupportedValue
from storagecfg.models.config import (
    ANY_DEVICE,
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
    Size,
    VolumeGroup,
    dehumanize_size,
)
from storagecfg.types import EncryptionMethod, FilesystemKind, PbkdFunction, PtableType

log = logging.getLogger("storagecfg.conversions.from_schema")

_validator = validator_for(STORAGE_SCHEMA)(STORAGE_SCHEMA)


def validate(doc: Any) -> None:
    """Raise MalformedDocument unless `doc` follows the storage schema."""
    error = best_match(_validator.iter_errors(doc))
    if error is None:
        return
    path = "".join(
        f"[{p}]" if isinstance(p, int) else f".{p}" for p in error.absolute_path
    ).lstrip(".")
    log.warning("malformed storage document at %s: %s", path, error.message)
    raise MalformedDocument(path, error.message)


def enum_from_json(enum_cls, value: str, path: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise UnsupportedValue(path, value, [m.value for m in enum_cls])


def size_value_from_json(value, path: str) -> Optional[int]:
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise UnsupportedValue(path, value)
        return int(value)
    if value == "unlimited":
        return None
    try:
        return dehumanize_size(value)
    except ValueError:
        raise UnsupportedValue(path, value)


def size_from_json(data, path: str) -> Size:
    if isinstance(data, dict):
        size = Size(is_default=data.get("default", False))
        if "min" in data:
            size.min = size_value_from_json(data["min"], f"{path}.min")
        if "max" in data:
            size.max = size_value_from_json(data["max"], f"{path}.max")
        return size
    if isinstance(data, list):
        size = Size(min=size_value_from_json(data[0], f"{path}[0]"))
        if len(data) > 1:
            size.max = size_value_from_json(data[1], f"{path}[1]")
        return size
    # a single value is an exact size
    value = size_value_from_json(data, path)
    return Size(min=value, max=value)


def search_from_json(data, path: str) -> Search:
    if isinstance(data, str):
        return Search(name_pattern=data)
    return Search(
        name_pattern=data.get("name", ANY_DEVICE),
        optional=data.get("optional", False),
        max=data.get("max"),
    )


def filesystem_type_from_json(data: Dict, path: str) -> Optional[FilesystemType]:
    btrfs = None
    if "btrfs" in data:
        btrfs = BtrfsOptions(snapshots=data["btrfs"].get("snapshots", False))
    if "type" in data:
        fs_kind = enum_from_json(FilesystemKind, data["type"], f"{path}.type")
    elif btrfs is not None:
        # btrfs options alone imply a btrfs filesystem
        fs_kind = FilesystemKind.BTRFS
    else:
        return None
    return FilesystemType(fs_kind=fs_kind, btrfs=btrfs)


def filesystem_from_json(data: Dict, path: str) -> Filesystem:
    return Filesystem(
        type=filesystem_type_from_json(data, path),
        reuse=data.get("reuse", False),
        mount_path=data.get("mountPath"),
    )


def encryption_from_json(data: Dict, path: str) -> Encryption:
    encryption = Encryption(password=data.get("password"))
    if "method" in data:
        encryption.method = enum_from_json(
            EncryptionMethod, data["method"], f"{path}.method"
        )
    if "pbkdFunction" in data:
        encryption.pbkd_function = enum_from_json(
            PbkdFunction, data["pbkdFunction"], f"{path}.pbkdFunction"
        )
    return encryption


def _optional(data: Dict, key: str, path: str, convert):
    if key not in data:
        return None
    return convert(data[key], f"{path}.{key}")


def partition_from_json(data: Dict, path: str) -> Partition:
    return Partition(
        search=_optional(data, "search", path, search_from_json),
        alias=data.get("alias"),
        delete=data.get("delete", False),
        delete_if_needed=data.get("deleteIfNeeded", False),
        filesystem=_optional(data, "filesystem", path, filesystem_from_json),
        encryption=_optional(data, "encryption", path, encryption_from_json),
        size=_optional(data, "size", path, size_from_json),
    )


def logical_volume_from_json(data: Dict, path: str) -> LogicalVolume:
    return LogicalVolume(
        name=data.get("name"),
        alias=data.get("alias"),
        filesystem=_optional(data, "filesystem", path, filesystem_from_json),
        encryption=_optional(data, "encryption", path, encryption_from_json),
        size=_optional(data, "size", path, size_from_json),
    )


def volume_group_from_json(data: Dict, path: str) -> VolumeGroup:
    return VolumeGroup(
        name=data["name"],
        physical_volumes=list(data.get("physicalVolumes", [])),
        logical_volumes=[
            logical_volume_from_json(lv, f"{path}.logicalVolumes[{i}]")
            for i, lv in enumerate(data.get("logicalVolumes", []))
        ],
    )


def drive_from_json(data: Dict, path: str) -> Drive:
    drive = Drive(
        alias=data.get("alias"),
        ptable_type=_optional(
            data, "ptableType", path, lambda v, p: enum_from_json(PtableType, v, p)
        ),
        filesystem=_optional(data, "filesystem", path, filesystem_from_json),
        encryption=_optional(data, "encryption", path, encryption_from_json),
        size=_optional(data, "size", path, size_from_json),
        partitions=[
            partition_from_json(p, f"{path}.partitions[{i}]")
            for i, p in enumerate(data.get("partitions", []))
        ],
    )
    if "search" in data:
        drive.search = search_from_json(data["search"], f"{path}.search")
    return drive


def boot_from_json(data: Dict, path: str) -> Boot:
    return Boot(configure=data.get("configure", True), device=data.get("device"))


def _items(data: Dict, key: str, convert) -> List:
    return [convert(item, f"{key}[{i}]") for i, item in enumerate(data.get(key, []))]


def config_from_json(doc: Dict[str, Any]) -> Config:
    """Build a Config from the storage section of a wire document.

    Raises MalformedDocument when the document does not follow the schema
    and UnsupportedValue when an enumerated value is unknown.  In both cases
    no Config is returned."""
    validate(doc)
    return Config(
        boot=_optional(doc, "boot", "", boot_from_json),
        drives=_items(doc, "drives", drive_from_json),
        volume_groups=_items(doc, "volumeGroups", volume_group_from_json),
    )
