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

"""The storage configuration tree.

A Config describes the storage intent: which drives to use, how to
partition them, which LVM volume groups to create and which filesystems to
mount.  The tree is plain data; converting it to and from other
representations lives in storagecfg.conversions and storagecfg.legacy."""

import math
from typing import Iterator, List, Optional

import attr

from storagecfg.types import (
    EncryptionMethod,
    FilesystemKind,
    PbkdFunction,
    PtableType,
    Secret,
    SpacePolicy,
)

MiB = 1024 * 1024
GiB = 1024 * 1024 * 1024

# Reserved mount path used by swap
SWAP_MOUNT_PATH = "swap"
# Search pattern matching any device
ANY_DEVICE = "*"

HUMAN_UNITS = ["B", "K", "M", "G", "T", "P"]


def humanize_size(size):
    if size == 0:
        return "0B"
    p = int(math.floor(math.log(size, 2) / 10))
    # We want to truncate the non-integral part, not round to nearest.
    s = "{:.17f}".format(size / 2 ** (10 * p))
    i = s.index(".")
    s = s[: i + 4]
    return s + HUMAN_UNITS[int(p)]


def dehumanize_size(size):
    # convert human 'size' to integer; units are always powers of 1024, so
    # "2G", "2GB" and "2 GiB" are the same thing
    size_in = size

    if not size or not size.strip():
        raise ValueError("input cannot be empty")

    size = size.replace(" ", "")
    if size.upper().endswith("IB"):
        size = size[:-2]
    elif len(size) > 2 and size[-1] in "bB" and not size[-2].isdigit():
        size = size[:-1]

    if not size[-1].isdigit():
        suffix = size[-1].upper()
        size = size[:-1]
    else:
        suffix = None

    parts = size.split(".")
    if len(parts) > 2:
        raise ValueError("{input!r} is not valid input".format(input=size_in))
    elif len(parts) == 2:
        div = 10 ** len(parts[1])
        size = parts[0] + parts[1]
    else:
        div = 1

    try:
        num = int(size)
    except ValueError:
        raise ValueError("{input!r} is not valid input".format(input=size_in))

    if suffix is not None:
        if suffix not in HUMAN_UNITS:
            raise ValueError(
                "unrecognized suffix {suffix!r} in {input!r}".format(
                    suffix=size_in[-1], input=size_in
                )
            )
        mult = 2 ** (10 * HUMAN_UNITS.index(suffix))
    else:
        mult = 1

    if num < 0:
        raise ValueError("{input!r}: cannot be negative".format(input=size_in))

    return num * mult // div


def normalize_mount_path(path: Optional[str]) -> Optional[str]:
    """Mount paths are compared without trailing slashes.  The comparison
    stays case-sensitive."""
    if path is None:
        return None
    if path == "/" or not path.endswith("/"):
        return path
    stripped = path.rstrip("/")
    if not stripped:
        return "/"
    return stripped


def same_mount_path(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return normalize_mount_path(a) == normalize_mount_path(b)


@attr.s(auto_attribs=True)
class Search:
    name_pattern: str = ANY_DEVICE
    optional: bool = False
    max: Optional[int] = None

    @property
    def matches_any(self) -> bool:
        return self.name_pattern == ANY_DEVICE


@attr.s(auto_attribs=True)
class Size:
    # A default size is only a hint: the size resolver may adjust it.
    is_default: bool = False
    min: Optional[int] = None
    # None means there is no upper bound
    max: Optional[int] = None

    @property
    def unlimited(self) -> bool:
        return self.max is None


@attr.s(auto_attribs=True)
class BtrfsOptions:
    snapshots: bool = False


@attr.s(auto_attribs=True)
class FilesystemType:
    fs_kind: FilesystemKind
    btrfs: Optional[BtrfsOptions] = None

    @property
    def snapshots(self) -> bool:
        return self.btrfs is not None and self.btrfs.snapshots


@attr.s(auto_attribs=True)
class Filesystem:
    type: Optional[FilesystemType] = None
    reuse: bool = False
    mount_path: Optional[str] = None

    @property
    def fs_kind(self) -> Optional[FilesystemKind]:
        if self.type is None:
            return None
        return self.type.fs_kind


@attr.s(auto_attribs=True)
class Encryption:
    method: EncryptionMethod = EncryptionMethod.LUKS2
    password: Optional[Secret] = attr.ib(default=None, converter=Secret.wrap)
    pbkd_function: Optional[PbkdFunction] = None


@attr.s(auto_attribs=True)
class Partition:
    search: Optional[Search] = None
    alias: Optional[str] = None
    delete: bool = False
    delete_if_needed: bool = False
    filesystem: Optional[Filesystem] = None
    encryption: Optional[Encryption] = None
    size: Optional[Size] = None

    @property
    def is_new(self) -> bool:
        return self.search is None

    @property
    def is_space_rule(self) -> bool:
        """Whether this is the rule deleting or shrinking every existing
        partition of the drive."""
        if self.search is None or not self.search.matches_any:
            return False
        if self.search.max is not None:
            return False
        return self.delete or self.delete_if_needed

    @classmethod
    def space_rule(cls, policy: SpacePolicy) -> Optional["Partition"]:
        """The partition rule applying `policy` to a whole drive, if any."""
        search = Search(ANY_DEVICE, optional=True)
        if policy == SpacePolicy.DELETE:
            return cls(search=search, delete=True)
        if policy == SpacePolicy.RESIZE:
            return cls(search=search, delete_if_needed=True)
        return None


@attr.s(auto_attribs=True)
class LogicalVolume:
    name: Optional[str] = None
    alias: Optional[str] = None
    filesystem: Optional[Filesystem] = None
    encryption: Optional[Encryption] = None
    size: Optional[Size] = None


@attr.s(auto_attribs=True)
class VolumeGroup:
    name: str
    physical_volumes: List[str] = attr.Factory(list)
    logical_volumes: List[LogicalVolume] = attr.Factory(list)


@attr.s(auto_attribs=True)
class Drive:
    search: Search = attr.Factory(lambda: Search(ANY_DEVICE, max=1))
    alias: Optional[str] = None
    ptable_type: Optional[PtableType] = None
    partitions: List[Partition] = attr.Factory(list)
    filesystem: Optional[Filesystem] = None
    encryption: Optional[Encryption] = None
    size: Optional[Size] = None

    def space_policy(self) -> SpacePolicy:
        """The free-space policy expressed by the partition rules."""
        for partition in self.partitions:
            if partition.is_space_rule:
                if partition.delete:
                    return SpacePolicy.DELETE
                return SpacePolicy.RESIZE
        if any(p.delete or p.delete_if_needed for p in self.partitions):
            return SpacePolicy.CUSTOM
        return SpacePolicy.KEEP


@attr.s(auto_attribs=True)
class Boot:
    configure: bool = True
    device: Optional[str] = None


@attr.s(auto_attribs=True)
class Config:
    boot: Optional[Boot] = None
    drives: List[Drive] = attr.Factory(list)
    volume_groups: List[VolumeGroup] = attr.Factory(list)

    def all_partitions(self) -> Iterator[Partition]:
        for drive in self.drives:
            yield from drive.partitions

    def all_logical_volumes(self) -> Iterator[LogicalVolume]:
        for vg in self.volume_groups:
            yield from vg.logical_volumes

    def filesystems(self) -> Iterator[Filesystem]:
        """Every filesystem in the tree, in apply order."""
        for drive in self.drives:
            if drive.filesystem is not None:
                yield drive.filesystem
            for partition in drive.partitions:
                if partition.filesystem is not None:
                    yield partition.filesystem
        for lv in self.all_logical_volumes():
            if lv.filesystem is not None:
                yield lv.filesystem

    def encryptions(self) -> Iterator[Encryption]:
        for drive in self.drives:
            if drive.encryption is not None:
                yield drive.encryption
            for partition in drive.partitions:
                if partition.encryption is not None:
                    yield partition.encryption
        for lv in self.all_logical_volumes():
            if lv.encryption is not None:
                yield lv.encryption

    def aliases(self) -> List[str]:
        r = []
        for drive in self.drives:
            if drive.alias is not None:
                r.append(drive.alias)
            r.extend(p.alias for p in drive.partitions if p.alias is not None)
        for lv in self.all_logical_volumes():
            if lv.alias is not None:
                r.append(lv.alias)
        return r
