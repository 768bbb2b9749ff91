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

"""Effective size limits of the volumes in a proposal.

A volume either has fixed limits, used as they are, or automatic ones that
grow to make room for btrfs snapshots and for the volumes that fall back to
it when they are not created on their own."""

import logging
from typing import List, Optional, Sequence

import attr

from storagecfg.models.config import normalize_mount_path, same_mount_path
from storagecfg.types import FilesystemKind

log = logging.getLogger("storagecfg.common.sizes")


@attr.s(auto_attribs=True, frozen=True)
class SizeRange:
    min: int
    # None means unlimited
    max: Optional[int] = None

    @property
    def unlimited(self) -> bool:
        return self.max is None


def add_sizes(a: Optional[int], b: Optional[int]) -> Optional[int]:
    """Add two upper bounds, where None stands for unlimited."""
    if a is None or b is None:
        return None
    return a + b


def snapshots_affect_sizes(volume) -> bool:
    """Whether snapshots play a part in the automatic size limits."""
    if not (volume.snapshots or volume.snapshots_configurable):
        return False
    if volume.snapshots_size:
        return True
    return bool(volume.snapshots_percentage)


def fallback_targets(volume, *, lvm: bool = False) -> List[str]:
    if lvm:
        max_target = volume.fallback_for_max_size_lvm
    else:
        max_target = volume.fallback_for_max_size
    return [
        normalize_mount_path(t)
        for t in (volume.fallback_for_min_size, max_target)
        if t is not None
    ]


def _is_sibling(volume, other) -> bool:
    return other is not volume and not same_mount_path(
        other.mount_path, volume.mount_path
    )


def size_relevant_volumes(volume, siblings: Sequence, *, lvm=False) -> List[str]:
    """Mount paths of the siblings that use `volume` as size fallback."""
    path = normalize_mount_path(volume.mount_path)
    return [
        other.mount_path
        for other in siblings
        if _is_sibling(volume, other) and path in fallback_targets(other, lvm=lvm)
    ]


def adaptive_sizes(volume, siblings: Sequence, *, lvm=False) -> bool:
    """Whether automatic size limits make sense for `volume` at all."""
    if snapshots_affect_sizes(volume):
        return True
    return bool(size_relevant_volumes(volume, siblings, lvm=lvm))


def _snapshots_extra(volume, size: int) -> int:
    if volume.snapshots_size:
        return volume.snapshots_size
    if volume.snapshots_percentage:
        return size * volume.snapshots_percentage // 100
    return 0


def _with_snapshots(volume, limits: SizeRange) -> SizeRange:
    if volume.fs_type != FilesystemKind.BTRFS or not volume.snapshots:
        return limits
    new_min = limits.min + _snapshots_extra(volume, limits.min)
    new_max = limits.max
    if new_max is not None:
        new_max += _snapshots_extra(volume, new_max)
    return SizeRange(min=new_min, max=new_max)


def _with_fallbacks(volume, siblings, limits: SizeRange, lvm) -> SizeRange:
    path = normalize_mount_path(volume.mount_path)
    new_min = limits.min
    new_max = limits.max
    for other in siblings:
        if not _is_sibling(volume, other):
            continue
        if path not in fallback_targets(other, lvm=lvm):
            continue
        new_min += other.min_size
        if lvm:
            max_target = other.fallback_for_max_size_lvm
        else:
            max_target = other.fallback_for_max_size
        if same_mount_path(max_target, path) and new_max is not None:
            new_max = add_sizes(new_max, other.max_size)
    return SizeRange(min=new_min, max=new_max)


def resolve_size(volume, siblings: Sequence = (), *, lvm: bool = False) -> SizeRange:
    """Compute the effective size limits of `volume`.

    `siblings` are the other volumes of the same proposal (`volume` itself
    may be among them).  With fixed limits, or when nothing makes the limits
    adaptive, the configured values are returned unchanged.  Otherwise the
    snapshots space is added first and then the sizes of every sibling that
    declares `volume` as its fallback."""
    limits = SizeRange(min=volume.min_size, max=volume.max_size)
    if not volume.auto_size or not adaptive_sizes(volume, siblings, lvm=lvm):
        return limits
    limits = _with_snapshots(volume, limits)
    limits = _with_fallbacks(volume, siblings, limits, lvm)
    log.debug("automatic size limits for %s: %s", volume.mount_path, limits)
    return limits
