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

"""Matching of Search rules against devices.

resolve_search() handles a single rule.  ConfigSearchSolver applies the rules
of a whole Config to an inventory, making sure a device is assigned to at
most one drive or partition."""

import logging
from typing import List, Optional, Sequence

import attr

from storagecfg.models.config import Config, Drive, Partition, Search
from storagecfg.models.devices import Device, DeviceInventory
from storagecfg.types import Issue, IssueKind

log = logging.getLogger("storagecfg.common.search")


@attr.s(auto_attribs=True)
class SearchResult:
    devices: List[Device] = attr.Factory(list)
    issues: List[Issue] = attr.Factory(list)

    @property
    def skipped(self) -> bool:
        return not self.devices and not self.issues

    @property
    def device(self) -> Optional[Device]:
        if not self.devices:
            return None
        return self.devices[0]


def search_matches(search: Search, device: Device) -> bool:
    if search.matches_any:
        return True
    return device.has_name(search.name_pattern)


def resolve_search(
    search: Search, candidates: Sequence[Device], source: str = "search"
) -> SearchResult:
    """Match `search` against `candidates`, keeping their order."""
    matches = [d for d in candidates if search_matches(search, d)]
    if search.max is not None:
        matches = matches[: search.max]
    if matches:
        return SearchResult(devices=matches)
    if search.optional:
        log.debug("%s: no device matches %r, skipping", source, search.name_pattern)
        return SearchResult()
    return SearchResult(
        issues=[
            Issue.error(
                IssueKind.NO_DEVICE_FOUND,
                source,
                f"No device found for the mandatory search {search.name_pattern!r}",
            )
        ]
    )


@attr.s(auto_attribs=True)
class ResolvedPartition:
    config: Partition
    # None for partitions that are going to be created
    device: Optional[Device] = None


@attr.s(auto_attribs=True)
class ResolvedDrive:
    config: Drive
    device: Device
    partitions: List[ResolvedPartition] = attr.Factory(list)


@attr.s(auto_attribs=True)
class ResolvedConfig:
    config: Config
    drives: List[ResolvedDrive] = attr.Factory(list)
    issues: List[Issue] = attr.Factory(list)

    def device_names(self) -> List[str]:
        return [d.device.name for d in self.drives]


class ConfigSearchSolver:
    def __init__(self, inventory: DeviceInventory):
        self.inventory = inventory

    def solve(self, config: Config) -> ResolvedConfig:
        resolved = ResolvedConfig(config=config)
        taken = set()
        for i, drive in enumerate(config.drives):
            source = f"drives[{i}]"
            candidates = [d for d in self.inventory.disks() if d.name not in taken]
            result = resolve_search(drive.search, candidates, source)
            resolved.issues.extend(result.issues)
            for device in result.devices:
                taken.add(device.name)
                resolved.drives.append(
                    self._solve_drive(drive, device, source, resolved.issues)
                )
        return resolved

    def _solve_drive(self, drive, device, source, issues) -> ResolvedDrive:
        resolved = ResolvedDrive(config=drive, device=device)
        if drive.filesystem is not None and drive.filesystem.reuse:
            issues.extend(self._reuse_issues(device, f"{source}.filesystem"))
        taken = set()
        for j, partition in enumerate(drive.partitions):
            psource = f"{source}.partitions[{j}]"
            if partition.search is None:
                resolved.partitions.append(ResolvedPartition(config=partition))
                continue
            candidates = [
                p for p in self.inventory.partitions_of(device) if p.name not in taken
            ]
            result = resolve_search(partition.search, candidates, psource)
            issues.extend(result.issues)
            for found in result.devices:
                taken.add(found.name)
                resolved.partitions.append(
                    ResolvedPartition(config=partition, device=found)
                )
                if partition.filesystem is not None and partition.filesystem.reuse:
                    issues.extend(
                        self._reuse_issues(found, f"{psource}.filesystem")
                    )
        return resolved

    def _reuse_issues(self, device: Device, source: str) -> List[Issue]:
        if device.filesystem is not None:
            return []
        return [
            Issue.error(
                IssueKind.INCONSISTENT_CONFIG,
                source,
                f"Cannot reuse the filesystem of {device.name}: "
                "the device has no filesystem",
            )
        ]
