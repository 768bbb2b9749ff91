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

from typing import Collection, List

from storagecfg.checkers.base import Checker, flatten
from storagecfg.checkers.partition import LogicalVolumeChecker
from storagecfg.models.config import VolumeGroup
from storagecfg.types import Issue, IssueKind


class VolumeGroupChecker(Checker):
    """`aliases` are the aliases defined by the config the group belongs to;
    physical volumes must name one of them."""

    def __init__(self, vg: VolumeGroup, source: str, aliases: Collection[str]):
        super().__init__(source)
        self.vg = vg
        self.aliases = aliases

    def check(self) -> List[Issue]:
        return flatten(
            self._check_name(),
            self._check_physical_volumes(),
            *[
                LogicalVolumeChecker(lv, f"{self.source}.logicalVolumes[{i}]").check()
                for i, lv in enumerate(self.vg.logical_volumes)
            ],
        )

    def _check_name(self) -> List[Issue]:
        if self.vg.name:
            return []
        return [
            self.error(
                IssueKind.MISSING_REQUIRED_FIELD, "The volume group has no name"
            )
        ]

    def _check_physical_volumes(self) -> List[Issue]:
        return [
            self.error(
                IssueKind.INCONSISTENT_CONFIG,
                f"There is no device with alias {alias!r} for the physical volumes",
                source=f"{self.source}.physicalVolumes[{i}]",
            )
            for i, alias in enumerate(self.vg.physical_volumes)
            if alias not in self.aliases
        ]
