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

from typing import List, Optional

from storagecfg.checkers.base import Checker, flatten
from storagecfg.checkers.encryption import EncryptionChecker
from storagecfg.checkers.filesystem import FilesystemChecker
from storagecfg.checkers.search import SearchChecker
from storagecfg.models.config import LogicalVolume, Partition
from storagecfg.types import Issue, IssueKind


class PartitionChecker(Checker):
    def __init__(self, partition: Partition, source: str):
        super().__init__(source)
        self.partition = partition

    def check(self) -> List[Issue]:
        partition = self.partition
        return flatten(
            SearchChecker(partition.search, f"{self.source}.search").check(),
            FilesystemChecker(
                partition.filesystem, f"{self.source}.filesystem", partition.search
            ).check(),
            EncryptionChecker(
                partition.encryption, f"{self.source}.encryption"
            ).check(),
            self._check_delete(),
        )

    def _check_delete(self) -> Optional[Issue]:
        partition = self.partition
        if not (partition.delete or partition.delete_if_needed):
            return None
        if partition.search is None:
            return self.error(
                IssueKind.INCONSISTENT_CONFIG,
                "Only existing partitions can be deleted, but the partition "
                "has no search",
            )
        if partition.filesystem is not None or partition.encryption is not None:
            return self.error(
                IssueKind.INCONSISTENT_CONFIG,
                "A partition to delete cannot be formatted or encrypted",
            )
        return None


class LogicalVolumeChecker(Checker):
    def __init__(self, lv: LogicalVolume, source: str):
        super().__init__(source)
        self.lv = lv

    def check(self) -> List[Issue]:
        # logical volumes are always created, so there is nothing to reuse
        return flatten(
            FilesystemChecker(
                self.lv.filesystem, f"{self.source}.filesystem", None
            ).check(),
            EncryptionChecker(self.lv.encryption, f"{self.source}.encryption").check(),
        )
