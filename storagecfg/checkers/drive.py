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
from storagecfg.checkers.partition import PartitionChecker
from storagecfg.checkers.search import SearchChecker
from storagecfg.models.config import Drive
from storagecfg.types import Issue, IssueKind


class DriveChecker(Checker):
    def __init__(self, drive: Drive, source: str):
        super().__init__(source)
        self.drive = drive

    def check(self) -> List[Issue]:
        drive = self.drive
        return flatten(
            SearchChecker(drive.search, f"{self.source}.search").check(),
            FilesystemChecker(
                drive.filesystem, f"{self.source}.filesystem", drive.search
            ).check(),
            EncryptionChecker(drive.encryption, f"{self.source}.encryption").check(),
            self._check_partitioned_filesystem(),
            *[
                PartitionChecker(p, f"{self.source}.partitions[{i}]").check()
                for i, p in enumerate(drive.partitions)
            ],
        )

    def _check_partitioned_filesystem(self) -> Optional[Issue]:
        if not self.drive.partitions or self.drive.filesystem is None:
            return None
        return self.error(
            IssueKind.INCONSISTENT_CONFIG,
            "A drive with partitions cannot be formatted as a whole",
        )
