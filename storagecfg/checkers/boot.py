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

from typing import Collection, List, Optional

from storagecfg.checkers.base import Checker
from storagecfg.models.config import Boot
from storagecfg.types import Issue, IssueKind


class BootChecker(Checker):
    def __init__(self, boot: Optional[Boot], aliases: Collection[str]):
        super().__init__("boot")
        self.boot = boot
        self.aliases = aliases

    def check(self) -> List[Issue]:
        boot = self.boot
        if boot is None or boot.device is None:
            return []
        if not boot.configure:
            return [
                self.warning(
                    "The boot device is ignored because boot is not configured"
                )
            ]
        if boot.device not in self.aliases:
            return [
                self.error(
                    IssueKind.INCONSISTENT_CONFIG,
                    f"There is no device with alias {boot.device!r} for booting",
                )
            ]
        return []
