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
from storagecfg.models.config import Search
from storagecfg.types import Issue, IssueKind


class SearchChecker(Checker):
    def __init__(self, search: Optional[Search], source: str):
        super().__init__(source)
        self.search = search

    def check(self) -> List[Issue]:
        if self.search is None:
            return []
        return flatten(self._check_pattern(), self._check_max())

    def _check_pattern(self) -> Optional[Issue]:
        if self.search.name_pattern:
            return None
        return self.error(
            IssueKind.MISSING_REQUIRED_FIELD, "The search has an empty device name"
        )

    def _check_max(self) -> Optional[Issue]:
        if self.search.max is None or self.search.max >= 1:
            return None
        return self.error(
            IssueKind.INCONSISTENT_CONFIG,
            f"The search limit must be at least 1, got {self.search.max}",
        )
