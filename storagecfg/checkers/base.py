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

import abc
from typing import List

from storagecfg.types import Issue, IssueKind


def flatten(*results) -> List[Issue]:
    """Join the results of several checks, dropping the absent ones.

    Each result may be None, a single Issue or an iterable of them."""
    r = []
    for result in results:
        if result is None:
            continue
        if isinstance(result, Issue):
            r.append(result)
        else:
            r.extend(issue for issue in result if issue is not None)
    return r


class Checker(abc.ABC):
    def __init__(self, source: str):
        self.source = source

    @abc.abstractmethod
    def check(self) -> List[Issue]:
        """Return the issues found, in the order of the checked tree."""

    def error(self, kind: IssueKind, message: str, source=None) -> Issue:
        return Issue.error(kind, source or self.source, message)

    def warning(self, message: str, source=None) -> Issue:
        return Issue.warning(source or self.source, message)
