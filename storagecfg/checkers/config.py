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

import collections
import logging
from typing import List

from storagecfg.checkers.base import Checker, flatten
from storagecfg.checkers.boot import BootChecker
from storagecfg.checkers.drive import DriveChecker
from storagecfg.checkers.volume_group import VolumeGroupChecker
from storagecfg.models.config import SWAP_MOUNT_PATH, Config, normalize_mount_path
from storagecfg.types import Issue, IssueKind

log = logging.getLogger("storagecfg.checkers.config")


class ConfigChecker(Checker):
    def __init__(self, config: Config):
        super().__init__("config")
        self.config = config

    def check(self) -> List[Issue]:
        config = self.config
        aliases = set(config.aliases())
        issues = flatten(
            BootChecker(config.boot, aliases).check(),
            *[
                DriveChecker(drive, f"drives[{i}]").check()
                for i, drive in enumerate(config.drives)
            ],
            *[
                VolumeGroupChecker(vg, f"volumeGroups[{i}]", aliases).check()
                for i, vg in enumerate(config.volume_groups)
            ],
            self._check_mount_paths(),
            self._check_aliases(),
        )
        log.debug("config check found %d issue(s)", len(issues))
        return issues

    def _check_mount_paths(self) -> List[Issue]:
        paths = [
            normalize_mount_path(fs.mount_path) for fs in self.config.filesystems()
        ]
        counts = collections.Counter(
            path for path in paths if path not in (None, SWAP_MOUNT_PATH)
        )
        return [
            self.error(
                IssueKind.INCONSISTENT_CONFIG,
                f"The mount path {path} is used by {n} filesystems",
            )
            for path, n in counts.items()
            if n > 1
        ]

    def _check_aliases(self) -> List[Issue]:
        counts = collections.Counter(self.config.aliases())
        return [
            self.error(
                IssueKind.INCONSISTENT_CONFIG,
                f"The alias {alias!r} is used by {n} devices",
            )
            for alias, n in counts.items()
            if n > 1
        ]


def check_config(config: Config) -> List[Issue]:
    """All the issues of `config`, errors and warnings alike."""
    return ConfigChecker(config).check()
