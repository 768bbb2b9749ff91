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
from storagecfg.models.config import (
    SWAP_MOUNT_PATH,
    Filesystem,
    Search,
    same_mount_path,
)
from storagecfg.types import FilesystemKind, Issue, IssueKind


class FilesystemChecker(Checker):
    """Checks a filesystem against the device holding it.

    `search` is the search of the owning device; without it the device is
    new and there is nothing to reuse."""

    def __init__(
        self, filesystem: Optional[Filesystem], source: str, search: Optional[Search]
    ):
        super().__init__(source)
        self.filesystem = filesystem
        self.search = search

    def check(self) -> List[Issue]:
        if self.filesystem is None:
            return []
        return flatten(
            self._check_reuse(),
            self._check_swap(),
            self._check_mount_path(),
            self._check_btrfs_options(),
        )

    def _check_reuse(self) -> Optional[Issue]:
        if not self.filesystem.reuse or self.search is not None:
            return None
        return self.error(
            IssueKind.INCONSISTENT_CONFIG,
            "Cannot reuse the filesystem of a new device",
        )

    def _check_swap(self) -> Optional[Issue]:
        fs_kind = self.filesystem.fs_kind
        mount_path = self.filesystem.mount_path
        if fs_kind is None or mount_path is None:
            return None
        is_swap_path = same_mount_path(mount_path, SWAP_MOUNT_PATH)
        if fs_kind == FilesystemKind.SWAP and not is_swap_path:
            return self.error(
                IssueKind.INCONSISTENT_CONFIG,
                f"A swap filesystem cannot be mounted at {mount_path}",
            )
        if fs_kind != FilesystemKind.SWAP and is_swap_path:
            return self.error(
                IssueKind.INCONSISTENT_CONFIG,
                f"A {fs_kind.value} filesystem cannot be used as swap",
            )
        return None

    def _check_mount_path(self) -> Optional[Issue]:
        mount_path = self.filesystem.mount_path
        if mount_path is None or same_mount_path(mount_path, SWAP_MOUNT_PATH):
            return None
        if mount_path.startswith("/"):
            return None
        return self.error(
            IssueKind.INCONSISTENT_CONFIG,
            f"The mount path {mount_path!r} is not absolute",
        )

    def _check_btrfs_options(self) -> Optional[Issue]:
        fs_type = self.filesystem.type
        if fs_type is None or fs_type.btrfs is None:
            return None
        if fs_type.fs_kind == FilesystemKind.BTRFS:
            return None
        return self.warning(
            f"Btrfs options are ignored for a {fs_type.fs_kind.value} filesystem"
        )
