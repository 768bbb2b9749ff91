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

import unittest

from parameterized import parameterized

from storagecfg.checkers.base import flatten
from storagecfg.checkers.boot import BootChecker
from storagecfg.checkers.drive import DriveChecker
from storagecfg.checkers.encryption import EncryptionChecker
from storagecfg.checkers.filesystem import FilesystemChecker
from storagecfg.checkers.partition import LogicalVolumeChecker, PartitionChecker
from storagecfg.checkers.search import SearchChecker
from storagecfg.checkers.volume_group import VolumeGroupChecker
from storagecfg.models.config import (
    Boot,
    BtrfsOptions,
    Drive,
    Encryption,
    Filesystem,
    FilesystemType,
    LogicalVolume,
    Partition,
    Search,
    VolumeGroup,
)
from storagecfg.types import (
    EncryptionMethod,
    FilesystemKind,
    Issue,
    IssueKind,
    Severity,
)


def fs(kind=None, mount_path=None, **kw):
    fs_type = None
    if kind is not None:
        fs_type = FilesystemType(kind)
    return Filesystem(type=fs_type, mount_path=mount_path, **kw)


class TestFlatten(unittest.TestCase):
    def test_drops_absent_results(self):
        a = Issue.warning("a", "a")
        b = Issue.warning("b", "b")
        self.assertEqual([a, b], flatten(None, a, [], [None, b], None))


class TestSearchChecker(unittest.TestCase):
    def test_valid(self):
        self.assertEqual([], SearchChecker(Search("*", max=1), "s").check())
        self.assertEqual([], SearchChecker(None, "s").check())

    def test_empty_name(self):
        [issue] = SearchChecker(Search(""), "s").check()
        self.assertEqual(IssueKind.MISSING_REQUIRED_FIELD, issue.kind)

    def test_max(self):
        [issue] = SearchChecker(Search("*", max=0), "s").check()
        self.assertEqual(IssueKind.INCONSISTENT_CONFIG, issue.kind)
        self.assertEqual("s", issue.source)


class TestFilesystemChecker(unittest.TestCase):
    def check(self, filesystem, search=None):
        return FilesystemChecker(filesystem, "fs", search).check()

    @parameterized.expand(
        [
            ("root", fs(FilesystemKind.EXT4, "/")),
            ("swap", fs(FilesystemKind.SWAP, "swap")),
            ("implied_swap", fs(None, "swap")),
            ("swap_trailing_slash", fs(FilesystemKind.SWAP, "swap/")),
            ("unmounted", fs(FilesystemKind.XFS)),
            (
                "btrfs",
                Filesystem(
                    type=FilesystemType(FilesystemKind.BTRFS, BtrfsOptions(True)),
                    mount_path="/",
                ),
            ),
        ]
    )
    def test_valid(self, name, filesystem):
        self.assertEqual([], self.check(filesystem))

    def test_reuse_without_search(self):
        [issue] = self.check(fs(mount_path="/home", reuse=True))
        self.assertTrue(issue.is_error)
        self.assertEqual(IssueKind.INCONSISTENT_CONFIG, issue.kind)
        self.assertEqual("fs", issue.source)

    def test_reuse_with_search(self):
        filesystem = fs(mount_path="/home", reuse=True)
        self.assertEqual([], self.check(filesystem, Search("/dev/vda2")))

    def test_swap_mounted_elsewhere(self):
        [issue] = self.check(fs(FilesystemKind.SWAP, "/swap"))
        self.assertTrue(issue.is_error)

    def test_swap_path_with_other_filesystem(self):
        [issue] = self.check(fs(FilesystemKind.EXT4, "swap"))
        self.assertTrue(issue.is_error)

    def test_swap_path_with_slash_and_other_filesystem(self):
        [issue] = self.check(fs(FilesystemKind.EXT4, "swap/"))
        self.assertIn("swap", issue.message)

    def test_relative_mount_path(self):
        [issue] = self.check(fs(FilesystemKind.EXT4, "home"))
        self.assertTrue(issue.is_error)

    def test_btrfs_options_on_other_filesystem(self):
        filesystem = Filesystem(
            type=FilesystemType(FilesystemKind.XFS, BtrfsOptions(True)),
            mount_path="/",
        )
        [issue] = self.check(filesystem)
        self.assertEqual(Severity.WARNING, issue.severity)


class TestEncryptionChecker(unittest.TestCase):
    def check(self, encryption):
        return EncryptionChecker(encryption, "enc").check()

    def test_missing_password(self):
        [issue] = self.check(Encryption(method=EncryptionMethod.LUKS2))
        self.assertEqual(IssueKind.MISSING_REQUIRED_FIELD, issue.kind)
        self.assertIn("luks2", issue.message)

    @parameterized.expand(
        [
            (EncryptionMethod.TPM_FDE,),
            (EncryptionMethod.PROTECTED_SWAP,),
            (EncryptionMethod.SECURE_SWAP,),
            (EncryptionMethod.RANDOM_SWAP,),
        ]
    )
    def test_passwordless(self, method):
        self.assertEqual([], self.check(Encryption(method=method)))
        [issue] = self.check(Encryption(method=method, password="pw"))
        self.assertEqual(Severity.WARNING, issue.severity)

    def test_password_not_in_issues(self):
        issues = self.check(Encryption(method=EncryptionMethod.TPM_FDE, password="pw1"))
        self.assertNotIn("pw1", repr(issues))


class TestPartitionChecker(unittest.TestCase):
    def check(self, partition):
        return PartitionChecker(partition, "p").check()

    def test_sub_checks(self):
        partition = Partition(
            search=Search("", max=0),
            filesystem=fs(FilesystemKind.SWAP, "/"),
            encryption=Encryption(),
        )
        self.assertEqual(
            ["p.search", "p.search", "p.filesystem", "p.encryption"],
            [i.source for i in self.check(partition)],
        )

    def test_delete_without_search(self):
        [issue] = self.check(Partition(delete=True))
        self.assertEqual("p", issue.source)

    def test_delete_if_needed_with_filesystem(self):
        partition = Partition(
            search=Search("/dev/vda1"),
            delete_if_needed=True,
            filesystem=fs(FilesystemKind.EXT4, "/"),
        )
        [issue] = self.check(partition)
        self.assertTrue(issue.is_error)

    def test_delete(self):
        self.assertEqual([], self.check(Partition(search=Search("*"), delete=True)))

    def test_logical_volume_cannot_reuse(self):
        lv = LogicalVolume(filesystem=fs(mount_path="/", reuse=True))
        [issue] = LogicalVolumeChecker(lv, "lv").check()
        self.assertEqual("lv.filesystem", issue.source)


class TestDriveChecker(unittest.TestCase):
    def test_partitions_and_filesystem(self):
        drive = Drive(filesystem=fs(FilesystemKind.EXT4, "/"), partitions=[Partition()])
        [issue] = DriveChecker(drive, "drives[0]").check()
        self.assertEqual("drives[0]", issue.source)

    def test_partition_sources(self):
        drive = Drive(partitions=[Partition(), Partition(encryption=Encryption())])
        [issue] = DriveChecker(drive, "drives[0]").check()
        self.assertEqual("drives[0].partitions[1].encryption", issue.source)

    def test_reuse_whole_disk(self):
        drive = Drive(filesystem=fs(mount_path="/data", reuse=True))
        self.assertEqual([], DriveChecker(drive, "drives[0]").check())


class TestVolumeGroupChecker(unittest.TestCase):
    def test_valid(self):
        vg = VolumeGroup(name="system", physical_volumes=["pv"])
        self.assertEqual([], VolumeGroupChecker(vg, "vg", {"pv"}).check())

    def test_no_name(self):
        [issue] = VolumeGroupChecker(VolumeGroup(name=""), "vg", set()).check()
        self.assertEqual(IssueKind.MISSING_REQUIRED_FIELD, issue.kind)

    def test_unknown_physical_volume(self):
        vg = VolumeGroup(name="system", physical_volumes=["pv", "other"])
        [issue] = VolumeGroupChecker(vg, "vg", {"pv"}).check()
        self.assertEqual("vg.physicalVolumes[1]", issue.source)

    def test_logical_volumes(self):
        vg = VolumeGroup(
            name="system",
            logical_volumes=[LogicalVolume(), LogicalVolume(encryption=Encryption())],
        )
        [issue] = VolumeGroupChecker(vg, "vg", set()).check()
        self.assertEqual("vg.logicalVolumes[1].encryption", issue.source)


class TestBootChecker(unittest.TestCase):
    def test_valid(self):
        self.assertEqual([], BootChecker(None, set()).check())
        self.assertEqual([], BootChecker(Boot(), set()).check())
        self.assertEqual([], BootChecker(Boot(device="d"), {"d"}).check())

    def test_unknown_device(self):
        [issue] = BootChecker(Boot(device="d"), set()).check()
        self.assertTrue(issue.is_error)
        self.assertEqual("boot", issue.source)

    def test_device_not_configured(self):
        [issue] = BootChecker(Boot(configure=False, device="d"), {"d"}).check()
        self.assertFalse(issue.is_error)
