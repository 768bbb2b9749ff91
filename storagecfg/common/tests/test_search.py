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

from storagecfg.common.search import ConfigSearchSolver, resolve_search
from storagecfg.models.config import (
    Config,
    Drive,
    Filesystem,
    Partition,
    Search,
)
from storagecfg.models.devices import Device, DeviceInventory, DeviceKind
from storagecfg.types import IssueKind


def make_disk(name, *aliases):
    return Device(name=name, aliases=aliases)


def make_partition(name, parent, filesystem=None):
    return Device(
        name=name, kind=DeviceKind.PARTITION, parent=parent, filesystem=filesystem
    )


DISKS = [
    make_disk("/dev/sda", "/dev/disk/by-id/ata-1"),
    make_disk("/dev/sdb"),
    make_disk("/dev/sdc"),
]


class TestResolveSearch(unittest.TestCase):
    @parameterized.expand(
        [
            ("any", Search("*"), ["/dev/sda", "/dev/sdb", "/dev/sdc"]),
            ("any_max", Search("*", max=2), ["/dev/sda", "/dev/sdb"]),
            ("name", Search("/dev/sdb"), ["/dev/sdb"]),
            ("alias", Search("/dev/disk/by-id/ata-1"), ["/dev/sda"]),
        ]
    )
    def test_matches(self, name, search, expected):
        result = resolve_search(search, DISKS)
        self.assertEqual(expected, [d.name for d in result.devices])
        self.assertEqual([], result.issues)
        self.assertFalse(result.skipped)

    def test_case_sensitive(self):
        result = resolve_search(Search("/dev/SDA"), DISKS)
        self.assertEqual([], result.devices)

    def test_mandatory_without_candidates(self):
        result = resolve_search(Search("*"), [], "drives[0]")
        self.assertEqual([], result.devices)
        [issue] = result.issues
        self.assertTrue(issue.is_error)
        self.assertEqual(IssueKind.NO_DEVICE_FOUND, issue.kind)
        self.assertEqual("drives[0]", issue.source)
        self.assertIn("'*'", issue.message)

    def test_optional_without_match(self):
        result = resolve_search(Search("/dev/sdz", optional=True), DISKS)
        self.assertTrue(result.skipped)
        self.assertEqual([], result.issues)
        self.assertIsNone(result.device)

    def test_deterministic(self):
        search = Search("*", max=2)
        first = resolve_search(search, DISKS)
        second = resolve_search(search, DISKS)
        self.assertEqual(first, second)


class TestConfigSearchSolver(unittest.TestCase):
    def setUp(self):
        self.inventory = DeviceInventory(
            DISKS
            + [
                make_partition("/dev/sda1", "/dev/sda", "ext4"),
                make_partition("/dev/sda2", "/dev/sda"),
            ]
        )
        self.solver = ConfigSearchSolver(self.inventory)

    def test_drives_take_different_disks(self):
        config = Config(drives=[Drive(), Drive()])
        resolved = self.solver.solve(config)
        self.assertEqual(["/dev/sda", "/dev/sdb"], resolved.device_names())
        self.assertEqual([], resolved.issues)

    def test_named_disk_is_not_reused(self):
        config = Config(drives=[Drive(search=Search("/dev/sda")), Drive()])
        resolved = self.solver.solve(config)
        self.assertEqual(["/dev/sda", "/dev/sdb"], resolved.device_names())

    def test_drive_expands_to_every_match(self):
        config = Config(drives=[Drive(search=Search("*"))])
        resolved = self.solver.solve(config)
        self.assertEqual(
            ["/dev/sda", "/dev/sdb", "/dev/sdc"], resolved.device_names()
        )
        for drive in resolved.drives:
            self.assertIs(config.drives[0], drive.config)

    def test_no_disk_left(self):
        config = Config(drives=[Drive(search=Search("*", max=3)), Drive()])
        resolved = self.solver.solve(config)
        [issue] = resolved.issues
        self.assertEqual(IssueKind.NO_DEVICE_FOUND, issue.kind)
        self.assertEqual("drives[1]", issue.source)

    def test_optional_drive_is_dropped(self):
        config = Config(drives=[Drive(search=Search("/dev/sdz", optional=True))])
        resolved = self.solver.solve(config)
        self.assertEqual([], resolved.drives)
        self.assertEqual([], resolved.issues)

    def test_partitions(self):
        drive = Drive(
            search=Search("/dev/sda"),
            partitions=[
                Partition(search=Search("*", max=1)),
                Partition(search=Search("*", max=1)),
                Partition(),
            ],
        )
        resolved = self.solver.solve(Config(drives=[drive]))
        [rdrive] = resolved.drives
        self.assertEqual(
            ["/dev/sda1", "/dev/sda2", None],
            [p.device.name if p.device else None for p in rdrive.partitions],
        )

    def test_missing_partition(self):
        drive = Drive(
            search=Search("/dev/sdb"), partitions=[Partition(search=Search("*"))]
        )
        resolved = self.solver.solve(Config(drives=[drive]))
        [issue] = resolved.issues
        self.assertEqual("drives[0].partitions[0]", issue.source)

    def test_reuse_existing_filesystem(self):
        partition = Partition(
            search=Search("/dev/sda1"),
            filesystem=Filesystem(reuse=True, mount_path="/home"),
        )
        drive = Drive(search=Search("/dev/sda"), partitions=[partition])
        resolved = self.solver.solve(Config(drives=[drive]))
        self.assertEqual([], resolved.issues)

    def test_reuse_without_filesystem(self):
        partition = Partition(
            search=Search("/dev/sda2"),
            filesystem=Filesystem(reuse=True, mount_path="/home"),
        )
        drive = Drive(search=Search("/dev/sda"), partitions=[partition])
        resolved = self.solver.solve(Config(drives=[drive]))
        [issue] = resolved.issues
        self.assertTrue(issue.is_error)
        self.assertEqual(IssueKind.INCONSISTENT_CONFIG, issue.kind)
        self.assertEqual("drives[0].partitions[0].filesystem", issue.source)
