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

from storagecfg.models.devices import Device, DeviceInventory, DeviceKind
from storagecfg.serialize import SerializationError

INVENTORY_DATA = [
    {"name": "/dev/vda", "aliases": ["/dev/disk/by-id/virtio-1"], "size": 50 << 30},
    {
        "name": "/dev/vda1",
        "kind": "partition",
        "parent": "/dev/vda",
        "filesystem": "ext4",
        "mountPoint": "/boot",
    },
    {"name": "/dev/vdb", "size": 20 << 30, "unknown": "ignored"},
]


class TestDeviceInventory(unittest.TestCase):
    def setUp(self):
        self.inventory = DeviceInventory.from_json(INVENTORY_DATA)

    def test_from_json(self):
        self.assertEqual(3, len(self.inventory))
        vda1 = self.inventory.find_by_any_name("/dev/vda1")
        self.assertEqual(DeviceKind.PARTITION, vda1.kind)
        self.assertEqual("/boot", vda1.mount_point)
        self.assertEqual("ext4", vda1.filesystem)

    def test_disks(self):
        self.assertEqual(
            ["/dev/vda", "/dev/vdb"], [d.name for d in self.inventory.disks()]
        )

    def test_partitions_of(self):
        vda, vdb = self.inventory.disks()
        partitions = self.inventory.partitions_of(vda)
        self.assertEqual(["/dev/vda1"], [p.name for p in partitions])
        self.assertEqual([], self.inventory.partitions_of(vdb))

    def test_find_by_alias(self):
        device = self.inventory.find_by_any_name("/dev/disk/by-id/virtio-1")
        self.assertEqual("/dev/vda", device.name)
        self.assertIsNone(self.inventory.find_by_any_name("/dev/sda"))

    def test_bad_kind(self):
        with self.assertRaises(SerializationError):
            DeviceInventory.from_json([{"name": "/dev/sda", "kind": "tape"}])

    def test_has_name(self):
        device = Device(name="/dev/sda", aliases=("/dev/disk/by-path/pci-1",))
        self.assertTrue(device.has_name("/dev/sda"))
        self.assertTrue(device.has_name("/dev/disk/by-path/pci-1"))
        self.assertFalse(device.has_name("sda"))
