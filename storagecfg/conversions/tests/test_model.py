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

from storagecfg.conversions.from_schema import config_from_json
from storagecfg.conversions.model import (
    ModelBoot,
    ModelBootDevice,
    ModelConfig,
    ModelDrive,
    ModelFilesystem,
    ModelPartition,
    ModelSize,
    config_from_model,
    config_to_model,
    model_from_json,
    model_to_json,
)
from storagecfg.errors import UnsupportedValue
from storagecfg.models.config import (
    GiB,
    Boot,
    Config,
    Drive,
    Partition,
    Search,
)
from storagecfg.types import SpacePolicy

DOC = {
    "boot": {"configure": True, "device": "root"},
    "drives": [
        {
            "search": "/dev/vda",
            "alias": "root",
            "partitions": [
                {
                    "search": "/dev/vda1",
                    "filesystem": {"reuse": True, "mountPath": "/home"},
                },
                {
                    "size": {"default": True, "min": GiB},
                    "filesystem": {
                        "type": "btrfs",
                        "btrfs": {"snapshots": True},
                        "mountPath": "/",
                    },
                    "encryption": {"password": "secret"},
                },
            ],
        }
    ],
    "volumeGroups": [
        {
            "name": "system",
            "physicalVolumes": ["root"],
            "logicalVolumes": [
                {"name": "swap", "filesystem": {"type": "swap", "mountPath": "swap"}}
            ],
        }
    ],
}


class TestConfigToModel(unittest.TestCase):
    def setUp(self):
        self.model = config_to_model(config_from_json(DOC))

    def test_drives(self):
        [drive] = self.model.drives
        self.assertEqual("/dev/vda", drive.name)
        self.assertEqual("root", drive.alias)
        home, root = drive.partitions
        self.assertEqual("/dev/vda1", home.name)
        self.assertEqual("/home", home.mount_path)
        self.assertEqual(ModelFilesystem(default=True, reuse=True), home.filesystem)
        self.assertEqual("/", root.mount_path)
        self.assertEqual(
            ModelFilesystem(default=False, type="btrfs", snapshots=True),
            root.filesystem,
        )
        self.assertEqual(ModelSize(default=True, min=GiB), root.size)

    def test_boot_device_by_name(self):
        self.assertEqual(
            ModelBoot(configure=True, device=ModelBootDevice(False, "/dev/vda")),
            self.model.boot,
        )

    def test_volume_groups(self):
        [vg] = self.model.volume_groups
        self.assertEqual("system", vg.vg_name)
        self.assertEqual(["root"], vg.target_devices)
        self.assertEqual("swap", vg.logical_volumes[0].mount_path)

    def test_no_passwords(self):
        self.assertNotIn("secret", str(model_to_json(self.model)))

    def test_json(self):
        data = model_to_json(self.model)
        self.assertEqual("/dev/vda", data["drives"][0]["name"])
        self.assertEqual("/home", data["drives"][0]["partitions"][0]["mountPath"])
        self.assertTrue(
            data["drives"][0]["partitions"][0]["filesystem"]["reuseIfPossible"]
        )
        self.assertEqual("system", data["volumeGroups"][0]["vgName"])
        self.assertEqual(self.model, model_from_json(data))


class TestConfigFromModel(unittest.TestCase):
    def test_round_trip_without_secrets(self):
        config = config_from_json(DOC)
        back = config_from_model(config_to_model(config))
        self.assertEqual(config.boot, back.boot)
        self.assertEqual(config.volume_groups, back.volume_groups)
        self.assertEqual(config.drives[0].search, back.drives[0].search)
        self.assertEqual(
            config.drives[0].partitions[0], back.drives[0].partitions[0]
        )
        self.assertIsNone(back.drives[0].partitions[1].encryption)

    def test_any_drive(self):
        model = ModelConfig(drives=[ModelDrive(mount_path="/")])
        [drive] = config_from_model(model).drives
        self.assertEqual(Search("*", max=1), drive.search)
        self.assertEqual("/", drive.filesystem.mount_path)
        self.assertIsNone(drive.filesystem.type)

    def test_boot_device_gets_alias(self):
        model = ModelConfig(
            boot=ModelBoot(device=ModelBootDevice(default=False, name="/dev/vdb")),
            drives=[ModelDrive(name="/dev/vda"), ModelDrive(name="/dev/vdb")],
        )
        config = config_from_model(model)
        self.assertEqual(Boot(configure=True, device="boot-disk1"), config.boot)
        self.assertEqual("boot-disk1", config.drives[1].alias)

    def test_default_boot_device(self):
        model = ModelConfig(boot=ModelBoot(device=ModelBootDevice()))
        self.assertEqual(Boot(), config_from_model(model).boot)

    def test_non_btrfs_has_no_snapshots(self):
        model = ModelConfig(
            drives=[
                ModelDrive(
                    partitions=[
                        ModelPartition(
                            mount_path="/",
                            filesystem=ModelFilesystem(
                                default=False, type="ext4", snapshots=True
                            ),
                        )
                    ]
                )
            ]
        )
        [partition] = config_from_model(model).drives[0].partitions
        self.assertIsNone(partition.filesystem.type.btrfs)

    def test_unsupported_filesystem(self):
        model = ModelConfig(
            drives=[ModelDrive(filesystem=ModelFilesystem(type="zfs"))]
        )
        with self.assertRaises(UnsupportedValue):
            config_from_model(model)

    def test_drive_defaults(self):
        model = ModelConfig(drives=[ModelDrive()])
        self.assertEqual([Drive()], config_from_model(model).drives)


class TestSpacePolicy(unittest.TestCase):
    @parameterized.expand(
        [
            (SpacePolicy.DELETE,),
            (SpacePolicy.RESIZE,),
        ]
    )
    def test_rule_becomes_policy(self, policy):
        drive = Drive(partitions=[Partition.space_rule(policy)])
        [model] = config_to_model(Config(drives=[drive])).drives
        self.assertEqual(policy.value, model.space_policy)
        self.assertEqual([], model.partitions)

    def test_custom(self):
        doc = {"drives": [{"partitions": [{"search": "/dev/vda1", "delete": True}]}]}
        [model] = config_to_model(config_from_json(doc)).drives
        self.assertEqual("custom", model.space_policy)
        self.assertTrue(model.partitions[0].delete)

    def test_keep(self):
        [model] = config_to_model(config_from_json(DOC)).drives
        self.assertEqual("keep", model.space_policy)
        self.assertEqual(2, len(model.partitions))

    @parameterized.expand(
        [
            ("delete", SpacePolicy.DELETE),
            ("resize", SpacePolicy.RESIZE),
        ]
    )
    def test_policy_adds_rule(self, value, policy):
        model = ModelConfig(
            drives=[
                ModelDrive(
                    space_policy=value,
                    partitions=[
                        ModelPartition(name="/dev/vda1", delete=True),
                        ModelPartition(mount_path="/"),
                    ],
                )
            ]
        )
        [drive] = config_from_model(model).drives
        rule, root = drive.partitions
        self.assertEqual(Partition.space_rule(policy), rule)
        self.assertEqual("/", root.filesystem.mount_path)
        self.assertEqual(policy, drive.space_policy())

    def test_keep_drops_deletions(self):
        model = ModelConfig(
            drives=[
                ModelDrive(
                    space_policy="keep",
                    partitions=[
                        ModelPartition(name="/dev/vda1", delete_if_needed=True),
                        ModelPartition(mount_path="/"),
                    ],
                )
            ]
        )
        [drive] = config_from_model(model).drives
        [root] = drive.partitions
        self.assertEqual("/", root.filesystem.mount_path)
        self.assertEqual(SpacePolicy.KEEP, drive.space_policy())

    def test_custom_keeps_partitions(self):
        model = ModelConfig(
            drives=[
                ModelDrive(
                    space_policy="custom",
                    partitions=[ModelPartition(name="/dev/vda1", delete=True)],
                )
            ]
        )
        [drive] = config_from_model(model).drives
        [partition] = drive.partitions
        self.assertEqual(Search("/dev/vda1"), partition.search)
        self.assertTrue(partition.delete)

    def test_unknown_policy(self):
        model = ModelConfig(drives=[ModelDrive(space_policy="shrink")])
        with self.assertRaises(UnsupportedValue):
            config_from_model(model)

    def test_json_key(self):
        model = ModelConfig(drives=[ModelDrive(space_policy="delete")])
        data = model_to_json(model)
        self.assertEqual("delete", data["drives"][0]["spacePolicy"])
        self.assertEqual(model, model_from_json(data))
