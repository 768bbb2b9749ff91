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

import io
import os
import tempfile
import unittest

from storagecfg.errors import ProductConfigError
from storagecfg.models.config import GiB
from storagecfg.product import ProductConfig
from storagecfg.types import EncryptionMethod, FilesystemKind, PbkdFunction

PRODUCT_YAML = """\
name: Example OS
software:
  patterns: [base]
storage:
  lvm: true
  encryption:
    method: luks1
    pbkd_function: pbkdf2
  volumes:
    - mount_path: /
      fs_type: btrfs
      fs_types: [btrfs, ext4]
      min_size: 5 GiB
      max_size: unlimited
      snapshots: true
      snapshots_percentage: 250
    - mount_path: swap
      fs_type: swap
      min_size: 1 GiB
      max_size: 2 GiB
      fallback_for_min_size: /
      proposed_configurable: true
"""


class TestProductConfig(unittest.TestCase):
    def test_from_stream(self):
        product = ProductConfig.from_stream(io.StringIO(PRODUCT_YAML))
        self.assertTrue(product.lvm)
        self.assertEqual(EncryptionMethod.LUKS1, product.encryption_method)
        self.assertEqual(PbkdFunction.PBKDF2, product.pbkd_function)
        root, swap = product.volume_templates
        self.assertEqual(FilesystemKind.BTRFS, root.fs_type)
        self.assertEqual(5 * GiB, root.min_size)
        self.assertIsNone(root.max_size)
        self.assertEqual(2 * GiB, swap.max_size)
        self.assertEqual("/", swap.fallback_for_min_size)
        self.assertFalse(swap.mandatory)

    def test_load(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "product.yaml")
            with open(path, "w") as fp:
                fp.write(PRODUCT_YAML)
            product = ProductConfig.load(path)
        self.assertEqual(2, len(product.volume_templates))

    def test_empty(self):
        product = ProductConfig.from_stream(io.StringIO(""))
        self.assertEqual(ProductConfig(), product)

    def test_invalid_yaml(self):
        with self.assertRaises(ProductConfigError):
            ProductConfig.from_stream(io.StringIO("storage: [\n"))

    def test_schema_violation(self):
        with self.assertRaises(ProductConfigError):
            ProductConfig.from_data({"storage": {"volumes": [{"fs_type": "ext4"}]}})

    def test_unsupported_filesystem(self):
        data = {"storage": {"volumes": [{"mount_path": "/", "fs_type": "zfs"}]}}
        with self.assertRaises(ProductConfigError) as cm:
            ProductConfig.from_data(data)
        self.assertIn("zfs", str(cm.exception))

    def test_unsupported_encryption(self):
        with self.assertRaises(ProductConfigError):
            ProductConfig.from_data({"storage": {"encryption": {"method": "rot13"}}})
