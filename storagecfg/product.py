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

"""Storage section of the product configuration.

The product file is YAML; its `storage` section provides the volume
templates and the default encryption and LVM settings:

    storage:
      lvm: false
      encryption:
        method: luks2
        pbkd_function: argon2id
      volumes:
        - mount_path: /
          fs_type: btrfs
          min_size: 5 GiB
          max_size: unlimited
          snapshots: true
        - mount_path: swap
          fs_type: swap
          fallback_for_min_size: /
"""

import logging
from typing import List, Optional

import attr
import jsonschema
import yaml

from storagecfg.errors import ProductConfigError, StorageConfigError
from storagecfg.legacy.volume import VolumeSpec
from storagecfg.types import EncryptionMethod, PbkdFunction

log = logging.getLogger("storagecfg.product")

_size = {"type": ["integer", "string"]}
_fallback = {"type": ["string", "null"]}

# Additional properties are allowed so that a product file can carry the
# settings of other installer components.
PRODUCT_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "product",
    "type": "object",
    "additionalProperties": True,
    "properties": {
        "storage": {
            "type": "object",
            "additionalProperties": True,
            "properties": {
                "lvm": {"type": "boolean"},
                "encryption": {
                    "type": "object",
                    "properties": {
                        "method": {"type": "string"},
                        "pbkd_function": {"type": "string"},
                    },
                },
                "volumes": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["mount_path"],
                        "properties": {
                            "mount_path": {"type": "string"},
                            "fs_type": {"type": "string"},
                            "fs_types": {
                                "type": "array",
                                "items": {"type": "string"},
                            },
                            "min_size": _size,
                            "max_size": _size,
                            "auto_size": {"type": "boolean"},
                            "snapshots": {"type": "boolean"},
                            "snapshots_configurable": {"type": "boolean"},
                            "snapshots_size": _size,
                            "snapshots_percentage": {"type": "integer"},
                            "fallback_for_min_size": _fallback,
                            "fallback_for_max_size": _fallback,
                            "fallback_for_max_size_lvm": _fallback,
                            "proposed": {"type": "boolean"},
                            "proposed_configurable": {"type": "boolean"},
                        },
                    },
                },
            },
        },
    },
}


@attr.s(auto_attribs=True)
class ProductConfig:
    volume_templates: List[VolumeSpec] = attr.Factory(list)
    encryption_method: EncryptionMethod = EncryptionMethod.LUKS2
    pbkd_function: Optional[PbkdFunction] = None
    lvm: bool = False

    @classmethod
    def from_data(cls, data) -> "ProductConfig":
        if data is None:
            data = {}
        try:
            jsonschema.validate(data, PRODUCT_SCHEMA)
        except jsonschema.ValidationError as e:
            log.exception("cannot validate product configuration")
            raise ProductConfigError(f"invalid product configuration: {e.message}")
        storage = data.get("storage", {})
        encryption = storage.get("encryption", {})
        try:
            product = cls(
                volume_templates=[
                    VolumeSpec.from_config_data(v, f"storage.volumes[{i}]")
                    for i, v in enumerate(storage.get("volumes", []))
                ],
                lvm=storage.get("lvm", False),
            )
            if "method" in encryption:
                product.encryption_method = EncryptionMethod(encryption["method"])
            if "pbkd_function" in encryption:
                product.pbkd_function = PbkdFunction(encryption["pbkd_function"])
        except (StorageConfigError, ValueError) as e:
            log.exception("cannot use product configuration")
            raise ProductConfigError(f"invalid product configuration: {e}")
        log.debug(
            "product config with %d volume template(s)", len(product.volume_templates)
        )
        return product

    @classmethod
    def from_stream(cls, stream) -> "ProductConfig":
        try:
            data = yaml.safe_load(stream)
        except yaml.YAMLError as e:
            log.exception("cannot parse product configuration")
            raise ProductConfigError(f"cannot parse product configuration: {e}")
        return cls.from_data(data)

    @classmethod
    def load(cls, path: str) -> "ProductConfig":
        with open(path) as fp:
            return cls.from_stream(fp)
