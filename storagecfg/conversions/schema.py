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

"""JSON schema of the storage section of the wire document.

The schema checks the shape of the document only.  Enumerated values such as
filesystem types are checked by the converters, which report them as
UnsupportedValue.  Unknown keys are allowed everywhere."""

_size_value = {
    "oneOf": [
        {"type": "integer", "minimum": 0},
        {"type": "string", "pattern": r"^\s*\d+(\.\d+)?\s*([KkMmGgTtPp]i?)?[Bb]?\s*$"},
        {"enum": ["unlimited"]},
    ]
}

definitions = {
    "alias": {"type": "string"},
    "sizeValue": _size_value,
    "size": {
        "oneOf": [
            {"$ref": "#/definitions/sizeValue"},
            {
                "type": "array",
                "items": {"$ref": "#/definitions/sizeValue"},
                "minItems": 1,
                "maxItems": 2,
            },
            {
                "type": "object",
                "properties": {
                    "default": {"type": "boolean"},
                    "min": {"$ref": "#/definitions/sizeValue"},
                    "max": {"$ref": "#/definitions/sizeValue"},
                },
            },
        ]
    },
    "search": {
        "oneOf": [
            {"type": "string"},
            {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "optional": {"type": "boolean"},
                    "max": {"type": "integer"},
                },
            },
        ]
    },
    "filesystem": {
        "type": "object",
        "properties": {
            "reuse": {"type": "boolean"},
            "type": {"type": "string"},
            "mountPath": {"type": "string"},
            "btrfs": {
                "type": "object",
                "properties": {"snapshots": {"type": "boolean"}},
            },
        },
    },
    "encryption": {
        "type": "object",
        "properties": {
            "method": {"type": "string"},
            "password": {"type": "string"},
            "pbkdFunction": {"type": "string"},
        },
    },
    "partition": {
        "type": "object",
        "properties": {
            "search": {"$ref": "#/definitions/search"},
            "alias": {"$ref": "#/definitions/alias"},
            "delete": {"type": "boolean"},
            "deleteIfNeeded": {"type": "boolean"},
            "filesystem": {"$ref": "#/definitions/filesystem"},
            "encryption": {"$ref": "#/definitions/encryption"},
            "size": {"$ref": "#/definitions/size"},
        },
    },
    "logicalVolume": {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "alias": {"$ref": "#/definitions/alias"},
            "filesystem": {"$ref": "#/definitions/filesystem"},
            "encryption": {"$ref": "#/definitions/encryption"},
            "size": {"$ref": "#/definitions/size"},
        },
    },
    "drive": {
        "type": "object",
        "properties": {
            "search": {"$ref": "#/definitions/search"},
            "alias": {"$ref": "#/definitions/alias"},
            "ptableType": {"type": "string"},
            "filesystem": {"$ref": "#/definitions/filesystem"},
            "encryption": {"$ref": "#/definitions/encryption"},
            "size": {"$ref": "#/definitions/size"},
            "partitions": {
                "type": "array",
                "items": {"$ref": "#/definitions/partition"},
            },
        },
    },
    "volumeGroup": {
        "type": "object",
        "required": ["name"],
        "properties": {
            "name": {"type": "string"},
            "physicalVolumes": {
                "type": "array",
                "items": {"$ref": "#/definitions/alias"},
            },
            "logicalVolumes": {
                "type": "array",
                "items": {"$ref": "#/definitions/logicalVolume"},
            },
        },
    },
    "boot": {
        "type": "object",
        "properties": {
            "configure": {"type": "boolean"},
            "device": {"$ref": "#/definitions/alias"},
        },
    },
}

STORAGE_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "storage",
    "description": "Storage configuration of the installer",
    "definitions": definitions,
    "type": "object",
    "properties": {
        "boot": {"$ref": "#/definitions/boot"},
        "drives": {"type": "array", "items": {"$ref": "#/definitions/drive"}},
        "volumeGroups": {
            "type": "array",
            "items": {"$ref": "#/definitions/volumeGroup"},
        },
    },
}
