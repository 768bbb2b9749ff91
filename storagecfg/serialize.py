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

"""Conversion between attrs classes and JSON-compatible values.

The UI model and the device inventory are plain attrs classes; a Serializer
walks their type annotations to turn them into dicts, lists and scalars and
back.  Enums travel by value, `named_field` renames a field on the wire and
Secrets are refused in both directions so that a password can never end up
in a document produced here."""

import enum
import inspect
import json
import typing

import attr

from storagecfg.errors import StorageConfigError
from storagecfg.types import Secret

NoneType = type(None)

# Annotations whose values are passed through after a type check
_PLAIN_TYPES = (int, float, str, bool, list, dict, NoneType)


def named_field(name, default=attr.NOTHING, **kw):
    return attr.ib(metadata={"name": name}, default=default, **kw)


def _wire_name(field) -> str:
    return field.metadata.get("name", field.name)


class SerializationError(StorageConfigError):
    def __init__(self, obj, path, message):
        self.obj = obj
        self.path = path
        self.message = message
        super().__init__(str(self))

    def __str__(self):
        return "converting {}: at {}, {}".format(
            type(self.obj).__name__, self.path or "top-level", self.message
        )


@attr.s(auto_attribs=True, frozen=True)
class _Cursor:
    root: typing.Any
    value: typing.Any
    path: str = ""
    dumping: bool = True

    def at(self, path, value) -> "_Cursor":
        return attr.evolve(self, path=self.path + path, value=value)

    def fail(self, message):
        raise SerializationError(self.root, self.path, message)

    def expect(self, typ):
        if type(self.value) is not typ:
            self.fail("{!r} is not a {}".format(self.value, typ.__name__))


class Serializer:
    def __init__(self, *, ignore_unknown_fields=False, omit_none=False):
        self.ignore_unknown_fields = ignore_unknown_fields
        self.omit_none = omit_none

    def serialize(self, annotation, value):
        return self._walk(annotation, _Cursor(value, value, dumping=True))

    def deserialize(self, annotation, value):
        return self._walk(annotation, _Cursor(value, value, dumping=False))

    def to_json(self, annotation, value) -> str:
        return json.dumps(self.serialize(annotation, value))

    def from_json(self, annotation, text: str):
        return self.deserialize(annotation, json.loads(text))

    def _walk(self, annotation, cursor: _Cursor):
        if annotation is None:
            annotation = NoneType
        if annotation is typing.Any or annotation is inspect.Signature.empty:
            return cursor.value
        if annotation is Secret:
            cursor.fail("secrets are never serialized")
        if annotation in _PLAIN_TYPES:
            # ints are fine where a float is expected
            if not (annotation is float and type(cursor.value) is int):
                cursor.expect(annotation)
            return cursor.value
        if attr.has(annotation):
            if cursor.dumping:
                return self._dump_attrs(annotation, cursor)
            return self._load_attrs(annotation, cursor)
        if isinstance(annotation, type) and issubclass(annotation, enum.Enum):
            return self._enum(annotation, cursor)
        origin = getattr(annotation, "__origin__", None)
        args = getattr(annotation, "__args__", ())
        if origin is typing.Union:
            return self._optional(args, cursor)
        if origin is list:
            cursor.expect(list)
            return [
                self._walk(args[0], cursor.at(f"[{i}]", v))
                for i, v in enumerate(cursor.value)
            ]
        if origin is dict:
            cursor.expect(dict)
            return {
                self._walk(args[0], cursor.at(f"/{k}", k)): self._walk(
                    args[1], cursor.at(f"[{k!r}]", v)
                )
                for k, v in cursor.value.items()
            }
        cursor.fail(f"do not know how to handle {annotation}")

    def _optional(self, args, cursor: _Cursor):
        others = [a for a in args if a is not NoneType]
        if len(others) != 1 or len(args) != 2:
            cursor.fail(f"only Optional unions are supported, not Union{list(args)}")
        if cursor.value is None:
            return None
        return self._walk(others[0], cursor)

    def _enum(self, annotation, cursor: _Cursor):
        if cursor.dumping:
            if not isinstance(cursor.value, annotation):
                cursor.fail(f"{cursor.value!r} is not a {annotation.__name__}")
            return cursor.value.value
        try:
            return annotation(cursor.value)
        except ValueError:
            cursor.fail(f"{cursor.value!r} is not a valid {annotation.__name__}")

    def _dump_attrs(self, annotation, cursor: _Cursor):
        r = {}
        for field in attr.fields(annotation):
            value = getattr(cursor.value, field.name)
            if value is None and self.omit_none:
                continue
            r[_wire_name(field)] = self._walk(
                field.type, cursor.at(f".{field.name}", value)
            )
        return r

    def _load_attrs(self, annotation, cursor: _Cursor):
        cursor.expect(dict)
        by_wire_name = {_wire_name(f): f for f in attr.fields(annotation)}
        kw = {}
        for key, value in cursor.value.items():
            field = by_wire_name.get(key)
            if field is None:
                if self.ignore_unknown_fields:
                    continue
                cursor.fail(f"unknown field {key!r}")
            # attrs drops the leading underscore of private attributes from
            # the __init__ argument names
            kw[field.name.lstrip("_")] = self._walk(
                field.type, cursor.at(f"[{key!r}]", value)
            )
        try:
            return annotation(**kw)
        except TypeError as e:
            cursor.fail(str(e))


# The UI model and the inventory come from other components, which may know
# about fields this version does not.
_serializer = Serializer(ignore_unknown_fields=True, omit_none=True)
serialize = _serializer.serialize
deserialize = _serializer.deserialize
