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

from typing import Any


class StorageConfigError(Exception):
    """Base class for errors that prevent building a storage config."""


class MalformedDocument(StorageConfigError):
    """The wire document does not follow the storage schema."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(str(self))

    def __str__(self):
        p = self.path
        if not p:
            p = "top-level"
        return f"malformed storage document at {p}: {self.message}"


class UnsupportedValue(StorageConfigError):
    """A wire or legacy value does not map to any known variant."""

    def __init__(self, path: str, value: Any, choices=()):
        self.path = path
        self.value = value
        self.choices = list(choices)
        super().__init__(str(self))

    def __str__(self):
        msg = f"unsupported value {self.value!r} at {self.path}"
        if self.choices:
            msg += " (expected one of {})".format(", ".join(self.choices))
        return msg


class ProductConfigError(StorageConfigError):
    """The product configuration file cannot be used."""


class PlanningError(StorageConfigError):
    """The planning engine could not compute a proposal."""
