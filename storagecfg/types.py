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

"""Enumerations and small value types shared by the storage configuration
model, the converters and the checkers."""

import enum
from typing import Optional

import attr


class FilesystemKind(enum.Enum):
    BCACHEFS = "bcachefs"
    BTRFS = "btrfs"
    EXFAT = "exfat"
    EXT2 = "ext2"
    EXT3 = "ext3"
    EXT4 = "ext4"
    F2FS = "f2fs"
    JFS = "jfs"
    NILFS2 = "nilfs2"
    NTFS = "ntfs"
    REISERFS = "reiserfs"
    SWAP = "swap"
    TMPFS = "tmpfs"
    VFAT = "vfat"
    XFS = "xfs"


class EncryptionMethod(enum.Enum):
    LUKS1 = "luks1"
    LUKS2 = "luks2"
    PERVASIVE_ENCRYPTION = "pervasive_encryption"
    TPM_FDE = "tpm_fde"
    PROTECTED_SWAP = "protected_swap"
    SECURE_SWAP = "secure_swap"
    RANDOM_SWAP = "random_swap"

    def requires_password(self) -> bool:
        return self in [
            EncryptionMethod.LUKS1,
            EncryptionMethod.LUKS2,
            EncryptionMethod.PERVASIVE_ENCRYPTION,
        ]


class PbkdFunction(enum.Enum):
    PBKDF2 = "pbkdf2"
    ARGON2I = "argon2i"
    ARGON2ID = "argon2id"


class PtableType(enum.Enum):
    GPT = "gpt"
    MSDOS = "msdos"
    DASD = "dasd"


class SpacePolicy(enum.Enum):
    """How to make room for the new partitions of a drive."""

    DELETE = "delete"
    RESIZE = "resize"
    KEEP = "keep"
    CUSTOM = "custom"


class SpaceAction(enum.Enum):
    FORCE_DELETE = "force_delete"
    RESIZE = "resize"


class DeviceType(enum.Enum):
    PARTITION = "partition"
    LOGICAL_VOLUME = "logical_volume"


class Severity(enum.Enum):
    WARNING = "warning"
    ERROR = "error"


class IssueKind(enum.Enum):
    NO_DEVICE_FOUND = "NoDeviceFound"
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    INCONSISTENT_CONFIG = "InconsistentConfig"
    # conditions the planning engine will silently ignore
    ADVISORY = "Advisory"


@attr.s(auto_attribs=True, frozen=True)
class Issue:
    severity: Severity
    kind: IssueKind
    source: str
    message: str

    @classmethod
    def error(cls, kind: IssueKind, source: str, message: str) -> "Issue":
        return cls(Severity.ERROR, kind, source, message)

    @classmethod
    def warning(cls, source: str, message: str) -> "Issue":
        return cls(Severity.WARNING, IssueKind.ADVISORY, source, message)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


def has_errors(issues) -> bool:
    return any(issue.is_error for issue in issues)


@attr.s(auto_attribs=True, frozen=True, repr=False)
class Secret:
    """A sensitive string, such as an encryption passphrase.

    The wrapped value is only reachable through `reveal()`; every default
    string representation is redacted so it cannot leak into logs."""

    _value: str

    def reveal(self) -> str:
        return self._value

    def __repr__(self):
        return "Secret(<REDACTED>)"

    def __str__(self):
        return "<REDACTED>"

    @classmethod
    def wrap(cls, value: Optional[str]) -> Optional["Secret"]:
        if value is None:
            return None
        if isinstance(value, Secret):
            return value
        return cls(value)


def reveal(secret: Optional[Secret]) -> Optional[str]:
    if secret is None:
        return None
    return secret.reveal()
