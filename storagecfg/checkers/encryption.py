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

from typing import List, Optional

from storagecfg.checkers.base import Checker
from storagecfg.models.config import Encryption
from storagecfg.types import Issue, IssueKind


class EncryptionChecker(Checker):
    def __init__(self, encryption: Optional[Encryption], source: str):
        super().__init__(source)
        self.encryption = encryption

    def check(self) -> List[Issue]:
        encryption = self.encryption
        if encryption is None:
            return []
        method = encryption.method.value
        if encryption.method.requires_password():
            if encryption.password is None:
                return [
                    self.error(
                        IssueKind.MISSING_REQUIRED_FIELD,
                        f"No passphrase provided for {method} encryption",
                    )
                ]
        elif encryption.password is not None:
            return [self.warning(f"The passphrase is not used by {method} encryption")]
        return []
