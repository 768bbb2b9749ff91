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

"""Validate a storage configuration document.

The document is read as YAML (JSON is accepted too) and converted into a
storage config, which is then checked.  The issues found are printed one per
line.  Example:

    storage:
      drives:
        - search: /dev/vda
          partitions:
            - filesystem:
                type: btrfs
                mountPath: /

Pass --section '' to validate a document that is the storage section itself.
"""

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

import yaml

from storagecfg.checkers import check_config
from storagecfg.common.search import ConfigSearchSolver
from storagecfg.conversions.from_schema import config_from_json
from storagecfg.errors import StorageConfigError
from storagecfg.log import setup_logger
from storagecfg.models.devices import DeviceInventory
from storagecfg.types import Issue, has_errors

log = logging.getLogger("storagecfg.cmd.validate")

EXIT_ISSUES = 1
EXIT_INVALID = 2


def extract_section(data: Any, section: str) -> Any:
    if not section:
        return data
    if not isinstance(data, dict) or section not in data:
        raise StorageConfigError(f"could not find top level {section!r} key")
    return data[section]


def format_issue(issue: Issue) -> str:
    return f"{issue.severity.value}: {issue.source}: {issue.message}"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="storagecfg-validate",
        description=__doc__,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Path to the document instead of stdin",
        type=argparse.FileType("r"),
        default="-",
    )
    parser.add_argument(
        "--section",
        help="Top level key holding the storage section",
        default="storage",
    )
    parser.add_argument(
        "--inventory",
        help="Path to a JSON list of devices to resolve the searches against",
        type=argparse.FileType("r"),
    )
    parser.add_argument(
        "--log-dir",
        help="Directory to write the info and debug logs to",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.log_dir is not None:
        setup_logger(args.log_dir, base="storagecfg-validate")
    log.debug("validating %s", args.input.name)

    try:
        doc = extract_section(yaml.safe_load(args.input.read()), args.section)
        config = config_from_json(doc)
    except (yaml.YAMLError, StorageConfigError) as e:
        print(f"invalid storage document: {e}", file=sys.stderr)
        return EXIT_INVALID

    inventory = None
    if args.inventory is not None:
        try:
            inventory = DeviceInventory.from_json(json.load(args.inventory))
        except (ValueError, StorageConfigError) as e:
            print(f"invalid inventory: {e}", file=sys.stderr)
            return EXIT_INVALID

    issues = check_config(config)
    if inventory is not None:
        issues.extend(ConfigSearchSolver(inventory).solve(config).issues)

    log.info("%s: %d issue(s)", args.input.name, len(issues))
    for issue in issues:
        print(format_issue(issue))
    if has_errors(issues):
        return EXIT_ISSUES
    return 0


if __name__ == "__main__":
    sys.exit(main())
