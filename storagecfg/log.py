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

"""Logging setup for the command line tools.

Library modules only create their `storagecfg.*` loggers; a tool that wants
the records on disk calls setup_logger() once."""

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"
LOG_PERMS = 0o640
LOG_LEVELS = {"info": logging.INFO, "debug": logging.DEBUG}


def _point_link_at(target, link):
    # a symlink cannot be created over an existing path, so it is made
    # beside the link and renamed into place
    tmp = target + ".link"
    os.symlink(os.path.basename(target), tmp)
    os.rename(tmp, link)


def _file_handler(path, level):
    handler = logging.FileHandler(path)
    os.chmod(path, LOG_PERMS)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def setup_logger(dir, base="storagecfg"):
    """Log to `<base>-info.log` and `<base>-debug.log` in `dir`.

    The files carry the pid as suffix and the names without it link to the
    files of the latest run.  Returns the paths of the files by level."""
    os.makedirs(dir, exist_ok=True)
    root = logging.getLogger("")
    root.setLevel(logging.DEBUG)

    files = {}
    for name, level in LOG_LEVELS.items():
        latest = os.path.join(dir, f"{base}-{name}.log")
        logfile = f"{latest}.{os.getpid()}"
        root.addHandler(_file_handler(logfile, level))
        _point_link_at(logfile, latest)
        files[name] = logfile
    return files
