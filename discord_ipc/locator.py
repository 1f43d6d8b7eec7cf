# This file is part of discord-ipc.
#
# discord-ipc is free software: you can redistribute it and/or modify
# it under the terms of the GNU Lesser General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# discord-ipc is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Lesser General Public License for more details.
#
# You should have received a copy of the GNU Lesser General Public License
# along with discord-ipc.  If not, see <http://www.gnu.org/licenses/>.

"""
Locates the IPC endpoints exposed by a running Discord client.

.. currentmodule:: discord_ipc.locator
"""
import os
import sys
from typing import List, Mapping

#: The slots that Discord may bind its IPC socket to, in probe order.
IPC_SLOTS = range(10)

#: The namespace Windows named pipes live in.
WINDOWS_PIPE_DIR = "\\\\?\\pipe\\"

#: The environment variables checked for a runtime directory, in order.
RUNTIME_DIR_KEYS = ("XDG_RUNTIME_DIR", "TMPDIR", "TMP", "TEMP")


def get_ipc_base_dir(platform: str = sys.platform, environ: Mapping[str, str] = None) -> str:
    """
    Gets the directory that Discord places its IPC endpoints in.

    :param platform: The platform to resolve for. Defaults to the current one.
    :param environ: The environment to look up runtime directories in.
    """
    if platform == "win32":
        return WINDOWS_PIPE_DIR

    if environ is None:
        environ = os.environ

    for key in RUNTIME_DIR_KEYS:
        value = environ.get(key)
        if value:
            return value

    return "/tmp"


def get_ipc_path(slot: int, base_dir: str = None) -> str:
    """
    Gets the IPC path for the specified slot.
    """
    if base_dir is None:
        base_dir = get_ipc_base_dir()

    name = f"discord-ipc-{slot}"
    # pipe names are not filesystem paths, so don't let os.path mangle them
    if base_dir.endswith(("\\", "/")):
        return base_dir + name

    return os.path.join(base_dir, name)


def get_candidates(base_dir: str = None) -> List[str]:
    """
    Gets the list of candidate IPC paths, in the order they should be tried.

    A new list is built on every call. No check is made that the paths exist; that is left to
    the connection attempt.
    """
    if base_dir is None:
        base_dir = get_ipc_base_dir()

    return [get_ipc_path(slot, base_dir) for slot in IPC_SLOTS]
