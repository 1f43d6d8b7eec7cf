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
discord-ipc - An async client for the Discord local IPC (Rich Presence) protocol.

.. currentmodule:: discord_ipc

.. autosummary::
    :toctree:

    client
    connection
    exc
    locator
    packet
"""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("discord-ipc")
except PackageNotFoundError:
    __version__ = "0.0.0"


from discord_ipc.client import ClientState, IPCClient, get_nonce, open_ipc_client
from discord_ipc.connection import Connection, PipeConnection, UnixConnection, connect_first, \
    open_connection
from discord_ipc.exc import ConnectError, DiscoveryExhausted, FrameError, IPCError, \
    NotConnected, PeerClosed
from discord_ipc.locator import get_candidates, get_ipc_base_dir, get_ipc_path
from discord_ipc.packet import IPCOpcode, IPCPacket, decode_frame, decode_header, encode_frame, \
    read_frame, read_packet, write_frame, write_packet
