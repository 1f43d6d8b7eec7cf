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
Exceptions raised from within the library.

.. currentmodule:: discord_ipc.exc
"""
from typing import List


class IPCError(Exception):
    """
    The base class for all IPC exceptions.
    """


class ConnectError(IPCError, ConnectionError):
    """
    Raised when a single IPC endpoint could not be connected to.

    This is not fatal on its own; the next candidate endpoint is tried instead.
    """

    def __init__(self, path: str, error: OSError):
        #: The path of the endpoint that failed.
        self.path = path
        #: The underlying error.
        self.error = error

    def __str__(self) -> str:
        return "Could not connect to {}: {}".format(self.path, self.error)

    __repr__ = __str__


class DiscoveryExhausted(IPCError, ConnectionError):
    """
    Raised when no candidate endpoint accepted a connection.

    :ivar errors: The list of :class:`.ConnectError` for every candidate that was tried.
    """

    def __init__(self, errors: List[ConnectError]):
        self.errors = errors

    def __str__(self) -> str:
        return "Couldn't connect to the Discord IPC socket (tried {} endpoints)"\
            .format(len(self.errors))


class NotConnected(IPCError):
    """
    Raised when reading or writing on a client that has no live connection.
    """

    def __str__(self) -> str:
        return "Client not connected"


class FrameError(IPCError):
    """
    Raised when a frame could not be decoded.
    """


class PeerClosed(IPCError):
    """
    Raised when the Discord client closes the connection with a CLOSE frame.
    """

    def __init__(self, code: int = None, message: str = None):
        #: The close code sent by the peer, if any.
        self.code = code
        #: The close message sent by the peer, if any.
        self.message = message

    def __str__(self) -> str:
        return "Connection closed by peer ({}): {}".format(self.code, self.message)
