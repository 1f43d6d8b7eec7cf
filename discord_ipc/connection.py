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
Byte-stream connections to the Discord client's IPC endpoint.

.. currentmodule:: discord_ipc.connection
"""
import abc
import logging
import sys
from typing import Awaitable, Callable, Iterable

import trio

from discord_ipc.exc import ConnectError, DiscoveryExhausted, FrameError

logger = logging.getLogger("discord_ipc.connection")


class Connection(abc.ABC):
    """
    Represents a single open connection to an IPC endpoint.

    A connection is exclusively owned by one client and is not safe to use from several tasks
    at once.
    """

    def __init__(self, path: str):
        #: The path this connection was opened on.
        self.path = path

        self._closed = False

    @property
    def closed(self) -> bool:
        """
        :return: If this connection has been shut down.
        """
        return self._closed

    @abc.abstractmethod
    async def write_all(self, data: bytes) -> None:
        """
        Writes the entire buffer to the connection.
        """

    @abc.abstractmethod
    async def receive_some(self, max_bytes: int) -> bytes:
        """
        Receives up to ``max_bytes`` bytes. Returns an empty bytestring on EOF.
        """

    async def read_exact(self, size: int) -> bytes:
        """
        Reads exactly ``size`` bytes from the connection.

        :raises FrameError: If the connection hit EOF before enough data was read.
        """
        buf = bytearray()
        while len(buf) < size:
            chunk = await self.receive_some(size - len(buf))
            if not chunk:
                raise FrameError(f"Short read: expected {size} bytes, got {len(buf)}")

            buf += chunk

        return bytes(buf)

    async def flush(self) -> None:
        """
        Flushes any buffered data to the OS.
        """
        await trio.lowlevel.checkpoint()

    @abc.abstractmethod
    async def shutdown(self) -> None:
        """
        Shuts down both directions of this connection and releases it.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} path={self.path!r} closed={self._closed}>"


class UnixConnection(Connection):
    """
    A connection over a Unix domain socket.
    """

    def __init__(self, path: str, stream: trio.SocketStream):
        super().__init__(path)
        self._stream = stream

    async def write_all(self, data: bytes) -> None:
        await self._stream.send_all(data)

    async def receive_some(self, max_bytes: int) -> bytes:
        return await self._stream.receive_some(max_bytes)

    async def shutdown(self) -> None:
        if self._closed:
            return

        self._closed = True
        try:
            self._stream.socket.shutdown(trio.socket.SHUT_RDWR)
        finally:
            await self._stream.aclose()


class PipeConnection(Connection):
    """
    A connection over a Windows named pipe.

    trio has no native named pipe client, so the pipe is opened as an unbuffered file and the
    blocking calls run in worker threads.
    """

    def __init__(self, path: str, file):
        super().__init__(path)
        self._file = file

    @classmethod
    async def open(cls, path: str) -> 'PipeConnection':
        f = await trio.open_file(path, "r+b", buffering=0)
        return cls(path, f)

    async def write_all(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            written = await self._file.write(view)
            view = view[written:]

    async def receive_some(self, max_bytes: int) -> bytes:
        return await self._file.read(max_bytes)

    async def flush(self) -> None:
        await self._file.flush()

    async def shutdown(self) -> None:
        if self._closed:
            return

        self._closed = True
        await self._file.aclose()


async def open_connection(path: str, platform: str = sys.platform) -> Connection:
    """
    Opens a connection to the IPC endpoint at ``path``.

    :raises ConnectError: If the endpoint does not exist or refused the connection.
    """
    try:
        if platform == "win32":
            return await PipeConnection.open(path)

        stream = await trio.open_unix_socket(path)
    except OSError as e:
        raise ConnectError(path, e) from e

    return UnixConnection(path, stream)


async def connect_first(candidates: Iterable[str],
                        connector: Callable[[str], Awaitable[Connection]] = open_connection) \
        -> Connection:
    """
    Connects to the first candidate that accepts a connection. Probing stops as soon as one
    succeeds.

    :param candidates: The ordered candidate paths.
    :param connector: The coroutine function used to open a connection to a path.
    :raises DiscoveryExhausted: If every candidate failed.
    """
    errors = []

    for path in candidates:
        logger.debug(f"Attempting to connect to {path}")
        try:
            connection = await connector(path)
        except ConnectError as e:
            logger.debug(f"Failed to connect to {path}: {e.error}")
            errors.append(e)
            continue

        logger.info(f"Found socket @ {path}")
        return connection

    raise DiscoveryExhausted(errors)
