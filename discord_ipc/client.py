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
The client for an IPC connection.

.. currentmodule:: discord_ipc.client
"""
import copy
import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

import trio
from async_generator import asynccontextmanager

from discord_ipc.connection import Connection, connect_first, open_connection
from discord_ipc.exc import IPCError, NotConnected, PeerClosed
from discord_ipc.locator import get_candidates
from discord_ipc.packet import IPCOpcode, IPCPacket, MAX_PAYLOAD_SIZE, pack_json, parse_payload, \
    read_frame, write_frame

logger = logging.getLogger("discord_ipc.client")

#: Errors that can come out of the transport once a connection is established.
TRANSPORT_ERRORS = (OSError, trio.BrokenResourceError, trio.ClosedResourceError)


def get_nonce() -> str:
    """
    Gets a random nonce.
    """
    return str(uuid.uuid4())


class ClientState(enum.Enum):
    """
    The lifecycle states of an :class:`.IPCClient`.
    """
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


@dataclass
class _SharedState:
    """
    The state shared between every alias of one client.
    """

    client_id: str
    access_token: str
    state: ClientState = ClientState.UNINITIALIZED
    connection: Optional[Connection] = None


class IPCClient(object):
    """
    Represents an IPC (interprocess communication) client. This connects to the Discord client on
    the IPC socket.

    To use, create and connect a new instance with your app's client ID:

    .. code-block:: python3

        ipc = await IPCClient.create("323578534763298816")
        await ipc.handshake()

    Or let a context manager do the handshake and clean up afterwards:

    .. code-block:: python3

        async with open_ipc_client("323578534763298816") as ipc:
            await ipc.request({"cmd": "SET_ACTIVITY", "args": {...}})

    A client is not safe to use from more than one task at a time. Deadlines and cancellation
    are up to the caller, e.g. with :func:`trio.fail_after`; a client that was cancelled in the
    middle of an operation should be closed and discarded.
    """
    VERSION = 1

    def __init__(self, client_id: Union[str, int], access_token: str = "", *,
                 base_dir: str = None,
                 max_payload_size: int = MAX_PAYLOAD_SIZE,
                 connector: Callable[[str], Awaitable[Connection]] = open_connection):
        """
        :param client_id: The client ID to authenticate with.
        :param access_token: The OAuth2 access token, if any. Not used by the transport itself.
        :param base_dir: The directory to look for IPC endpoints in. Resolved from the platform
            if not provided.
        :param max_payload_size: The largest payload that will be accepted from the peer.
        :param connector: The coroutine function used to open a connection to an endpoint.
        """
        self._state = _SharedState(client_id=str(client_id), access_token=access_token)

        self.base_dir = base_dir
        self.max_payload_size = max_payload_size
        self._connector = connector

    @classmethod
    async def create(cls, client_id: Union[str, int], access_token: str = "",
                     **kwargs) -> 'IPCClient':
        """
        Creates a new client and connects it to the IPC socket.

        :raises DiscoveryExhausted: If no IPC endpoint could be connected to.
        """
        client = cls(client_id, access_token, **kwargs)
        await client.connect_ipc()
        return client

    # properties
    @property
    def client_id(self) -> str:
        return self._state.client_id

    @property
    def access_token(self) -> str:
        return self._state.access_token

    @property
    def state(self) -> ClientState:
        """
        :return: The current :class:`.ClientState` of this client.
        """
        return self._state.state

    @property
    def connected(self) -> bool:
        """
        :return: If this client has a connection that has not been shut down.
        """
        connection = self._state.connection
        return connection is not None and not connection.closed

    @property
    def connection(self) -> Optional[Connection]:
        """
        :return: The underlying :class:`.Connection`, if any.
        """
        return self._state.connection

    def get_client_id(self) -> str:
        """
        :return: The client ID of this client.
        """
        return self._state.client_id

    def get_access_token(self) -> str:
        """
        :return: The access token of this client.
        """
        return self._state.access_token

    def get_client_instance(self) -> 'IPCClient':
        """
        Gets another handle to this client.

        The returned client shares the same connection and state; closing either one closes
        both. Access through the handles must still be serialized by the caller.
        """
        return copy.copy(self)

    def _require_connection(self) -> Connection:
        if not self.connected:
            raise NotConnected()

        return self._state.connection

    # Connection methods
    async def connect_ipc(self) -> None:
        """
        Connects to the first IPC endpoint that accepts a connection.

        Each candidate endpoint is tried once, in order.

        :raises DiscoveryExhausted: If no endpoint accepted a connection.
        """
        if self._state.state == ClientState.CLOSED:
            raise IPCError("This client has been closed and cannot be reused")

        if self.connected:
            return

        self._state.state = ClientState.CONNECTING
        try:
            connection = await connect_first(get_candidates(self.base_dir), self._connector)
        except BaseException:
            self._state.state = ClientState.UNINITIALIZED
            raise

        self._state.connection = connection
        self._state.state = ClientState.CONNECTED

    async def handshake(self) -> None:
        """
        Writes an IPC handshake. The READY reply is not waited for; see :meth:`.wait_for_ready`.
        """
        data = {
            "v": IPCClient.VERSION,
            "client_id": self.client_id
        }

        await self.send(data, IPCOpcode.HANDSHAKE)

    async def connect(self) -> None:
        """
        Connects to the IPC socket and sends the handshake.
        """
        await self.connect_ipc()
        await self.handshake()

    async def wait_for_ready(self) -> IPCPacket:
        """
        Reads the reply to the handshake.

        :raises PeerClosed: If Discord rejected the handshake.
        :raises IPCError: If the reply was not a READY event.
        """
        packet = await self.recv()

        if packet.cmd != "DISPATCH" or packet.event != "READY":
            await self.close()
            raise IPCError(f"Didn't receive a READY event: {packet!r}")

        logger.info(f"Received READY for client {self.client_id}")
        return packet

    async def open(self) -> 'IPCClient':
        """
        Opens this IPC socket, performing the full handshake.
        """
        await self.connect()
        await self.wait_for_ready()
        return self

    # Raw I/O
    async def write(self, data: bytes) -> None:
        """
        Writes raw bytes to the connection.

        :raises NotConnected: If this client is not connected.
        """
        connection = self._require_connection()
        await connection.write_all(data)

    async def read(self, size: int) -> bytes:
        """
        Reads exactly ``size`` raw bytes from the connection.

        :raises NotConnected: If this client is not connected.
        """
        connection = self._require_connection()
        return await connection.read_exact(size)

    # Framed I/O
    async def send(self, payload: Union[dict, list, str, bytes],
                   opcode: IPCOpcode = IPCOpcode.FRAME) -> None:
        """
        Sends a single frame.

        :param payload: The payload to send. Dicts and lists are encoded as JSON; strings and
            bytes are assumed to already be JSON.
        :param opcode: The :class:`.IPCOpcode` for the frame.
        """
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        elif not isinstance(payload, (bytes, bytearray)):
            payload = pack_json(payload).encode("utf-8")

        connection = self._require_connection()
        logger.debug(f"Sending {IPCOpcode(opcode).name} frame: {payload!r}")
        await write_frame(connection, opcode, bytes(payload))

    async def recv(self) -> IPCPacket:
        """
        Reads the next packet from the connection.

        PING frames are answered automatically and skipped.

        :raises PeerClosed: If the peer sent a CLOSE frame. The connection is shut down.
        :raises FrameError: If the frame was malformed. The stream is left part way through the
            frame, so the client must be closed and not read from again.
        """
        while True:
            connection = self._require_connection()
            opcode, body = await read_frame(connection, self.max_payload_size)
            logger.debug(f"Received {opcode.name} frame: {body!r}")

            if opcode == IPCOpcode.PING:
                await self.send(body, IPCOpcode.PONG)
                continue

            packet = IPCPacket(opcode, parse_payload(body))

            if opcode == IPCOpcode.CLOSE:
                logger.warning(f"Connection closed by peer: {packet.code} {packet.message}")
                await self._shutdown()
                raise PeerClosed(packet.code, packet.message)

            return packet

    async def request(self, payload: dict) -> IPCPacket:
        """
        Sends a FRAME and waits for the reply with the same nonce.

        A nonce is generated if the payload doesn't have one.

        :raises IPCError: If Discord replied with an ERROR event.
        """
        payload = dict(payload)
        nonce = payload.setdefault("nonce", get_nonce())
        await self.send(payload)

        while True:
            response = await self.recv()
            if response.nonce == nonce:
                break

            logger.warning(f"Received unexpected reply: {response!r}")

        if response.event == "ERROR":
            data = response.data
            if isinstance(data, dict):
                raise IPCError(data.get("message"))

            raise IPCError(data)

        return response

    # Closing
    async def _shutdown(self) -> None:
        connection = self._state.connection
        self._state.connection = None
        self._state.state = ClientState.CLOSED

        if connection is None:
            return

        try:
            await connection.flush()
        except TRANSPORT_ERRORS as e:
            logger.warning(f"Failed to flush {connection.path}: {e}")
        finally:
            try:
                await connection.shutdown()
            except TRANSPORT_ERRORS as e:
                logger.warning(f"Failed to shut down {connection.path}: {e}")

        logger.debug(f"Closed connection to {connection.path}")

    async def close(self) -> None:
        """
        Closes this client.

        A CLOSE frame is sent if possible, but failing to send it does not stop the connection
        from being shut down. Closing an already closed client does nothing.
        """
        if self._state.state == ClientState.CLOSED:
            return

        try:
            if self.connected:
                try:
                    await self.send({}, IPCOpcode.CLOSE)
                except TRANSPORT_ERRORS as e:
                    logger.warning(f"Failed to send CLOSE frame: {e}")
        finally:
            await self._shutdown()

    async def __aenter__(self) -> 'IPCClient':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<IPCClient client_id={self.client_id!r} state={self.state.name}>"


@asynccontextmanager
async def open_ipc_client(client_id: Union[str, int], access_token: str = "", *,
                          handshake: bool = True, **kwargs: Any):
    """
    Opens an :class:`.IPCClient`, and closes it on exit.

    .. code-block:: python3

        async with open_ipc_client("323578534763298816") as ipc:
            ...

    :param handshake: If the handshake should be performed and READY waited for before the
        client is yielded.
    """
    client = IPCClient(client_id, access_token, **kwargs)

    try:
        if handshake:
            await client.open()
        else:
            await client.connect_ipc()

        yield client
    finally:
        await client.close()
