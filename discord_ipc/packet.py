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
Represents a Discord IPC packet, and the framing used to put it on the wire.

Each frame is an 8 byte header of two little-endian unsigned 32-bit integers (the opcode and
the payload length in bytes), followed by the UTF-8 JSON payload.

.. currentmodule:: discord_ipc.packet
"""
import enum
import json
import struct
from typing import Any, Tuple, Union

from discord_ipc.connection import Connection
from discord_ipc.exc import FrameError

#: The frame header layout.
HEADER = struct.Struct("<II")
HEADER_SIZE = HEADER.size

#: The default upper bound on a received payload, in bytes.
MAX_PAYLOAD_SIZE = 4 * 1024 * 1024


class IPCOpcode(enum.IntEnum):
    """
    Represents an IPC opcode.
    """
    HANDSHAKE = 0
    FRAME = 1
    CLOSE = 2
    PING = 3
    PONG = 4


def pack_json(data: Any) -> str:
    """
    Packs JSON in a compact representation.

    :param data: The data to pack.
    """
    return json.dumps(data, indent=None, separators=(',', ':'))


def encode_frame(opcode: int, payload: bytes) -> bytes:
    """
    Encodes a single frame.

    :param opcode: The opcode of the frame.
    :param payload: The raw payload bytes.
    """
    return HEADER.pack(int(opcode), len(payload)) + payload


def decode_header(header: bytes, max_length: int = MAX_PAYLOAD_SIZE) -> Tuple[IPCOpcode, int]:
    """
    Decodes a frame header into ``(opcode, length)``.

    :raises FrameError: If the header is malformed, or claims a payload over ``max_length``.
    """
    if len(header) != HEADER_SIZE:
        raise FrameError(f"Got bad IPC header of {len(header)} bytes")

    opcode, length = HEADER.unpack(header)
    try:
        opcode = IPCOpcode(opcode)
    except ValueError:
        raise FrameError(f"Got unknown opcode {opcode}") from None

    if length > max_length:
        raise FrameError(f"Payload length {length} exceeds the maximum of {max_length}")

    return opcode, length


def decode_frame(data: bytes, max_length: int = MAX_PAYLOAD_SIZE) -> Tuple[IPCOpcode, bytes]:
    """
    Decodes a complete frame into ``(opcode, payload)``. The payload is not parsed.
    """
    opcode, length = decode_header(bytes(data[:HEADER_SIZE]), max_length)
    body = bytes(data[HEADER_SIZE:])

    if len(body) != length:
        raise FrameError(f"Got invalid length: header says {length}, body is {len(body)}")

    return opcode, body


def parse_payload(payload: bytes) -> Any:
    """
    Parses a raw payload as UTF-8 JSON.
    """
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise FrameError(f"Got invalid payload: {e}") from e


class IPCPacket(object):
    """
    Represents an IPC packet.
    """

    def __init__(self, opcode: IPCOpcode, data: Any):
        """
        :param opcode: The :class:`.IPCOpcode` for this packet.
        :param data: The JSON-compatible data enclosed in this packet.
        """
        self.opcode = IPCOpcode(opcode)
        self._json_data = data

    def _get(self, key: str):
        if not isinstance(self._json_data, dict):
            return None

        return self._json_data.get(key)

    # properties
    @property
    def json(self) -> Any:
        """
        Gets the full JSON body of this packet.
        """
        return self._json_data

    @property
    def payload(self) -> str:
        """
        Gets the compact JSON text of this packet.
        """
        return pack_json(self._json_data)

    @property
    def event(self) -> str:
        """
        Gets the event for this packet. Received packets only.
        """
        return self._get("evt")

    @property
    def cmd(self) -> str:
        """
        Gets the command for this packet.
        """
        return self._get("cmd")

    @property
    def nonce(self) -> str:
        """
        Gets the nonce for this packet.
        """
        return self._get("nonce")

    @property
    def data(self) -> Any:
        """
        Gets the inner data for this packet.
        """
        return self._get("data")

    @property
    def code(self) -> int:
        """
        Gets the close or error code for this packet, if any.
        """
        return self._get("code")

    @property
    def message(self) -> str:
        """
        Gets the close or error message for this packet, if any.
        """
        return self._get("message")

    def serialize(self) -> bytes:
        """
        Serializes this packet into a series of bytes.
        """
        return encode_frame(self.opcode, self.payload.encode("utf-8"))

    @classmethod
    def deserialize(cls, data: Union[bytes, bytearray], max_length: int = MAX_PAYLOAD_SIZE) \
            -> 'IPCPacket':
        """
        Deserializes a full packet.

        This method is not usually what you want; see :func:`.read_packet`.
        """
        opcode, body = decode_frame(data, max_length)
        return IPCPacket(opcode, parse_payload(body))

    def __eq__(self, other) -> bool:
        if not isinstance(other, IPCPacket):
            return NotImplemented

        return self.opcode == other.opcode and self._json_data == other._json_data

    def __repr__(self) -> str:
        return f"<IPCPacket opcode={self.opcode.name} data={self._json_data!r}>"


async def write_frame(connection: Connection, opcode: int, payload: bytes) -> None:
    """
    Writes a single raw frame to the connection.
    """
    await connection.write_all(encode_frame(opcode, payload))


async def read_frame(connection: Connection, max_length: int = MAX_PAYLOAD_SIZE) \
        -> Tuple[IPCOpcode, bytes]:
    """
    Reads a single raw frame off of the connection, returning ``(opcode, payload)``.

    The length is checked against ``max_length`` before the payload is read.
    """
    header = await connection.read_exact(HEADER_SIZE)
    opcode, length = decode_header(header, max_length)
    body = await connection.read_exact(length)
    return opcode, body


async def write_packet(connection: Connection, packet: IPCPacket) -> None:
    """
    Writes an IPC packet.
    """
    await connection.write_all(packet.serialize())


async def read_packet(connection: Connection, max_length: int = MAX_PAYLOAD_SIZE) -> IPCPacket:
    """
    Reads a packet off of the connection, and deserializes it.
    """
    opcode, body = await read_frame(connection, max_length)
    return IPCPacket(opcode, parse_payload(body))
