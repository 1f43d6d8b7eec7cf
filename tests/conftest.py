import json
import os
import socket

import pytest
import trio

from discord_ipc.connection import Connection
from discord_ipc.packet import HEADER, HEADER_SIZE, IPCOpcode, encode_frame, pack_json

CLIENT_ID = "123456789012345678"


async def receive_exactly(stream, size: int):
    buf = bytearray()
    while len(buf) < size:
        chunk = await stream.receive_some(size - len(buf))
        if not chunk:
            return None
        buf += chunk
    return bytes(buf)


class StubDiscord(object):
    """
    A fake Discord client listening on a single IPC socket.

    Replies to handshakes with a READY dispatch, and echoes the command and nonce of every
    FRAME back as an acknowledgement.
    """

    def __init__(self, path: str):
        self.path = path
        self.received = []
        self.connections = 0
        #: Frames sent before the reply to the next FRAME, as (opcode, payload bytes).
        self.preface = []
        #: Replaces the reply to the handshake if set.
        self.handshake_reply = None

    async def serve(self, *, task_status=trio.TASK_STATUS_IGNORED):
        sock = trio.socket.socket(trio.socket.AF_UNIX, trio.socket.SOCK_STREAM)
        await sock.bind(self.path)
        sock.listen(16)
        await trio.serve_listeners(self._handle, [trio.SocketListener(sock)],
                                   task_status=task_status)

    async def _send(self, stream, opcode, data):
        await stream.send_all(encode_frame(opcode, pack_json(data).encode("utf-8")))

    def _reply(self, opcode, data):
        if opcode == IPCOpcode.HANDSHAKE:
            if self.handshake_reply is not None:
                return self.handshake_reply

            return IPCOpcode.FRAME, {
                "cmd": "DISPATCH",
                "evt": "READY",
                "data": {"v": 1, "config": {"api_endpoint": "//discord.com/api"}},
                "nonce": None
            }

        if opcode == IPCOpcode.FRAME:
            evt = "ERROR" if data.get("cmd") == "BROKEN" else None
            return IPCOpcode.FRAME, {
                "cmd": data.get("cmd"),
                "evt": evt,
                "data": {"message": "Unknown command"} if evt else {"ok": True},
                "nonce": data.get("nonce")
            }

        return None

    async def _handle(self, stream):
        self.connections += 1
        async with stream:
            try:
                await self._converse(stream)
            except trio.BrokenResourceError:
                # the client hung up without reading our reply
                pass

    async def _converse(self, stream):
        while True:
            header = await receive_exactly(stream, HEADER_SIZE)
            if header is None:
                return

            opcode, length = HEADER.unpack(header)
            body = await receive_exactly(stream, length)
            data = json.loads(body.decode("utf-8"))
            self.received.append((IPCOpcode(opcode), data))

            if opcode == IPCOpcode.CLOSE:
                return

            if opcode == IPCOpcode.FRAME:
                for pre_opcode, pre_payload in self.preface:
                    await stream.send_all(encode_frame(pre_opcode, pre_payload))
                self.preface = []

            reply = self._reply(opcode, data)
            if reply is not None:
                await self._send(stream, *reply)


class FakeConnection(Connection):
    """
    An in-memory connection. Reads are served from ``incoming``; writes are recorded.
    """

    def __init__(self, path: str = "fake", incoming: bytes = b"", fail_writes: bool = False):
        super().__init__(path)
        self.incoming = bytearray(incoming)
        self.written = bytearray()
        self.fail_writes = fail_writes
        self.shutdown_calls = 0

    async def write_all(self, data: bytes) -> None:
        await trio.lowlevel.checkpoint()
        if self.fail_writes:
            raise trio.BrokenResourceError("peer is gone")
        self.written += data

    async def receive_some(self, max_bytes: int) -> bytes:
        await trio.lowlevel.checkpoint()
        chunk = bytes(self.incoming[:max_bytes])
        del self.incoming[:max_bytes]
        return chunk

    async def shutdown(self) -> None:
        self.shutdown_calls += 1
        self._closed = True


@pytest.fixture
def ipc_dir(tmp_path_factory):
    # unix socket paths are limited to ~108 bytes, so keep this short
    return str(tmp_path_factory.mktemp("ipc"))


@pytest.fixture
async def start_stub(nursery, ipc_dir):
    async def start(slot: int = 0) -> StubDiscord:
        stub = StubDiscord(os.path.join(ipc_dir, f"discord-ipc-{slot}"))
        await nursery.start(stub.serve)
        return stub

    return start


@pytest.fixture
async def stub(start_stub):
    return await start_stub(0)


@pytest.fixture
def refusing_socket(ipc_dir):
    """
    Binds a socket without listening on it, so connections to it are refused.
    """
    created = []

    def bind(slot: int) -> str:
        path = os.path.join(ipc_dir, f"discord-ipc-{slot}")
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.bind(path)
        created.append(sock)
        return path

    yield bind

    for sock in created:
        sock.close()
