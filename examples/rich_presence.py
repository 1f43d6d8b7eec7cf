"""
An example that sets a Rich Presence activity, then clears it on exit.
"""

import logging
import os
import sys
import time

import trio

from discord_ipc import IPCError, open_ipc_client

# The ID of a Discord application. Create one on the developer portal and put its ID here.
CLIENT_ID = "323578534763298816"


async def main():
    # Log everything, including the raw frames going back and forth.
    logging.basicConfig(level=logging.DEBUG)

    # `open_ipc_client` finds the socket, sends the handshake and waits for READY.
    # The client is always closed when the block exits.
    async with open_ipc_client(CLIENT_ID) as ipc:
        activity = {
            "state": "Reading the docs",
            "details": "discord-ipc example",
            "timestamps": {"start": int(time.time())}
        }

        try:
            await ipc.request({
                "cmd": "SET_ACTIVITY",
                "args": {"pid": os.getpid(), "activity": activity}
            })
        except IPCError as e:
            print(f"Discord rejected the activity: {e}", file=sys.stderr)
            return

        # Keep the presence around for a minute.
        await trio.sleep(60)

        # An activity without a body clears it.
        await ipc.request({"cmd": "SET_ACTIVITY", "args": {"pid": os.getpid()}})


if __name__ == "__main__":
    trio.run(main)
