"""Echo bot for Rocket.Chat.

Logs in with ROCKETCHAT_USER / ROCKETCHAT_PASSWORD, joins a room and echoes
every message it sees back to the room it came from.  The DDP transport is
loaded from a ``module:function`` factory taking ``(host, use_ssl)``.

    pip install rocketchat-driver

    ROCKETCHAT_URL=https://chat.example.com ROCKETCHAT_USER=bot \\
    ROCKETCHAT_PASSWORD=secret \\
        python examples/echo_bot.py --transport mybot.ddp:make_transport --room general
"""

import argparse
import asyncio
import importlib
import logging
import signal

from rocketchat_driver import Credentials, connect


def load_factory(spec: str):
    module_name, _, attr = spec.partition(":")
    return getattr(importlib.import_module(module_name), attr or "make_transport")


async def main(transport_spec: str, room: str):
    stop = asyncio.Event()
    loop = asyncio.get_event_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    async with connect(load_factory(transport_spec)) as driver:
        login = await driver.login(Credentials.from_env())
        bot_id = login.get("id") if isinstance(login, dict) else None
        await driver.join_room(room)
        await driver.subscribe_to_messages()
        print(f"Listening in #{room} (Ctrl+C to stop)\n")

        async def on_message(err, message=None, meta=None):
            if err is not None:
                print(f"[error] {err}")
                return
            if message.get("u", {}).get("_id") == bot_id:
                return
            print(f"[{message['rid']}] {message.get('msg')}")
            await driver.send_message_by_room_id(
                f"echo: {message.get('msg')}", message["rid"]
            )

        driver.react_to_messages(on_message)
        await stop.wait()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rocket.Chat echo bot")
    parser.add_argument(
        "--transport", required=True, help="module:factory building the DDP client"
    )
    parser.add_argument("--room", default="general")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    asyncio.run(main(args.transport, args.room))
