import asyncio
import json


class FakeWebSocket:
    """Records what the server sends; `receive` waits for `push`."""

    def __init__(self, fail: bool = False):
        self.accepted = False
        self.sent = []
        self.fail = fail
        self._incoming = None

    async def accept(self):
        self.accepted = True

    async def send_text(self, data: str):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def push(self, message: dict):
        self._queue().put_nowait(message)

    async def receive(self) -> dict:
        return await self._queue().get()

    def _queue(self) -> asyncio.Queue:
        if self._incoming is None:
            self._incoming = asyncio.Queue()
        return self._incoming

    def json_messages(self):
        return [json.loads(data) for data in self.sent]

    def types(self):
        return [message["type"] for message in self.json_messages()]


def frame(**message) -> str:
    return json.dumps(message)
