import asyncio
import socket
from typing import Awaitable, Callable, Optional

import pytest
import pytest_asyncio

from utils import Endpoint

Handler = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


def free_port() -> int:
    """Return a local port that nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TargetServer:
    """Local TCP server standing in for the forwarding target."""

    def __init__(self, handler: Optional[Handler] = None):
        self.handler = handler
        self.accepted: asyncio.Queue = asyncio.Queue()
        self.writers: list[asyncio.StreamWriter] = []
        self.server: Optional[asyncio.Server] = None

    async def start(self):
        self.server = await asyncio.start_server(self._handle, "127.0.0.1", 0)

    @property
    def endpoint(self) -> Endpoint:
        assert self.server is not None
        return Endpoint("127.0.0.1", self.server.sockets[0].getsockname()[1])

    async def _handle(self, reader, writer):
        self.writers.append(writer)
        await self.accepted.put((reader, writer))
        if self.handler is not None:
            await self.handler(reader, writer)

    def stop_listening(self):
        assert self.server is not None
        self.server.close()

    def drop_connections(self):
        for writer in self.writers:
            writer.close()
        self.writers.clear()

    async def close(self):
        self.drop_connections()
        if self.server is not None:
            self.server.close()
            try:
                await asyncio.wait_for(self.server.wait_closed(), 2)
            except asyncio.TimeoutError:
                pass


@pytest_asyncio.fixture
async def target():
    server = TargetServer()
    await server.start()
    yield server
    await server.close()


@pytest.fixture
def unreachable() -> Endpoint:
    return Endpoint("127.0.0.1", free_port())


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


async def cancel(task: asyncio.Task):
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
