import asyncio

from errors import ProbeConnectError
from logger import logger
from utils import Client, Endpoint, open_client

POLL_INTERVAL = 0.1


class LivenessMonitor:
    """
    Keeps a probe connection to the target open for as long as the process
    runs. The target may close the probe as often as it likes, it is reopened
    right away; failing to open it at all is fatal.

    ``check`` waits on a peek, so an idle probe wakes up only on data,
    end-of-stream or an error. ``interval`` is the pause between peeks once
    data has been seen, since a peeked byte stays buffered and later peeks
    return at once.
    """
    def __init__(
        self,
        target: Endpoint,
        interval: float = POLL_INTERVAL,
    ):
        self.target = target
        self.interval = interval
        self.connects = 0

    def __repr__(self):
        return f'<LivenessMonitor {self.target} connects={self.connects}>'

    async def run(self):
        while True:
            client = await self.connect()
            try:
                while await self.check(client):
                    await asyncio.sleep(self.interval)
            finally:
                await client.close()
            logger.debug(f"Probe connection to {self.target} ended, reconnecting")

    async def connect(self) -> Client:
        try:
            client = await open_client(self.target)
        except OSError as e:
            raise ProbeConnectError(self.target, e) from e
        self.connects += 1
        return client

    async def check(
        self,
        client: Client
    ) -> bool:
        try:
            return len(await client.peek(1)) != 0
        except OSError as e:
            logger.debug(f"Probe connection to {self.target} failed: {e!r}")
            return False


__all__ = ['LivenessMonitor', 'POLL_INTERVAL']
