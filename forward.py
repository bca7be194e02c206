import asyncio
import os
import socket
from typing import Any, Optional

from errors import BindError, TargetConnectError
from logger import logger
from utils import Client, Endpoint, open_client

BACKLOG = 1024
BUFFER_SIZE = 16384


def format_address(address: Any) -> str:
    if isinstance(address, tuple) and len(address) >= 2:
        host, port = address[0], address[1]
        if ":" in str(host):
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return str(address)


def create_listener(
    endpoint: Endpoint,
    v6_only: bool = False,
    backlog: int = BACKLOG,
) -> socket.socket:
    sock = socket.socket(endpoint.family, socket.SOCK_STREAM)
    try:
        if v6_only:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
        elif os.name == "posix":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(endpoint.address)
        sock.listen(backlog)
        sock.setblocking(False)
    except OSError as e:
        sock.close()
        raise BindError(endpoint, e) from e
    return sock


class Session:
    def __init__(
        self,
        id: int,
        inbound: Client,
        outbound: Client,
    ):
        self.id = id
        self.inbound = inbound
        self.outbound = outbound
        self.peername = inbound.peername
        self.sent = 0
        self.received = 0

    def __repr__(self):
        return f'<Session {self.id} {format_address(self.peername)}>'

    async def close(self):
        await asyncio.gather(
            self.inbound.close(),
            self.outbound.close(),
        )


async def relay(
    session: Session
):
    """
    Copy bytes both ways until either direction hits end-of-stream or fails,
    then close both connections. Errors stay inside the session.
    """
    loop = asyncio.get_running_loop()
    tasks = (
        loop.create_task(_forward(session, session.inbound, session.outbound)),
        loop.create_task(_forward(session, session.outbound, session.inbound)),
    )
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None:
                logger.warning(f"Forward error: {error!r}")
                logger.debug_traceback(f"{session!r} forward error", exc=error)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await session.close()
        logger.debug(f"{session!r} closed, {session.sent} bytes sent, {session.received} bytes received")


async def _forward(
    session: Session,
    from_conn: Client,
    to_conn: Client,
):
    while (data := await from_conn.read(BUFFER_SIZE)):
        to_conn.write(data)
        await to_conn.drain()
        if from_conn is session.inbound:
            session.sent += len(data)
        else:
            session.received += len(data)


class Acceptor:
    def __init__(
        self,
        listen: Endpoint,
        target: Endpoint,
        v6_only: bool = False,
    ):
        self.listen = listen
        self.target = target
        self.v6_only = v6_only
        self._sock: Optional[socket.socket] = None
        self._sessions: set[asyncio.Task] = set()
        self._session_id = 0

    def __repr__(self):
        return f'<Acceptor {self.listen} -> {self.target}>'

    @property
    def sockname(self) -> Optional[tuple[str, int]]:
        if self._sock is None:
            return None
        return self._sock.getsockname()

    @property
    def sessions(self) -> int:
        return len(self._sessions)

    def bind(self):
        if self._sock is not None:
            return
        self._sock = create_listener(self.listen, self.v6_only)
        logger.success(f"Listening on {format_address(self.sockname)}, forwarding to {self.target}")

    def close(self):
        if self._sock is None:
            return
        self._sock.close()
        self._sock = None

    async def accept(self) -> tuple[socket.socket, Any]:
        if self._sock is None:
            self.bind()
        return await asyncio.get_running_loop().sock_accept(self._sock)

    async def run(self):
        self.bind()
        try:
            while True:
                inbound = await self._accept_client()
                if inbound is None:
                    continue
                try:
                    outbound = await open_client(self.target)
                except OSError as e:
                    await inbound.close()
                    raise TargetConnectError(self.target, e) from e
                self._spawn(inbound, outbound)
        finally:
            self.close()

    async def _accept_client(self) -> Optional[Client]:
        try:
            sock, peername = await self.accept()
        except OSError as e:
            logger.warning(f"Accept error: {e!r}")
            return None
        logger.info(f"Accept {format_address(peername)}")
        try:
            reader, writer = await asyncio.open_connection(sock=sock)
        except OSError as e:
            sock.close()
            logger.warning(f"Accept error: {e!r}")
            return None
        return Client(reader, writer, peername=peername)

    def _spawn(
        self,
        inbound: Client,
        outbound: Client,
    ):
        self._session_id += 1
        session = Session(self._session_id, inbound, outbound)
        task = asyncio.get_running_loop().create_task(relay(session))
        self._sessions.add(task)
        task.add_done_callback(self._sessions.discard)


__all__ = ['Acceptor', 'Session', 'relay', 'create_listener', 'format_address']
