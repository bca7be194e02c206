import asyncio
from collections import deque
from dataclasses import dataclass
import ipaddress
import socket
from typing import Optional

from errors import StartupConfigError


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int
    ipv6: bool = False

    def __str__(self):
        if self.ipv6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @property
    def family(self) -> socket.AddressFamily:
        return socket.AF_INET6 if self.ipv6 else socket.AF_INET

    @property
    def address(self) -> tuple[str, int]:
        return (self.host, self.port)


def parse_endpoint(
    value: str
) -> Endpoint:
    """
    Parse a textual socket address, ``1.2.3.4:80`` or ``[::1]:80``.
    Host names are rejected, the address has to be usable without resolving.
    """
    text = (value or "").strip()
    if text.startswith("["):
        host, sep, port = text[1:].partition("]:")
        ipv6 = True
    else:
        host, sep, port = text.rpartition(":")
        ipv6 = False
    if not sep or not host:
        raise StartupConfigError(f"invalid socket address {value!r}")
    try:
        if ipv6:
            ipaddress.IPv6Address(host)
        else:
            ipaddress.IPv4Address(host)
    except ValueError:
        raise StartupConfigError(f"invalid IP address in {value!r}")
    if not (port.isascii() and port.isdigit()) or int(port) > 65535:
        raise StartupConfigError(f"invalid port in {value!r}")
    return Endpoint(host, int(port), ipv6)


class Client:
    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        peername: Optional[tuple[str, int]] = None,
    ):
        self._reader = reader
        self._writer = writer
        self._peername = peername
        self._buffers: deque[bytes] = deque()
        self._closed = False

    def __repr__(self):
        return f'<Client {self.peername!r} {self.sockname!r}>'

    @property
    def peername(self) -> tuple[str, int]:
        return self._peername or self._writer.get_extra_info('peername')

    @property
    def sockname(self) -> tuple[str, int]:
        return self._writer.get_extra_info('sockname')

    def feed_reader_data(self, data: bytes):
        self._buffers.appendleft(data)

    async def read(self, n: int) -> bytes:
        if self._buffers:
            data = self._buffers.pop()
            ret, body = data[:n], data[n:]
            if body:
                self._buffers.append(body)
            return ret
        return await self._reader.read(n)

    async def peek(self, n: int = 1) -> bytes:
        # waits like read() but leaves the data for the next read()
        if self._buffers:
            return self._buffers[-1][:n]
        data = await self._reader.read(n)
        if data:
            self.feed_reader_data(data)
        return data

    def write(self, data: bytes):
        self._writer.write(data)

    async def drain(self):
        await self._writer.drain()

    async def close(self, timeout: int = 10):
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await asyncio.wait_for(self._writer.wait_closed(), timeout)
        except (asyncio.TimeoutError, OSError):
            pass

    @property
    def is_closing(self):
        return self._writer.is_closing() or self._closed


async def open_client(
    endpoint: Endpoint,
) -> Client:
    reader, writer = await asyncio.open_connection(
        endpoint.host,
        endpoint.port,
    )
    return Client(reader, writer)


__all__ = ['Endpoint', 'parse_endpoint', 'Client', 'open_client']
