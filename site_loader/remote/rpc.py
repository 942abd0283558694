# site_loader/remote/rpc.py
"""
RpcReader: read-only JSON-RPC transport (``eth_call``) over aiohttp.
"""
from __future__ import annotations

import asyncio
import itertools
from typing import Any, Dict, Optional, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_loader.config import LoaderConfig, MethodNames
from site_loader.errors import RemoteCallError
from site_loader.logger import logger
from site_loader.remote import abi
from site_loader.remote.models import NodeAddress, SiteDescriptor
from site_loader.utils import from_hex, short_address, to_hex

__all__ = ["RpcReader"]


class RpcReader:
    """Асинхронный JSON-RPC клиент только для чтения узлов."""
    _RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)

    def __init__(
        self,
        endpoint: str,
        *,
        methods: Optional[MethodNames] = None,
        timeout: float = 15.0,
    ) -> None:
        self.endpoint = endpoint
        self.methods = methods or MethodNames()
        self.timeout = timeout
        self.session: Optional[ClientSession] = None
        self._ids = itertools.count(1)

    @classmethod
    def from_config(cls, config: LoaderConfig) -> RpcReader:
        return cls(config.endpoint, methods=config.methods, timeout=config.request_timeout)

    async def __aenter__(self) -> RpcReader:
        self.session = ClientSession(
            timeout=ClientTimeout(total=self.timeout),
            headers={"Content-Type": "application/json"},
            raise_for_status=False,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    # ------------------------------------------------------------------ #
    # Remote capabilities                                                #
    # ------------------------------------------------------------------ #

    async def get_site_info(self, master: NodeAddress) -> SiteDescriptor:
        data = await self.call(master, abi.encode_call(f"{self.methods.site_info}()"))
        root, depth, total = abi.decode_static_tuple(data, ("address", "uint8", "uint256"))
        return SiteDescriptor(root_address=root, depth=depth, total_size=total)

    async def get_chunk_count(self, master: NodeAddress) -> int:
        data = await self.call(master, abi.encode_call(f"{self.methods.chunk_count}()"))
        return abi.decode_uint(data)

    async def resolve_chunk(self, master: NodeAddress, index: int) -> NodeAddress:
        data = await self.call(
            master, abi.encode_call(f"{self.methods.resolve_chunk}(uint256)", [index])
        )
        return abi.decode_address(data)

    async def read(self, address: NodeAddress) -> bytes:
        """Raw ``bytes`` payload of a tree node."""
        data = await self.call(address, abi.encode_call(f"{self.methods.read}()"))
        return abi.decode_bytes(data)

    async def read_text(self, address: NodeAddress) -> bytes:
        """``string`` payload of a flat leaf, re-encoded as UTF-8."""
        data = await self.call(address, abi.encode_call(f"{self.methods.read}()"))
        return abi.decode_string(data).encode("utf-8")

    # ------------------------------------------------------------------ #
    # Transport                                                          #
    # ------------------------------------------------------------------ #

    async def call(self, to: NodeAddress, data: bytes) -> bytes:
        """One ``eth_call``; every failure surfaces as :class:`RemoteCallError`."""
        if not self.session:
            raise RuntimeError("Session not initialized")
        payload: Dict[str, Any] = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": "eth_call",
            "params": [{"to": to_hex(to), "data": to_hex(data)}, "latest"],
        }
        try:
            async with self.session.post(self.endpoint, json=payload) as resp:
                if resp.status in self._RETRY_STATUS:
                    raise RemoteCallError(f"retryable status {resp.status}")
                if resp.status != 200:
                    raise RemoteCallError(f"unexpected status {resp.status}")
                body = await resp.json(content_type=None)
        except (ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise RemoteCallError(f"{type(exc).__name__}: {exc}") from exc

        if not isinstance(body, dict):
            raise RemoteCallError("malformed JSON-RPC response")
        if body.get("error"):
            err = body["error"]
            message = err.get("message", err) if isinstance(err, dict) else err
            raise RemoteCallError(f"rpc error from {short_address(to)}: {message}")
        result = body.get("result")
        if not isinstance(result, str):
            raise RemoteCallError("JSON-RPC response has no result")
        logger.debug("eth_call %s -> %d bytes", short_address(to), (len(result) - 2) // 2)
        try:
            return from_hex(result)
        except ValueError as exc:
            raise RemoteCallError(f"result is not hex: {exc}") from exc
