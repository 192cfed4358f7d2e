"""
FINS async client used for connection to an Omron PLC.
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial, wraps
from typing import Any, Callable, Coroutine, List, Optional, Sequence, Union

from .client import Client
from .connection import Transport
from .type import BitState, MemoryArea, Parameter

logger = logging.getLogger(__name__)


class ClientAsync(Client):
    """
    Client whose operations also exist as coroutines.

    The blocking calls run on a single worker thread, so requests issued from
    concurrent tasks are still sent one after the other. Cancelling a pending
    coroutine does not stop a request already on the wire: the connection must
    be dropped and reconnected afterwards.
    """

    def __init__(self, transport: Optional[Transport] = None, ping_timeout: int = Parameter.PingTimeout.default):
        super().__init__(transport=transport, ping_timeout=ping_timeout)
        self.executor = ThreadPoolExecutor(max_workers=1)

    def sync_to_async(self, func: Callable[..., Any]) -> Callable[..., Coroutine[Any, Any, Any]]:
        @wraps(func)
        async def wrapper(*args: Any, loop: Optional[asyncio.AbstractEventLoop] = None, **kwargs: Any) -> Any:
            if loop is None:
                loop = asyncio.get_running_loop()
            pfunc = partial(func, *args, **kwargs)
            return await loop.run_in_executor(self.executor, pfunc)

        return wrapper

    def destroy(self) -> None:
        """Disconnect and stop the worker thread."""
        self.disconnect()
        self.executor.shutdown(wait=True)
        logger.debug("async client destroyed")

    async def as_connect(self, address: str, port: Optional[int] = None) -> Client:
        func = self.sync_to_async(self.connect)
        return await func(address, port)

    async def as_disconnect(self) -> None:
        func = self.sync_to_async(self.disconnect)
        return await func()

    async def as_read_bit(self, area: MemoryArea, address: str) -> int:
        func = self.sync_to_async(self.read_bit)
        return await func(area, address)

    async def as_write_bit(self, area: MemoryArea, address: str, state: Union[BitState, bool, int]) -> None:
        func = self.sync_to_async(self.write_bit)
        return await func(area, address, state)

    async def as_read_words(self, area: MemoryArea, address: int, count: int) -> List[int]:
        func = self.sync_to_async(self.read_words)
        return await func(area, address, count)

    async def as_write_words(self, area: MemoryArea, address: int, values: Sequence[int]) -> None:
        func = self.sync_to_async(self.write_words)
        return await func(area, address, values)

    async def as_read_word(self, area: MemoryArea, address: int) -> int:
        func = self.sync_to_async(self.read_word)
        return await func(area, address)

    async def as_write_word(self, area: MemoryArea, address: int, value: int) -> None:
        func = self.sync_to_async(self.write_word)
        return await func(area, address, value)

    async def as_read_real(self, area: MemoryArea, address: int) -> float:
        func = self.sync_to_async(self.read_real)
        return await func(area, address)

    async def as_write_real(self, area: MemoryArea, address: int, value: float) -> None:
        """
        Writes a REAL to two consecutive words asynchronously.

        :param area: memory area
        :param address: first of the two words
        :param value: value to store
        """
        func = self.sync_to_async(self.write_real)
        return await func(area, address, value)
