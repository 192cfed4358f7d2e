"""
The python-fins library.

Pure Python implementation of the Omron FINS/TCP protocol for reading and
writing the memory areas of Omron PLCs.
"""

from importlib.metadata import version, PackageNotFoundError

from .client import Client
from .client_async import ClientAsync
from .connection import TCPTransport, Transport
from .error import (
    FinsError,
    FinsException,
    FinsConnectionError,
    FinsFramingError,
    FinsHandshakeError,
    FinsHeadError,
    FinsEndCodeError,
    FinsAddressError,
)
from .type import AccessGranularity, Address, BitState, MemoryArea, NodeIdentity, Parameter

__all__ = [
    "Client",
    "ClientAsync",
    "TCPTransport",
    "Transport",
    "FinsError",
    "FinsException",
    "FinsConnectionError",
    "FinsFramingError",
    "FinsHandshakeError",
    "FinsHeadError",
    "FinsEndCodeError",
    "FinsAddressError",
    "AccessGranularity",
    "Address",
    "BitState",
    "MemoryArea",
    "NodeIdentity",
    "Parameter",
]

try:
    __version__ = version("python-fins")
except PackageNotFoundError:
    __version__ = "0.0rc0"
