"""
The :code:`__main__` module is used as an entrypoint when calling the module from the terminal using python -m flag.
It contains a command line interface to read and write PLC memory areas.

Its :code:`main()` function is also exported as a console entrypoint.
"""

import logging
from typing import Iterator, Tuple
from contextlib import contextmanager

try:
    import click
except ImportError as e:
    print(e)
    print("Try using 'pip install python-fins[cli]'")
    exit()

from fins import __version__
from fins.client import Client
from fins.error import FinsException
from fins.type import BitState, MemoryArea, Parameter, fins_port

logger = logging.getLogger("fins.cli")

area_choice = click.Choice([area.name for area in MemoryArea], case_sensitive=False)


@contextmanager
def connected(ctx: click.Context, host: str) -> Iterator[Client]:
    client = Client(ping_timeout=ctx.obj["timeout"])
    try:
        client.connect(host, ctx.obj["port"])
        yield client
    except FinsException as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e
    finally:
        client.disconnect()


@click.group()
@click.option("-p", "--port", default=fins_port, show_default=True, help="FINS/TCP port of the PLC.")
@click.option(
    "-t", "--timeout", default=Parameter.PingTimeout.default, show_default=True, help="Reachability probe timeout in ms."
)
@click.option("-v", "--verbose", is_flag=True, help="Also print debug-output.")
@click.version_option(__version__)
@click.help_option("-h", "--help")
@click.pass_context
def main(ctx: click.Context, port: int, timeout: int, verbose: bool) -> None:
    """Read and write the memory areas of an Omron PLC over FINS/TCP."""

    # setup logging
    if verbose:
        logging.basicConfig(format="[%(levelname)s]: %(message)s", level=logging.DEBUG)
    else:
        logging.basicConfig(format="[%(levelname)s]: %(message)s", level=logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["port"] = port
    ctx.obj["timeout"] = timeout


@main.command("read-bit")
@click.argument("host")
@click.argument("area", type=area_choice)
@click.argument("address")
@click.pass_context
def read_bit(ctx: click.Context, host: str, area: str, address: str) -> None:
    """Read bit ADDRESS ("word.bit") of AREA."""
    with connected(ctx, host) as client:
        click.echo(client.read_bit(MemoryArea[area.upper()], address))


@main.command("write-bit")
@click.argument("host")
@click.argument("area", type=area_choice)
@click.argument("address")
@click.argument("state", type=click.Choice(["on", "off", "1", "0"], case_sensitive=False))
@click.pass_context
def write_bit(ctx: click.Context, host: str, area: str, address: str, state: str) -> None:
    """Set or reset bit ADDRESS ("word.bit") of AREA."""
    bit_state = BitState.ON if state.lower() in ("on", "1") else BitState.OFF
    with connected(ctx, host) as client:
        client.write_bit(MemoryArea[area.upper()], address, bit_state)


@main.command("read-words")
@click.argument("host")
@click.argument("area", type=area_choice)
@click.argument("address", type=click.IntRange(0, 0xFFFF))
@click.option("-c", "--count", default=1, show_default=True, type=click.IntRange(1, 0xFFFF))
@click.pass_context
def read_words(ctx: click.Context, host: str, area: str, address: int, count: int) -> None:
    """Read COUNT words of AREA starting at ADDRESS, one per line."""
    with connected(ctx, host) as client:
        for offset, value in enumerate(client.read_words(MemoryArea[area.upper()], address, count)):
            click.echo(f"{address + offset}: {value}")


@main.command("write-words", context_settings={"ignore_unknown_options": True})
@click.argument("host")
@click.argument("area", type=area_choice)
@click.argument("address", type=click.IntRange(0, 0xFFFF))
@click.argument("values", nargs=-1, required=True, type=click.IntRange(-0x8000, 0x7FFF))
@click.pass_context
def write_words(ctx: click.Context, host: str, area: str, address: int, values: Tuple[int, ...]) -> None:
    """Write VALUES to consecutive words of AREA starting at ADDRESS."""
    with connected(ctx, host) as client:
        client.write_words(MemoryArea[area.upper()], address, list(values))


@main.command("read-real")
@click.argument("host")
@click.argument("area", type=area_choice)
@click.argument("address", type=click.IntRange(0, 0xFFFF))
@click.pass_context
def read_real(ctx: click.Context, host: str, area: str, address: int) -> None:
    """Read the REAL stored at ADDRESS and ADDRESS+1 of AREA."""
    with connected(ctx, host) as client:
        click.echo(client.read_real(MemoryArea[area.upper()], address))


@main.command("write-real", context_settings={"ignore_unknown_options": True})
@click.argument("host")
@click.argument("area", type=area_choice)
@click.argument("address", type=click.IntRange(0, 0xFFFF))
@click.argument("value", type=float)
@click.pass_context
def write_real(ctx: click.Context, host: str, area: str, address: int, value: float) -> None:
    """Write VALUE as REAL to ADDRESS and ADDRESS+1 of AREA."""
    with connected(ctx, host) as client:
        client.write_real(MemoryArea[area.upper()], address, value)


if __name__ == "__main__":
    main()
