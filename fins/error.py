"""
FINS error handling and exception classes.

Maps the head status byte and the (main code, sub code) end code pair of a
FINS response to structured errors with meaningful messages.
"""

from functools import cache
from typing import Dict, NamedTuple, Optional, Tuple

from .type import HeadStatus

# codes used for failures that never reached the PLC
local_error_code = 0xFF

head_status_offset = 11
end_code_offset = 28


class FinsError(NamedTuple):
    """Classification of a FINS status: codes, message and whether reading may continue."""

    main_code: int
    sub_code: int
    description: str
    recoverable: bool = False

    def __str__(self) -> str:
        return f"{self.main_code:02X}-{self.sub_code:02X}: {self.description}"


class FinsException(Exception):
    """Base exception for all FINS protocol errors."""

    def __init__(self, message: str, error: Optional[FinsError] = None):
        super().__init__(message)
        if error is None:
            error = FinsError(local_error_code, local_error_code, message)
        self.error = error

    @property
    def main_code(self) -> int:
        return self.error.main_code

    @property
    def sub_code(self) -> int:
        return self.error.sub_code

    @property
    def description(self) -> str:
        return self.error.description

    @property
    def recoverable(self) -> bool:
        return self.error.recoverable


class FinsConnectionError(FinsException):
    """Raised when probing, opening, writing to or reading from the PLC connection fails."""

    pass


class FinsFramingError(FinsException):
    """Raised when a response is shorter than its frame layout requires."""

    pass


class FinsHandshakeError(FinsException):
    """Raised when the PLC rejects the node address handshake."""

    pass


class FinsHeadError(FinsException):
    """Raised when the PLC rejects a frame at header level."""

    pass


class FinsEndCodeError(FinsException):
    """Raised when the PLC refuses to execute a command."""

    pass


class FinsAddressError(FinsException, ValueError):
    """Raised when an address can't be parsed. Never involves the network."""

    pass


head_errors: Dict[HeadStatus, str] = {
    HeadStatus.INVALID_HEAD: "The header is not 'FINS'.",
    HeadStatus.DATA_LENGTH_TOO_LONG: "The data length is too long.",
    HeadStatus.COMMAND_NOT_SUPPORTED: "The command is not supported.",
    HeadStatus.UNKNOWN: "Unknown head error.",
}

alarm_code = (0x00, 0x40)

end_code_errors: Dict[Tuple[int, int], str] = {
    # normal completion
    (0x00, 0x01): "Service was interrupted.",
    (0x00, 0x40): "Alarm generated in PLC, data can still be read.",
    # local node error
    (0x01, 0x01): "Local node not part of Network.",
    (0x01, 0x02): "Token time-out, node number too large.",
    (0x01, 0x03): "Number of transmit retries exceeded.",
    (0x01, 0x04): "Maximum number of frames exceeded.",
    (0x01, 0x05): "Node number setting error (range).",
    (0x01, 0x06): "Node number duplication error.",
    # destination node error
    (0x02, 0x01): "Destination node not part of Network.",
    (0x02, 0x02): "No node with the specified node number.",
    (0x02, 0x03): "Third node not part of Network. Broadcasting was specified.",
    (0x02, 0x04): "Busy error, destination node busy.",
    (0x02, 0x05): "Response time-out.",
    # communications controller error
    (0x03, 0x01): "Error occurred in the communications controller, ERC indicator is lit.",
    (0x03, 0x02): "CPU error occurred in the PC at the destination node.",
    (0x03, 0x03): "A controller error has prevented a normal response from being returned.",
    (0x03, 0x04): "Node number setting error.",
    # not executable
    (0x04, 0x01): "An undefined command has been used.",
    (0x04, 0x02): "Cannot process command because the specified unit model or version is wrong.",
    # routing error
    (0x05, 0x01): "Destination node number is not set in the routing table.",
    (0x05, 0x02): "Routing table isn't registered.",
    (0x05, 0x03): "Routing table error.",
    (0x05, 0x04): "The maximum number of relay nodes (2) was exceeded in the command.",
    # command format error
    (0x10, 0x01): "The command is longer than the max. permissible length.",
    (0x10, 0x02): "The command is shorter than min. permissible length.",
    (0x10, 0x03): "The designated number of data items differs from the actual number.",
    (0x10, 0x04): "An incorrect command format has been used.",
    (0x10, 0x05): "An incorrect header has been used.",
    # parameter error
    (0x11, 0x01): "A correct memory area code has not been used or Expansion Data Memory is not available.",
    (0x11, 0x02): "The access size specified in the command is wrong, or the first address is an odd number.",
    (0x11, 0x03): "The first address is in an inaccessible area.",
    (0x11, 0x04): "The end of specified word range exceeds the acceptable range.",
    (0x11, 0x06): "A non-existent program no. has been specified.",
    (0x11, 0x09): "The sizes of data items in the command block are wrong.",
    (0x11, 0x0A): "The IOM break function cannot be executed because it is already being executed.",
    (0x11, 0x0B): "The response block is longer than the max. permissible length.",
    (0x11, 0x0C): "An incorrect parameter code has been specified.",
    # read not possible
    (0x20, 0x02): "The data is protected. An attempt was made to download a file that is being uploaded.",
    (0x20, 0x03): "The registered table does not exist or is incorrect. Too many files open.",
    (0x20, 0x04): "The corresponding search data does not exist.",
    (0x20, 0x05): "A non-existing program no. has been specified.",
    (0x20, 0x06): "A non-existing file has been specified.",
    (0x20, 0x07): "A verification error has occurred.",
    # write not possible
    (0x21, 0x01): "The specified area is read-only or is write-protected.",
    (0x21, 0x02): "The data is protected. An attempt was made to simultaneously download and upload a file.",
    (0x21, 0x03): "The number of files exceeds the maximum permissible. Too many files open.",
    (0x21, 0x05): "A non-existing program no. has been specified.",
    (0x21, 0x06): "A non-existent file has been specified.",
    (0x21, 0x07): "The specified file already exists.",
    (0x21, 0x08): "Data cannot be changed.",
    # not executable in current mode
    (0x22, 0x01): "The mode is wrong (executing). Data links are active.",
    (0x22, 0x02): "The mode is wrong (stopped). Data links are active.",
    (0x22, 0x03): "Wrong mode. The PC is in the PROGRAM mode.",
    (0x22, 0x04): "Wrong mode. The PC is in the DEBUG mode.",
    (0x22, 0x05): "Wrong mode. The PC is in the MONITOR mode.",
    (0x22, 0x06): "Wrong mode. The PC is in the RUN mode.",
    (0x22, 0x07): "The specified node is not the control node.",
    (0x22, 0x08): "The mode is wrong and the step cannot be executed.",
    # no unit
    (0x23, 0x01): "A file device does not exist where specified.",
    (0x23, 0x02): "The specified memory does not exist.",
    (0x23, 0x03): "No clock exists.",
    # start/stop not possible
    (0x24, 0x01): "The data link table either hasn't been created or is incorrect.",
    # unit error
    (0x25, 0x02): "Parity/checksum error occurred because of incorrect data.",
    (0x25, 0x03): "I/O setting error (The registered I/O configuration differs from the actual.)",
    (0x25, 0x04): "Too many I/O points.",
    (0x25, 0x05): "CPU bus error (An error occurred during data transfer between the CPU and a CPU Bus Unit.)",
    (0x25, 0x06): "I/O duplication error (A rack number, unit number, or I/O word allocation has been duplicated.)",
    (0x25, 0x07): "I/O bus error (An error occurred during data transfer between the CPU and an I/O Unit.)",
    (0x25, 0x09): "SYSMAC BUS/2 error (An error occurred during SYSMAC BUS/2 data transfer.)",
    (0x25, 0x0A): "Special I/O Unit error (An error occurred during CPU Bus Unit data transfer.)",
    (0x25, 0x0D): "Duplication in SYSMAC BUS word allocation.",
    (0x25, 0x0F): "A memory error has occurred in internal memory, in the Memory Card, or in Expansion DM.",
    (0x25, 0x10): "Terminator not connected in SYSMAC BUS System.",
    # command error
    (0x26, 0x01): "The specified area is not protected.",
    (0x26, 0x02): "An incorrect password has been specified.",
    (0x26, 0x04): "The specified area is protected. Too many commands at destination.",
    (0x26, 0x05): "The service is being executed.",
    (0x26, 0x06): "The service is not being executed.",
    (0x26, 0x07): "Service cannot be executed from local node because the local node is not part of the data link.",
    (0x26, 0x08): "Service cannot be executed because necessary settings haven't been made.",
    (0x26, 0x09): "Service cannot be executed because necessary settings haven't been made in the command data.",
    (0x26, 0x0A): "The specified action or transition number has already been registered.",
    (0x26, 0x0B): "Cannot clear error because the cause of the error still exists.",
    # access right error
    (0x30, 0x01): "The access right is held by another device.",
    # abort
    (0x40, 0x01): "Command was aborted with ABORT command.",
}


@cache
def error_text(main_code: int, sub_code: int) -> str:
    """Returns a textual explanation of a given end code.

    Args:
        main_code: main response code.
        sub_code: sub response code.

    Returns:
        The error message as a string.
    """
    if (main_code, sub_code) == (0x00, 0x00):
        return "Normal completion."
    return end_code_errors.get((main_code, sub_code), "Unknown error.")


def check_head_status(code: int, detail: int = 0) -> Optional[FinsError]:
    """Classify the head status byte of a response.

    Args:
        code: head status byte.
        detail: byte following the head status, reported as sub code.

    Returns:
        None for success, otherwise a fatal :class:`FinsError`.
    """
    if code == HeadStatus.SUCCESS:
        return None
    status = HeadStatus.from_code(code)
    return FinsError(code, detail, f"Head error: {head_errors[status]}")


def check_end_code(main_code: int, sub_code: int) -> Optional[FinsError]:
    """Classify the end code pair of a response.

    Returns:
        None for normal completion, a recoverable :class:`FinsError` for the
        PLC alarm code (00-40), a fatal one for anything else.
    """
    if (main_code, sub_code) == (0x00, 0x00):
        return None
    return FinsError(main_code, sub_code, error_text(main_code, sub_code), (main_code, sub_code) == alarm_code)


def translate(response: bytes) -> Optional[FinsError]:
    """Classify a command response, head status first.

    The end code bytes are only inspected when the head status reports
    success. The caller must make sure the response holds at least the
    30 byte response header.
    """
    head = check_head_status(response[head_status_offset], response[head_status_offset + 1])
    if head is not None:
        return head
    return check_end_code(response[end_code_offset], response[end_code_offset + 1])


def check_response(response: bytes) -> Optional[FinsError]:
    """Check a response. If a fatal status is set, raise an appropriate exception.

    Returns:
        The recoverable :class:`FinsError`, if any.

    Raises:
        FinsHeadError: for a non-zero head status.
        FinsEndCodeError: for a fatal end code.
    """
    error = translate(response)
    if error is None or error.recoverable:
        return error
    if response[head_status_offset] != HeadStatus.SUCCESS:
        raise FinsHeadError(str(error), error)
    raise FinsEndCodeError(str(error), error)
