"""Core wire-level enumerations and the header data carried by a message."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union


class ByteOrder(enum.Enum):
    """Byte order of a message, valued by its marker character in the header."""

    LITTLE_ENDIAN = "l"
    BIG_ENDIAN = "B"


class MessageType(enum.Enum):
    """Kinds of messages, valued by their code in the fixed header."""

    INVALID = 0
    CALL = 1
    REPLY = 2
    ERROR = 3
    SIGNAL = 4


class HeaderFieldCode(enum.Enum):
    """Codes identifying the optional header fields."""

    PATH = 1
    INTERFACE = 2
    MEMBER = 3
    ERROR_NAME = 4
    REPLY_SERIAL = 5
    DESTINATION = 6
    SENDER = 7
    SIGNATURE = 8
    UNIX_FDS = 9


@dataclass(frozen=True)
class HeaderField:
    """One header field a message may or may not carry."""

    code: HeaderFieldCode
    value: Union[str, int]


@dataclass
class DynamicHeader:
    """The variable part of a message header."""

    interface: Optional[str] = None
    member: Optional[str] = None
    object: Optional[str] = None
    destination: Optional[str] = None
    serial: Optional[int] = None
    sender: Optional[str] = None
    signature: Optional[str] = None
    error_name: Optional[str] = None
    response_serial: Optional[int] = None
    num_fds: Optional[int] = None