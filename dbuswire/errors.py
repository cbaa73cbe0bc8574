"""Errors raised while marshalling and unmarshalling messages."""

from __future__ import annotations

import enum
from typing import Any, Union

from dbuswire.signature import SignatureError
from dbuswire.validation import ValidationError


def _as_validation(error: Union[ValidationError, SignatureError]) -> ValidationError:
    if isinstance(error, ValidationError):
        return error
    if isinstance(error, SignatureError):
        return ValidationError.from_signature_error(error)
    raise TypeError(f"not a validation error: {error!r}")


class MarshalErrorKind(enum.Enum):
    """The ways marshalling can fail."""

    INVALID_MESSAGE_TYPE = "Tried to marshal a message with the 'invalid' message type"
    EMPTY_UNIX_FD = "Tried to marshal an empty UnixFd"
    DUP_UNIX_FD = "Error while trying to dup a UnixFd: {0}"
    VALIDATION = "Errors occured while validating: {0}"


class MarshalError(Exception):
    """Raised when a value cannot be marshalled into a message."""

    def __init__(self, kind: MarshalErrorKind, detail: Any = None) -> None:
        super().__init__(kind.value.format(detail))
        self.kind = kind
        self.detail = detail

    @classmethod
    def from_validation(
        cls, error: Union[ValidationError, SignatureError]
    ) -> "MarshalError":
        """Wrap a validation or signature error."""
        return cls(MarshalErrorKind.VALIDATION, _as_validation(error))

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, MarshalError)
            and other.kind == self.kind
            and other.detail == self.detail
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.detail))


class UnmarshalErrorKind(enum.Enum):
    """The ways unmarshalling can fail."""

    EMPTY_STRUCT = "Found an empty struct while unmarshalling"
    NOT_ENOUGH_BYTES = "There were not enough bytes in the buffer to unmarshal the value"
    NOT_ENOUGH_BYTES_FOR_COLLECTION = (
        "There were not enough bytes in the buffer to unmarshal the collection"
    )
    NOT_ALL_BYTES_USED = "Unmarshalling a message did not use all bytes in the body"
    INVALID_BYTE_ORDER = "A message indicated an invalid byteorder in the header"
    INVALID_SERIAL = "A message has an invalid (zero) serial in the header"
    INVALID_MESSAGE_TYPE = "A message indicated an invalid message type"
    WRONG_SIGNATURE = "There was a mismatch between expected an encountered signatures"
    VALIDATION = "Error encountered while validating input: {0}"
    INVALID_HEADER_FIELD = "A message contained an invalid header field"
    INVALID_HEADER_FIELDS = "A message contained an invalid header fields"
    UNKNOWN_HEADER_FIELD = "A message contained unknown header fields"
    PADDING_CONTAINED_DATA = (
        "Returned when data is encountered in padding between values. "
        "This is a sign of a corrupted message (or a bug in this library)"
    )
    INVALID_BOOLEAN = "A boolean did contain something other than 0 or 1"
    END_OF_MESSAGE = "No more values can be read from this message"
    NO_SIGNATURE = "A message did not contain a signature for a header field"
    BAD_FD_INDEX = (
        "A unix fd member had an index that is bigger than the size of the "
        "list of unix fds passed along with the message"
    )
    NO_MATCHING_VARIANT_FOUND = (
        "When unmarshalling a Variant and there is not matching variant in the "
        "enum that had the unmarshal impl derived"
    )


class UnmarshalError(Exception):
    """Raised when bytes cannot be unmarshalled into a message or value."""

    def __init__(self, kind: UnmarshalErrorKind, detail: Any = None) -> None:
        super().__init__(kind.value.format(detail))
        self.kind = kind
        self.detail = detail

    @classmethod
    def from_validation(
        cls, error: Union[ValidationError, SignatureError]
    ) -> "UnmarshalError":
        """Wrap a validation or signature error."""
        return cls(UnmarshalErrorKind.VALIDATION, _as_validation(error))

    def is_end_of_message(self) -> bool:
        """True if no more values could be read from the message."""
        return self.kind is UnmarshalErrorKind.END_OF_MESSAGE

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, UnmarshalError)
            and other.kind == self.kind
            and other.detail == self.detail
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.detail))