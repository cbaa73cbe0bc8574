"""Signature buffers and marshalling of values as self-describing variants."""

from __future__ import annotations

from dbuswire.errors import MarshalError
from dbuswire.marshal import MarshalContext, marshal_base_param, marshal_param
from dbuswire.params import Base, Param
from dbuswire.signature import (
    MAX_SIGNATURE_LENGTH,
    BaseType,
    SignatureError,
    SignatureErrorKind,
)
from dbuswire.validation import validate_signature


class SignatureBuffer:
    """A growable signature string."""

    def __init__(self, sig: str = "") -> None:
        self._sig = sig

    def push_str(self, sig: str) -> None:
        """Append ``sig`` to the signature."""
        self._sig += sig

    def clear(self) -> None:
        """Empty the signature."""
        self._sig = ""

    def truncate(self, new_len: int) -> None:
        """Cut the signature to ``new_len`` characters, which must stay valid."""
        head = self._sig[:new_len]
        if new_len > 0:
            validate_signature(head)
        self._sig = head

    def as_str(self) -> str:
        return self._sig

    def __str__(self) -> str:
        return self._sig

    def __len__(self) -> int:
        return len(self._sig.encode("utf-8"))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SignatureBuffer):
            return other._sig == self._sig
        if isinstance(other, str):
            return other == self._sig
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._sig)

    def __repr__(self) -> str:
        return f"SignatureBuffer({self._sig!r})"


def marshal_as_variant(param: Param, ctx: MarshalContext) -> None:
    """Append ``param`` preceded by its own signature, as a variant is sent."""
    sig = SignatureBuffer()
    sig.push_str(param.make_signature())
    if len(sig) > MAX_SIGNATURE_LENGTH:
        raise MarshalError.from_validation(
            SignatureError(SignatureErrorKind.SIGNATURE_TOO_LONG)
        )
    marshal_base_param(Base(BaseType.SIGNATURE, sig.as_str()), ctx)
    marshal_param(param, ctx)