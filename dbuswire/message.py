"""Messages whose body is held as a list of parameters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List

from dbuswire.params import Param, to_param
from dbuswire.signature import SignatureType
from dbuswire.wire import DynamicHeader, MessageType


@dataclass
class Message:
    """A fully unmarshalled message: header data plus parameter body."""

    typ: MessageType = MessageType.INVALID
    flags: int = 0
    dynheader: DynamicHeader = field(default_factory=DynamicHeader)
    params: List[Param] = field(default_factory=list)
    raw_fds: List[int] = field(default_factory=list)

    def push_param(self, param: Any) -> None:
        """Append one value to the body."""
        self.params.append(to_param(param))

    def push_params(self, params: Iterable[Any]) -> None:
        """Append several values to the body, in order."""
        self.params.extend(to_param(p) for p in params)

    def sig(self) -> List[SignatureType]:
        """The types of the body parameters."""
        return [p.sig() for p in self.params]

    def signature_string(self) -> str:
        """The body signature as a string."""
        return "".join(p.make_signature() for p in self.params)