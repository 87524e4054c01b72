"""
Load states published by the ResourceLoader.

Exactly one state is current at a time. Every transition builds a new
instance; nothing here is mutated after construction.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Tuple, Union


class FailureKind(Enum):
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    STATUS = "status"
    PARSE = "parse"


@dataclass(frozen=True)
class Idle:
    """No request has been issued yet."""
    status: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Loading:
    """A request is in flight."""
    status: ClassVar[str] = "loading"


@dataclass(frozen=True)
class Success:
    """The request returned a non-empty collection.

    `degraded` is set when the items come from the configured fallback
    collection instead of the remote source; `reason` then holds the failure
    that triggered the substitution.
    """
    items: Tuple[Mapping[str, Any], ...]
    total: int
    degraded: bool = False
    reason: Optional[str] = None
    status: ClassVar[str] = "success"

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class Empty:
    """The request succeeded but returned zero items."""
    total: int = 0
    degraded: bool = False
    reason: Optional[str] = None
    status: ClassVar[str] = "empty"


@dataclass(frozen=True)
class Failed:
    message: str
    kind: FailureKind = FailureKind.TRANSPORT
    status_code: Optional[int] = None
    status: ClassVar[str] = "failed"


LoadState = Union[Idle, Loading, Success, Empty, Failed]

TERMINAL_STATES = (Success, Empty, Failed)


def is_terminal(state: LoadState) -> bool:
    """Terminal states wait for the next trigger."""
    return isinstance(state, TERMINAL_STATES)
