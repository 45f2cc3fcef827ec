"""Tagged success/failure results returned by the repository.

Expected failure modes (missing keys, store faults) are returned as a
:class:`Failure` instead of being raised, so each call site handles both
variants explicitly::

    match await repository.get(key):
        case Success(value=picture):
            ...
        case Failure(error=err):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Generic, NoReturn, TypeVar, Union

if TYPE_CHECKING:
    from pygeocam.exceptions import GeoCamError

T = TypeVar("T")


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    STORE_ERROR = "store_error"
    ILLEGAL_STATE = "illegal_state"


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T

    @property
    def succeeded(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Failure:
    """Failed outcome carrying the classified error."""

    error: GeoCamError

    @property
    def succeeded(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    def unwrap(self) -> NoReturn:
        raise self.error


Result = Union[Success[T], Failure]
