"""
Tagged result for single-row lookups.

Separates "the row does not exist" from "the read itself failed", so a
transient outage is never mistaken for a missing account.
"""
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    """The lookup matched exactly one row."""
    value: T

    def value_or_none(self) -> Optional[T]:
        return self.value


@dataclass(frozen=True)
class NotFound:
    """The lookup ran and matched nothing."""

    def value_or_none(self) -> None:
        return None


@dataclass(frozen=True)
class LookupFailed:
    """The lookup could not be completed (connection, query or ambiguity error)."""
    cause: BaseException

    def value_or_none(self) -> None:
        return None


LookupResult = Union[Found[T], NotFound, LookupFailed]
