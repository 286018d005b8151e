"""Tagged results returned across external boundaries.

Store and oracle failures come in many shapes (HTTP status errors, network
errors, SQLAlchemy errors, missing sessions). Adapters normalize them into
``Err(kind, message)`` so callers never have to catch a raw exception.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
	TRANSIENT = "transient"
	PRECONDITION = "precondition"
	RESOLUTION = "resolution"
	NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Ok(Generic[T]):
	value: T

	@property
	def ok(self) -> bool:
		return True


@dataclass(frozen=True)
class Err:
	kind: ErrorKind
	message: str

	@property
	def ok(self) -> bool:
		return False


Result = Union[Ok[T], Err]
