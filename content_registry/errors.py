"""
Error taxonomy for the content registry.

Rule violations are never raised: operations hand back a ``Result`` whose
failure side carries one of the numeric ``ErrorCode`` values below. The codes
are part of the public contract, so 111 stays unused.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCode(IntEnum):
    DUPLICATE_CONTENT = 100
    CONTENT_NOT_FOUND = 101
    NOT_AUTHORIZED = 102
    INVALID_HASH = 103
    INVALID_TITLE = 104
    INVALID_DESCRIPTION = 105
    INVALID_IPFS_LINK = 106
    INVALID_PRICE = 107
    INVALID_ROYALTY = 108
    INVALID_CATEGORY = 109
    INVALID_TAG = 110
    # 111 reserved
    AUTHORITY_NOT_SET = 112


class RegistryError(Exception):
    """Base class for runtime failures that are not registry rule violations."""


class FeeTransferError(RegistryError):
    """The fee could not be moved from the caller to the authority."""


class ClockError(RegistryError):
    """The timestamp source could not produce a block height."""


@dataclass(frozen=True)
class Result(Generic[T]):
    """Tagged outcome of a registry operation: ``ok`` plus value or error code."""

    ok: bool
    value: Optional[T] = None
    code: Optional[ErrorCode] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, code: ErrorCode) -> "Result[T]":
        return cls(ok=False, code=code)

    @property
    def error(self) -> ErrorCode:
        if self.ok:
            raise ValueError("Called error on a successful Result")
        return self.code  # type: ignore[return-value]

    def unwrap(self) -> T:
        if not self.ok:
            raise ValueError(f"Called unwrap on a failed Result (error {self.code!r})")
        return self.value  # type: ignore[return-value]
