"""
bytecode_cfg/errors.py
======================

Error types raised by the CFG / dominator pipeline.

Only *structural* problems are raised as exceptions.  Everything else the
pipeline meets (jumps to labels that never appear, code that cannot be
reached from the entry block) is absorbed and shows up only in the shape of
the result: shorter successor lists, self-only dominator sets.

Error hierarchy
---------------
::

    CFGError (base)
    ├── PreconditionError        - the run cannot start
    │   ├── EmptyMethodError     - no executable instruction at all
    │   └── MissingEntryError    - entry method / entry instruction absent
    ├── ListingError             - malformed S-expression listing
    └── InternalError            - should never happen
        └── DominatorConvergenceError

Error codes
-----------
Each error carries a stable code of the form ``CFG-XXXX``:

  - 1000-1999: precondition failures
  - 2000-2999: listing (input) errors
  - 9000-9999: internal errors
"""

from __future__ import annotations

from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    """Stable identifiers for every error the package raises."""

    EMPTY_METHOD = "CFG-1001"
    MISSING_ENTRY = "CFG-1002"
    MISSING_METHOD = "CFG-1003"
    LISTING_SYNTAX = "CFG-2001"
    LISTING_SHAPE = "CFG-2002"
    LISTING_OPERAND = "CFG-2003"
    INTERNAL = "CFG-9000"
    NO_CONVERGENCE = "CFG-9001"

    def __str__(self) -> str:
        return self.value


class CFGError(Exception):
    """Base exception for all bytecode_cfg errors.

    Parameters
    ----------
    message:
        Human-readable description of the failure.
    code:
        One of :class:`ErrorCode`.  Subclasses provide a default.
    hint:
        Optional suggestion shown after the message.
    """

    default_code: ErrorCode = ErrorCode.INTERNAL

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.hint = hint

    def with_hint(self, hint: str) -> "CFGError":
        self.hint = hint
        return self

    def __str__(self) -> str:
        text = f"[{self.code}] {self.message}"
        if self.hint:
            text += f" (hint: {self.hint})"
        return text


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------

class PreconditionError(CFGError):
    """The instruction stream cannot be analysed at all."""

    default_code = ErrorCode.EMPTY_METHOD


class EmptyMethodError(PreconditionError):
    """The method body contains no executable (non-filler) instruction."""

    default_code = ErrorCode.EMPTY_METHOD


class MissingEntryError(PreconditionError):
    """The entry method, or the entry instruction, could not be located."""

    default_code = ErrorCode.MISSING_ENTRY


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

class ListingError(CFGError):
    """An S-expression listing does not describe a valid method body."""

    default_code = ErrorCode.LISTING_SHAPE


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------

class InternalError(CFGError):
    """A bug in the package; never raised for any well-formed input."""

    default_code = ErrorCode.INTERNAL


class DominatorConvergenceError(InternalError):
    """The dominator fixpoint exceeded its pass cap."""

    default_code = ErrorCode.NO_CONVERGENCE
