"""bytecode_cfg/listing.py – S-expression method listings → Instructions.

Converts the output of ``sexpdata.parse`` (nested Python lists,
:class:`sexpdata.Symbol`, strings, ints) into method bodies made of
:class:`~bytecode_cfg.instructions.Instruction` objects.

This is the decoder side of the pipeline: a textual stand-in for a class
file reader, convenient for tests and hand-written examples.

Surface syntax
--------------
::

    ;; a class groups methods; bare (method ...) forms are accepted too
    (class Demo
      (method main "([Ljava/lang/String;)V"
        (label L0)
        (line 3 L0)          ; filler: line-number marker
        (iload 1)
        (ifeq L1)            ; conditional jump to L1
        (iinc 1 1)
        (label L1)
        (frame same)         ; filler: stack-map frame
        (return)))

Design principles
-----------------
* **Head-symbol dispatch** – top-level forms are dispatched on their head
  symbol to a dedicated ``_parse_<tag>`` helper.
* **Per-method label scope** – every mention of a label name inside one
  method yields the same :class:`Label` object, whether or not a
  ``(label ...)`` marker for it exists.
* **Fail fast** – malformed shapes raise :class:`ListingError`.

Public API
----------
``parse_listing(text) -> Listing``
``parse_instructions(text) -> list[Instruction]``
``load_listing(path) -> Listing``
``find_method(listing, name, descriptor=None) -> MethodBody``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import sexpdata
from sexpdata import Symbol

from .errors import ErrorCode, ListingError, MissingEntryError
from .instructions import JUMPS, LABEL_OPCODE, Instruction, Label

logger = logging.getLogger(__name__)

Sexp = Any  # Union[list, Symbol, str, int, float, bool]


# ═══════════════════════════════════════════════════════════════════════
#  Result types
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class MethodBody:
    """One decoded method: its signature and instruction stream."""

    name: str
    descriptor: Optional[str] = None
    owner: Optional[str] = None
    instructions: List[Instruction] = field(default_factory=list)
    labels: Dict[str, Label] = field(default_factory=dict)

    @property
    def qualified_name(self) -> str:
        prefix = f"{self.owner}." if self.owner else ""
        return f"{prefix}{self.name}{self.descriptor or ''}"


@dataclass
class Listing:
    """All methods found in one listing, in source order."""

    methods: List[MethodBody] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.methods)


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _sym_name(s: Sexp) -> str:
    """Extract the string name from a ``sexpdata.Symbol``, or raise."""
    if isinstance(s, Symbol):
        return s.value()
    raise ListingError(
        f"Expected symbol, got {type(s).__name__}: {s!r}",
        ErrorCode.LISTING_SHAPE,
    )


def _as_name(s: Sexp) -> str:
    """Accept a symbol, string or integer as a name."""
    if isinstance(s, Symbol):
        return s.value()
    if isinstance(s, (str, int)) and not isinstance(s, bool):
        return str(s)
    raise ListingError(
        f"Expected a name, got {type(s).__name__}: {s!r}",
        ErrorCode.LISTING_OPERAND,
    )


def _expect_list(s: Sexp, *, min_len: int = 0, what: str = "form") -> list:
    if not isinstance(s, list):
        raise ListingError(
            f"Expected ({what} ...), got {type(s).__name__}: {s!r}",
            ErrorCode.LISTING_SHAPE,
        )
    if len(s) < min_len:
        raise ListingError(
            f"({what} ...) too short: expected at least {min_len} "
            f"elements, got {len(s)}",
            ErrorCode.LISTING_SHAPE,
        )
    return s


def _head(s: list) -> str:
    if not s:
        raise ListingError("Unexpected empty list", ErrorCode.LISTING_SHAPE)
    return _sym_name(s[0])


def _operand(s: Sexp) -> Union[str, int, float]:
    if isinstance(s, Symbol):
        return s.value()
    if isinstance(s, list):
        raise ListingError(
            f"Nested list is not a valid operand: {s!r}",
            ErrorCode.LISTING_OPERAND,
        )
    return s


def _read(text: str) -> list:
    try:
        return sexpdata.parse(text, nil=None, true=None, false=None)
    except Exception as exc:
        raise ListingError(
            f"Malformed S-expression: {exc}", ErrorCode.LISTING_SYNTAX,
        ) from exc


# ═══════════════════════════════════════════════════════════════════════
#  Instructions
# ═══════════════════════════════════════════════════════════════════════

class _LabelScope:
    """Maps label names to :class:`Label` objects within one method."""

    def __init__(self) -> None:
        self.labels: Dict[str, Label] = {}

    def get(self, name: str) -> Label:
        label = self.labels.get(name)
        if label is None:
            label = self.labels[name] = Label(name)
        return label


def _parse_instruction(s: Sexp, scope: _LabelScope) -> Instruction:
    form = _expect_list(s, min_len=1, what="instruction")
    opcode = _head(form).lower()
    operands = [_operand(o) for o in form[1:]]

    if opcode == LABEL_OPCODE:
        if len(operands) != 1:
            raise ListingError(
                f"(label NAME) takes exactly one operand, got {len(operands)}",
                ErrorCode.LISTING_OPERAND,
            )
        return Instruction.marker(scope.get(_as_name(form[1])))

    if opcode in JUMPS:
        if not operands:
            raise ListingError(
                f"({opcode} TARGET) is missing its target label",
                ErrorCode.LISTING_OPERAND,
            )
        target = scope.get(_as_name(form[1]))
        return Instruction(opcode, operands, target=target)

    return Instruction(opcode, operands)


def _parse_body(forms: List[Sexp], scope: _LabelScope) -> List[Instruction]:
    return [_parse_instruction(f, scope) for f in forms]


# ═══════════════════════════════════════════════════════════════════════
#  Top-level forms
# ═══════════════════════════════════════════════════════════════════════

_TOPLEVEL: Dict[str, Callable[[list, List[MethodBody], Optional[str]], None]] = {}


def _register(tag: str):
    def deco(fn):
        _TOPLEVEL[tag] = fn
        return fn
    return deco


@_register("method")
def _parse_method(s: list, out: List[MethodBody], owner: Optional[str]) -> None:
    _expect_list(s, min_len=2, what="method")
    name = _as_name(s[1])
    rest = s[2:]
    descriptor: Optional[str] = None
    if rest and isinstance(rest[0], str) and not isinstance(rest[0], Symbol):
        descriptor = rest[0]
        rest = rest[1:]
    scope = _LabelScope()
    body = MethodBody(
        name=name,
        descriptor=descriptor,
        owner=owner,
        instructions=_parse_body(rest, scope),
        labels=scope.labels,
    )
    logger.debug("decoded %s: %d instructions",
                 body.qualified_name, len(body.instructions))
    out.append(body)


@_register("class")
def _parse_class(s: list, out: List[MethodBody], owner: Optional[str]) -> None:
    _expect_list(s, min_len=2, what="class")
    cls_name = _as_name(s[1])
    for member in s[2:]:
        form = _expect_list(member, min_len=1, what="method")
        if _head(form) != "method":
            raise ListingError(
                f"Only (method ...) forms may appear inside (class {cls_name} ...), "
                f"got ({_head(form)} ...)",
                ErrorCode.LISTING_SHAPE,
            )
        _parse_method(form, out, cls_name)


# ═══════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════

def parse_listing(text: str) -> Listing:
    """Parse a complete listing made of ``class`` / ``method`` forms."""
    methods: List[MethodBody] = []
    for form in _read(text):
        form = _expect_list(form, min_len=1, what="class|method")
        tag = _head(form)
        handler = _TOPLEVEL.get(tag)
        if handler is None:
            raise ListingError(
                f"Unknown top-level form ({tag} ...); expected class or method",
                ErrorCode.LISTING_SHAPE,
            )
        handler(form, methods, None)
    return Listing(methods)


def parse_instructions(text: str) -> List[Instruction]:
    """Parse a bare sequence of instruction forms (one implicit method)."""
    return _parse_body(_read(text), _LabelScope())


def load_listing(path: Union[str, Path]) -> Listing:
    return parse_listing(Path(path).read_text(encoding="utf-8"))


def find_method(
    listing: Listing,
    name: str,
    descriptor: Optional[str] = None,
) -> MethodBody:
    """Return the first method called *name* (and matching *descriptor*).

    Raises
    ------
    MissingEntryError
        If no such method exists.
    """
    for method in listing.methods:
        if method.name != name:
            continue
        if descriptor is not None and method.descriptor != descriptor:
            continue
        return method
    wanted = name + (descriptor or "")
    available = ", ".join(m.qualified_name for m in listing.methods) or "none"
    raise MissingEntryError(
        f"no method {wanted} in listing",
        ErrorCode.MISSING_METHOD,
        hint=f"available methods: {available}",
    )
