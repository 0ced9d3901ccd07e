"""
bytecode_cfg.instructions
=========================

Instruction records and the control-flow classifier.

A decoded method body is an ordered sequence of :class:`Instruction`
objects.  The CFG builder only cares about the *control-flow role* of each
instruction, which :func:`classify` derives from the opcode mnemonic:

    LABEL       a label marker (a potential jump target, never a transfer)
    JUMP        unconditional jump (``goto``, ``jsr`` ...)
    COND_JUMP   conditional jump (``ifeq``, ``if_icmplt`` ...)
    RETURN      return-family terminal (``ireturn`` ... ``return``)
    PLAIN       anything else
    FILLER      non-executable metadata (line numbers, stack-map frames)

Instructions compare by *identity*: two ``iload 1`` at different positions
are different instructions.
"""

from __future__ import annotations

import enum
import itertools
from typing import FrozenSet, Optional, Sequence, Tuple


class InsnKind(enum.Enum):
    """Control-flow role of a single instruction."""

    LABEL = "label"
    JUMP = "jump"
    COND_JUMP = "cond-jump"
    RETURN = "return"
    PLAIN = "plain"
    FILLER = "filler"

    @property
    def is_jump(self) -> bool:
        return self in (InsnKind.JUMP, InsnKind.COND_JUMP)

    @property
    def is_executable(self) -> bool:
        """``False`` for label markers and filler."""
        return self not in (InsnKind.LABEL, InsnKind.FILLER)


# ---------------------------------------------------------------------------
# Opcode tables (JVM mnemonics)
# ---------------------------------------------------------------------------

LABEL_OPCODE = "label"

CONDITIONAL_JUMPS: FrozenSet[str] = frozenset({
    "ifeq", "ifne", "iflt", "ifge", "ifgt", "ifle",
    "if_icmpeq", "if_icmpne", "if_icmplt",
    "if_icmpge", "if_icmpgt", "if_icmple",
    "if_acmpeq", "if_acmpne",
    "ifnull", "ifnonnull",
})

UNCONDITIONAL_JUMPS: FrozenSet[str] = frozenset({
    "goto", "goto_w", "jsr", "jsr_w",
})

RETURNS: FrozenSet[str] = frozenset({
    "ireturn", "lreturn", "freturn", "dreturn", "areturn", "return",
})

FILLERS: FrozenSet[str] = frozenset({"line", "frame"})

JUMPS: FrozenSet[str] = CONDITIONAL_JUMPS | UNCONDITIONAL_JUMPS


# ---------------------------------------------------------------------------
# Label
# ---------------------------------------------------------------------------

_label_counter = itertools.count()


class Label:
    """A jump-target reference.

    Labels are identity objects: the decoder creates one ``Label`` per
    distinct target and hands the same object to the marker instruction and
    to every jump that refers to it.  ``name`` is for display only.
    """

    __slots__ = ("name",)

    def __init__(self, name: Optional[str] = None) -> None:
        self.name: str = name if name is not None else f"L{next(_label_counter)}"

    def __repr__(self) -> str:
        return f"Label({self.name!r})"


# ---------------------------------------------------------------------------
# Instruction
# ---------------------------------------------------------------------------

class Instruction:
    """One decoded instruction.

    Attributes
    ----------
    opcode : str
        Lower-case mnemonic (``"iload"``, ``"ifeq"``, ``"label"`` ...).
    operands : tuple
        Raw operands, kept for display.
    label : Label or None
        For label markers: the label this marker defines.
    target : Label or None
        For jumps: the label jumped to.
    """

    __slots__ = ("opcode", "operands", "label", "target")

    def __init__(
        self,
        opcode: str,
        operands: Sequence = (),
        *,
        label: Optional[Label] = None,
        target: Optional[Label] = None,
    ) -> None:
        self.opcode: str = opcode.lower()
        self.operands: Tuple = tuple(operands)
        self.label = label
        self.target = target

    @classmethod
    def marker(cls, label: Label) -> "Instruction":
        """Build the label-marker instruction for *label*."""
        return cls(LABEL_OPCODE, (label.name,), label=label)

    @classmethod
    def jump(cls, opcode: str, target: Label) -> "Instruction":
        return cls(opcode, (target.name,), target=target)

    @property
    def kind(self) -> InsnKind:
        return classify(self)

    def __str__(self) -> str:
        if self.label is not None:
            return f"{self.label.name}:"
        if self.target is not None:
            return f"{self.opcode} {self.target.name}"
        if self.operands:
            return f"{self.opcode} " + " ".join(str(o) for o in self.operands)
        return self.opcode

    def __repr__(self) -> str:
        return f"Instruction({str(self)!r})"


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------

def classify(insn: Instruction) -> InsnKind:
    """Return the control-flow role of *insn*."""
    op = insn.opcode
    if op == LABEL_OPCODE:
        return InsnKind.LABEL
    if op in FILLERS:
        return InsnKind.FILLER
    if op in CONDITIONAL_JUMPS:
        return InsnKind.COND_JUMP
    if op in UNCONDITIONAL_JUMPS:
        return InsnKind.JUMP
    if op in RETURNS:
        return InsnKind.RETURN
    return InsnKind.PLAIN


def jump_target(insn: Instruction) -> Optional[Label]:
    """Return the label a jump refers to, or ``None`` for non-jumps."""
    if classify(insn).is_jump:
        return insn.target
    return None


def is_filler(insn: Instruction) -> bool:
    return classify(insn) is InsnKind.FILLER
