"""Line-oriented gate command grammar.

Each non-empty line is one command, case-insensitive::

    H 0
    RX 1 pi/2
    CNOT 0 1
    TOFFOLI 0 1 2
    MEASURE 2
    MEASURE_ALL

Supported mnemonics:
    - single-qubit: H, X, Y, Z, S, T
    - rotations with one angle: RX, RY, RZ
    - two-qubit: CNOT, CZ, SWAP
    - three-qubit: TOFFOLI
    - measurement: MEASURE q, MEASURE_ALL

Angles are decimal numbers or expressions in ``pi`` using ``*``, ``/``,
``+``, ``-`` and parentheses. In scripts, blank lines and lines starting with
``#`` are skipped.
"""

from __future__ import annotations

import ast
import math
import operator
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from qlayer.circuit import QuantumCircuit
from qlayer.errors import CommandSyntaxError

# mnemonic -> (number of qubit operands, takes an angle)
_SIGNATURES: Dict[str, Tuple[int, bool]] = {
    "H": (1, False),
    "X": (1, False),
    "Y": (1, False),
    "Z": (1, False),
    "S": (1, False),
    "T": (1, False),
    "RX": (1, True),
    "RY": (1, True),
    "RZ": (1, True),
    "CNOT": (2, False),
    "CZ": (2, False),
    "SWAP": (2, False),
    "TOFFOLI": (3, False),
    "MEASURE": (1, False),
    "MEASURE_ALL": (0, False),
}

_DISPATCH: Dict[str, Callable[..., QuantumCircuit]] = {
    "H": QuantumCircuit.h,
    "X": QuantumCircuit.x,
    "Y": QuantumCircuit.y,
    "Z": QuantumCircuit.z,
    "S": QuantumCircuit.s,
    "T": QuantumCircuit.t,
    "RX": QuantumCircuit.rx,
    "RY": QuantumCircuit.ry,
    "RZ": QuantumCircuit.rz,
    "CNOT": QuantumCircuit.cnot,
    "CZ": QuantumCircuit.cz,
    "SWAP": QuantumCircuit.swap,
    "TOFFOLI": QuantumCircuit.toffoli,
    "MEASURE": QuantumCircuit.measure,
    "MEASURE_ALL": QuantumCircuit.measure_all,
}

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
}


@dataclass(frozen=True)
class Command:
    """A parsed gate command."""

    mnemonic: str
    qubits: Tuple[int, ...] = ()
    angle: Optional[float] = None

    def __str__(self) -> str:
        parts = [self.mnemonic, *(str(q) for q in self.qubits)]
        if self.angle is not None:
            parts.append(repr(self.angle))
        return " ".join(parts)


def parse_angle(text: str) -> float:
    """
    Evaluate an angle expression such as ``"0.5"``, ``"pi/2"`` or ``"-3*pi/4"``.

    Only numeric literals, the name ``pi``, unary minus/plus and the four
    arithmetic operators are accepted.

    Raises
    ------
    CommandSyntaxError
        If the expression is empty, malformed or uses anything else.
    """
    source = text.strip().lower()
    if not source:
        raise CommandSyntaxError("Empty angle expression.")
    try:
        tree = ast.parse(source, mode="eval")
    except SyntaxError as exc:
        raise CommandSyntaxError(f"Invalid angle expression: {text!r}") from exc

    def evaluate(node: ast.AST) -> float:
        if isinstance(node, ast.Expression):
            return evaluate(node.body)
        if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
            return float(node.value)
        if isinstance(node, ast.Name) and node.id == "pi":
            return math.pi
        if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
            value = evaluate(node.operand)
            return -value if isinstance(node.op, ast.USub) else value
        if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
            return _BINARY_OPS[type(node.op)](evaluate(node.left), evaluate(node.right))
        raise CommandSyntaxError(f"Unsupported angle expression: {text!r}")

    try:
        return evaluate(tree)
    except ZeroDivisionError as exc:
        raise CommandSyntaxError(f"Division by zero in angle expression: {text!r}") from exc


def _parse_qubit(token: str, line: str) -> int:
    try:
        qubit = int(token)
    except ValueError:
        raise CommandSyntaxError(
            f"Expected a qubit index, got {token!r}. Offending line: {line!r}"
        ) from None
    if qubit < 0:
        raise CommandSyntaxError(
            f"Qubit index must be non-negative, got {qubit}. Offending line: {line!r}"
        )
    return qubit


def parse_command(line: str) -> Command:
    """
    Parse one command line.

    Parameters
    ----------
    line : str
        Command text, e.g. ``"cnot 0 1"``.

    Returns
    -------
    Command
        The parsed command with an upper-case mnemonic.

    Raises
    ------
    CommandSyntaxError
        For an empty line, an unknown mnemonic or the wrong number or shape
        of operands.
    """
    tokens = line.split()
    if not tokens:
        raise CommandSyntaxError("Empty command.")

    mnemonic = tokens[0].upper()
    signature = _SIGNATURES.get(mnemonic)
    if signature is None:
        raise CommandSyntaxError(
            f"Unknown gate: {tokens[0]!r}. Offending line: {line!r}"
        )

    arity, takes_angle = signature
    operands = tokens[1:]
    expected = arity + (1 if takes_angle else 0)
    if len(operands) != expected:
        raise CommandSyntaxError(
            f"{mnemonic} takes {expected} operand(s), got {len(operands)}. "
            f"Offending line: {line!r}"
        )

    qubits = tuple(_parse_qubit(tok, line) for tok in operands[:arity])
    angle = parse_angle(operands[arity]) if takes_angle else None
    return Command(mnemonic=mnemonic, qubits=qubits, angle=angle)


def apply_command(
    circuit: QuantumCircuit, command: Union[str, Command]
) -> QuantumCircuit:
    """
    Apply one command (text or parsed) to ``circuit``.

    Bounds errors from the circuit (``QubitOutOfBoundsError``) propagate
    unchanged.
    """
    if isinstance(command, str):
        command = parse_command(command)

    method = _DISPATCH[command.mnemonic]
    args: List[object] = list(command.qubits)
    if command.angle is not None:
        args.append(command.angle)
    method(circuit, *args)
    return circuit


def apply_script(circuit: QuantumCircuit, text: str) -> QuantumCircuit:
    """
    Apply every command in ``text``, one per line.

    Blank lines and lines whose first non-blank character is ``#`` are
    skipped. A syntax error is re-raised with the 1-based line number; gates
    from earlier lines remain applied.
    """
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            command = parse_command(line)
        except CommandSyntaxError as exc:
            raise CommandSyntaxError(f"line {lineno}: {exc}") from exc
        apply_command(circuit, command)
    return circuit


__all__ = [
    "Command",
    "parse_angle",
    "parse_command",
    "apply_command",
    "apply_script",
]
