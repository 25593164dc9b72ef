"""Tests for the textual gate command grammar."""

from __future__ import annotations

import math

import pytest

from qlayer.circuit import QuantumCircuit
from qlayer.errors import CommandSyntaxError, QubitOutOfBoundsError
from qlayer.io import Command, apply_command, apply_script, parse_angle, parse_command


@pytest.mark.parametrize(
    "line, expected",
    [
        ("H 0", Command("H", (0,))),
        ("  x   3 ", Command("X", (3,))),
        ("cnot 0 1", Command("CNOT", (0, 1))),
        ("SWAP 2 0", Command("SWAP", (2, 0))),
        ("toffoli 0 1 2", Command("TOFFOLI", (0, 1, 2))),
        ("RX 1 0.5", Command("RX", (1,), 0.5)),
        ("measure 4", Command("MEASURE", (4,))),
        ("MEASURE_ALL", Command("MEASURE_ALL")),
    ],
)
def test_parse_command(line: str, expected: Command) -> None:
    assert parse_command(line) == expected


def test_parse_angle_expressions() -> None:
    assert parse_angle("pi") == pytest.approx(math.pi)
    assert parse_angle("PI/2") == pytest.approx(math.pi / 2)
    assert parse_angle("-3*pi/4") == pytest.approx(-3 * math.pi / 4)
    assert parse_angle("(pi + 1) / 2") == pytest.approx((math.pi + 1) / 2)
    assert parse_angle("1e-3") == pytest.approx(1e-3)


@pytest.mark.parametrize("text", ["", "pi**2", "__import__('os')", "theta", "1/0", "2 +"])
def test_parse_angle_rejects(text: str) -> None:
    with pytest.raises(CommandSyntaxError):
        parse_angle(text)


@pytest.mark.parametrize(
    "line, message",
    [
        ("", "Empty"),
        ("FOO 0", "Unknown gate"),
        ("H", "takes 1 operand"),
        ("H 0 1", "takes 1 operand"),
        ("CNOT 0", "takes 2 operand"),
        ("RX 0", "takes 2 operand"),
        ("H zero", "qubit index"),
        ("H -1", "non-negative"),
        ("MEASURE_ALL 0", "takes 0 operand"),
    ],
)
def test_parse_command_errors(line: str, message: str) -> None:
    with pytest.raises(CommandSyntaxError, match=message):
        parse_command(line)


def test_command_syntax_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        parse_command("NOPE 1")


def test_apply_command_dispatches() -> None:
    circuit = QuantumCircuit(3)
    apply_command(circuit, "h 0")
    apply_command(circuit, parse_command("ry 1 pi/2"))
    apply_command(circuit, "CZ 0 2")
    apply_command(circuit, "measure 2")

    assert [g.name for g in circuit.ops] == ["H", "RY", "CZ"]
    assert circuit.ops[1].angle == pytest.approx(math.pi / 2)
    assert list(circuit.measurements) == [2]


def test_apply_command_bounds_error_propagates() -> None:
    circuit = QuantumCircuit(2)
    with pytest.raises(QubitOutOfBoundsError):
        apply_command(circuit, "CNOT 0 5")


def test_apply_script_skips_blanks_and_comments() -> None:
    script = """
    # Bell pair
    H 0

    CNOT 0 1
      # trailing comment
    MEASURE_ALL
    """
    circuit = apply_script(QuantumCircuit(2), script)
    assert [g.name for g in circuit.ops] == ["H", "CNOT"]
    assert list(circuit.measurements) == [0, 1]


def test_apply_script_reports_line_number() -> None:
    circuit = QuantumCircuit(2)
    with pytest.raises(CommandSyntaxError, match="line 3"):
        apply_script(circuit, "H 0\nX 1\nBOGUS 0\nZ 0")
    # Earlier lines were applied.
    assert circuit.gate_count() == 2


def test_command_str_round_trip() -> None:
    command = parse_command("rz 2 0.25")
    assert str(command) == "RZ 2 0.25"
    assert parse_command(str(command)) == command
