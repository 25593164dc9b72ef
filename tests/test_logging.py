"""Tests for logging utilities."""

import logging
from io import StringIO

import pytest

from qlayer.circuit import QuantumCircuit
from qlayer.logging import (
    configure_logging,
    get_logger,
    set_log_level,
)
from qlayer.simulator import SimulationConfig, StateVectorSimulator


def test_get_logger_returns_logger():
    """Test that get_logger returns a logger instance."""
    logger = get_logger("test_module")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "qlayer.test_module"


def test_get_logger_keeps_package_names():
    """Module names inside the package are not prefixed twice."""
    assert get_logger("qlayer.simulator.state_vector").name == "qlayer.simulator.state_vector"
    assert get_logger().name == "qlayer"


def test_get_logger_caching():
    """Test that get_logger caches loggers."""
    assert get_logger("test_module") is get_logger("test_module")


def test_get_logger_different_modules():
    """Test that different modules get different loggers."""
    logger1 = get_logger("module1")
    logger2 = get_logger("module2")
    assert logger1 is not logger2
    assert logger1.name != logger2.name


def test_set_log_level_int_and_string():
    """set_log_level accepts both numeric and named levels."""
    logger = get_logger("test_module")
    try:
        set_log_level(logging.INFO)
        assert logger.level == logging.INFO

        set_log_level("debug")
        assert logger.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in logger.handlers)
    finally:
        set_log_level(logging.WARNING)


def test_configure_logging_format_and_stream():
    """configure_logging reroutes every existing logger."""
    stream = StringIO()
    try:
        configure_logging(level=logging.INFO, format_string="%(levelname)s|%(message)s", stream=stream)
        get_logger("test_module").info("hello")
        assert "INFO|hello" in stream.getvalue()
    finally:
        configure_logging(level=logging.WARNING)


def test_logger_does_not_propagate():
    """Test that loggers don't propagate to root logger."""
    assert get_logger("test_module").propagate is False


def test_simulator_debug_logging():
    """Circuit execution is reported at DEBUG level."""
    stream = StringIO()
    # Make sure the simulator's logger exists before rerouting.
    get_logger("qlayer.simulator.state_vector")
    try:
        configure_logging(level=logging.DEBUG, stream=stream)
        circuit = QuantumCircuit.with_name(2, "logged").h(0).cnot(0, 1)
        StateVectorSimulator().execute_circuit(circuit)
        output = stream.getvalue()
        assert "executing logged" in output
        assert "finished logged" in output
    finally:
        configure_logging(level=logging.WARNING)


def test_memory_rejection_logged_as_warning():
    stream = StringIO()
    get_logger("qlayer.simulator.state_vector")
    try:
        configure_logging(level=logging.WARNING, stream=stream)
        sim = StateVectorSimulator(SimulationConfig(memory_limit_gb=0.001))
        with pytest.raises(MemoryError):
            sim.execute_circuit(QuantumCircuit(30))
        assert "[WARNING] qlayer.simulator.state_vector: rejecting" in stream.getvalue()
    finally:
        configure_logging(level=logging.WARNING)


def test_configure_logging_applies_to_loggers_created_later():
    stream = StringIO()
    try:
        configure_logging(level=logging.INFO, stream=stream)
        get_logger("created_after_configure").info("late logger")
        assert "[INFO] qlayer.created_after_configure: late logger" in stream.getvalue()
    finally:
        configure_logging(level=logging.WARNING)
