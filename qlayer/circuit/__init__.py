"""Layered circuit model."""

from .core import CircuitBuilder, CircuitLayer, QuantumCircuit

__all__ = ["CircuitBuilder", "CircuitLayer", "QuantumCircuit"]
