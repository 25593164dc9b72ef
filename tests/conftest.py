"""Pytest configuration and shared fixtures for qlayer tests.

This module provides:
- Deterministic RNG fixtures for numpy and torch
- Hypothesis profiles, selected with the HYPOTHESIS_PROFILE environment variable
"""

import os

import numpy as np
import pytest
import torch
from hypothesis import Verbosity, settings

settings.register_profile("fast", max_examples=25, deadline=None)
settings.register_profile("thorough", max_examples=500, deadline=None)
settings.register_profile("debug", max_examples=10, deadline=None, verbosity=Verbosity.verbose)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "fast"))


def _seed() -> int:
    return int(os.environ.get("TEST_RNG_SEED", "0"))


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).

    Returns:
        A seeded numpy.random.Generator instance.
    """
    return np.random.default_rng(_seed())


@pytest.fixture(scope="function")
def torch_rng() -> torch.Generator:
    """Provide a deterministic torch RNG on the default device.

    Returns:
        A seeded torch.Generator instance.
    """
    from qlayer.core.device import default_device

    generator = torch.Generator(device=default_device().as_torch_device())
    generator.manual_seed(_seed())
    return generator


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Seed the global numpy and torch generators before every test."""
    np.random.seed(_seed())
    torch.manual_seed(_seed())


@pytest.fixture
def random_state(rng: np.random.Generator):
    """Factory for normalized random complex128 amplitude vectors."""

    def make(num_qubits: int) -> torch.Tensor:
        dim = 1 << num_qubits
        vec = rng.normal(size=dim) + 1j * rng.normal(size=dim)
        vec /= np.linalg.norm(vec)
        return torch.tensor(vec, dtype=torch.complex128)

    return make


@pytest.fixture
def random_unitary(rng: np.random.Generator):
    """Factory for random unitaries (QR of a complex Gaussian matrix)."""

    def make(num_qubits: int) -> np.ndarray:
        dim = 1 << num_qubits
        z = rng.normal(size=(dim, dim)) + 1j * rng.normal(size=(dim, dim))
        q, r = np.linalg.qr(z)
        d = np.diag(r)
        return q * (d / np.abs(d))

    return make
