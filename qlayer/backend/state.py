"""Dense state-vector storage.

Convention: qubit 0 is the least significant bit (LSB) of the basis index,
so in a 2-qubit state |q1 q0⟩ qubit 0 is the rightmost bit.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Tuple

import torch

from ..core.device import Device, resolve_device
from ..diagnostics import fidelity as _fidelity
from ..errors import ZeroProbabilityBranchError


class QuantumState:
    """
    A pure n-qubit state held as a dense complex vector of length 2**n.

    The amplitude buffer is allocated once; gate kernels and measurement
    collapse write into it in place, so its length never changes.

    Attributes
    ----------
    num_qubits:
        Number of qubits n.
    amplitudes:
        Complex tensor of shape (2**n,).
    is_normalized:
        Best-effort flag. Fast-path kernels and collapse set it, the generic
        matrix kernel clears it; it is never re-verified automatically.
    sparse_threshold:
        |amplitude|**2 below this value counts as zero for sparsity checks
        and for ``nonzero_terms``.
    """

    def __init__(
        self,
        num_qubits: int,
        sparse_threshold: float = 1e-12,
        device: Device | torch.device | str | None = None,
    ) -> None:
        if num_qubits < 1:
            raise ValueError(f"num_qubits must be >= 1, got {num_qubits}")

        self.device = resolve_device(device)
        self.num_qubits = int(num_qubits)
        self.sparse_threshold = float(sparse_threshold)

        self.amplitudes = torch.zeros(
            1 << self.num_qubits,
            dtype=self.device.complex_dtype,
            device=self.device.as_torch_device(),
        )
        self.amplitudes[0] = 1.0 + 0.0j
        self.is_normalized = True

    @classmethod
    def from_basis_state(
        cls,
        num_qubits: int,
        index: int,
        sparse_threshold: float = 1e-12,
        device: Device | torch.device | str | None = None,
    ) -> "QuantumState":
        """Create the computational basis state |index⟩."""
        state = cls(num_qubits, sparse_threshold=sparse_threshold, device=device)
        if index < 0 or index >= state.dimension:
            raise ValueError(
                f"basis index {index} out of range [0, {state.dimension})"
            )
        state.amplitudes.zero_()
        state.amplitudes[index] = 1.0 + 0.0j
        return state

    @classmethod
    def from_amplitudes(
        cls,
        amplitudes,
        sparse_threshold: float = 1e-12,
        device: Device | torch.device | str | None = None,
    ) -> "QuantumState":
        """
        Wrap a copy of an existing amplitude vector.

        The vector length must be a power of two. It is not renormalized.
        """
        qdevice = resolve_device(device)
        data = torch.as_tensor(amplitudes).to(
            dtype=qdevice.complex_dtype, device=qdevice.as_torch_device()
        )
        if data.dim() != 1:
            raise ValueError("Statevector must be a 1D tensor.")
        dim = data.shape[0]
        if dim < 2 or dim & (dim - 1) != 0:
            raise ValueError(f"Statevector length must be a power of 2, got {dim}.")

        state = cls(dim.bit_length() - 1, sparse_threshold=sparse_threshold, device=qdevice)
        state.amplitudes.copy_(data)
        norm = float(torch.sum(torch.abs(data) ** 2))
        state.is_normalized = abs(norm - 1.0) < 1e-9
        return state

    @property
    def dimension(self) -> int:
        return self.amplitudes.shape[0]

    def num_bytes(self) -> int:
        """Size of the amplitude buffer in bytes."""
        return self.amplitudes.numel() * self.amplitudes.element_size()

    def copy(self) -> "QuantumState":
        new = QuantumState.__new__(QuantumState)
        new.device = self.device
        new.num_qubits = self.num_qubits
        new.sparse_threshold = self.sparse_threshold
        new.amplitudes = self.amplitudes.clone()
        new.is_normalized = self.is_normalized
        return new

    def write(self, values: torch.Tensor) -> None:
        """Overwrite the amplitudes in place with ``values`` (any shape of 2**n entries)."""
        self.amplitudes.copy_(values.reshape(-1))

    def split_on(self, qubit: int) -> torch.Tensor:
        """
        View the amplitudes as (left, 2, right) with the middle axis holding
        the value of ``qubit``. Writes to the view mutate the state.
        """
        self._check_qubit(qubit)
        return self.amplitudes.view(
            1 << (self.num_qubits - 1 - qubit), 2, 1 << qubit
        )

    # ------------------------------------------------------------------
    # Probabilities
    # ------------------------------------------------------------------

    def probabilities(self) -> torch.Tensor:
        """Return |amplitude|**2 for every basis state (real tensor)."""
        return torch.abs(self.amplitudes) ** 2

    def probability_of(self, qubit: int, value: bool) -> float:
        """Marginal probability that ``qubit`` reads ``value`` (no collapse)."""
        self._check_qubit(qubit)
        probs = self.probabilities().view(
            1 << (self.num_qubits - 1 - qubit), 2, 1 << qubit
        )
        return float(probs[:, int(bool(value)), :].sum())

    def probability_zero(self, qubit: int) -> float:
        """Σ|a_i|² over every index i whose bit ``qubit`` is 0."""
        return self.probability_of(qubit, False)

    # ------------------------------------------------------------------
    # Measurement
    # ------------------------------------------------------------------

    def collapse(self, qubit: int, collapsed_to_zero: bool) -> None:
        """
        Project onto one branch of ``qubit`` and renormalize.

        ``collapsed_to_zero`` selects the branch with bit ``qubit`` = 0;
        otherwise the bit = 1 branch is kept. Amplitudes of the other branch
        are zeroed and the survivors divided by sqrt(branch probability).

        Raises
        ------
        ZeroProbabilityBranchError
            If the selected branch has zero probability.
        """
        keep = 0 if collapsed_to_zero else 1
        branch_prob = self.probability_of(qubit, bool(keep))
        if branch_prob <= 0.0:
            raise ZeroProbabilityBranchError(qubit, bool(collapsed_to_zero))

        view = self.split_on(qubit)
        view[:, 1 - keep, :] = 0.0
        view[:, keep, :] /= math.sqrt(branch_prob)
        self.is_normalized = True

    def measure_qubit(
        self,
        qubit: int,
        generator: Optional[torch.Generator] = None,
    ) -> bool:
        """
        Sample ``qubit`` and collapse the state.

        One uniform r in [0, 1) is drawn; the returned flag is
        ``r < P(qubit = 0)``, i.e. True means the state landed in the
        zero branch. When the two marginals do not sum to one (rounding, or
        a non-unitary custom gate), r may select a branch with no weight; the
        other branch is kept instead and the flag reports the kept branch.

        Raises
        ------
        ZeroProbabilityBranchError
            If both branches have zero probability (the zero vector).
        """
        prob_zero = self.probability_zero(qubit)
        prob_one = self.probability_of(qubit, True)
        r = torch.rand(1, generator=generator, dtype=torch.float64).item()
        collapsed_to_zero = r < prob_zero
        if collapsed_to_zero and prob_zero <= 0.0 < prob_one:
            collapsed_to_zero = False
        elif not collapsed_to_zero and prob_one <= 0.0 < prob_zero:
            collapsed_to_zero = True
        self.collapse(qubit, collapsed_to_zero)
        return collapsed_to_zero

    def sample_counts(
        self,
        shots: int,
        generator: Optional[torch.Generator] = None,
    ) -> Dict[str, int]:
        """
        Sample full-register outcomes without collapsing the state.

        Returns a mapping from bitstring (qubit n-1 first, qubit 0 last) to
        the number of shots that produced it.
        """
        if shots < 1:
            raise ValueError(f"shots must be >= 1, got {shots}")

        probs = self.probabilities().to(device="cpu", dtype=torch.float64)
        outcomes = torch.multinomial(probs, shots, replacement=True, generator=generator)
        hist = torch.bincount(outcomes, minlength=self.dimension)

        counts: Dict[str, int] = {}
        for index in torch.nonzero(hist).flatten().tolist():
            counts[format(index, f"0{self.num_qubits}b")] = int(hist[index])
        return counts

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def normalize(self) -> None:
        """Rescale to unit norm unless the state is already flagged normalized."""
        if self.is_normalized:
            return
        norm = math.sqrt(float(self.probabilities().sum()))
        if norm > 0.0:
            self.amplitudes /= norm
        self.is_normalized = True

    def is_sparse(self) -> bool:
        """True when fewer than 10% of amplitudes exceed ``sparse_threshold``."""
        non_zero = int((self.probabilities() > self.sparse_threshold).sum())
        return non_zero < self.dimension * 0.1

    def fidelity(self, other: "QuantumState") -> float:
        """|⟨self|other⟩|², or 0.0 for states of different size."""
        if self.num_qubits != other.num_qubits:
            return 0.0
        return _fidelity(self.amplitudes, other.amplitudes.to(self.amplitudes.device))

    def nonzero_terms(self) -> List[Tuple[str, float, float]]:
        """(bitstring, real, imag) for every amplitude above the sparse threshold."""
        probs = self.probabilities()
        terms = []
        for index in torch.nonzero(probs > self.sparse_threshold).flatten().tolist():
            amp = complex(self.amplitudes[index])
            terms.append((format(index, f"0{self.num_qubits}b"), amp.real, amp.imag))
        return terms

    def _check_qubit(self, qubit: int) -> None:
        if qubit < 0 or qubit >= self.num_qubits:
            raise ValueError(f"qubit index {qubit} out of range [0, {self.num_qubits})")

    def __repr__(self) -> str:
        return (
            f"QuantumState(num_qubits={self.num_qubits}, "
            f"is_normalized={self.is_normalized})"
        )
