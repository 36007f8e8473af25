"""
Crank–Nicolson operators for the one-dimensional Schrödinger equation.

The scheme advances ψ by solving ``A ψⁿ⁺¹ = B ψⁿ`` with

    A = I + i·dt·H / (2ħ),    B = I - i·dt·H / (2ħ),

where ``H`` is the three-point finite-difference Hamiltonian.  Writing
``r = i·ħ·dt / (4·m·dx²)`` gives the tridiagonal entries

    A: main 1 + 2r + i·dt·V/(2ħ),  off-diagonals -r
    B: main 1 - 2r - i·dt·V/(2ħ),  off-diagonals +r

Assembly, boundary imposition and factorization are separate steps.  Bands
are held as plain arrays until :func:`to_sparse` turns them into a
``scipy.sparse`` matrix.
"""

import logging
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np
from scipy import sparse
from scipy.sparse import linalg as spla

from .config import MIN_PIVOT_RATIO
from .errors import ConfigurationError, FactorizationError

logger = logging.getLogger(__name__)


class TridiagonalBands(NamedTuple):
    """Sub-, main and super-diagonal of an N×N tridiagonal matrix.

    ``lower[k]`` is entry ``(k + 1, k)`` and ``upper[k]`` is entry ``(k, k + 1)``.
    """

    lower: np.ndarray
    main: np.ndarray
    upper: np.ndarray

    @property
    def size(self) -> int:
        return self.main.size


def coupling(dx: float, dt: float, hbar: float = 1.0, mass: float = 1.0) -> complex:
    """Off-diagonal coefficient ``r = i·ħ·dt / (4·m·dx²)``."""
    return 1j * hbar * dt / (4.0 * mass * dx ** 2)


def assemble_bands(V: np.ndarray, dx: float, dt: float, hbar: float = 1.0, mass: float = 1.0):
    """Build the interior bands of the implicit (A) and explicit (B) operators.

    Returns
    -------
    tuple of TridiagonalBands
        ``(A, B)`` without any boundary treatment.
    """
    V = np.asarray(V, dtype=np.float64)
    n = V.size
    if n < 2:
        raise ConfigurationError(f"operators need at least 2 grid points, got {n}")
    if dx <= 0:
        raise ConfigurationError(f"dx must be positive, got {dx}")
    if dt <= 0:
        raise ConfigurationError(f"dt must be positive, got {dt}")

    r = coupling(dx, dt, hbar, mass)
    potential_term = 1j * dt * V / (2.0 * hbar)
    off = np.full(n - 1, r, dtype=np.complex128)

    A = TridiagonalBands(lower=-off, main=1.0 + 2.0 * r + potential_term, upper=-off.copy())
    B = TridiagonalBands(lower=off.copy(), main=1.0 - 2.0 * r - potential_term, upper=off.copy())
    return A, B


def impose_dirichlet(bands: TridiagonalBands) -> TridiagonalBands:
    """Return new bands whose first and last rows are isolated identity rows."""
    lower = bands.lower.copy()
    main = bands.main.copy()
    upper = bands.upper.copy()
    main[0] = main[-1] = 1.0
    upper[0] = 0.0
    lower[-1] = 0.0
    return TridiagonalBands(lower=lower, main=main, upper=upper)


def to_sparse(bands: TridiagonalBands, format: str = "csr") -> sparse.spmatrix:
    return sparse.diags(
        [bands.lower, bands.main, bands.upper], [-1, 0, 1], format=format, dtype=np.complex128
    )


def factorize(A: sparse.spmatrix):
    """LU-factorize the implicit operator once.

    Raises
    ------
    FactorizationError
        If ``A`` is singular, the factors are not finite, or the smallest
        pivot is negligible relative to the largest.
    """
    try:
        lu = spla.splu(sparse.csc_matrix(A))
    except RuntimeError as exc:
        raise FactorizationError(f"implicit operator is singular: {exc}") from exc

    pivots = np.abs(lu.U.diagonal())
    if not np.all(np.isfinite(pivots)) or not np.all(np.isfinite(lu.L.data)):
        raise FactorizationError("implicit operator factorization is not finite")
    ratio = pivots.min() / pivots.max()
    if ratio < MIN_PIVOT_RATIO:
        raise FactorizationError(
            f"implicit operator is ill-conditioned (pivot ratio {ratio:.3e} < {MIN_PIVOT_RATIO:.0e})"
        )
    return lu


@dataclass(frozen=True, eq=False)
class CrankNicolsonOperators:
    """Boundary-finalized operators plus the reusable factorization of ``A``."""

    A: sparse.spmatrix
    B: sparse.spmatrix
    lu: object
    r: complex

    @property
    def size(self) -> int:
        return self.A.shape[0]

    def apply_explicit(self, psi: np.ndarray) -> np.ndarray:
        return self.B @ psi

    def solve(self, rhs: np.ndarray) -> np.ndarray:
        return self.lu.solve(rhs)


def build_operators(V, dx, dt, hbar=1.0, mass=1.0) -> CrankNicolsonOperators:
    """Assemble, close with Dirichlet rows and factorize the operator pair."""
    A_bands, B_bands = assemble_bands(V, dx, dt, hbar, mass)
    A = to_sparse(impose_dirichlet(A_bands), format="csc")
    B = to_sparse(impose_dirichlet(B_bands), format="csr")
    lu = factorize(A)
    logger.info("Crank-Nicolson operators factorized (N=%d, dt=%g, dx=%g)", A.shape[0], dt, dx)
    return CrankNicolsonOperators(A=A, B=B, lu=lu, r=coupling(dx, dt, hbar, mass))
