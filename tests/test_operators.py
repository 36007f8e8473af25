import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy import sparse

from qm_tunneling.errors import ConfigurationError, FactorizationError
from qm_tunneling.operators import (
    TridiagonalBands,
    assemble_bands,
    build_operators,
    coupling,
    factorize,
    impose_dirichlet,
    to_sparse,
)
from qm_tunneling.wavepacket import gaussian_wave_packet, probability_mass

DT = 1e-4


def test_coupling_coefficient():
    r = coupling(dx=0.1, dt=1e-3, hbar=2.0, mass=0.5)
    assert r == pytest.approx(1j * 2.0 * 1e-3 / (4 * 0.5 * 0.01))


def test_interior_bands(grid, potential):
    A, B = assemble_bands(potential, grid.dx, DT)
    r = coupling(grid.dx, DT)
    assert A.size == B.size == grid.n_points
    assert_allclose(A.main, 1 + 2 * r + 1j * DT * potential / 2)
    assert_allclose(B.main, 1 - 2 * r - 1j * DT * potential / 2)
    assert_allclose(A.lower, -r)
    assert_allclose(A.upper, -r)
    assert_allclose(B.lower, r)
    assert_allclose(B.upper, r)


def test_explicit_operator_is_conjugate_of_implicit(grid, potential):
    A, B = assemble_bands(potential, grid.dx, DT)
    for a_band, b_band in zip(A, B):
        assert_allclose(b_band, np.conj(a_band))


def test_impose_dirichlet_returns_new_bands(grid, potential):
    A, _ = assemble_bands(potential, grid.dx, DT)
    before = [band.copy() for band in A]
    closed = impose_dirichlet(A)
    for band, original in zip(A, before):
        assert np.array_equal(band, original)

    dense = to_sparse(closed).toarray()
    expected_edge = np.zeros(grid.n_points)
    expected_edge[0] = 1.0
    assert_allclose(dense[0], expected_edge)
    assert_allclose(dense[-1], expected_edge[::-1])
    assert_allclose(dense[1:-1, 1:-1], to_sparse(A).toarray()[1:-1, 1:-1])


def test_to_sparse_is_tridiagonal():
    bands = TridiagonalBands(
        lower=np.array([1.0, 2.0]), main=np.array([3.0, 4.0, 5.0]), upper=np.array([6.0, 7.0])
    )
    dense = to_sparse(bands).toarray()
    assert_allclose(dense, [[3, 6, 0], [1, 4, 7], [0, 2, 5]])


@pytest.mark.parametrize("dx,dt", [(0.0, 1e-4), (-0.1, 1e-4), (0.1, 0.0)])
def test_assembly_rejects_degenerate_steps(dx, dt):
    with pytest.raises(ConfigurationError):
        assemble_bands(np.zeros(10), dx, dt)


def test_assembly_rejects_single_point():
    with pytest.raises(ConfigurationError):
        assemble_bands(np.zeros(1), 0.1, 1e-3)


def test_singular_operator_is_fatal():
    A = sparse.diags([1.0, 0.0, 1.0], format="csc", dtype=np.complex128)
    with pytest.raises(FactorizationError):
        factorize(A)


def test_ill_conditioned_operator_is_fatal():
    A = sparse.diags([1.0, 1e-14, 1.0], format="csc", dtype=np.complex128)
    with pytest.raises(FactorizationError, match="ill-conditioned"):
        factorize(A)


def test_factorization_solves_implicit_system(grid, potential, rng):
    ops = build_operators(potential, grid.dx, DT)
    rhs = rng.normal(size=grid.n_points) + 1j * rng.normal(size=grid.n_points)
    assert_allclose(ops.A @ ops.solve(rhs), rhs, atol=1e-10)
    assert ops.size == grid.n_points


def test_one_step_preserves_norm(grid, potential):
    ops = build_operators(potential, grid.dx, DT)
    psi = gaussian_wave_packet(grid.x, grid.dx, -5.0, 0.5, 18.0)
    psi[0] = psi[-1] = 0.0
    rhs = ops.apply_explicit(psi)
    psi_next = ops.solve(rhs)
    assert probability_mass(psi_next, grid.dx) == pytest.approx(probability_mass(psi, grid.dx), abs=1e-12)
    assert not np.allclose(psi_next, psi)


def test_large_step_keeps_norm(grid, potential):
    # a step far beyond any explicit-scheme limit still keeps the norm
    ops = build_operators(potential, grid.dx, dt=0.5)
    psi = gaussian_wave_packet(grid.x, grid.dx, -5.0, 0.5, 18.0)
    psi[0] = psi[-1] = 0.0
    for _ in range(20):
        rhs = ops.apply_explicit(psi)
        rhs[0] = rhs[-1] = 0.0
        psi = ops.solve(rhs)
    assert probability_mass(psi, grid.dx) == pytest.approx(1.0, abs=1e-9)
