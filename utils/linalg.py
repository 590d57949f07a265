"""
Linear-system utilities for the Anderson mixing step.
Least-squares solve with an explicit status, ridge-regression fallback and
pivoted QR with tolerance-driven column deletion (PAQR).
"""

from collections import namedtuple

import numpy as np
import scipy.linalg as la


LstsqResult = namedtuple("LstsqResult", ["status", "solution"])
PAQRFactorization = namedtuple("PAQRFactorization", ["Q", "R", "deleted"])

LSTSQ_OK = "ok"
LSTSQ_SINGULAR = "singular"
LSTSQ_NONFINITE = "nonfinite"


def solve_least_squares(A, b):
    """
    Solve A x ~= b and report how the solve went instead of raising.

    Square systems go through an LU solve, rectangular ones through an
    SVD-based least-squares solve.

    Args:
        A: Matrix of shape (n, p)
        b: Right-hand side of shape (n,)

    Returns:
        LstsqResult(status, solution) with status one of "ok", "singular",
        "nonfinite". solution is None unless status is "ok".

    Raises:
        ValueError: A and b have incompatible shapes
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    try:
        if A.shape[0] == A.shape[1]:
            x = np.linalg.solve(A, b)
        else:
            x = la.lstsq(A, b, check_finite=False)[0]
    except np.linalg.LinAlgError:
        return LstsqResult(LSTSQ_SINGULAR, None)
    if not np.all(np.isfinite(x)):
        return LstsqResult(LSTSQ_NONFINITE, None)
    return LstsqResult(LSTSQ_OK, x)


def orthogonal_remainder(basis, v):
    """Component of v orthogonal to the orthonormal columns of basis (two Gram-Schmidt passes)."""
    v = np.array(v, dtype=float)
    for _ in range(2):
        v -= basis @ (basis.T @ v)
    return v


def ridge_damping(A, lam=1e-8):
    """Damping mu = lam * max(||A||_F^2, 1) used by ridge_regression."""
    A = np.asarray(A, dtype=float)
    return lam * max(float(np.sum(A * A)), 1.0)


def ridge_regression(A, b, lam=1e-8):
    """
    Regularised least squares: (A^T A + mu I) x = A^T b.

    The damping is scaled with ||A||_F^2 so the condition number of the
    normal matrix stays below about 1/lam whatever the scale of A. The
    normal matrix is SPD for any A, so the Cholesky solve always succeeds.

    Args:
        A: Matrix of shape (n, p), possibly rank deficient
        b: Right-hand side of shape (n,)
        lam: Relative damping

    Returns:
        x: Solution of shape (p,)
    """
    A = np.atleast_2d(np.asarray(A, dtype=float))
    b = np.asarray(b, dtype=float)
    p = A.shape[1]
    mu = ridge_damping(A, lam)
    M = A.T @ A + mu * np.eye(p)
    return la.solve(M, A.T @ b, assume_a="pos", check_finite=False)


def paqr_piv(G, tol=1e-10):
    """
    Pivoting-avoiding QR: QR of G that deletes deficient columns instead of
    pivoting them to the end.

    Columns are visited in order (newest history column first). After
    removing the components along the columns already kept, column j is
    deleted when what is left is below tol * ||G[:, j]||, i.e. when the sine
    of its angle to the span of the kept columns is below tol. The kept
    columns are then factorized in their original order, so that
    R^T R = G_kept^T G_kept.

    Args:
        G: Matrix of shape (n, p), newest history column first
        tol: Smallest sine of the angle between a kept column and the
            span of the newer kept columns

    Returns:
        PAQRFactorization(Q, R, deleted) where deleted lists the removed
        column indices in increasing order and R is upper triangular and
        invertible.
    """
    G = np.asarray(G, dtype=float)
    if G.ndim == 1:
        G = G[:, None]
    n, p = G.shape

    keep = np.zeros(p, dtype=bool)
    basis = np.zeros((n, 0))
    for j in range(p):
        col_norm = np.linalg.norm(G[:, j])
        if col_norm == 0.0 or basis.shape[1] == n:
            continue
        v = orthogonal_remainder(basis, G[:, j])
        v_norm = np.linalg.norm(v)
        if v_norm < tol * col_norm:
            continue
        keep[j] = True
        basis = np.column_stack([basis, v / v_norm])

    if not keep.any():
        raise RuntimeError("paqr_piv: every column deleted (degenerate history)")

    deleted = [int(j) for j in np.flatnonzero(~keep)]
    Q, R = la.qr(G[:, keep], mode="economic")
    return PAQRFactorization(Q, R, deleted)
