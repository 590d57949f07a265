"""
Fixed-point test problems x = G(x) for Anderson acceleration.
Maps are written in place: G(out, u) stores G(u) in out.
"""

import numpy as np


class FixedPointProblem:
    """Fixed-point map G with starting point and, if known, the solution."""

    def __init__(self, G, x0, x_sol=None, title=""):
        """
        Args:
            G: In-place map G(out, u)
            x0: Initial iterate
            x_sol: Known fixed point (optional)
            title: Label used in reports
        """
        self.G = G
        self.x0 = np.asarray(x0, dtype=float)
        self.x_sol = None if x_sol is None else np.asarray(x_sol, dtype=float)
        self.title = title
        self.n = self.x0.size

    def apply(self, u):
        """Return G(u) as a new array."""
        out = np.empty_like(np.asarray(u, dtype=float))
        self.G(out, u)
        return out

    def residual(self, u):
        """Fixed-point residual G(u) - u."""
        return self.apply(u) - u

    def correction(self):
        """Correction map GFix(x_kp1, x_k): x_kp1 <- G(x_k)."""
        G = self.G

        def GFix(x_kp1, x_k):
            G(x_kp1, x_k)

        return GFix


def p1_f(out, u, eps=1e-8):
    """G(u) = (cos((u1+u2)/2), cos((u1+u2)/2) + eps*sin(u1^2))."""
    c = np.cos((u[0] + u[1]) / 2)
    out[0] = c
    out[1] = c + eps * np.sin(u[0] ** 2)


def create_p1_problem(eps=1e-8):
    """
    Two-dimensional contraction with nearly parallel residual differences.
    The small eps term makes the Anderson least-squares matrices highly
    ill-conditioned (condition numbers around 1e10).

    Returns:
        problem: FixedPointProblem started at (1, 1)
    """
    def G(out, u):
        p1_f(out, u, eps=eps)

    return FixedPointProblem(G, [1.0, 1.0], title="G(u) = (cos((u1+u2)/2), cos((u1+u2)/2) + eps sin(u1^2))")


def create_linear_contraction_problem(n, rho=0.9, seed=None):
    """
    Affine contraction G(u) = M u + c with spectral radius rho.

    Args:
        n: Dimension of the problem
        rho: Largest eigenvalue magnitude of M (0 < rho < 1)
        seed: Random seed for reproducibility

    Returns:
        problem: FixedPointProblem with known solution x* = (I - M)^{-1} c
    """
    rng = np.random.default_rng(seed)
    U, _ = np.linalg.qr(rng.standard_normal((n, n)))
    vals = np.linspace(-rho, rho, n)
    M = U @ np.diag(vals) @ U.T
    c = rng.standard_normal(n)
    x_sol = np.linalg.solve(np.eye(n) - M, c)

    def G(out, u):
        out[:] = M @ u + c

    return FixedPointProblem(G, np.zeros(n), x_sol=x_sol,
                             title=f"Linear contraction (n={n}, rho={rho})")
