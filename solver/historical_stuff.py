"""
Historical state carried between Anderson steps, one container per method.
Created once per solve run and mutated in place by the step function.
"""

from collections import deque

import numpy as np

from solver.aa_method import AAMethod, MethodName


class VanillaHistoricalStuff:
    """
    Sliding windows of the last m+1 residuals and iterates.
    The deques evict their oldest entry when a new one is appended at capacity.
    """

    def __init__(self, m):
        self.m = int(m)
        self.residual = deque(maxlen=self.m + 1)
        self.solhist = deque(maxlen=self.m + 1)
        self.iterations = 0

    @property
    def last_residual(self):
        return self.residual[-1] if self.residual else None


class PAQRHistoricalStuff:
    """
    Residual record plus the G (residuals) and F (map outputs) histories.
    G and F keep the newest entry at index 0 and only shrink through the
    column deletions chosen by paqr_piv.
    """

    def __init__(self):
        self.residual = []
        self.G = []
        self.F = []
        self.solhist = []
        self.iterations = 0

    @property
    def last_residual(self):
        return self.residual[-1] if self.residual else None

    def delete_columns(self, deleted):
        """Remove the given indices from G and F jointly."""
        for j in sorted(deleted, reverse=True):
            del self.G[j]
            del self.F[j]


class FAAHistoricalStuff:
    """
    Difference matrices for filtered Anderson acceleration.

    G_k holds residual differences g_j - g_{j-1}, X_k the matching iterate
    differences x_{j+1} - x_j, newest column first. dx_km1 is the iterate
    difference produced by the last step; it enters X_k together with the
    next residual difference so both matrices always have the same width.
    """

    def __init__(self, n=0):
        self.G_k = np.zeros((n, 0))
        self.X_k = np.zeros((n, 0))
        self.g_km1 = None
        self.dx_km1 = None
        self.iterations = 0

    @property
    def last_residual(self):
        return self.g_km1

    def prepend(self, dg, dx, max_cols=None):
        """Add a new newest column to G_k and X_k, dropping the oldest beyond max_cols."""
        self.G_k = np.column_stack([dg, self.G_k]) if self.G_k.size else dg[:, None].copy()
        self.X_k = np.column_stack([dx, self.X_k]) if self.X_k.size else dx[:, None].copy()
        if max_cols is not None and self.G_k.shape[1] > max_cols:
            self.G_k = self.G_k[:, :max_cols]
            self.X_k = self.X_k[:, :max_cols]


def initialize_historical_stuff(aamethod, n=0):
    """
    Fresh historical state for a solve run.

    Args:
        aamethod: AAMethod (or a method name) selecting the variant
        n: Problem dimension, used to shape empty FAA matrices

    Returns:
        One of VanillaHistoricalStuff, PAQRHistoricalStuff, FAAHistoricalStuff
    """
    if not isinstance(aamethod, AAMethod):
        aamethod = AAMethod(aamethod)
    if aamethod.methodname is MethodName.VANILLA:
        return VanillaHistoricalStuff(aamethod.param("m"))
    if aamethod.methodname is MethodName.PAQR:
        return PAQRHistoricalStuff()
    return FAAHistoricalStuff(n)
