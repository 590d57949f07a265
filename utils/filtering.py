"""
History filters for filtered Anderson acceleration (FAA).

Both filters act on the difference matrices HS.G_k / HS.X_k of an
FAAHistoricalStuff (newest column first), drop the same columns from both
matrices in place, and return a boolean mask (True = kept). The newest
column is never dropped.
"""

import numpy as np

from utils.linalg import orthogonal_remainder


def _drop_columns(HS, mask):
    HS.G_k = HS.G_k[:, mask]
    HS.X_k = HS.X_k[:, mask]


def length_filtering(HS, cs, kappabar):
    """
    Remove history columns that are too long relative to the newest one.

    Column j is removed when ||G_k[:, j]|| > cs * kappabar * ||G_k[:, 0]||.
    Long old columns dominate the least-squares matrix and push its
    condition number past kappabar.

    Args:
        HS: FAAHistoricalStuff, G_k and X_k mutated in place
        cs: Filtering constant in (0, 1)
        kappabar: Condition number bound

    Returns:
        mask: Boolean array over the pre-filter columns
    """
    n_cols = HS.G_k.shape[1]
    mask = np.ones(n_cols, dtype=bool)
    if n_cols == 0:
        return mask

    norms = np.linalg.norm(HS.G_k, axis=0)
    bound = cs * kappabar * norms[0]
    mask[1:] = norms[1:] <= bound
    _drop_columns(HS, mask)
    return mask


def angle_filtering(HS, cs):
    """
    Remove history columns nearly parallel to newer ones.

    Columns are visited newest first. Column j is kept when the sine of its
    angle to the span of the already kept newer columns is at least cs; the
    sine is ||(I - Q Q^T) g_j|| / ||g_j|| with Q an orthonormal basis of the
    kept columns. Zero columns have no direction and are dropped.

    Args:
        HS: FAAHistoricalStuff, after length_filtering
        cs: Minimum sine of the angle

    Returns:
        mask: Boolean array over the columns left by length filtering
    """
    n_rows, n_cols = HS.G_k.shape
    mask = np.ones(n_cols, dtype=bool)
    if n_cols == 0:
        return mask

    basis = np.zeros((n_rows, 0))
    for j in range(n_cols):
        col = HS.G_k[:, j]
        col_norm = np.linalg.norm(col)
        v = orthogonal_remainder(basis, col)
        v_norm = np.linalg.norm(v)
        if j > 0 and (col_norm == 0.0 or v_norm < cs * col_norm):
            mask[j] = False
            continue
        if v_norm > 0.0:
            basis = np.column_stack([basis, v / v_norm])

    _drop_columns(HS, mask)
    return mask


def combine_filter_masks(length_mask, angle_mask):
    """
    Merge the two filter masks into one entry per pre-filter column.

    Args:
        length_mask: Mask returned by length_filtering
        angle_mask: Mask returned by angle_filtering (over the survivors)

    Returns:
        filtered: True where a column survived both passes
    """
    filtered = np.array(length_mask, dtype=bool, copy=True)
    filtered[filtered] = angle_mask
    return filtered
