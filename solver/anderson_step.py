"""
Anderson iterate-step engine.

create_next_iterate_function builds, for a given AAMethod, the function the
driver calls once per iteration:

    midanalysis, liveanalysis = step(HS, x_kp1, x_k)

Each step applies the correction map GFix(x_kp1, x_k) (typically
x_kp1[:] = G(x_k)), forms the residual g_k = x_kp1 - x_k, mixes it with the
history held in HS, writes the accelerated iterate back into x_kp1 and
reports two snapshot dicts to the caller's analysis callbacks.
"""

from functools import partial

import numpy as np
import scipy.linalg as la

from solver.aa_method import MethodName
from utils.filtering import angle_filtering, combine_filter_masks, length_filtering
from utils.linalg import LSTSQ_OK, paqr_piv, ridge_regression, solve_least_squares


def _report(mid_in, live_in, midanalysisfunc, liveanalysisfunc):
    midanalysis = midanalysisfunc(mid_in)
    liveanalysis = liveanalysisfunc(live_in)
    return midanalysis, liveanalysis


def vanilla_step(HS, x_kp1, x_k, *, GFix, m, liveanalysisfunc, midanalysisfunc):
    """
    Anderson(m) step over sliding windows of residuals and iterates.

    For k > 0 solves G_k gamma = g_k in the least-squares sense, with
    G_k / X_k the consecutive differences of the residual / solution windows,
    and sets x_kp1 = x_k + g_k - (X_k + G_k) gamma. A singular or non-finite
    solve is retried with ridge regression. At k = 0, and at every k when
    m = 0, the raw fixed-point step is kept.
    """
    GFix(x_kp1, x_k)
    g_k = x_kp1 - x_k
    HS.residual.append(g_k.copy())

    # m = 0 keeps a single residual: plain fixed-point step
    if len(HS.residual) > 1:
        res = list(HS.residual)
        sol = list(HS.solhist)
        G_k = np.column_stack([res[i] - res[i - 1] for i in range(1, len(res))])
        X_k = np.column_stack([sol[i] - sol[i - 1] for i in range(1, len(sol))])

        result = solve_least_squares(G_k, g_k)
        if result.status == LSTSQ_OK:
            gamma_k = result.solution
        else:
            gamma_k = ridge_regression(G_k, g_k)

        x_kp1[:] = x_k + g_k - (X_k + G_k) @ gamma_k
    else:
        G_k = gamma_k = X_k = None
        if HS.iterations == 0:
            HS.solhist.append(x_k.copy())

    HS.solhist.append(x_kp1.copy())
    HS.iterations += 1

    mid_in = {"G_k": G_k, "gamma_k": gamma_k, "X_k": X_k, "residual": HS.residual[-1]}
    live_in = {
        "iterations": HS.iterations,
        "x_kp1": x_kp1.copy(),
        "x_k": x_k.copy(),
        "residual": list(HS.residual),
    }
    return _report(mid_in, live_in, midanalysisfunc, liveanalysisfunc)


def paqr_step(HS, x_kp1, x_k, *, GFix, threshold, liveanalysisfunc, midanalysisfunc):
    """
    Anderson step with coefficients from a pivoted QR of the residual history.

    The newest residual and map output are put in front of G and F. For k > 0
    the columns paqr_piv deletes are dropped from both histories, then
    (R^T R) a = 1 is solved and alpha = a / sum(a) gives the convex
    combination x_kp1 = F alpha.
    """
    GFix(x_kp1, x_k)
    g_k = x_kp1 - x_k
    HS.residual.append(g_k.copy())
    HS.G.insert(0, g_k.copy())
    HS.F.insert(0, x_kp1.copy())

    if HS.iterations > 0:
        qrp = paqr_piv(np.column_stack(HS.G), tol=threshold)
        deleted = qrp.deleted
        HS.delete_columns(deleted)

        # R^T R a = 1 through the two triangular factors
        ones = np.ones(qrp.R.shape[1])
        a = la.cho_solve((qrp.R, False), ones)
        alpha_k = a / np.sum(a)

        x_kp1[:] = np.column_stack(HS.F) @ alpha_k
    else:
        deleted = []
        alpha_k = np.array([1.0])
        HS.solhist.append(x_k.copy())

    HS.solhist.append(x_kp1.copy())
    HS.iterations += 1

    mid_in = {"residual": HS.residual[-1], "G": list(HS.G), "deleted": deleted, "alpha_k": alpha_k}
    live_in = {
        "iterations": HS.iterations,
        "x_kp1": x_kp1.copy(),
        "x_k": x_k.copy(),
        "residual": list(HS.residual),
        "G": list(HS.G),
        "deleted": deleted,
        "alpha_k": alpha_k,
    }
    return _report(mid_in, live_in, midanalysisfunc, liveanalysisfunc)


def faa_step(HS, x_kp1, x_k, *, GFix, m, cs, kappabar, liveanalysisfunc, midanalysisfunc):
    """
    Filtered Anderson acceleration step.

    k = 0: plain fixed-point step.
    k = 1: one difference column, gamma from the normal equations
           (G_k^T G_k) gamma = G_k^T g_k; a singular system raises.
    k > 1: new columns prepended, both matrices capped at m - 1 columns,
           length then angle filtering, least-squares gamma. There is no
           ridge fallback here: a failed solve raises LinAlgError.
    With m < 2 the history holds no columns and every step is a plain
    fixed-point step.

    The live snapshot's X_k includes the newest iterate difference
    x_kp1 - x_k as its first column.
    """
    GFix(x_kp1, x_k)
    g_k = x_kp1 - x_k

    if m < 2 or HS.iterations == 0:
        gamma_k = None
        filtered = None

    elif HS.iterations > 1:
        HS.prepend(g_k - HS.g_km1, HS.dx_km1, max_cols=m - 1)
        length_mask = length_filtering(HS, cs, kappabar)
        angle_mask = angle_filtering(HS, cs)
        filtered = combine_filter_masks(length_mask, angle_mask)

        result = solve_least_squares(HS.G_k, g_k)
        if result.status != LSTSQ_OK:
            raise np.linalg.LinAlgError(
                f"FAA least-squares solve failed ({result.status}) at iteration {HS.iterations}")
        gamma_k = result.solution
        x_kp1[:] = x_k + g_k - (HS.X_k + HS.G_k) @ gamma_k

    else:
        HS.prepend(g_k - HS.g_km1, HS.dx_km1, max_cols=m - 1)
        G = HS.G_k
        gamma_k = np.linalg.solve(G.T @ G, G.T @ g_k)
        x_kp1[:] = x_k + g_k - (HS.X_k + HS.G_k) @ gamma_k
        filtered = None

    HS.dx_km1 = x_kp1 - x_k
    HS.g_km1 = g_k.copy()
    HS.iterations += 1

    mid_in = {"gamma_k": gamma_k, "residual": g_k, "filtered": filtered}
    live_in = {
        "X_k": np.column_stack([HS.dx_km1, HS.X_k]),
        "filtered": filtered,
        "iterations": HS.iterations,
        "x_kp1": x_kp1.copy(),
        "x_k": x_k.copy(),
        "residual": g_k,
    }
    return _report(mid_in, live_in, midanalysisfunc, liveanalysisfunc)


def create_next_iterate_function(GFix, aamethod, liveanalysisfunc, midanalysisfunc):
    """
    Build the per-iteration step function for the selected method.

    Args:
        GFix: Correction map GFix(x_kp1, x_k), writes into x_kp1
        aamethod: AAMethod with methodname and methodparams
        liveanalysisfunc: Callback receiving the running-history snapshot
        midanalysisfunc: Callback receiving the mixing snapshot

    Returns:
        step(HS, x_kp1, x_k) -> (midanalysis, liveanalysis)

    Raises:
        ValueError: unsupported method name
    """
    name = MethodName.coerce(aamethod.methodname)
    params = aamethod.methodparams
    callbacks = {"GFix": GFix, "liveanalysisfunc": liveanalysisfunc, "midanalysisfunc": midanalysisfunc}

    if name is MethodName.VANILLA:
        return partial(vanilla_step, m=params["m"], **callbacks)
    elif name is MethodName.PAQR:
        return partial(paqr_step, threshold=params["threshold"], **callbacks)
    elif name is MethodName.FAA:
        return partial(faa_step, m=params["m"], cs=params["cs"], kappabar=params["kappabar"], **callbacks)
    raise ValueError(f"Unsupported methodname: {aamethod.methodname}")
