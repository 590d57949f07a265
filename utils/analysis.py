"""
Analysis callbacks for the Anderson step engine.
Mid-analysis callbacks receive the mixing snapshot, live-analysis callbacks
the running-history snapshot; both return a value stored by the driver.
"""

import numpy as np


def null_analysis(snapshot):
    """Ignore the snapshot."""
    return None


def _mixing_matrix(snapshot):
    if snapshot.get("G_k") is not None:
        return snapshot["G_k"]
    if snapshot.get("G"):
        return np.column_stack(snapshot["G"])
    return None


def _coefficients(snapshot):
    if snapshot.get("gamma_k") is not None:
        return snapshot["gamma_k"]
    return snapshot.get("alpha_k")


def mid_conditioning_analysis(snapshot):
    """
    Condition number of the mixing matrix and norm of the coefficients.
    Entries are NaN when the step did not mix.
    """
    A = _mixing_matrix(snapshot)
    coeffs = _coefficients(snapshot)
    cond = np.linalg.cond(A) if A is not None and A.size else np.nan
    coeff_norm = np.linalg.norm(coeffs) if coeffs is not None else np.nan
    return {"condition_number": float(cond), "coefficient_norm": float(coeff_norm)}


def live_residual_analysis(snapshot):
    """Iteration count, residual norm and step length ||x_kp1 - x_k||."""
    residual = snapshot["residual"]
    if isinstance(residual, list):
        residual = residual[-1]
    return {
        "iterations": snapshot["iterations"],
        "residual_norm": float(np.linalg.norm(residual)),
        "step_norm": float(np.linalg.norm(snapshot["x_kp1"] - snapshot["x_k"])),
    }
