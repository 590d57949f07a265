"""
Driver loop for Anderson-accelerated fixed-point iteration.
"""

import time

import numpy as np

from solver.aa_method import AAMethod
from solver.anderson_step import create_next_iterate_function
from solver.historical_stuff import initialize_historical_stuff
from utils.analysis import null_analysis


def AA_solve(problem,
             aamethod,
             x0=None,
             maxit=100,
             atol=1e-10,
             rtol=0.0,
             liveanalysisfunc=None,
             midanalysisfunc=None,
             verbose=False,
             print_every=1):
    """
    Iterate the accelerated map until ||g_k|| <= max(atol, rtol*||g_0||).

    Args:
        problem: FixedPointProblem (anything with x0 and correction())
        aamethod: AAMethod selecting vanilla, paqr or faa
        x0: Initial iterate (defaults to problem.x0)
        maxit: Maximum number of steps
        atol: Absolute residual tolerance
        rtol: Relative residual tolerance (w.r.t. the first residual)
        liveanalysisfunc: Callback on the running-history snapshot
        midanalysisfunc: Callback on the mixing snapshot
        verbose: Print iteration progress
        print_every: Print every this many iterations when verbose

    Returns:
        x: Last iterate
        hist: Dict with lists "it", "time", "residual", "mid", "live" and the
            flag "converged"
    """
    if not isinstance(aamethod, AAMethod):
        aamethod = AAMethod(aamethod)
    x_k = np.array(problem.x0 if x0 is None else x0, dtype=float)
    if x_k.ndim != 1:
        raise ValueError(f"AA_solve expects a 1-D initial iterate, got shape {x_k.shape}")

    HS = initialize_historical_stuff(aamethod, x_k.size)
    step = create_next_iterate_function(problem.correction(), aamethod,
                                        liveanalysisfunc or null_analysis,
                                        midanalysisfunc or null_analysis)
    tag = f"AA-{aamethod.methodname.value}"

    hist = {"it": [], "time": [], "residual": [], "mid": [], "live": [], "converged": False}
    t0 = time.time()
    tol = atol
    x_kp1 = x_k.copy()

    for k in range(maxit):
        x_kp1 = np.empty_like(x_k)
        mid, live = step(HS, x_kp1, x_k)
        rnorm = float(np.linalg.norm(HS.last_residual))
        if k == 0:
            tol = max(atol, rtol * rnorm)

        elapsed = time.time() - t0
        hist["it"].append(k)
        hist["time"].append(elapsed)
        hist["residual"].append(rnorm)
        hist["mid"].append(mid)
        hist["live"].append(live)

        if verbose and (k % print_every == 0):
            print(f"[{tag}] it={k:4d} ||g||={rnorm:.3e} t={elapsed:.2f}s")

        if rnorm <= tol:
            hist["converged"] = True
            break
        x_k = x_kp1

    if verbose and hist["it"]:
        status = "converged" if hist["converged"] else "stopped at maxit"
        print(f"[{tag}] {status} after {len(hist['it'])} iterations, ||g||={hist['residual'][-1]:.3e}")

    return x_kp1, hist
