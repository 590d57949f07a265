"""
Anderson acceleration benchmark script.

Compares on the same fixed-point problems:
- FP: plain fixed-point iteration x_{k+1} = G(x_k)
- AA-vanilla: sliding-window Anderson mixing with ridge fallback
- AA-paqr: pivoted-QR coefficients with column deletion
- AA-faa: filtered Anderson acceleration (length + angle filtering)

Problems: the ill-conditioned 2-D map P1 and a linear contraction.
"""

import os
import time

import matplotlib.pyplot as plt
import numpy as np

from solver.aa_method import AAMethod
from solver.aa_solve import AA_solve
from utils.analysis import live_residual_analysis, mid_conditioning_analysis
from utils.problems import create_linear_contraction_problem, create_p1_problem


def fixed_point_iteration(problem, maxit=200, atol=1e-10, verbose=False):
    """
    Unaccelerated iteration x_{k+1} = G(x_k), used as baseline.

    Returns:
        x: Final iterate
        hist: Dict with lists "it", "time", "residual"
    """
    x = problem.x0.copy()
    hist = {"it": [], "time": [], "residual": []}
    t0 = time.time()
    for k in range(maxit):
        gx = problem.apply(x)
        rnorm = float(np.linalg.norm(gx - x))
        hist["it"].append(k)
        hist["time"].append(time.time() - t0)
        hist["residual"].append(rnorm)
        if verbose and k % 10 == 0:
            print(f"[FP] it={k:4d} ||g||={rnorm:.3e}")
        if rnorm <= atol:
            break
        x = gx
    return x, hist


def run_benchmark(problem, methods, maxit=200, atol=1e-10, verbose=False):
    """
    Run every method on one problem.

    Args:
        problem: FixedPointProblem
        methods: Dict label -> AAMethod
        maxit: Maximum iterations for all methods
        atol: Residual tolerance
        verbose: Print detailed progress

    Returns:
        results: Dict label -> {"x", "hist", "time"}
    """
    print(f"\n=== Anderson benchmark: {problem.title} ===")
    print(f"n={problem.n}, maxit={maxit}, atol={atol:.1e}")
    print("-" * 70)

    results = {}

    print("Running fixed-point iteration...")
    t0 = time.perf_counter()
    x, hist = fixed_point_iteration(problem, maxit=maxit, atol=atol, verbose=verbose)
    results["FP"] = {"x": x, "hist": hist, "time": time.perf_counter() - t0}

    for label, method in methods.items():
        print(f"Running {label}...")
        t0 = time.perf_counter()
        try:
            x, hist = AA_solve(problem, method, maxit=maxit, atol=atol,
                               liveanalysisfunc=live_residual_analysis,
                               midanalysisfunc=mid_conditioning_analysis,
                               verbose=verbose)
        except (np.linalg.LinAlgError, RuntimeError) as e:
            print(f"  {label} aborted: {e}")
            continue
        results[label] = {"x": x, "hist": hist, "time": time.perf_counter() - t0}

    print("\n" + "=" * 70)
    print("BENCHMARK SUMMARY")
    print("=" * 70)
    print(f"{'Method':<16} {'||g|| final':<14} {'||x-x*||_2':<14} {'Iters':<8} {'Time [s]':<10}")
    print("-" * 70)
    for label, res in results.items():
        err = np.linalg.norm(res["x"] - problem.x_sol) if problem.x_sol is not None else np.nan
        print(f"{label:<16} {res['hist']['residual'][-1]:<14.3e} {err:<14.3e} "
              f"{len(res['hist']['it']):<8} {res['time']:<10.3f}")
    print("=" * 70)

    return results


def plot_results(results, title, filename):
    """Residual history and mixing-matrix conditioning per method."""
    plt.style.use('default')
    plt.rcParams.update({
        'font.size': 12,
        'axes.labelweight': 'bold',
        'axes.titleweight': 'bold',
    })
    styles = {'FP': 'k:', 'AA-vanilla': 'r-', 'AA-paqr': 'b--', 'AA-faa': 'g-.'}

    fig, axes = plt.subplots(1, 2, figsize=(14, 5))

    ax = axes[0]
    for label, res in results.items():
        ax.semilogy(res['hist']['it'], res['hist']['residual'], styles.get(label, '-'),
                    linewidth=2.5, label=label)
    ax.set_xlabel('Iterations')
    ax.set_ylabel(r'$\|G(x_k) - x_k\|_2$')
    ax.set_title(f'{title}: residual')
    ax.grid(True, alpha=0.3, which='both', ls=':')
    ax.legend()

    ax = axes[1]
    for label, res in results.items():
        mids = res['hist'].get('mid')
        if not mids:
            continue
        cond = [m['condition_number'] for m in mids]
        ax.semilogy(res['hist']['it'], cond, styles.get(label, '-'), linewidth=2.5, label=label)
    ax.set_xlabel('Iterations')
    ax.set_ylabel('cond(mixing matrix)')
    ax.set_title(f'{title}: conditioning')
    ax.grid(True, alpha=0.3, which='both', ls=':')
    ax.legend()

    plt.tight_layout()
    os.makedirs("figs", exist_ok=True)
    plt.savefig(os.path.join("figs", filename), bbox_inches="tight")
    plt.show()


if __name__ == "__main__":
    methods = {
        'AA-vanilla': AAMethod.vanilla(m=2),
        'AA-paqr': AAMethod.paqr(threshold=1e-10),
        'AA-faa': AAMethod.faa(m=5, cs=0.1, kappabar=1e8),
    }

    p1_results = run_benchmark(create_p1_problem(), methods, maxit=20, verbose=True)
    plot_results(p1_results, 'P1', 'p1_benchmark.pdf')

    lin_methods = dict(methods, **{'AA-vanilla': AAMethod.vanilla(m=5)})
    lin_results = run_benchmark(create_linear_contraction_problem(100, rho=0.95, seed=0),
                                lin_methods, maxit=300, atol=1e-10)
    plot_results(lin_results, 'Linear contraction', 'linear_benchmark.pdf')
