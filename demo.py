#!/usr/bin/env python3
"""
Anderson acceleration demo script

A quick example of each acceleration method on small fixed-point problems.
"""

import numpy as np

from solver.aa_method import AAMethod
from solver.aa_solve import AA_solve
from utils.analysis import live_residual_analysis, mid_conditioning_analysis
from utils.problems import create_linear_contraction_problem, create_p1_problem


def demo_vanilla():
    """Demo vanilla Anderson mixing on the ill-conditioned map P1."""
    print("🎯 Vanilla Anderson (m=2) on P1")
    print("-" * 30)

    problem = create_p1_problem()
    x, hist = AA_solve(problem, AAMethod.vanilla(m=2), maxit=20, atol=1e-10,
                       midanalysisfunc=mid_conditioning_analysis)

    conds = [m["condition_number"] for m in hist["mid"]]
    print(f"Iterations: {len(hist['it'])}")
    print(f"Final residual: {hist['residual'][-1]:.2e}")
    print(f"Largest cond(G_k): {np.nanmax(conds):.2e}")
    print(f"Fixed point: {x}")
    print()


def demo_paqr():
    """Demo PAQR on a linear contraction."""
    print("📐 PAQR Anderson on a linear contraction")
    print("-" * 40)

    problem = create_linear_contraction_problem(50, rho=0.95, seed=1)
    x, hist = AA_solve(problem, AAMethod.paqr(threshold=1e-10), maxit=200, atol=1e-10,
                       liveanalysisfunc=live_residual_analysis)

    print(f"Iterations: {len(hist['it'])}")
    print(f"Final residual: {hist['residual'][-1]:.2e}")
    print(f"Error to x*: {np.linalg.norm(x - problem.x_sol):.2e}")
    print()


def demo_faa():
    """Demo filtered Anderson acceleration on a linear contraction."""
    print("🧹 Filtered Anderson (FAA) on a linear contraction")
    print("-" * 40)

    problem = create_linear_contraction_problem(50, rho=0.95, seed=1)
    kept = []

    def count_kept(snapshot):
        if snapshot["filtered"] is not None:
            kept.append(int(np.sum(snapshot["filtered"])))

    x, hist = AA_solve(problem, AAMethod.faa(m=6, cs=0.1, kappabar=1e8), maxit=200, atol=1e-10,
                       midanalysisfunc=count_kept)

    print(f"Iterations: {len(hist['it'])}")
    print(f"Final residual: {hist['residual'][-1]:.2e}")
    print(f"Error to x*: {np.linalg.norm(x - problem.x_sol):.2e}")
    if kept:
        print(f"Columns kept after filtering: mean {np.mean(kept):.1f}, min {min(kept)}")
    print()


def main():
    """Run all demos."""
    print("🚀 Anderson acceleration demo")
    print("=" * 50)
    print("This demo accelerates fixed-point iterations x = G(x) with:")
    print("1. Vanilla Anderson mixing (sliding window, ridge fallback)")
    print("2. PAQR (pivoting-avoiding QR with column deletion)")
    print("3. FAA (length and angle filtering of the history)")
    print()

    demo_vanilla()
    demo_paqr()
    demo_faa()

    print("🎉 Demo completed!")
    print("\nTo run the full benchmark with plots:")
    print("  python anderson_benchmark.py")


if __name__ == "__main__":
    main()
