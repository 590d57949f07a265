#!/usr/bin/env python3
"""
Installation test

Verifies that the dependencies and all modules import and that a short
accelerated solve runs. Works under pytest or as a script.
"""

import importlib
import sys

import numpy as np
import pytest


@pytest.mark.parametrize("package", ["numpy", "scipy", "matplotlib"])
def test_imports(package):
    """Required packages can be imported."""
    importlib.import_module(package)


@pytest.mark.parametrize("module", [
    "solver.aa_method",
    "solver.historical_stuff",
    "solver.anderson_step",
    "solver.aa_solve",
    "utils.linalg",
    "utils.filtering",
    "utils.problems",
    "utils.analysis",
    "anderson_benchmark",
])
def test_modules(module):
    """Project modules and the benchmark script can be imported."""
    importlib.import_module(module)


def test_basic_functionality():
    """A short vanilla solve on a linear contraction reaches the fixed point."""
    from solver.aa_method import AAMethod
    from solver.aa_solve import AA_solve
    from utils.problems import create_linear_contraction_problem

    problem = create_linear_contraction_problem(10, rho=0.5, seed=0)
    x, hist = AA_solve(problem, AAMethod.vanilla(m=3), maxit=100, atol=1e-10)
    assert hist["converged"]
    assert np.linalg.norm(x - problem.x_sol) < 1e-8


if __name__ == "__main__":
    print("🚀 Anderson acceleration installation test")
    print(f"🐍 Python version: {sys.version}")
    sys.exit(pytest.main([__file__, "-v"]))
