"""
Tests for the AA_solve driver, including the vanilla reference run on P1
(Toth & Kelly 2015, Table 3.1 problem).
"""

import numpy as np
import pytest

from solver.aa_method import AAMethod
from solver.aa_solve import AA_solve
from utils.analysis import live_residual_analysis, mid_conditioning_analysis
from utils.problems import FixedPointProblem, create_linear_contraction_problem, create_p1_problem


P1_VANILLA_RESIDUALS = [6.501e-01, 4.487e-01, 2.615e-02, 7.254e-02,
                        1.531e-04, 1.185e-05, 1.825e-08, 1.048e-13]


def test_vanilla_p1_matches_reference_residuals():
    problem = create_p1_problem()
    x, hist = AA_solve(problem, AAMethod.vanilla(m=2), maxit=20, atol=1e-10)

    assert hist["converged"]
    assert len(hist["residual"]) == len(P1_VANILLA_RESIDUALS)
    # the reference is printed with four significant digits
    np.testing.assert_allclose(hist["residual"], P1_VANILLA_RESIDUALS, rtol=1e-3, atol=1e-7)
    assert hist["residual"][-1] < 1e-10
    np.testing.assert_allclose(problem.apply(x), x, atol=1e-10)


def test_vanilla_p1_analysis_callbacks():
    problem = create_p1_problem()
    _, hist = AA_solve(problem, AAMethod.vanilla(m=2), maxit=20, atol=1e-10,
                       liveanalysisfunc=live_residual_analysis,
                       midanalysisfunc=mid_conditioning_analysis)

    assert np.isnan(hist["mid"][0]["condition_number"])
    assert hist["mid"][1]["condition_number"] == pytest.approx(1.0)
    # nearly parallel residual differences make G_k extremely ill-conditioned
    assert max(m["condition_number"] for m in hist["mid"][2:]) > 1e8
    live_norms = [live["residual_norm"] for live in hist["live"]]
    np.testing.assert_allclose(live_norms, hist["residual"])


@pytest.mark.parametrize("method", [
    AAMethod.vanilla(m=5),
    AAMethod.paqr(threshold=1e-10),
    AAMethod.faa(m=5, cs=0.1, kappabar=1e8),
])
def test_linear_contraction_converges(method):
    problem = create_linear_contraction_problem(10, rho=0.5, seed=7)
    x, hist = AA_solve(problem, method, maxit=100, atol=1e-9)
    assert hist["converged"]
    assert np.linalg.norm(x - problem.x_sol) < 1e-7


@pytest.mark.parametrize("method", [AAMethod.vanilla(m=0), AAMethod.faa(m=1)])
def test_zero_depth_reduces_to_fixed_point_iteration(method):
    problem = create_linear_contraction_problem(4, rho=0.5, seed=9)
    x, hist = AA_solve(problem, method, maxit=5, atol=0.0)

    x_fp = problem.x0.copy()
    residuals = []
    for _ in range(5):
        gx = problem.apply(x_fp)
        residuals.append(np.linalg.norm(gx - x_fp))
        x_fp = gx

    assert hist["it"] == [0, 1, 2, 3, 4]
    np.testing.assert_allclose(hist["residual"], residuals, rtol=1e-12)
    np.testing.assert_allclose(x, x_fp, rtol=1e-12)


def test_rtol_stops_relative_to_first_residual():
    problem = create_linear_contraction_problem(5, rho=0.5, seed=8)
    _, hist = AA_solve(problem, AAMethod.vanilla(m=3), maxit=100, atol=0.0, rtol=1e-3)
    assert hist["converged"]
    assert hist["residual"][-1] <= 1e-3 * hist["residual"][0]
    assert all(r > 1e-3 * hist["residual"][0] for r in hist["residual"][:-1])


def test_maxit_caps_iterations():
    problem = create_p1_problem()
    _, hist = AA_solve(problem, "vanilla", maxit=3, atol=0.0)
    assert not hist["converged"]
    assert hist["it"] == [0, 1, 2]


def test_verbose_prints_progress(capsys):
    problem = create_p1_problem()
    AA_solve(problem, AAMethod.vanilla(m=2), maxit=20, verbose=True, print_every=2)
    out = capsys.readouterr().out
    assert "[AA-vanilla] it=   0" in out
    assert "[AA-vanilla] it=   1" not in out
    assert "converged after 8 iterations" in out


def test_rejects_non_vector_start():
    problem = FixedPointProblem(lambda out, u: None, np.zeros((2, 2)))
    with pytest.raises(ValueError, match="1-D initial iterate"):
        AA_solve(problem, AAMethod.vanilla(m=2))
