import numpy as np
import pytest

from uq_diffusion.config import ProblemConfig, SamplingConfig
from uq_diffusion.convergence import refinement_study
from uq_diffusion.metrics import l2_relative_error, linf_error, observed_order, sample_statistics
from uq_diffusion.montecarlo import RunningStats, run_monte_carlo, run_monte_carlo_on
from uq_diffusion.sampling import latin_hypercube_sample, sample_uncertainties
from uq_diffusion.seed import SeedConfig, make_rng
from uq_diffusion.solvers import solve


def test_same_seed_same_result():
    problem = ProblemConfig(num_grid_points=21)
    sampling = SamplingConfig(num_samples=8, num_uncertainties=3)
    r1 = run_monte_carlo(problem, sampling, SeedConfig(seed=5))
    r2 = run_monte_carlo(problem, sampling, SeedConfig(seed=5))
    r3 = run_monte_carlo(problem, sampling, SeedConfig(seed=6))
    assert np.array_equal(r1.qoi, r2.qoi)
    assert not np.array_equal(r1.qoi, r3.qoi)


def test_samples_match_direct_solves():
    problem = ProblemConfig(num_grid_points=15, forcing=-1.0, reduction="integral_average")
    xi = np.array([[0.1, 0.2], [-0.5, 1.0], [0.0, 0.0]])
    result = run_monte_carlo_on(problem, xi)
    for row, value in zip(xi, result.qoi):
        assert value == solve(15, 2, row, forcing=-1.0, reduction_mode="integral_average")
    assert result.mean == pytest.approx(result.qoi.mean())


def test_no_uncertainties_is_deterministic():
    problem = ProblemConfig(num_grid_points=3)
    result = run_monte_carlo(problem, SamplingConfig(num_samples=4, num_uncertainties=0))
    assert np.all(result.qoi == 1.25)
    assert result.std == 0.0


def test_on_sample_callback_and_running_stats():
    seen = []
    running = RunningStats()

    def on_sample(i, xi, qoi):
        seen.append(i)
        running.update(qoi)

    result = run_monte_carlo(
        ProblemConfig(num_grid_points=11), SamplingConfig(num_samples=6, num_uncertainties=2), on_sample=on_sample
    )
    assert seen == list(range(6))
    assert running.mean == pytest.approx(result.mean)
    assert running.std == pytest.approx(result.std)


def test_run_monte_carlo_on_rejects_bad_shape():
    with pytest.raises(ValueError):
        run_monte_carlo_on(ProblemConfig(), np.array([1.0, 2.0]))


@pytest.mark.parametrize("method", ["normal", "uniform", "lhs"])
def test_sample_shapes(method):
    xi = sample_uncertainties(make_rng(SeedConfig(seed=0)), 10, 3, method=method)
    assert xi.shape == (10, 3)


def test_lhs_hits_every_stratum():
    x = latin_hypercube_sample(make_rng(SeedConfig(seed=1)), 20, 2, low=0.0, high=1.0)
    for j in range(2):
        bins = np.floor(x[:, j] * 20).astype(int)
        assert sorted(bins.tolist()) == list(range(20))


def test_unknown_sampling_method():
    with pytest.raises(ValueError):
        sample_uncertainties(make_rng(SeedConfig()), 2, 2, method="sobol")


def test_refinement_study_second_order():
    problem = ProblemConfig(forcing=-1.0)
    study = refinement_study(problem, [17, 33, 65, 129], uncertainties=[1.0, 0.5], reference_grid_points=2049)
    assert all(e > 0 for e in study.errors)
    assert study.errors == sorted(study.errors, reverse=True)
    for p in study.orders:
        assert 1.7 < p < 2.3


def test_refinement_study_against_exact_value():
    problem = ProblemConfig(forcing=-2.0)
    study = refinement_study(problem, [5, 9], exact=0.25)
    assert max(study.errors) < 1e-12


def test_refinement_study_arguments():
    with pytest.raises(ValueError):
        refinement_study(ProblemConfig(), [5, 9])
    with pytest.raises(ValueError):
        refinement_study(ProblemConfig(), [5], exact=0.0)


def test_metrics():
    assert l2_relative_error(np.array([1.0, 1.0]), np.array([1.0, 1.0])) == pytest.approx(0.0)
    assert linf_error(np.array([1.0, 3.0]), np.array([1.5, 1.0])) == 2.0
    assert observed_order([4e-2, 1e-2], [0.2, 0.1]) == [pytest.approx(2.0)]
    stats = sample_statistics(np.array([1.0, 2.0, 3.0]))
    assert stats["mean"] == 2.0
    assert stats["std"] == pytest.approx(1.0)
    with pytest.raises(ValueError):
        sample_statistics(np.array([]))


def test_refinement_study_field_errors_shrink():
    study = refinement_study(ProblemConfig(forcing=-1.0), [17, 33, 65], uncertainties=[1.0], reference_grid_points=1025)
    assert len(study.field_rel_l2) == len(study.field_linf) == 3
    assert study.field_rel_l2 == sorted(study.field_rel_l2, reverse=True)
    assert study.field_linf == sorted(study.field_linf, reverse=True)
    assert study.field_linf[-1] < study.field_linf[0] / 10
    assert study.to_dict()["field_linf"] == study.field_linf


def test_refinement_study_exact_has_no_field_errors():
    study = refinement_study(ProblemConfig(forcing=-2.0), [5, 9], exact=0.25)
    assert study.field_rel_l2 == []
    assert study.field_linf == []
