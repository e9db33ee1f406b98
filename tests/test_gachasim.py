"""Tests for the pull sequence simulator and the Monte Carlo engine."""

import numpy as np
import pytest

from gachasim import (
    TRACK_A,
    TRACK_B,
    Sample,
    SampleSet,
    draw_cap,
    resolve_track,
    run_monte_carlo,
    simulate_single_run,
)
from pity_table import HARD_PITY

# 以 u=0.5 从 0 垫刀采样恰好是第 68 抽出金
MEDIAN_DRAW = 68
WIN = 0.1
LOSE = 0.9

# =============================================================================
# Single run
# =============================================================================


def test_guarantee_consumes_the_coin_flip(table, fixed_random):
    source = fixed_random([0.5])
    result = simulate_single_run(table, 1, 0, 0, True, draw_cap(1, 0), source)
    assert result == Sample(MEDIAN_DRAW, True)
    assert source.calls == 1


def test_lost_coin_sets_guarantee(table, fixed_random):
    source = fixed_random([0.5, LOSE, 0.5])
    result = simulate_single_run(table, 1, 0, 0, False, draw_cap(1, 0), source)
    assert result == Sample(2 * MEDIAN_DRAW, True)
    assert source.calls == 3


def test_won_coin_keeps_guarantee_clear(table, fixed_random):
    source = fixed_random([0.5, WIN, 0.5, LOSE, 0.5])
    result = simulate_single_run(table, 2, 0, 0, False, draw_cap(2, 0), source)
    assert result == Sample(3 * MEDIAN_DRAW, True)


def test_track_a_resolves_before_track_b(table, fixed_random):
    # 第一金: A 歪; 第二金: A 大保底; 第三金: B
    source = fixed_random([0.5, LOSE, 0.5, 0.5])
    result = simulate_single_run(table, 1, 1, 0, False, draw_cap(1, 1), source)
    assert result == Sample(3 * MEDIAN_DRAW, True)
    assert source.calls == 4


def test_track_b_never_flips_a_coin(table, fixed_random):
    source = fixed_random([0.5, 0.5])
    result = simulate_single_run(table, 0, 2, 0, False, draw_cap(0, 2), source)
    assert result == Sample(2 * MEDIAN_DRAW, True)
    assert source.calls == 2


def test_reward_beyond_cap_does_not_converge(table, fixed_random):
    result = simulate_single_run(table, 1, 0, 0, True, 10, fixed_random([0.5]))
    assert result == Sample(0, False)


def test_zero_targets_returns_immediately(table, fixed_random):
    source = fixed_random([])
    assert simulate_single_run(table, 0, 0, 0, False, 100, source) == Sample(0, True)
    assert source.calls == 0


@pytest.mark.parametrize("starting_pity,expected", [(500, 1), (79, 1), (-5, MEDIAN_DRAW)])
def test_starting_pity_is_clamped(table, fixed_random, starting_pity, expected):
    result = simulate_single_run(table, 1, 0, starting_pity, True, 1000, fixed_random([0.5]))
    assert result.draws == expected


def test_single_run_is_reproducible(table):
    first = [simulate_single_run(table, 3, 2, 10, False, draw_cap(3, 2), np.random.default_rng(99))
             for _ in range(3)]
    second = [simulate_single_run(table, 3, 2, 10, False, draw_cap(3, 2), np.random.default_rng(99))
              for _ in range(3)]
    assert first == second


def test_draw_cap():
    assert draw_cap(1, 0) == HARD_PITY * 9
    assert draw_cap(2, 3) == HARD_PITY * 25


def test_resolve_track_priority():
    assert resolve_track(True, True) == TRACK_A
    assert resolve_track(True, False) == TRACK_A
    assert resolve_track(False, True) == TRACK_B
    assert resolve_track(False, False) is None


# =============================================================================
# SampleSet
# =============================================================================


def test_sample_set_orders_finite_first():
    samples = SampleSet.from_samples([Sample(90, True), Sample(5, False), Sample(12, True)])
    assert len(samples) == 3
    assert samples.finite_count == 2
    assert [samples.value_at(i) for i in range(3)] == [12, 90, None]
    assert list(samples) == [Sample(12, True), Sample(90, True), Sample(0, False)]


def test_sample_set_index_out_of_range():
    with pytest.raises(IndexError):
        SampleSet([1, 2]).value_at(2)


def test_sample_set_is_read_only():
    samples = SampleSet([3, 1, 2])
    with pytest.raises(ValueError):
        samples.draws[0] = 100


def test_concatenate_keeps_failures():
    merged = SampleSet.concatenate([SampleSet([5, 1], 1), SampleSet([3], 2)])
    assert merged.draws.tolist() == [1, 3, 5]
    assert merged.not_converged == 3


# =============================================================================
# Monte Carlo engine
# =============================================================================


def test_monte_carlo_size_and_order(table):
    samples = run_monte_carlo(table, 1, 1, simulations=1050, seed=1, batch_size=500)
    assert len(samples) == 1050
    assert np.all(np.diff(samples.draws) >= 0)


def test_monte_carlo_same_seed_same_result(table):
    a = run_monte_carlo(table, 2, 0, simulations=600, seed=3)
    b = run_monte_carlo(table, 2, 0, simulations=600, seed=3)
    assert np.array_equal(a.draws, b.draws)


def test_monte_carlo_result_does_not_depend_on_workers(table):
    sequential = run_monte_carlo(table, 2, 1, 5, False, simulations=1200, seed=11, workers=1, batch_size=100)
    threaded = run_monte_carlo(table, 2, 1, 5, False, simulations=1200, seed=11, workers=4, batch_size=100)
    assert np.array_equal(sequential.draws, threaded.draws)
    assert sequential.not_converged == threaded.not_converged


def test_weapon_only_ignores_guarantee(table):
    with_guarantee = run_monte_carlo(table, 0, 1, 0, True, simulations=500, seed=5)
    without = run_monte_carlo(table, 0, 1, 0, False, simulations=500, seed=5)
    assert np.array_equal(with_guarantee.draws, without.draws)


def test_monte_carlo_converges_under_default_cap(table):
    samples = run_monte_carlo(table, 3, 2, simulations=1000, seed=8)
    assert samples.not_converged == 0
    assert samples.draws.min() >= 5


def test_monte_carlo_progress_output(table, capsys):
    run_monte_carlo(table, 1, 0, simulations=100, seed=2, batch_size=50, show_progress=True)
    assert "100.00%" in capsys.readouterr().out
