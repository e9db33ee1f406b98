"""
多目标抽数计算入口：给定角色/武器目标数量、当前垫刀和大保底状态，
基于实测出金分布的蒙特卡洛模拟，估算达到目标成功率所需的抽数和货币。
"""
import math
from dataclasses import dataclass
from typing import Optional

from analysis import SampleStats, build_histogram, compute_stats, draws_for_success_rate
from gachasim import SIMULATIONS, SampleSet, run_monte_carlo
from pity_table import COST_PER_DRAW, default_pity_table

DEFAULT_SUCCESS_RATE_PERCENT = 90.0
MIN_SUCCESS_RATE_PERCENT = 1.0
MAX_SUCCESS_RATE_PERCENT = 99.9

__all__ = ['DrawEstimate', 'build_histogram', 'compute_multi_target_draws', 'expected_reward_count']


@dataclass(frozen=True)
class DrawEstimate:
    total_expected_draws: int
    cost_units_needed: int
    expected_reward_count: float
    mean_draws_per_reward: float
    achieved_success_rate: float   # 实际使用的目标成功率 (百分比，已截断)
    stats: Optional[SampleStats]
    samples: SampleSet
    from_simulation: bool = True   # False 表示模拟结果不可用，使用了期望值公式


def _as_count(value):
    """把输入规整为非负整数，负数或非数字视为 0。"""
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, number)


def _clamp_pity(value, hard_pity):
    return min(hard_pity - 1, _as_count(value))


def _clamp_rate_percent(value):
    try:
        rate = float(value)
    except (TypeError, ValueError):
        rate = DEFAULT_SUCCESS_RATE_PERCENT
    if math.isnan(rate):
        rate = DEFAULT_SUCCESS_RATE_PERCENT
    return max(MIN_SUCCESS_RATE_PERCENT, min(MAX_SUCCESS_RATE_PERCENT, rate))


def expected_reward_count(track_a_count, track_b_count, has_guarantee):
    """
    期望出金数:
    - 角色池: 每个目标平均 1.5 金 (50/50)；有大保底时第一个目标只需 1 金
    - 武器池: 每个目标 1 金
    """
    if track_a_count <= 0:
        track_a = 0.0
    elif has_guarantee:
        track_a = 1 + 1.5 * (track_a_count - 1)
    else:
        track_a = 1.5 * track_a_count
    return track_a + track_b_count


def closed_form_draws(table, pity, expected_rewards):
    """期望值公式：当前垫刀到下一金的期望 + 之后每金一轮完整周期的期望。"""
    first_cycle = table.expected_additional_draws(pity)
    # 四舍五入 (0.5 向上取整)
    return math.floor(first_cycle + max(0.0, expected_rewards - 1) * table.mean_from_zero + 0.5)


def compute_multi_target_draws(track_a_count, track_b_count, current_pity, has_guarantee,
                               target_success_rate_percent, *, table=None,
                               simulations=SIMULATIONS, seed=None, workers=1):
    """
    计算获取指定数量角色 (A) 和武器 (B) 所需的抽数。

    参数:
    - track_a_count, track_b_count: 目标数量，负数或非数字视为 0
    - current_pity: 当前垫刀数，限制在 [0, HARD_PITY-1]
    - has_guarantee: 下一次角色池出金是否必定为 UP
    - target_success_rate_percent: 目标成功率 (百分比)，限制在 [1, 99.9]
    - table: PityTable，缺省时使用内置实测数据
    - simulations, seed, workers: 蒙特卡洛参数

    返回:
    - DrawEstimate，目标总数为 0 时返回 None
    """
    track_a_count = _as_count(track_a_count)
    track_b_count = _as_count(track_b_count)
    if track_a_count + track_b_count == 0:
        return None

    if table is None:
        table = default_pity_table()
    pity = _clamp_pity(current_pity, table.hard_pity)
    rate_percent = _clamp_rate_percent(target_success_rate_percent)
    has_guarantee = bool(has_guarantee)

    rewards = expected_reward_count(track_a_count, track_b_count, has_guarantee)

    samples = run_monte_carlo(table, track_a_count, track_b_count, pity, has_guarantee,
                              simulations=simulations, seed=seed, workers=workers)
    stats = compute_stats(samples)
    draws_for_target = draws_for_success_rate(samples, rate_percent / 100)

    if draws_for_target is not None:
        total_draws = int(draws_for_target)
    else:
        # 上限内没有足够的成功模拟，退回期望值公式
        total_draws = closed_form_draws(table, pity, rewards)

    return DrawEstimate(
        total_expected_draws=total_draws,
        cost_units_needed=total_draws * COST_PER_DRAW,
        expected_reward_count=rewards,
        mean_draws_per_reward=table.mean_from_zero,
        achieved_success_rate=rate_percent,
        stats=stats,
        samples=samples,
        from_simulation=draws_for_target is not None,
    )
