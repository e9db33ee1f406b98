import math
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import NamedTuple, Optional

import numpy as np
import pandas as pd

# 成功率的取值范围，超出时截断
MIN_SUCCESS_RATE = 0.01
MAX_SUCCESS_RATE = 0.999


class SampleStats(NamedTuple):
    mean: float
    p50: Optional[int]
    p90: Optional[int]
    p95: Optional[int]


@dataclass(frozen=True)
class Histogram:
    """
    抽数分布直方图。

    - density: 区间起点 -> 概率密度 (区间内概率 / 区间宽度)
    - cumulative: 区间起点 -> 截至该区间的累计概率
    - bin_width: 区间宽度
    - total_samples: 参与统计的成功模拟数
    - marker_bin: 最接近目标抽数的区间起点，仅供展示
    """
    density: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    cumulative: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    bin_width: int = 1
    total_samples: int = 0
    marker_bin: Optional[int] = None

    @property
    def is_empty(self):
        return self.total_samples == 0


def mean(samples):
    """成功模拟的平均抽数；没有成功样本时返回 None。"""
    if samples.finite_count == 0:
        return None
    return float(samples.draws.mean())


def quantile(samples, q):
    """
    第 q 分位的抽数。索引 = ceil(q * n) - 1，并限制在 [0, n-1]。
    该位置是未达成目标的模拟时返回 None。
    """
    n = len(samples)
    if n == 0:
        return None
    index = min(n - 1, max(0, math.ceil(q * n) - 1))
    return samples.value_at(index)


def draws_for_success_rate(samples, target_rate):
    """达成 target_rate 成功率所需的抽数；None 表示上限内没有可用的模拟结果。"""
    rate = max(MIN_SUCCESS_RATE, min(MAX_SUCCESS_RATE, target_rate))
    return quantile(samples, rate)


def compute_stats(samples):
    if samples.finite_count == 0:
        return None
    return SampleStats(
        mean=mean(samples),
        p50=quantile(samples, 0.5),
        p90=quantile(samples, 0.9),
        p95=quantile(samples, 0.95),
    )


def mode(samples):
    """出现次数最多的抽数（并列时取较小者）。"""
    if samples.finite_count == 0:
        return None
    return int(np.bincount(samples.draws).argmax())


def success_rate_at(samples, draws):
    """在 draws 抽以内达成目标的模拟占比（分母包含未达成的模拟）。"""
    n = len(samples)
    if n == 0:
        return 0.0
    return int(np.searchsorted(samples.draws, draws, side='right')) / n


def percentile_table(samples, percentiles):
    """计算达成这些百分位所需的抽数，返回 {百分位: 抽数或 None}。"""
    return {p: quantile(samples, p / 100) for p in percentiles}


def choose_bin_width(value_range):
    # 范围越大，区间越宽
    if value_range <= 50:
        return 1
    if value_range <= 100:
        return 2
    if value_range <= 200:
        return 3
    return 5


def build_histogram(samples, target_draws=None):
    """
    把成功的模拟结果分到自适应宽度的区间中，计算每个区间的概率密度和累计概率。
    只输出有样本的区间。
    """
    finite = samples.draws
    total = len(finite)
    if total == 0:
        return Histogram()

    bin_width = choose_bin_width(int(finite.max() - finite.min()))
    bins, counts = np.unique((finite // bin_width) * bin_width, return_counts=True)

    density = {}
    cumulative = {}
    running = 0.0
    for start, count in zip(bins.tolist(), counts.tolist()):
        probability = count / total
        density[start] = probability / bin_width
        running += probability
        cumulative[start] = running

    marker_bin = None
    # 目标抽数只用于标注，非有限值时不标注
    if target_draws is not None and math.isfinite(target_draws):
        target_bin = math.floor(target_draws / bin_width) * bin_width
        marker_bin = min(density, key=lambda b: (abs(b - target_bin), b))

    return Histogram(MappingProxyType(density), MappingProxyType(cumulative), bin_width, total, marker_bin)


# ####################################
# 输出与导出
# ####################################

def print_distribution(histogram, title="消耗抽数", unit="抽"):
    """格式化并打印分布数据。"""
    print(f"\n📊 {title}分布（{histogram.bin_width}{unit}）")
    print("区间范围       | 占比 (%)   | 累计 (%)")
    print("------------------------------------------")

    if histogram.is_empty:
        print("⚠ 无数据")
        return

    for start, density in histogram.density.items():
        end = start + histogram.bin_width - 1
        percentage = density * histogram.bin_width * 100
        range_str = f"{start:4}-{end:4}" if start != end else f"{start:4}  "
        print(f"{range_str} | {percentage:8.4f}% | {histogram.cumulative[start] * 100:8.4f}%")


def print_statistics(samples, percentiles, specific_draws=()):
    print("\n⭐ 目标达成统计")
    rate = samples.finite_count / len(samples) if len(samples) else 0.0
    print(f"- 成功率: {rate * 100:.4f}%")

    avg = mean(samples)
    if avg is None:
        print("⚠ 所有模拟均未在上限内达成目标")
        return
    print(f"- 平均消耗抽数: {avg:.4f}抽（仅统计成功案例）")
    print(f"- 众数: {mode(samples)}抽")

    print("\n📈 关键百分位统计")
    for p, val in percentile_table(samples, percentiles).items():
        shown = f"{val:8}" if val is not None else "     N/A"
        print(f"{p}% | {shown}抽 | 有{p}%的模拟消耗≤此抽数")

    for draws in specific_draws:
        print(f"- {draws}抽内达成概率: {success_rate_at(samples, draws) * 100:.4f}%")


def histogram_frame(histogram):
    """直方图转为 DataFrame，列: bin_start, bin_end, probability, density, cumulative。"""
    if histogram.is_empty:
        return pd.DataFrame(columns=['bin_start', 'bin_end', 'probability', 'density', 'cumulative'])
    df = pd.DataFrame({
        'bin_start': list(histogram.density.keys()),
        'density': list(histogram.density.values()),
        'cumulative': list(histogram.cumulative.values()),
    })
    df['bin_end'] = df['bin_start'] + histogram.bin_width - 1
    df['probability'] = df['density'] * histogram.bin_width
    return df[['bin_start', 'bin_end', 'probability', 'density', 'cumulative']]


def summary_frame(estimates):
    """把多次计算结果 (success_rate_percent, DrawEstimate) 汇总为一张表。"""
    rows = []
    for rate, est in estimates:
        stats = est.stats
        rows.append({
            'target_success_rate': rate,
            'achieved_success_rate': est.achieved_success_rate,
            'total_expected_draws': est.total_expected_draws,
            'cost_units_needed': est.cost_units_needed,
            'expected_reward_count': est.expected_reward_count,
            'mean_draws_per_reward': est.mean_draws_per_reward,
            'from_simulation': est.from_simulation,
            'mean': stats.mean if stats else np.nan,
            'p50': stats.p50 if stats else np.nan,
            'p90': stats.p90 if stats else np.nan,
            'p95': stats.p95 if stats else np.nan,
        })
    return pd.DataFrame(rows)


def save_frame_csv(df, filename, output_dir="simdata"):
    """把 DataFrame 保存到 output_dir 下，返回完整路径。"""
    if not os.path.exists(output_dir):
        os.makedirs(output_dir)
    full_path = os.path.join(output_dir, filename)
    df.to_csv(full_path, index=False, float_format='%.6f')
    return full_path
