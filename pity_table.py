# 导入必要的库
import numpy as np
from numba import jit  # Numba 用于即时编译加速查表

# ####################################
# 核心常量 (固定的领域数据，通常不需要修改)
# ####################################

HARD_PITY = 80          # 硬保底：第 80 抽必定出金
COST_PER_DRAW = 160     # 每抽消耗的货币数量
TRACK_A_WIN_RATE = 0.5  # 角色池 50/50 的胜率

# 实测的出金位置分布：索引 = 本轮第几抽出金 (1-80)，值 = 样本数
# 第 1-65 抽每个位置均为 2200 个样本，之后进入软保底区间
EMPIRICAL_COUNTS = tuple([2200] * 65 + [
    12316, 21088, 28146, 32063, 32769, 35915, 32749, 25103,
    16339, 8749, 4128, 1394, 317, 35, 14,
])
TOTAL_SAMPLES = 394125  # 样本总数


@jit(nopython=True, nogil=True)
def _truncated_expectation(prob_at_pull, cumulative_prob, pity, hard_pity):
    """在已垫 `pity` 抽未出金的条件下，计算距离下一次出金的期望抽数。"""
    if pity >= hard_pity:
        return 0.0

    prob_before = cumulative_prob[pity] if pity > 0 else 0.0
    remaining_prob = 1.0 - prob_before
    if remaining_prob <= 0.0:
        return 0.0

    expectation = 0.0
    for k in range(pity + 1, hard_pity + 1):
        # 条件概率：已知前 pity 抽未出金时，恰好在第 k 抽出金
        expectation += (k - pity) * (prob_at_pull[k] / remaining_prob)
    return expectation


@jit(nopython=True, nogil=True)
def _inverse_cdf(cumulative_prob, pity, target, hard_pity):
    """逆 CDF 查找：返回第一个累计概率 >= target 的位置距当前垫刀的抽数。"""
    for k in range(pity + 1, hard_pity + 1):
        if cumulative_prob[k] >= target:
            return k - pity
    # 浮点误差兜底：视为硬保底
    return hard_pity - pity


class PityTable:
    """
    经验出金分布表。构建后只读，可在所有模拟之间共享。

    属性:
    - counts (np.ndarray): 长度 HARD_PITY+1，counts[k] 为第 k 抽出金的样本数 (counts[0] 恒为 0)
    - total (int): 样本总数
    - prob_at_pull (np.ndarray): P(第 k 抽首次出金)
    - cumulative_prob (np.ndarray): P(第 k 抽及之前出金)
    - mean_from_zero (float): 从 0 垫刀开始，一轮完整出金的期望抽数
    """

    def __init__(self, counts, total, hard_pity=HARD_PITY):
        self.hard_pity = int(hard_pity)
        self.total = int(total)

        self.counts = np.zeros(self.hard_pity + 1, dtype=np.int64)
        self.counts[1:] = counts
        self.prob_at_pull = self.counts / self.total
        self.cumulative_prob = np.cumsum(self.prob_at_pull)

        # 锁定数组，保证多线程共享时不会被修改
        for arr in (self.counts, self.prob_at_pull, self.cumulative_prob):
            arr.flags.writeable = False

        self.mean_from_zero = self.expected_additional_draws(0)

    def __repr__(self):
        return f"PityTable(hard_pity={self.hard_pity}, total={self.total:,})"

    def prob_at(self, pull):
        return float(self.prob_at_pull[pull])

    def cumulative_at(self, pull):
        return float(self.cumulative_prob[pull])

    def expected_additional_draws(self, pity):
        """
        期望还需多少抽才能出金（截断离散分布的条件期望）。
        调用方负责把 pity 限制在 [0, HARD_PITY-1]。
        """
        return float(_truncated_expectation(
            self.prob_at_pull, self.cumulative_prob, int(pity), self.hard_pity))

    def sample_additional_draws(self, pity, rng):
        """
        按经验分布随机抽取下一次出金还需的抽数。

        参数:
        - pity (int): 当前垫刀数，已由调用方限制在 [0, HARD_PITY-1]
        - rng (np.random.Generator): 随机数源，每次调用消耗一个均匀随机数

        返回:
        - int: 额外抽数 (>= 1)
        """
        pity = int(pity)
        if pity >= self.hard_pity:
            return 0

        prob_before = self.cumulative_prob[pity] if pity > 0 else 0.0
        remaining_prob = 1.0 - prob_before

        # 只在未被截断的尾部做逆 CDF 采样
        u = rng.random()
        target = prob_before + u * remaining_prob
        return int(_inverse_cdf(self.cumulative_prob, pity, target, self.hard_pity))


def build_pity_table(counts=EMPIRICAL_COUNTS, total=TOTAL_SAMPLES, hard_pity=HARD_PITY):
    """
    校验经验数据并构建 PityTable。
    数据不合法属于配置错误，在启动时抛出 ValueError，而不是在每次计算时处理。
    """
    counts = np.asarray(counts, dtype=np.int64)
    if counts.ndim != 1 or len(counts) != hard_pity:
        raise ValueError(f"经验分布表长度必须为 {hard_pity}，实际为 {counts.size}")
    if (counts < 0).any():
        raise ValueError("经验分布表中存在负数样本")
    if int(total) <= 0:
        raise ValueError(f"样本总数必须为正数，实际为 {total}")
    if int(counts.sum()) != int(total):
        raise ValueError(f"样本数之和 {int(counts.sum()):,} 与声明的总数 {int(total):,} 不一致")

    table = PityTable(counts, total, hard_pity)
    if not np.isclose(table.cumulative_prob[-1], 1.0):
        raise ValueError("累计概率在硬保底处未达到 1")
    return table


def default_pity_table():
    """用内置的实测数据构建分布表。每次调用都会新建一个对象，建议在启动时构建一次后复用。"""
    return build_pity_table(EMPIRICAL_COUNTS, TOTAL_SAMPLES, HARD_PITY)
