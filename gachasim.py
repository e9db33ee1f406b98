# 导入必要的库
import time
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

import numpy as np

from pity_table import HARD_PITY, TRACK_A_WIN_RATE

# ####################################
# 模拟参数 (通常不需要修改)
# ####################################

SIMULATIONS = 4000   # 默认的蒙特卡洛模拟次数
BATCH_SIZE = 500     # 每个批次的模拟次数，每个批次使用独立的随机数流

# 当两个池子都还需要出金时，优先结算角色池 (A)。
# 这是一个固定的结算顺序，改成按比例分配会得到不同的统计结果。
TRACK_A = 'A'
TRACK_B = 'B'


class Sample(NamedTuple):
    """单次模拟的结果：消耗的抽数，以及是否在抽数上限内达成目标。"""
    draws: int
    converged: bool


class SampleSet:
    """
    一批模拟结果，按抽数升序排列，未达成目标的模拟排在最后。

    成功的抽数保存在只读的 int64 数组中，未达成目标的模拟只记录数量，
    因此排序不依赖任何“无穷大”之类的哨兵值。
    """

    def __init__(self, draws, not_converged=0):
        draws = np.sort(np.asarray(draws, dtype=np.int64))
        draws.flags.writeable = False
        self.draws = draws
        self.not_converged = int(not_converged)

    @classmethod
    def from_samples(cls, samples):
        finite = [s.draws for s in samples if s.converged]
        failed = sum(1 for s in samples if not s.converged)
        return cls(finite, failed)

    def __len__(self):
        return len(self.draws) + self.not_converged

    def __iter__(self):
        for value in self.draws:
            yield Sample(int(value), True)
        for _ in range(self.not_converged):
            yield Sample(0, False)

    def __repr__(self):
        return f"SampleSet(finite={self.finite_count}, not_converged={self.not_converged})"

    @property
    def finite_count(self):
        return len(self.draws)

    def value_at(self, index):
        """返回第 index 个样本的抽数；该位置为未达成目标的模拟时返回 None。"""
        if index < 0 or index >= len(self):
            raise IndexError(index)
        if index < len(self.draws):
            return int(self.draws[index])
        return None

    @staticmethod
    def concatenate(parts):
        draws = np.concatenate([p.draws for p in parts]) if parts else np.array([], dtype=np.int64)
        return SampleSet(draws, sum(p.not_converged for p in parts))


def draw_cap(track_a_count, track_b_count):
    """单次模拟的抽数上限，足够宽松，未达成只会是极少数的模拟现象。"""
    return HARD_PITY * (4 * (track_a_count + track_b_count) + 5)


def resolve_track(need_a, need_b):
    """决定本次出金计入哪个池子：两个都需要时固定先结算 A。"""
    if need_a:
        return TRACK_A
    if need_b:
        return TRACK_B
    return None


def simulate_single_run(table, track_a_count, track_b_count, starting_pity,
                        starting_guarantee, max_draws, rng):
    """
    模拟一次完整的抽卡过程，直到两个池子的目标都达成或超出抽数上限。

    参数:
    - table (PityTable): 经验出金分布
    - track_a_count (int): 角色池 (50/50) 目标数量
    - track_b_count (int): 武器池 (必定 UP) 目标数量
    - starting_pity (int): 初始垫刀数
    - starting_guarantee (bool): 角色池是否处于大保底状态
    - max_draws (int): 单次模拟的抽数上限
    - rng (np.random.Generator): 随机数源

    返回:
    - Sample: (消耗抽数, 是否达成目标)
    """
    # --- 单次模拟状态变量初始化 ---
    pity = max(0, min(table.hard_pity - 1, int(starting_pity)))
    guarantee = bool(starting_guarantee)  # 大保底只作用于角色池
    draws_used = 0
    successes_a = 0
    successes_b = 0

    while draws_used < max_draws and (successes_a < track_a_count or successes_b < track_b_count):
        if pity >= table.hard_pity:
            pity = 0

        additional = table.sample_additional_draws(pity, rng)
        if additional > max_draws - draws_used:
            # 下一次出金已经超出上限
            break

        draws_used += additional
        pity = 0  # 出金后，无论哪个池子，垫刀次数清零

        track = resolve_track(successes_a < track_a_count, successes_b < track_b_count)
        if track == TRACK_A:
            # --- 大小保底判定 ---
            if guarantee:
                successes_a += 1
                guarantee = False
            elif rng.random() < TRACK_A_WIN_RATE:
                successes_a += 1
            else:  # 歪了，下一次角色池出金必定为 UP
                guarantee = True
        elif track == TRACK_B:
            successes_b += 1

    achieved = successes_a >= track_a_count and successes_b >= track_b_count
    return Sample(draws_used, achieved)


def _run_batch(table, track_a_count, track_b_count, starting_pity, starting_guarantee,
               max_draws, runs, seed_seq):
    """在一个独立的随机数流上执行 runs 次模拟。"""
    rng = np.random.default_rng(seed_seq)
    results = [
        simulate_single_run(table, track_a_count, track_b_count, starting_pity,
                            starting_guarantee, max_draws, rng)
        for _ in range(runs)
    ]
    return SampleSet.from_samples(results)


def run_monte_carlo(table, track_a_count, track_b_count, starting_pity=0, starting_guarantee=False,
                    simulations=SIMULATIONS, seed=None, workers=1, batch_size=BATCH_SIZE,
                    show_progress=False):
    """
    执行蒙特卡洛模拟，返回按抽数升序排列的 SampleSet。

    模拟按 batch_size 分批，每批从同一个 SeedSequence 派生独立的随机数流，
    所以在 seed 固定时，无论 workers 取多少，结果都完全一致。
    workers > 1 时各批次提交到线程池执行。单次模拟的循环是纯 Python 代码，受 GIL 限制，
    线程池不会带来明显加速；分批的目的是让每批使用独立的随机数流。
    """
    simulations = int(simulations)
    batch_size = max(1, int(batch_size))
    max_draws = draw_cap(track_a_count, track_b_count)

    # --- 拆分批次，并为每个批次派生独立的随机数流 ---
    batch_runs = [min(batch_size, simulations - start) for start in range(0, simulations, batch_size)]
    child_seqs = np.random.SeedSequence(seed).spawn(len(batch_runs))
    tasks = [
        (table, track_a_count, track_b_count, starting_pity, starting_guarantee, max_draws, runs, seq)
        for runs, seq in zip(batch_runs, child_seqs)
    ]

    start_time = time.time()
    parts = []
    if workers > 1 and len(tasks) > 1:
        with ThreadPoolExecutor(max_workers=workers) as ex:
            # map 保持批次顺序
            for part in ex.map(lambda args: _run_batch(*args), tasks):
                parts.append(part)
                if show_progress:
                    _print_progress(parts, simulations, start_time)
    else:
        for args in tasks:
            parts.append(_run_batch(*args))
            if show_progress:
                _print_progress(parts, simulations, start_time)

    if show_progress:
        print()
    return SampleSet.concatenate(parts)


def _print_progress(parts, simulations, start_time):
    done = sum(len(p) for p in parts)
    progress = 100 * done / simulations if simulations else 100.0
    print(f"▷ 进度 {progress:.2f}% | 耗时 {time.time() - start_time:.1f}s", end='\r')
