import time

from analysis import (
    build_histogram,
    histogram_frame,
    print_distribution,
    print_statistics,
    save_frame_csv,
    summary_frame,
)
from calculator import compute_multi_target_draws
from pity_table import default_pity_table

# ####################################
# 用户可修改参数
# ####################################

TRACK_A_COUNT = 2        # 角色池 (50/50) 目标数量
TRACK_B_COUNT = 1        # 武器池 (必定 UP) 目标数量
CURRENT_PITY = 0         # 当前垫刀数
HAS_GUARANTEE = False    # 角色池是否处于大保底

SUCCESS_RATES = [50, 75, 90, 95, 99]   # 依次计算这些目标成功率 (%)
SIMULATIONS = 4000
SEED = 42                # 设为 None 则每次结果不同
WORKERS = 1            # 线程数；只影响随机数流的分批执行方式，不会加速纯 Python 的模拟循环

PERCENTILES = [10, 25, 50, 75, 90]
SPECIFIC_DRAWS = [160, 240, 320]
SHOW_DISTRIBUTION = 1
OUTPUT_DIR = "simdata"


def main():
    """
    依次计算 SUCCESS_RATES 中每个目标成功率所需的抽数，
    打印结果，并把汇总表和分布直方图保存到 OUTPUT_DIR。
    """
    table = default_pity_table()
    print(f"▶ 开始计算：角色 {TRACK_A_COUNT} 个, 武器 {TRACK_B_COUNT} 个, "
          f"垫刀 {CURRENT_PITY}, 大保底 {'是' if HAS_GUARANTEE else '否'}")
    print(f"每次计算的模拟次数: {SIMULATIONS:,}")
    print("-" * 50)

    total_start_time = time.time()
    estimates = []
    for i, rate in enumerate(SUCCESS_RATES):
        run_start_time = time.time()
        try:
            estimate = compute_multi_target_draws(
                TRACK_A_COUNT, TRACK_B_COUNT, CURRENT_PITY, HAS_GUARANTEE, rate,
                table=table, simulations=SIMULATIONS, seed=SEED, workers=WORKERS)
        except Exception as e:
            print(f"--- 任务 ({i+1}/{len(SUCCESS_RATES)}): 成功率 {rate}% 时发生严重错误，任务已终止 ---")
            print(f"错误详情: {e}")
            import traceback
            traceback.print_exc()
            break

        if estimate is None:
            print("⚠ 目标数量为 0，无需计算")
            return

        source = "模拟" if estimate.from_simulation else "期望值公式"
        print(f"- {estimate.achieved_success_rate:g}% 成功率: {estimate.total_expected_draws:,}抽 "
              f"/ {estimate.cost_units_needed:,}货币（{source}，耗时 {time.time() - run_start_time:.2f}s）")
        estimates.append((rate, estimate))

    if not estimates:
        return

    # 固定 seed 时各成功率共享同一批模拟结果，取最后一次的样本即可
    last = estimates[-1][1]
    print(f"\n- 期望出金数: {last.expected_reward_count:g}")
    print(f"- 每金平均消耗: {last.mean_draws_per_reward:.4f}抽")
    print_statistics(last.samples, PERCENTILES, SPECIFIC_DRAWS)

    histogram = build_histogram(last.samples, last.total_expected_draws)
    if SHOW_DISTRIBUTION:
        print_distribution(histogram)

    # --- 保存结果到文件 ---
    try:
        tag = f"a{TRACK_A_COUNT}_b{TRACK_B_COUNT}_p{CURRENT_PITY}_{'g' if HAS_GUARANTEE else 'n'}"
        summary_path = save_frame_csv(summary_frame(estimates), f"summary_{tag}.csv", OUTPUT_DIR)
        hist_path = save_frame_csv(histogram_frame(histogram), f"histogram_{tag}.csv", OUTPUT_DIR)
        print(f"\n💾 详细结果已保存到文件: {summary_path}, {hist_path}")
    except OSError as e:
        print("\n❌ 保存文件时出错: ", e)

    print("\n" + "=" * 50)
    print(f"总耗时: {time.time() - total_start_time:.2f} 秒")
    print("=" * 50)


if __name__ == "__main__":
    main()
