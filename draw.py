import os
import sys

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
import pandas as pd


def plot_histogram(csv_filepath, output_path=None, target_draws=None):
    """
    读取 main.py 保存的 histogram_*.csv，绘制概率密度柱状图和累计概率曲线。
    返回保存的图片路径，找不到文件时返回 None。
    """
    if not os.path.exists(csv_filepath):
        print(f"错误: 找不到CSV文件 '{csv_filepath}'。请先运行 main.py。")
        return None

    df = pd.read_csv(csv_filepath)
    if df.empty:
        print(f"警告: '{csv_filepath}' 中没有数据，跳过该图表。")
        return None

    output_path = output_path or os.path.splitext(csv_filepath)[0] + '.png'
    bin_width = int(df['bin_end'].iloc[0] - df['bin_start'].iloc[0] + 1)

    fig, ax = plt.subplots(figsize=(12, 8))
    ax.bar(df['bin_start'], df['density'], width=bin_width, align='edge', alpha=0.6, label='Density')
    ax.set_xlabel('Draws')
    ax.set_ylabel('Probability Density')

    # 累计概率使用右侧坐标轴
    ax2 = ax.twinx()
    ax2.plot(df['bin_end'], df['cumulative'] * 100, color='tab:red', label='Cumulative')
    ax2.set_ylabel('Cumulative Probability (%)')
    ax2.yaxis.set_major_formatter(mticker.PercentFormatter(100.0))
    ax2.set_ylim(-5, 105)

    if target_draws is not None:
        ax.axvline(target_draws, color='tab:green', linestyle='--', label=f'Target ({target_draws})')

    ax.set_title('Distribution of Draws Needed')
    fig.legend(loc='upper left')
    fig.tight_layout()
    fig.savefig(output_path)
    plt.close(fig)
    return output_path


def plot_summary(csv_filepath, output_path=None):
    """读取 summary_*.csv，绘制目标成功率与所需抽数的关系。"""
    if not os.path.exists(csv_filepath):
        print(f"错误: 找不到CSV文件 '{csv_filepath}'。请先运行 main.py。")
        return None

    df = pd.read_csv(csv_filepath)
    output_path = output_path or os.path.splitext(csv_filepath)[0] + '.png'

    plt.figure(figsize=(12, 8))
    plt.plot(df['target_success_rate'], df['total_expected_draws'], marker='o', linestyle='-', markersize=4)
    plt.title('Draws Needed vs. Target Success Rate')
    plt.xlabel('Target Success Rate')
    plt.ylabel('Draws')
    plt.gca().xaxis.set_major_formatter(mticker.PercentFormatter(100.0))
    plt.tight_layout()
    plt.savefig(output_path)
    plt.close()
    return output_path


def generate_all_plots(simdata_dir='simdata'):
    if not os.path.isdir(simdata_dir):
        print(f"错误: 找不到 '{simdata_dir}' 文件夹。")
        return []

    saved = []
    for filename in sorted(os.listdir(simdata_dir)):
        path = os.path.join(simdata_dir, filename)
        if filename.startswith('histogram_') and filename.endswith('.csv'):
            saved.append(plot_histogram(path))
        elif filename.startswith('summary_') and filename.endswith('.csv'):
            saved.append(plot_summary(path))

    saved = [p for p in saved if p]
    print(f"所有图表已成功生成，共 {len(saved)} 张。")
    return saved


if __name__ == '__main__':
    generate_all_plots(sys.argv[1] if len(sys.argv) > 1 else 'simdata')
