#!/usr/bin/env python3
"""Analyze a training statistics CSV.

Usage:
    python scripts/analyze_training.py experiments/.../models/training_stats_50.csv
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from racing_dqn.analysis.logger import read_stats_csv
from racing_dqn.analysis.metrics import summarize_training


def _section(title: str) -> None:
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)


def _pct(value) -> str:
    return "n/a" if value is None else f"{value:.2f}%"


def print_summary(summary: dict) -> None:
    overall = summary["overall"]
    
    _section("OVERALL STATISTICS")
    print(f"Episodes:              {overall['episodes']}")
    print(f"Mean Reward:           {overall['mean_return']:.2f} +/- {overall['std_return']:.2f}")
    print(f"Reward Range:          [{overall['min_return']:.2f}, {overall['max_return']:.2f}]")
    print(f"Mean Episode Length:   {overall['mean_length']:.2f} steps")
    print(f"Mean Loss:             {overall['mean_loss']:.4f}")
    print(f"Mean Laps Completed:   {overall['mean_laps']:.2f}")
    print(f"Max Laps in Episode:   {overall['max_laps']}")
    print(f"Total Laps Completed:  {overall['total_laps']}")
    print(f"Episodes Finishing:    {overall['finishes']} ({overall['finish_rate'] * 100:.1f}%)")
    
    for window, ma in summary["moving_averages"].items():
        _section(f"MOVING AVERAGE (Window = {window})")
        print(f"First {window} episodes avg:  {ma['first']:.2f}")
        print(f"Middle avg:              {ma['middle']:.2f}")
        print(f"Last {window} episodes avg:   {ma['last']:.2f}")
        print(f"Improvement:             {ma['improvement']:.2f} ({_pct(ma['improvement_pct'])})")
    
    _section("TOP 10 EPISODES")
    print(f"{'Episode':>10}{'Reward':>15}{'Steps':>12}{'Laps':>10}")
    print("-" * 47)
    for ep in summary["top_episodes"]:
        print(f"{ep.episode:>10}{ep.reward:>15.2f}{ep.length:>12}{ep.laps_completed:>10}")
    
    if summary["quarters"]:
        _section("PROGRESS BY QUARTER")
        for i, q in enumerate(summary["quarters"], start=1):
            print(f"\nQuarter {i} (Episodes {q['first_episode']}-{q['last_episode']}):")
            print(f"  Avg Reward: {q['mean_reward']:.2f}")
            print(f"  Avg Laps:   {q['mean_laps']:.2f}")
    
    learning = summary["learning"]
    _section("LEARNING INDICATORS")
    print(f"First {learning['window']} episodes avg:  {learning['early_mean']:.2f}")
    print(f"Last {learning['window']} episodes avg:   {learning['late_mean']:.2f}")
    print(f"Improvement:             {learning['improvement']:.2f} ({_pct(learning['improvement_pct'])})")
    
    _section("RECOMMENDATIONS")
    for note in summary["recommendations"]:
        print(f"- {note}")


def write_summary_file(path: Path, source: Path, summary: dict) -> None:
    overall = summary["overall"]
    with open(path, "w") as f:
        f.write("=== Training Summary ===\n")
        f.write(f"File: {source}\n")
        f.write(f"Episodes: {overall['episodes']}\n")
        f.write(f"Mean Reward: {overall['mean_return']:.2f}\n")
        f.write(f"Mean Laps: {overall['mean_laps']:.2f}\n")
        f.write(f"Races Completed: {overall['finishes']}\n")
        f.write(f"Improvement: {_pct(summary['learning']['improvement_pct'])}\n")


def main():
    parser = argparse.ArgumentParser(description="Analyze training statistics")
    parser.add_argument("stats", type=Path, help="training_stats_<episode>.csv")
    parser.add_argument("--no-summary-file", action="store_true", help="Do not write <stats>_summary.txt")
    
    args = parser.parse_args()
    
    try:
        rows = read_stats_csv(args.stats)
        summary = summarize_training(rows)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    
    print(f"Loaded {len(rows)} episodes from {args.stats}")
    print_summary(summary)
    
    if not args.no_summary_file:
        summary_path = args.stats.with_name(f"{args.stats.stem}_summary.txt")
        write_summary_file(summary_path, args.stats, summary)
        print(f"\nSummary saved to: {summary_path}")


if __name__ == "__main__":
    main()
