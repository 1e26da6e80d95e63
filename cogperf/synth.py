# cogperf/synth.py
# 練習用の疑似データ（認知パフォーマンス）を作るスクリプト
# 使い方: cogperf-synth --n 1000 --seed 42 --out data/raw/cognitive.csv

from __future__ import annotations

import argparse
from pathlib import Path
import numpy as np
import pandas as pd


RAW_COLUMNS = [
    "User_ID", "Age", "Gender", "Sleep_Duration", "Stress_Level", "Diet_Type",
    "Daily_Screen_Time", "Exercise_Frequency", "Caffeine_Intake", "Reaction_Time",
    "Memory_Test_Score", "Cognitive_Score", "AI_Predicted_Score",
]

# 欠損を混ぜる列（clean で落とされる対象と同じ）
MISSING_COLS = ["Sleep_Duration", "Stress_Level", "Memory_Test_Score", "Cognitive_Score"]


def make_dataset(n: int = 1000, seed: int = 42, missing_rate: float = 0.0) -> pd.DataFrame:
    if not 0.0 <= missing_rate < 1.0:
        raise ValueError("missing_rate must be in [0, 1)")
    rng = np.random.default_rng(seed)

    age = rng.integers(18, 60, n)
    sleep = np.round(np.clip(rng.normal(7.0, 1.3, n), 4.0, 10.0), 1)
    stress = rng.integers(1, 11, n)
    screen = np.round(np.clip(rng.normal(6.0, 2.5, n), 1.0, 12.0), 1)
    caffeine = rng.integers(0, 500, n)
    exercise = rng.choice(["Low", "Medium", "High"], n, p=[0.35, 0.4, 0.25])
    ex_bonus = pd.Series(exercise).map({"Low": 0.0, "Medium": 2.0, "High": 4.0}).to_numpy()

    # 睡眠↑・ストレス↓・画面時間↓ で点数が上がるようにゆるく相関させる
    reaction = np.round(np.clip(
        400 + 8 * (stress - 5) - 12 * (sleep - 7) + 0.05 * caffeine + rng.normal(0, 45, n),
        200, 600), 2)
    memory = np.clip(np.round(
        68 + 3.0 * (sleep - 7) - 1.8 * (stress - 5) - 0.6 * (screen - 6) + ex_bonus + rng.normal(0, 9, n)
    ), 0, 100).astype(int)
    cognitive = np.round(np.clip(
        60 + 4.5 * (sleep - 7) - 2.2 * (stress - 5) - 0.9 * (screen - 6)
        + ex_bonus - 0.04 * (reaction - 400) + rng.normal(0, 6, n),
        0, 100), 2)
    ai_pred = np.round(np.clip(cognitive + rng.normal(0, 3, n), 0, 100), 2)

    df = pd.DataFrame({
        "User_ID": [f"U{i:05d}" for i in range(1, n + 1)],
        "Age": age,
        "Gender": rng.choice(["Male", "Female", "Other"], n, p=[0.48, 0.48, 0.04]),
        "Sleep_Duration": sleep,
        "Stress_Level": stress,
        "Diet_Type": rng.choice(["Vegetarian", "Non-Vegetarian", "Vegan"], n),
        "Daily_Screen_Time": screen,
        "Exercise_Frequency": exercise,
        "Caffeine_Intake": caffeine,
        "Reaction_Time": reaction,
        "Memory_Test_Score": memory,
        "Cognitive_Score": cognitive,
        "AI_Predicted_Score": ai_pred,
    }, columns=RAW_COLUMNS)

    if missing_rate > 0:
        for col in MISSING_COLS:
            mask = rng.random(n) < missing_rate
            df[col] = df[col].astype(float).mask(mask)
    return df


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description="疑似の認知パフォーマンスCSVを作る")
    ap.add_argument("--n", type=int, default=1000, help="行数")
    ap.add_argument("--seed", type=int, default=42)
    ap.add_argument("--missing-rate", dest="missing_rate", type=float, default=0.02,
                    help="睡眠/ストレス/記憶/認知スコアを欠損にする割合（列ごと）")
    ap.add_argument("--out", dest="out_path", type=Path, default=Path("data/raw/cognitive.csv"))
    args = ap.parse_args(argv)

    df = make_dataset(n=args.n, seed=args.seed, missing_rate=args.missing_rate)
    args.out_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(args.out_path, index=False)
    print(f"Generated {len(df)} records -> {args.out_path}")


if __name__ == "__main__":
    main()
