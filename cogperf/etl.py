
from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from datetime import datetime as dt

from cogperf.report import build_digest, render_document


# 元CSVの列名 → 作業用の列名（1対1で固定）
RENAME_MAP: dict[str, str] = {
    "User_ID": "user_id",
    "Age": "age",
    "Gender": "gender",
    "Sleep_Duration": "sleep_hours",
    "Stress_Level": "stress_level",
    "Diet_Type": "diet_type",
    "Daily_Screen_Time": "screen_time",
    "Exercise_Frequency": "exercise_freq",
    "Caffeine_Intake": "caffeine_mg",
    "Reaction_Time": "reaction_ms",
    "Memory_Test_Score": "memory_score",
    "Cognitive_Score": "cognitive_score",
    "AI_Predicted_Score": "ai_predicted",
}

# この4列のどれかが欠損している行は落とす
DROP_NA_COLS: list[str] = ["sleep_hours", "stress_level", "memory_score", "cognitive_score"]

# (上限, ラベル) を上から順に評価。どれにも当たらなければ最後のラベル
STRESS_BINS: list[tuple[float, str]] = [(3, "Low"), (7, "Medium")]
STRESS_LABELS: list[str] = ["Low", "Medium", "High"]

AGE_BINS: list[tuple[float, str]] = [(24, "18-24"), (34, "25-34"), (44, "35-44"), (54, "45-54")]
AGE_LABELS: list[str] = ["18-24", "25-34", "35-44", "45-54", "55-59"]

SUMMARY_OUT = Path("data/processed/summary.csv")
BAR_FIG = Path("artifacts/memory_by_stress.png")
SCATTER_FIG = Path("artifacts/cognitive_vs_sleep.png")
DOC_OUT = Path("artifacts/report.html")


@dataclass
class DataLoader:
    sep: str = ","

    def load(self, path: Path) -> pd.DataFrame:
        return pd.read_csv(path, sep=self.sep)


@dataclass
class Cleaner:
    rename_map: dict[str, str] = field(default_factory=lambda: dict(RENAME_MAP))
    drop_na_cols: list[str] | None = field(default_factory=lambda: list(DROP_NA_COLS))
    drop_duplicates: bool = False

    def rename(self, df: pd.DataFrame) -> pd.DataFrame:
        # 既に作業用の列名ならそのまま（2回cleanしても同じ結果）
        return df.rename(columns=self.rename_map)

    def clean(self, df: pd.DataFrame) -> pd.DataFrame:
        out = self.rename(df)
        if self.drop_na_cols:
            missing = [c for c in self.drop_na_cols if c not in out.columns]
            if missing:
                raise ValueError(f"Required columns missing: {missing}. Found: {list(out.columns)}")
            out = out.dropna(subset=self.drop_na_cols)
        if self.drop_duplicates:
            out = out.drop_duplicates()
        return out


def _bucket(s: pd.Series, bins: list[tuple[float, str]], labels: list[str]) -> pd.Series:
    """if/elif の連鎖と同じ: 上から順に `<= 上限` を見て最初に当たったラベル。

    範囲外の値も弾かない（上限を超えたら最後のラベル）。欠損は欠損のまま。
    """
    # Int64 などの <NA> は np.select が受け付けないので float64 に揃える
    values = pd.to_numeric(s).astype("float64")
    conds = [values <= upper for upper, _ in bins]
    choices = [label for _, label in bins]
    picked = np.select(conds, choices, default=labels[-1])
    out = pd.Series(picked, index=s.index, dtype=object).where(values.notna())
    return pd.Series(pd.Categorical(out, categories=labels, ordered=True), index=s.index, name=s.name)


def stress_category(stress: pd.Series) -> pd.Series:
    return _bucket(stress, STRESS_BINS, STRESS_LABELS).rename("stress_category")


def age_group(age: pd.Series) -> pd.Series:
    return _bucket(age, AGE_BINS, AGE_LABELS).rename("age_group")


def derive(df: pd.DataFrame) -> pd.DataFrame:
    if not {"stress_level", "age"}.issubset(df.columns):
        raise ValueError("Required columns: 'stress_level', 'age'")
    out = df.copy()
    out["stress_category"] = stress_category(out["stress_level"])
    out["age_group"] = age_group(out["age"])
    return out


def aggregate(df: pd.DataFrame, by: str = "stress_category", mode: str = "mean") -> pd.DataFrame:
    if not {by, "memory_score", "cognitive_score"}.issubset(df.columns):
        raise ValueError(f"Required columns: '{by}', 'memory_score', 'cognitive_score'")
    if mode not in {"mean", "median"}:
        raise ValueError("mode must be 'mean' or 'median'")
    prefix = "avg" if mode == "mean" else "median"
    grouped = (
        df.groupby(by, observed=True, sort=True)
          .agg(
              count=("memory_score", "size"),
              **{
                  f"{prefix}_memory": ("memory_score", mode),
                  f"{prefix}_cognitive": ("cognitive_score", mode),
              },
          )
          .reset_index()
    )
    # カテゴリ型のままだとCSV/HTMLで扱いにくいので文字列に戻す
    grouped[by] = grouped[by].astype(str)
    return grouped


def trend_line(x: pd.Series, y: pd.Series) -> tuple[float, float]:
    """最小二乗の一次式 y = slope * x + intercept。点が足りなければ (nan, nan)。"""
    pts = pd.DataFrame({"x": pd.to_numeric(x), "y": pd.to_numeric(y)}).dropna()
    if len(pts) < 2 or pts["x"].nunique() < 2:
        return float("nan"), float("nan")
    slope, intercept = np.polyfit(pts["x"], pts["y"], 1)
    return float(slope), float(intercept)


@dataclass
class Plotter:
    dpi: int = 120

    def plot_bar(self, summary: pd.DataFrame, fig_path: Path, by: str = "stress_category",
                 value_col: str = "avg_memory") -> Path:
        fig, ax = plt.subplots(figsize=(6, 4))
        ax.bar(summary[by].astype(str), summary[value_col], color="#4C72B0")
        stat = "mean" if value_col.startswith("avg") else "median"
        ax.set_title(f"Memory score ({stat}) by stress category")
        ax.set_xlabel("Stress category")
        ax.set_ylabel(f"Memory score ({stat})")
        fig.tight_layout()
        fig_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(fig_path, dpi=self.dpi)
        plt.close(fig)
        return fig_path

    def plot_scatter(self, df: pd.DataFrame, fig_path: Path,
                     x_col: str = "sleep_hours", y_col: str = "cognitive_score") -> Path:
        fig, ax = plt.subplots(figsize=(6, 4))
        ax.scatter(df[x_col], df[y_col], s=8, alpha=0.4)
        slope, intercept = trend_line(df[x_col], df[y_col])
        if not np.isnan(slope):
            xs = np.linspace(float(df[x_col].min()), float(df[x_col].max()), 50)
            ax.plot(xs, slope * xs + intercept, color="crimson", linewidth=2,
                    label=f"y = {slope:.2f}x + {intercept:.2f}")
            ax.legend(loc="best")
        ax.set_title("Cognitive score vs. sleep duration")
        ax.set_xlabel("Sleep duration (hours)")
        ax.set_ylabel("Cognitive score")
        fig.tight_layout()
        fig_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(fig_path, dpi=self.dpi)
        plt.close(fig)
        return fig_path

    def plot(self, df: pd.DataFrame, summary: pd.DataFrame, fig_path: Path,
             scatter_path: Path | None = None, value_col: str = "avg_memory") -> list[Path]:
        saved = [self.plot_bar(summary, fig_path, value_col=value_col)]
        if scatter_path is not None:
            saved.append(self.plot_scatter(df, scatter_path))
        return saved


def run(in_path: Path, sep: str = ",", drop_duplicates: bool = False,
        mode: str = "mean", verbose: bool = False) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Load → Clean → Derive → Aggregate。(raw, derived, stress_summary, age_summary) を返す。"""
    if verbose: print(f"[1/6] Load: {in_path}")
    raw = DataLoader(sep=sep).load(in_path)

    if verbose: print("[2/6] Clean (rename + dropna)")
    clean = Cleaner(drop_duplicates=drop_duplicates).clean(raw)

    if verbose: print("[3/6] Derive stress_category / age_group")
    derived = derive(clean)

    if verbose: print(f"[4/6] Aggregate (mode={mode})")
    return raw, derived, aggregate(derived, mode=mode), aggregate(derived, by="age_group", mode=mode)


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description="認知パフォーマンスデータの集計パイプライン")
    ap.add_argument("--in", dest="in_path", required=True, type=Path)
    ap.add_argument("--out", dest="out_path", type=Path, default=SUMMARY_OUT, help="ストレス区分ごとの集計CSV")
    ap.add_argument("--age-out", dest="age_out_path", type=Path, default=None, help="年齢層ごとの集計CSV（省略可）")
    ap.add_argument("--fig", dest="fig_path", type=Path, default=BAR_FIG, help="棒グラフの保存先")
    ap.add_argument("--fig2", dest="fig2_path", type=Path, default=SCATTER_FIG, help="散布図（回帰直線つき）の保存先")
    ap.add_argument("--doc", dest="doc_path", type=Path, default=DOC_OUT, help="図と表を埋め込んだHTMLの保存先")
    ap.add_argument("--report", type=Path, default=None, help="実行レポートを保存する先（.txt推奨）")
    ap.add_argument("--agg", choices=["mean", "median"], default="mean")
    ap.add_argument("--sep", default=",", help="区切り文字")
    ap.add_argument("--drop-duplicates", dest="drop_duplicates", action="store_true",
                    help="完全に同じ行を1行にまとめる（既定はしない）")
    ap.add_argument("--verbose", action="store_true", help="途中経過を表示")
    ap.add_argument("--show", action="store_true", help="図を画面に表示")
    args = ap.parse_args(argv)

    plotter = Plotter()

    df, df_derived, summary, age_summary = run(
        args.in_path, sep=args.sep, drop_duplicates=args.drop_duplicates,
        mode=args.agg, verbose=args.verbose,
    )

    if args.verbose: print(f"      -> {args.out_path}")
    args.out_path.parent.mkdir(parents=True, exist_ok=True)
    summary.to_csv(args.out_path, index=False)
    if args.age_out_path is not None:
        args.age_out_path.parent.mkdir(parents=True, exist_ok=True)
        age_summary.to_csv(args.age_out_path, index=False)

    if args.verbose: print(f"[5/6] Figures -> {args.fig_path}, {args.fig2_path}")
    value_col = "avg_memory" if args.agg == "mean" else "median_memory"
    plotter.plot(df_derived, summary, args.fig_path, args.fig2_path, value_col=value_col)

    if args.verbose: print(f"[6/6] Document -> {args.doc_path}")
    render_document(summary, args.fig_path, args.fig2_path, args.doc_path, age_summary=age_summary)

    slope, intercept = trend_line(df_derived["sleep_hours"], df_derived["cognitive_score"])
    digest = build_digest(
        when=dt.now(),
        paths={"in": args.in_path, "out": args.out_path, "figure": args.fig_path,
               "scatter": args.fig2_path, "document": args.doc_path},
        options=f"agg={args.agg} drop_duplicates={args.drop_duplicates} sep={args.sep!r}",
        raw_rows=len(df),
        clean_rows=len(df_derived),
        summary=summary,
        trend=(slope, intercept),
    )
    print(digest)

    # レポート保存（指定があれば）
    if args.report is not None:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        with open(args.report, "w", encoding="utf-8") as f:
            f.write(digest)
        print(f"[report] wrote {args.report}")

    if args.show:
        from matplotlib.image import imread
        for p in (args.fig_path, args.fig2_path):
            plt.figure()
            plt.imshow(imread(p))
            plt.axis("off")
        plt.show()

    print(f"Done: wrote {args.out_path}, {args.fig_path}, {args.fig2_path} and {args.doc_path}")


if __name__ == "__main__":
    main()
