import numpy as np
import pandas as pd
import pytest

from cogperf.etl import (
    AGE_LABELS,
    DROP_NA_COLS,
    Cleaner,
    DataLoader,
    Plotter,
    age_group,
    aggregate,
    derive,
    run,
    stress_category,
    trend_line,
)
from cogperf.synth import make_dataset


def _raw(rows):
    cols = ["User_ID", "Age", "Sleep_Duration", "Stress_Level", "Memory_Test_Score", "Cognitive_Score"]
    return pd.DataFrame(rows, columns=cols)


def test_clean_renames_and_drops_missing():
    df = _raw([
        ["U1", 20, 7.0, 2, 70, 60.0],
        ["U2", 30, None, 5, 65, 55.0],
        ["U3", 40, 6.5, 8, None, 50.0],
        ["U4", 50, 8.0, 4, 80, 70.0],
    ])
    out = Cleaner().clean(df)
    assert {"user_id", "age", "sleep_hours", "stress_level", "memory_score", "cognitive_score"} <= set(out.columns)
    assert list(out["user_id"]) == ["U1", "U4"]
    assert not out[DROP_NA_COLS].isna().any().any()


def test_clean_keeps_rows_missing_only_unchecked_fields():
    df = _raw([
        ["U1", None, 7.0, 2, 70, 60.0],
        [None, 30, 6.0, 5, 65, 55.0],
    ])
    out = Cleaner().clean(df)
    assert len(out) == len(df)


def test_clean_is_noop_on_clean_table():
    df = _raw([["U1", 20, 7.0, 2, 70, 60.0], ["U2", 30, None, 5, 65, 55.0]])
    once = Cleaner().clean(df)
    twice = Cleaner().clean(once)
    pd.testing.assert_frame_equal(once, twice)


def test_clean_missing_required_column():
    df = pd.DataFrame({"Age": [20], "Stress_Level": [3]})
    with pytest.raises(ValueError, match="Required columns missing"):
        Cleaner().clean(df)


def test_clean_drop_duplicates_optional():
    df = _raw([["U1", 20, 7.0, 2, 70, 60.0]] * 3)
    assert len(Cleaner().clean(df)) == 3
    assert len(Cleaner(drop_duplicates=True).clean(df)) == 1


def test_row_count_invariant():
    df = make_dataset(n=300, seed=7, missing_rate=0.05)
    out = Cleaner().clean(df)
    assert len(out) < len(df)

    full = make_dataset(n=300, seed=7, missing_rate=0.0)
    assert len(Cleaner().clean(full)) == len(full)


def test_stress_category_thresholds():
    s = pd.Series(range(1, 11))
    out = stress_category(s)
    assert out.tolist() == ["Low"] * 3 + ["Medium"] * 4 + ["High"] * 3
    assert out.name == "stress_category"


def test_stress_category_out_of_range_and_missing():
    out = stress_category(pd.Series([0, 12, np.nan, 3.5, 7.0]))
    assert out.iloc[0] == "Low"
    assert out.iloc[1] == "High"
    assert pd.isna(out.iloc[2])
    assert out.iloc[3] == "Medium"
    assert out.iloc[4] == "Medium"


def test_age_group_boundaries():
    ages = pd.Series([18, 24, 25, 34, 35, 44, 45, 54, 55, 59])
    out = age_group(ages)
    assert out.tolist() == [
        "18-24", "18-24", "25-34", "25-34", "35-44",
        "35-44", "45-54", "45-54", "55-59", "55-59",
    ]


def test_age_group_total_over_range():
    out = age_group(pd.Series(range(18, 60)))
    assert out.notna().all()
    assert set(out) == set(AGE_LABELS)
    # 範囲外は最初/最後の区分に入る
    assert age_group(pd.Series([10, 70])).tolist() == ["18-24", "55-59"]


def test_derive_adds_both_columns():
    df = Cleaner().clean(_raw([["U1", 20, 7.0, 2, 70, 60.0], ["U2", 57, 6.0, 9, 50, 40.0]]))
    out = derive(df)
    assert out["stress_category"].tolist() == ["Low", "High"]
    assert out["age_group"].tolist() == ["18-24", "55-59"]
    assert "stress_category" not in df.columns


def test_derive_requires_columns():
    with pytest.raises(ValueError):
        derive(pd.DataFrame({"age": [20]}))


def test_aggregate_low_group_mean():
    df = pd.DataFrame({
        "stress_level": [2, 2],
        "age": [20, 21],
        "memory_score": [70, 80],
        "cognitive_score": [60.0, 64.0],
    })
    out = aggregate(derive(df))
    row = out[out["stress_category"] == "Low"]
    assert float(row["avg_memory"].iloc[0]) == 75.0
    assert float(row["avg_cognitive"].iloc[0]) == 62.0
    assert int(row["count"].iloc[0]) == 2
    assert len(out) == 1


def test_aggregate_ignores_missing_values():
    df = pd.DataFrame({
        "stress_category": ["Low", "Low", "High"],
        "memory_score": [70, None, 40],
        "cognitive_score": [60.0, 50.0, None],
    })
    out = aggregate(df)
    low = out[out["stress_category"] == "Low"]
    assert float(low["avg_memory"].iloc[0]) == 70.0
    assert float(low["avg_cognitive"].iloc[0]) == 55.0


def test_aggregate_category_order():
    df = derive(pd.DataFrame({
        "stress_level": [9, 5, 1, 9],
        "age": [30, 30, 30, 30],
        "memory_score": [40, 60, 80, 50],
        "cognitive_score": [30.0, 50.0, 70.0, 40.0],
    }))
    out = aggregate(df)
    assert out["stress_category"].tolist() == ["Low", "Medium", "High"]
    assert float(out.loc[out["stress_category"] == "High", "avg_memory"].iloc[0]) == 45.0


def test_aggregate_by_age_group():
    df = derive(pd.DataFrame({
        "stress_level": [1, 1, 1],
        "age": [19, 23, 40],
        "memory_score": [60, 80, 90],
        "cognitive_score": [50.0, 70.0, 80.0],
    }))
    out = aggregate(df, by="age_group")
    assert out["age_group"].tolist() == ["18-24", "35-44"]
    assert out["avg_memory"].tolist() == [70.0, 90.0]


def test_median_mode():
    df = pd.DataFrame({
        "stress_category": ["Low"] * 3,
        "memory_score": [1, 100, 2],
        "cognitive_score": [1.0, 2.0, 3.0],
    })
    out_mean = aggregate(df, mode="mean")
    out_median = aggregate(df, mode="median")
    mean_val = float(out_mean["avg_memory"].iloc[0])
    median_val = float(out_median["median_memory"].iloc[0])
    assert mean_val != median_val and median_val == 2.0


def test_aggregate_rejects_bad_mode_and_columns():
    df = pd.DataFrame({"stress_category": ["Low"], "memory_score": [1], "cognitive_score": [1.0]})
    with pytest.raises(ValueError):
        aggregate(df, mode="sum")
    with pytest.raises(ValueError):
        aggregate(df.drop(columns=["memory_score"]))


def test_run_is_idempotent(tmp_path):
    path = tmp_path / "cognitive.csv"
    make_dataset(n=400, seed=3, missing_rate=0.03).to_csv(path, index=False)
    _, _, first, first_age = run(path)
    _, _, second, second_age = run(path)
    pd.testing.assert_frame_equal(first, second)
    pd.testing.assert_frame_equal(first_age, second_age)


def test_loader_custom_separator(tmp_path):
    path = tmp_path / "semi.csv"
    path.write_text("Age;Stress_Level\n20;3\n", encoding="utf-8")
    df = DataLoader(sep=";").load(path)
    assert list(df.columns) == ["Age", "Stress_Level"]


def test_loader_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        DataLoader().load(tmp_path / "nope.csv")


def test_trend_line_recovers_slope():
    x = pd.Series([4.0, 5.0, 6.0, 7.0, 8.0])
    slope, intercept = trend_line(x, 2 * x + 1)
    assert slope == pytest.approx(2.0)
    assert intercept == pytest.approx(1.0)


def test_trend_line_degenerate():
    slope, intercept = trend_line(pd.Series([7.0, 7.0]), pd.Series([1.0, 2.0]))
    assert np.isnan(slope) and np.isnan(intercept)


def test_plotter_writes_both_figures(tmp_path):
    df = derive(Cleaner().clean(make_dataset(n=120, seed=1)))
    summary = aggregate(df)
    saved = Plotter().plot(df, summary, tmp_path / "bar.png", tmp_path / "figs" / "scatter.png")
    assert [p.name for p in saved] == ["bar.png", "scatter.png"]
    assert all(p.exists() and p.stat().st_size > 0 for p in saved)


def test_stress_category_nullable_integers():
    out = stress_category(pd.Series([1, None, 9], dtype="Int64"))
    assert out.iloc[0] == "Low"
    assert pd.isna(out.iloc[1])
    assert out.iloc[2] == "High"


def test_age_group_nullable_floats():
    out = age_group(pd.Series([20.0, None, 58.0], dtype="Float64"))
    assert out.iloc[0] == "18-24"
    assert pd.isna(out.iloc[1])
    assert out.iloc[2] == "55-59"


def test_run_verbose_prints_steps(tmp_path, capsys):
    path = tmp_path / "cognitive.csv"
    make_dataset(n=30, seed=8).to_csv(path, index=False)
    raw, derived, summary, _ = run(path, verbose=True)
    printed = capsys.readouterr().out
    for step in ("[1/6] Load", "[2/6] Clean", "[3/6] Derive", "[4/6] Aggregate"):
        assert step in printed
    assert len(derived) == len(raw) == 30
    assert int(summary["count"].sum()) == 30
