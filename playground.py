#%% セル1：パラメータ
from pathlib import Path
IN  = Path("data/raw/cognitive.csv")
OUT = Path("data/processed/summary.csv")
FIG = Path("artifacts/memory_by_stress.png")
FIG2 = Path("artifacts/cognitive_vs_sleep.png")

#%% セル2：データが無ければ疑似データを作る
from cogperf.synth import make_dataset
if not IN.exists():
    IN.parent.mkdir(parents=True, exist_ok=True)
    make_dataset(n=1000, seed=42, missing_rate=0.02).to_csv(IN, index=False)

#%% セル3：ETLの中身を関数呼び出しで
from cogperf.etl import DataLoader, Cleaner, derive, aggregate, Plotter

df = DataLoader().load(IN)
df_clean = Cleaner().clean(df)
print("rows:", len(df), "->", len(df_clean))
df_derived = derive(df_clean)
summary = aggregate(df_derived)
OUT.parent.mkdir(parents=True, exist_ok=True)
summary.to_csv(OUT, index=False)
Plotter().plot(df_derived, summary, FIG, FIG2)

#%% セル4：結果を確認
print(summary)
print(aggregate(df_derived, by="age_group"))

# %%
