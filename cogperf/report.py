# cogperf/report.py
# ============================================================
# 実行結果のまとめ
#  - build_digest   : 端末に出す / .txt に保存するテキスト要約
#  - render_document: 図2枚と集計表を埋め込んだ1枚もののHTML
# ============================================================

from __future__ import annotations
from pathlib import Path
from datetime import datetime
import base64
import math

import pandas as pd
from jinja2 import Environment, FileSystemLoader, select_autoescape


# build_digest: 行数の変化（raw -> clean）と集計表の先頭をまとめた文字列を返す。
# clean で落ちた行数はここにだけ出す。
def build_digest(
    when: datetime,
    paths: dict[str, Path],
    options: str,
    raw_rows: int,
    clean_rows: int,
    summary: pd.DataFrame,
    trend: tuple[float, float] | None = None,
) -> str:
    dropped = max(raw_rows - clean_rows, 0)
    lines = ["=== COGPERF RUN SUMMARY ===", f"when      : {when.strftime('%Y-%m-%d %H:%M:%S')}"]
    for key, p in paths.items():
        lines.append(f"{key:<10}: {p}")
    lines.append(f"options   : {options}")
    lines.append(f"rows      : raw={raw_rows} -> clean={clean_rows} (dropped={dropped})")
    if trend is not None and not any(math.isnan(v) for v in trend):
        slope, intercept = trend
        lines.append(f"trend     : cognitive = {slope:.3f} * sleep + {intercept:.3f}")
    if not summary.empty:
        lines.append("--- summary ---")
        lines.append(summary.to_csv(index=False, float_format="%.2f").strip())
    return "\n".join(lines) + "\n"


_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
_REPORT_TEMPLATE_NAME = "report.html.j2"
_JINJA_ENV = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=select_autoescape(["html", "xml", "j2"]),
)


# _chart: PNGをbase64にしてテンプレートに渡す形にする（外部ファイルに依存しないHTMLにするため）
def _chart(path: Path, caption: str) -> dict[str, str]:
    data = base64.b64encode(Path(path).read_bytes()).decode("ascii")
    return {"caption": caption, "data": data}


def _table(df: pd.DataFrame) -> str:
    return df.to_html(index=False, float_format=lambda v: f"{v:.2f}", border=0)


def render_document(
    summary: pd.DataFrame,
    bar_path: Path,
    scatter_path: Path,
    out_path: Path,
    age_summary: pd.DataFrame | None = None,
    title: str = "Cognitive performance summary",
) -> Path:
    """図2枚と集計表（年齢層の表は任意）を1枚のHTMLに埋め込んで書き出す。"""
    ctx = {
        "title": title,
        "summary_table": _table(summary),
        "charts": [
            _chart(bar_path, "Memory score by stress category"),
            _chart(scatter_path, "Cognitive score vs. sleep duration"),
        ],
        "age_table": _table(age_summary) if age_summary is not None else None,
    }
    page = _JINJA_ENV.get_template(_REPORT_TEMPLATE_NAME).render(ctx)
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(page, encoding="utf-8")
    return out_path
