"""
presentation.py

Tables, bar charts and the markdown report built from the per-grade summaries.
These functions only read the summaries; none of the statistics are computed
here.
"""

import time
from pathlib import Path
from typing import List, Optional, Union

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
from loguru import logger  # noqa: E402

from .pipeline import AnalysisResult  # noqa: E402

# Historical HOLC map colors
GRADE_COLORS = {
    "A": "#76a865",
    "B": "#7cb5bd",
    "C": "#ffff00",
    "D": "#d9838d",
}
UNGRADED_COLOR = "#bdbdbd"


def format_summary_table(summary: pd.DataFrame, round_digits: int = 2) -> pd.DataFrame:
    """
    Round percent and mean columns for display.

    Undefined means stay <NA>; the underlying summary is not modified.
    """
    table = summary.copy()
    for col in table.columns:
        if col == "percent" or col.startswith("mean_"):
            table[col] = table[col].round(round_digits)
    return table


def plot_grade_bars(
    summary: pd.DataFrame,
    value_col: str,
    title: str,
    output_path: Union[str, Path],
    ylabel: Optional[str] = None,
    dpi: int = 150,
) -> Path:
    """
    Save a bar chart of one summary column keyed by grade.

    Args:
        summary: Output of summarize_by_grade
        value_col: Column to plot (e.g., 'percent', 'mean_P_PM25')
        title: Chart title
        output_path: PNG path to write
        ylabel: Y axis label, defaults to value_col
        dpi: Output resolution

    Returns:
        Path of the written image
    """
    if value_col not in summary.columns:
        raise KeyError(f"Column '{value_col}' not found in summary")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"📈 Plotting {value_col} by grade → {output_path.name}")

    grades = summary["grade"].astype(str).tolist()
    values = pd.to_numeric(summary[value_col], errors="coerce").astype("float64").fillna(0.0)
    colors = [GRADE_COLORS.get(g, UNGRADED_COLOR) for g in grades]

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.bar(grades, values, color=colors, edgecolor="black", linewidth=0.5)
    ax.set_title(title)
    ax.set_xlabel("HOLC grade")
    ax.set_ylabel(ylabel or value_col)
    ax.spines["right"].set_visible(False)
    ax.spines["top"].set_visible(False)
    if not grades:
        ax.text(0.5, 0.5, "No data", ha="center", va="center", transform=ax.transAxes)

    plt.tight_layout()
    plt.savefig(output_path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)

    logger.success(f"  ✅ Saved chart: {output_path}")
    return output_path


def _markdown_table(summary: pd.DataFrame) -> str:
    if summary.empty:
        return "_No records._"
    return format_summary_table(summary).to_markdown(index=False)


def write_markdown_report(
    result: AnalysisResult,
    output_path: Union[str, Path],
    project_name: str = "HOLC Equity Maps",
    charts: Optional[List[Path]] = None,
) -> Path:
    """
    Write the summary tables and the CRS check to a markdown report.

    Args:
        result: AnalysisResult from run_analysis
        output_path: Markdown file to write
        project_name: Shown in the footer
        charts: Chart images to link from the report

    Returns:
        Path of the written report
    """
    output_path = Path(output_path)
    logger.info(f"📄 Writing report → {output_path}")

    crs_lines = "\n".join(f"- {line}" for line in result.crs_check.describe())
    chart_lines = "\n".join(f"![{p.stem}]({p.name})" for p in charts or [])
    indicators = ", ".join(result.indicators) if result.indicators else "none"

    markdown_content = f"""# HOLC Grades, Environmental Indicators and Biodiversity

## Data Summary

- **Block groups analyzed**: {len(result.ejscreen):,}
- **HOLC zones**: {len(result.holc):,}
- **Bird observations analyzed**: {len(result.birds):,}
- **Target CRS**: {result.target_crs}
- **Indicators**: {indicators}

## CRS Consistency

{crs_lines}

## Environmental Indicators by HOLC Grade

Joined block group records: {len(result.ejscreen_joined):,}

{_markdown_table(result.ejscreen_summary)}

## Bird Observations by HOLC Grade

Joined observation records: {len(result.birds_joined):,}

{_markdown_table(result.birds_summary)}

## Charts

{chart_lines or "_No charts generated._"}

## Technical Notes

- Records are joined to every HOLC zone they intersect; a record touching
  several zones is counted once per zone.
- Records outside every zone are reported as the ungraded group.
- Percentages use the joined record count of each table as denominator.
- Means exclude missing values; an undefined mean is shown as <NA>.

---
*Report generated on {time.strftime("%Y-%m-%d %H:%M:%S")} by automated analysis pipeline*
*Project: {project_name}*
"""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(markdown_content)

    logger.success(f"  ✅ Report generated: {output_path}")
    return output_path
