"""Tabular and file artefacts of a simulation output."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from wealthsim.engine.utils.io import ensure_dir, safe_path_segment, write_json

from .constants import TIME_HORIZON_MONTHS, TIME_HORIZONS
from .models import PathResult, SimulationOutput

__all__ = [
    "SimulationArtifacts",
    "path_summary_frame",
    "goal_summary_frame",
    "write_simulation_artifacts",
]


@dataclass(frozen=True)
class SimulationArtifacts:
    """Paths to the generated simulation artefacts.

    Attributes:
      summary_csv: Per-horizon medians, bands and wealth difference.
      goals_csv: Per-goal probabilities on both paths.
      output_json: Full camelCase serialisation of the output.
      report_pdf: PDF with the projected bands of both paths.
    """

    summary_csv: Path
    goals_csv: Path
    output_json: Path
    report_pdf: Path


def path_summary_frame(output: SimulationOutput) -> pd.DataFrame:
    """Return one row per horizon comparing both paths.

    Args:
      output: Result of a dual-path simulation.

    Returns:
      DataFrame indexed by horizon label with a ``months`` column, the median
      and 10th/90th percentile band of each path and the wealth difference.
    """

    rows = []
    for horizon in TIME_HORIZONS:
        current = output.current_path
        optimized = output.optimized_path
        rows.append(
            {
                "horizon": horizon,
                "months": TIME_HORIZON_MONTHS[horizon],
                "current_median": current.projected_net_worth[horizon],
                "current_low": current.confidence_intervals[horizon].low,
                "current_high": current.confidence_intervals[horizon].high,
                "optimized_median": optimized.projected_net_worth[horizon],
                "optimized_low": optimized.confidence_intervals[horizon].low,
                "optimized_high": optimized.confidence_intervals[horizon].high,
                "wealth_difference": output.wealth_difference[horizon],
            }
        )
    return pd.DataFrame(rows).set_index("horizon")


def _goal_rows(path: PathResult, label: str) -> list[dict[str, object]]:
    return [
        {
            "path": label,
            "goal_id": goal.goal_id,
            "goal_name": goal.goal_name,
            "target_amount": goal.target_amount,
            "probability": goal.probability,
            "achieve_date": None if goal.achieve_date is None else goal.achieve_date.isoformat(),
        }
        for goal in path.goal_results
    ]


def goal_summary_frame(output: SimulationOutput) -> pd.DataFrame:
    """Return one row per goal and path."""

    rows = _goal_rows(output.current_path, "current") + _goal_rows(
        output.optimized_path, "optimized"
    )
    columns = ["path", "goal_id", "goal_name", "target_amount", "probability", "achieve_date"]
    return pd.DataFrame(rows, columns=columns)


def _render_simulation_pdf(output: SimulationOutput, label: str, path: Path) -> Path:
    """Render the projected bands of both paths into ``path``."""

    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    frame = path_summary_frame(output)
    months = frame["months"].to_numpy()
    fig, (band_ax, goal_ax) = plt.subplots(2, 1, figsize=(8, 8))

    for prefix, colour in (("current", "#D7263D"), ("optimized", "#2E86AB")):
        band_ax.fill_between(
            months,
            frame[f"{prefix}_low"],
            frame[f"{prefix}_high"],
            color=colour,
            alpha=0.2,
            label=f"{prefix} 10-90 pct",
        )
        band_ax.plot(months, frame[f"{prefix}_median"], color=colour, marker="o", label=prefix)
    band_ax.set_xlabel("Month")
    band_ax.set_ylabel(f"Net worth ({output.metadata.currency})")
    band_ax.set_title("Projected net worth")
    band_ax.legend(loc="upper left")

    goals = goal_summary_frame(output)
    if goals.empty:
        goal_ax.set_axis_off()
    else:
        pivot = goals.pivot_table(
            index="goal_name", columns="path", values="probability", sort=False
        )
        positions = np.arange(len(pivot.index))
        width = 0.38
        for offset, column in ((-width / 2, "current"), (width / 2, "optimized")):
            if column in pivot.columns:
                goal_ax.bar(positions + offset, pivot[column], width=width, label=column)
        goal_ax.set_xticks(positions, list(pivot.index))
        goal_ax.set_ylim(0.0, 1.0)
        goal_ax.set_ylabel("Probability")
        goal_ax.legend(loc="upper right")
    goal_ax.set_title(
        f"Goal probabilities (required rate {output.optimized_path.required_savings_rate:.1%})"
    )

    fig.suptitle(
        f"Dual-path projection: {label} (iterations={output.metadata.iterations})", fontsize=12
    )
    fig.tight_layout()
    fig.savefig(path, format="pdf")
    plt.close(fig)
    return path


def write_simulation_artifacts(
    output: SimulationOutput,
    *,
    user_id: str,
    output_dir: Path | str | None = None,
) -> SimulationArtifacts:
    """Write CSV, JSON and PDF artefacts for a simulation.

    Args:
      output: Result of a dual-path simulation.
      user_id: User identifier used in the PDF filename.
      output_dir: Destination directory; ``artifacts/simulation`` by default.

    Returns:
      Paths to the exported artefacts.
    """

    root = Path(output_dir) if output_dir is not None else Path("artifacts") / "simulation"
    ensure_dir(root)
    label = safe_path_segment(user_id or "user")

    summary_csv = root / "summary.csv"
    goals_csv = root / "goals.csv"
    output_json = root / "simulation.json"
    report_pdf = root / f"simulation_{label}.pdf"

    path_summary_frame(output).to_csv(summary_csv)
    goal_summary_frame(output).to_csv(goals_csv, index=False)
    write_json(output.to_dict(), output_json)
    _render_simulation_pdf(output, user_id, report_pdf)
    return SimulationArtifacts(
        summary_csv=summary_csv,
        goals_csv=goals_csv,
        output_json=output_json,
        report_pdf=report_pdf,
    )
