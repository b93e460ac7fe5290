"""QualityControl — plate completeness, replicate statistics and plate grids.

Provides missing-measurement detection, replicate CV status, the row x column
grid view consumed by plate display tooling, and display field checks.
All methods are pure computation with no plotting dependency.
"""

from typing import Sequence

import numpy as np
import pandas as pd

from qpcrplate.constants import (
    CQ_COL,
    WELL_COL,
    WELL_ROW_COL,
    WELL_COLUMN_COL,
    AnalysisConstants,
)
from qpcrplate.errors import PlanInconsistency


class QualityControl:
    CQ_HIGH_THRESHOLD = AnalysisConstants.CQ_HIGH_WARNING
    CQ_LOW_THRESHOLD = AnalysisConstants.CQ_LOW_WARNING
    CV_THRESHOLD = AnalysisConstants.CV_WARNING_THRESHOLD

    @staticmethod
    def missing_measurements(
        joined: pd.DataFrame, value_col: str = CQ_COL
    ) -> pd.DataFrame:
        """Plan wells with no non-missing measurement value after the join.

        Returns one row per such well, in plan order.
        """
        if joined is None or joined.empty:
            return pd.DataFrame()

        measured = joined.loc[joined[value_col].notna(), WELL_COL].unique()
        missing = joined[~joined[WELL_COL].isin(measured)]
        return missing.drop_duplicates(subset=[WELL_COL]).reset_index(drop=True)

    @staticmethod
    def get_replicate_stats(
        data: pd.DataFrame,
        group_cols: Sequence[str] = ("Sample", "Probe"),
        value_col: str = CQ_COL,
    ) -> pd.DataFrame:
        if data is None or data.empty:
            return pd.DataFrame()

        group_cols = list(group_cols)
        rep_stats = (
            data.groupby(group_cols, dropna=False)[value_col]
            .agg(["mean", "std", "count"])
            .reset_index()
        )
        rep_stats.columns = group_cols + ["Mean", "SD", "n"]

        rep_stats["SD"] = rep_stats["SD"].fillna(0)
        # NaN rather than 0 when the mean is non-positive or missing
        rep_stats["CV%"] = np.where(
            rep_stats["Mean"] > 0, (rep_stats["SD"] / rep_stats["Mean"]) * 100, np.nan
        )

        rep_stats["Status"] = np.select(
            [
                rep_stats["n"] == 0,
                rep_stats["Mean"] < QualityControl.CQ_LOW_THRESHOLD,
                rep_stats["Mean"] > QualityControl.CQ_HIGH_THRESHOLD,
                rep_stats["CV%"] > QualityControl.CV_THRESHOLD * 100,
            ],
            ["No Data", "Check Signal", "Low Expression", "High CV"],
            default="OK",
        )

        rep_stats["Mean"] = rep_stats["Mean"].round(2)
        rep_stats["SD"] = rep_stats["SD"].round(3)
        rep_stats["CV%"] = rep_stats["CV%"].round(1)
        rep_stats["n"] = rep_stats["n"].astype(int)

        return rep_stats[group_cols + ["n", "Mean", "SD", "CV%", "Status"]]

    @staticmethod
    def plate_matrix(plan: pd.DataFrame, value_col: str) -> pd.DataFrame:
        """WellRow x WellCol grid of one column, in the plan's geometry order.

        Expects one row per well (a plan, or a joined Cq table).
        """
        if plan is None or plan.empty:
            return pd.DataFrame()

        rows = list(pd.unique(plan[WELL_ROW_COL]))
        cols = sorted(pd.unique(plan[WELL_COLUMN_COL]))
        grid = plan.pivot(index=WELL_ROW_COL, columns=WELL_COLUMN_COL, values=value_col)
        return grid.reindex(index=rows, columns=cols)

    @staticmethod
    def check_display_fields(plan: pd.DataFrame, label_col: str) -> None:
        """Check the fields a plate display needs exist and are set for every well.

        Raises:
            PlanInconsistency: If WellRow, WellCol or `label_col` is absent,
                or missing for some wells.
        """
        required = [WELL_ROW_COL, WELL_COLUMN_COL, label_col]
        absent = [c for c in required if c not in plan.columns]
        if absent:
            raise PlanInconsistency("Plan lacks display column(s)", absent)

        incomplete = plan[required].isna().any(axis=1)
        if incomplete.any():
            raise PlanInconsistency(
                "Display fields missing for wells", plan.loc[incomplete, WELL_COL].tolist()
            )

    @staticmethod
    def get_qc_summary_stats(joined: pd.DataFrame, value_col: str = CQ_COL) -> dict:
        """Overall completeness and value range of a joined Cq table."""
        if joined is None or joined.empty:
            return {}

        values = joined[value_col]
        n_wells = joined[WELL_COL].nunique()
        n_missing = QualityControl.missing_measurements(joined, value_col).shape[0]

        return {
            "total_wells": n_wells,
            "missing_wells": n_missing,
            "measured_wells": n_wells - n_missing,
            "value_mean": round(values.mean(), 2) if values.notna().any() else np.nan,
            "value_min": round(values.min(), 2) if values.notna().any() else np.nan,
            "value_max": round(values.max(), 2) if values.notna().any() else np.nan,
            "high_count": int((values > QualityControl.CQ_HIGH_THRESHOLD).sum()),
            "low_count": int((values < QualityControl.CQ_LOW_THRESHOLD).sum()),
            "completeness_pct": round((n_wells - n_missing) / n_wells * 100, 1),
        }
