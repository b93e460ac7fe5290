"""EfficiencyEstimator — amplification efficiency from dilution series.

Fits Cq against log10(dilution) per probe/replicate group with ordinary
least squares. A perfect doubling per cycle gives a slope of -1/log10(2)
(about -3.32 cycles per 10-fold dilution) and an efficiency of 1.0.
"""

import warnings
from typing import Sequence

import numpy as np
import pandas as pd
from scipy import stats

from qpcrplate.constants import CQ_COL, AnalysisConstants
from qpcrplate.errors import InsufficientData

FIT_COLUMNS = ["Slope", "Intercept", "R2", "Efficiency", "n_points", "n_dilutions"]


class EfficiencyEstimator:
    @staticmethod
    def fit_dilution_series(dilution, cq) -> dict:
        """OLS fit of Cq on log10(dilution).

        Pairs with a missing Cq or a missing/non-positive dilution are left
        out. With fewer than two usable points or two distinct dilutions no
        line is fitted and Slope, Intercept, R2 and Efficiency are NaN.

        Returns:
            Dict with Slope, Intercept, R2, Efficiency (10**(-1/Slope) - 1),
            n_points and n_dilutions.
        """
        dilution = np.asarray(dilution, dtype=float)
        cq = np.asarray(cq, dtype=float)
        with np.errstate(invalid="ignore"):
            usable = ~np.isnan(cq) & ~np.isnan(dilution) & (dilution > 0)

        x = np.log10(dilution[usable])
        y = cq[usable]
        n_points = int(usable.sum())
        n_dilutions = int(len(np.unique(x)))

        fit = {
            "Slope": np.nan,
            "Intercept": np.nan,
            "R2": np.nan,
            "Efficiency": np.nan,
            "n_points": n_points,
            "n_dilutions": n_dilutions,
        }
        if (
            n_points < AnalysisConstants.MIN_POINTS_FOR_FIT
            or n_dilutions < AnalysisConstants.MIN_DILUTIONS_FOR_FIT
        ):
            return fit

        reg = stats.linregress(x, y)
        fit["Slope"] = reg.slope
        fit["Intercept"] = reg.intercept
        fit["R2"] = reg.rvalue ** 2
        fit["Efficiency"] = 10 ** (-1 / reg.slope) - 1 if reg.slope != 0 else np.nan
        return fit

    @staticmethod
    def calculate_efficiency(
        data: pd.DataFrame,
        group_cols: Sequence[str] = ("Probe", "BioRep"),
        dilution_col: str = "Dilution",
        value_col: str = CQ_COL,
        type_col: str = "Type",
        positive_type: str = AnalysisConstants.POSITIVE_TYPE,
    ) -> pd.DataFrame:
        """Estimate efficiency separately for every probe-by-replicate group.

        Only rows whose `type_col` equals `positive_type` enter the fit (all
        rows if the table has no type column). Control rows are not fitted but
        are counted (n_controls) and their median Cq reported
        (Control_Cq_Median) next to the fit.

        Groups with too little data get NaN fit values; they are listed in
        result.attrs["_skipped_warnings"] and reported with an
        InsufficientData warning.

        Returns:
            New DataFrame, one row per group: group_cols + FIT_COLUMNS +
            n_controls, Control_Cq_Median.
        """
        group_cols = list(group_cols)
        missing = [c for c in group_cols + [dilution_col, value_col] if c not in data.columns]
        if missing:
            raise ValueError(f"Efficiency data missing required column(s): {', '.join(missing)}")

        results = []
        _skipped_warnings = []
        for key, group in data.groupby(group_cols, dropna=False, sort=True):
            key = key if isinstance(key, tuple) else (key,)
            if type_col in group.columns:
                is_positive = (group[type_col] == positive_type).to_numpy()
            else:
                is_positive = np.ones(len(group), dtype=bool)
            positive = group[is_positive]
            controls = group[~is_positive]

            fit = EfficiencyEstimator.fit_dilution_series(
                positive[dilution_col], positive[value_col]
            )
            if np.isnan(fit["Slope"]):
                _skipped_warnings.append(
                    f"Group '{'/'.join(map(str, key))}': {fit['n_points']} usable point(s) "
                    f"over {fit['n_dilutions']} dilution(s), no fit"
                )

            control_cq = pd.to_numeric(controls[value_col], errors="coerce")
            results.append(
                {
                    **dict(zip(group_cols, key)),
                    **fit,
                    "n_controls": len(controls),
                    "Control_Cq_Median": control_cq.median() if control_cq.notna().any() else np.nan,
                }
            )

        result_df = pd.DataFrame(
            results, columns=group_cols + FIT_COLUMNS + ["n_controls", "Control_Cq_Median"]
        )
        if _skipped_warnings:
            warnings.warn(
                f"Efficiency not estimated for {len(_skipped_warnings)} group(s)",
                InsufficientData,
                stacklevel=2,
            )
        result_df.attrs["_skipped_warnings"] = _skipped_warnings
        return result_df
