"""CurveProcessor — baseline subtraction and melt-curve derivatives.

Amplification traces are debaselined per well against the median of the
early cycles. Melt traces are differentiated per well with either discrete
differencing or a smoothing spline; both estimators need readings sorted by
temperature, which calculate_drdt does explicitly before estimating.
"""

import warnings

import numpy as np
import pandas as pd
from scipy.interpolate import make_smoothing_spline

from qpcrplate.constants import (
    WELL_COL,
    FLUOR_COL,
    BASELINE_COL,
    SIGNAL_COL,
    DRDT_COL,
    AnalysisConstants,
)
from qpcrplate.errors import InsufficientData, UnsortedInputError


def _check_columns(df: pd.DataFrame, columns, what: str):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{what} missing required column(s): {', '.join(missing)}")


def _check_sorted(temperature: np.ndarray):
    if np.any(np.diff(temperature) < 0):
        raise UnsortedInputError(
            "Temperature must be sorted ascending before estimating dRdT"
        )


class CurveProcessor:
    @staticmethod
    def debaseline(
        data: pd.DataFrame,
        max_cycle: int = AnalysisConstants.BASELINE_MAX_CYCLE,
        amp_program=AnalysisConstants.AMP_PROGRAM,
        well_col: str = WELL_COL,
        cycle_col: str = "Cycle",
        program_col: str = "Program",
        fluor_col: str = FLUOR_COL,
    ) -> pd.DataFrame:
        """Subtract a per-well baseline from every fluorescence reading.

        The baseline is the median of `fluor_col` over readings with
        cycle <= max_cycle in the amplification program. If the table has no
        program column every reading is treated as amplification. The
        baseline is subtracted from all readings of the well, melt included.

        Wells with no reading in the baseline window get a missing Baseline
        and missing Signal throughout; they are listed in
        result.attrs["_skipped_warnings"].

        Returns:
            New DataFrame with Baseline and Signal columns added.
        """
        _check_columns(data, [well_col, cycle_col, fluor_col], "Amplification data")

        result = data.copy()
        window = result[cycle_col] <= max_cycle
        if program_col in result.columns:
            window &= result[program_col] == amp_program

        baselines = result.loc[window].groupby(well_col, dropna=False)[fluor_col].median()
        result[BASELINE_COL] = result[well_col].map(baselines).astype(float)
        result[SIGNAL_COL] = result[fluor_col] - result[BASELINE_COL]

        no_baseline = (
            result.loc[result[BASELINE_COL].isna(), well_col].dropna().unique().tolist()
        )
        skipped = [
            f"Well '{w}': no usable readings in baseline window (cycle <= {max_cycle})"
            for w in no_baseline
        ]
        if skipped:
            warnings.warn(
                f"Baseline undefined for {len(skipped)} well(s); Signal left missing",
                InsufficientData,
                stacklevel=2,
            )
        result.attrs["_skipped_warnings"] = skipped
        return result

    @staticmethod
    def drdt_diff(temperature, signal) -> np.ndarray:
        """Discrete -dSignal/dTemperature between consecutive readings.

        The last reading has no successor and is NaN, as is any step with
        zero temperature change.

        Raises:
            UnsortedInputError: If temperature is not ascending.
        """
        temperature = np.asarray(temperature, dtype=float)
        signal = np.asarray(signal, dtype=float)
        _check_sorted(temperature)

        drdt = np.full(len(temperature), np.nan)
        if len(temperature) < 2:
            return drdt

        d_temp = np.diff(temperature)
        d_signal = np.diff(signal)
        with np.errstate(divide="ignore", invalid="ignore"):
            step = np.where(d_temp > 0, -d_signal / d_temp, np.nan)
        drdt[:-1] = step
        return drdt

    @staticmethod
    def drdt_spline(
        temperature,
        signal,
        lam: float = AnalysisConstants.SPLINE_LAM,
        min_points: int = AnalysisConstants.SPLINE_MIN_POINTS,
    ) -> np.ndarray:
        """Negated first derivative of a smoothing spline fitted to the melt trace.

        Readings at a repeated temperature are averaged before fitting and
        missing readings are ignored. With fewer than `min_points` usable
        temperatures the whole curve is NaN.

        Args:
            lam: Smoothing penalty passed to make_smoothing_spline; None picks
                it by generalized cross-validation.
            min_points: Fewest distinct temperatures a spline is fitted to;
                make_smoothing_spline itself needs at least 5.

        Raises:
            UnsortedInputError: If temperature is not ascending.
        """
        temperature = np.asarray(temperature, dtype=float)
        signal = np.asarray(signal, dtype=float)
        _check_sorted(temperature)

        drdt = np.full(len(temperature), np.nan)
        usable = ~(np.isnan(temperature) | np.isnan(signal))
        fit_temp, inverse = np.unique(temperature[usable], return_inverse=True)
        if len(fit_temp) < max(min_points, 5):
            return drdt

        fit_signal = np.bincount(inverse, weights=signal[usable]) / np.bincount(inverse)
        spline = make_smoothing_spline(fit_temp, fit_signal, lam=lam)
        finite_temp = ~np.isnan(temperature)
        drdt[finite_temp] = -spline.derivative()(temperature[finite_temp])
        return drdt

    @staticmethod
    def calculate_drdt(
        melt: pd.DataFrame,
        method: str = AnalysisConstants.DRDT_METHOD,
        lam: float = AnalysisConstants.SPLINE_LAM,
        min_points: int = AnalysisConstants.SPLINE_MIN_POINTS,
        value_col: str = SIGNAL_COL,
        well_col: str = WELL_COL,
        temperature_col: str = "Temperature",
        program_col: str = "Program",
        program=None,
    ) -> pd.DataFrame:
        """Per-well dRdT for melt traces.

        Each well's readings are sorted by temperature before the estimator
        runs; the result is returned in well then temperature order.

        Args:
            method: "spline" (smoothing spline, default) or "diff".
            lam: Spline smoothing penalty (ignored by "diff").
            min_points: Fewest distinct temperatures for a spline fit.
            value_col: Fluorescence column to differentiate.
            program: If given, keep only rows of this melt program.

        Returns:
            New DataFrame with a dRdT column added.
        """
        if method not in AnalysisConstants.DRDT_METHODS:
            raise ValueError(
                f"Unknown dRdT method {method!r}; expected one of {AnalysisConstants.DRDT_METHODS}"
            )
        _check_columns(melt, [well_col, temperature_col, value_col], "Melt data")

        data = melt
        if program is not None:
            _check_columns(melt, [program_col], "Melt data")
            data = melt[melt[program_col] == program]

        # well order as first seen, readings ascending in temperature
        well_order = {w: i for i, w in enumerate(pd.unique(data[well_col]))}
        data = (
            data.assign(_well_order=data[well_col].map(well_order))
            .sort_values(["_well_order", temperature_col], kind="mergesort")
            .drop(columns="_well_order")
            .reset_index(drop=True)
        )

        drdt = pd.Series(np.nan, index=data.index)
        for _, well_data in data.groupby(well_col, sort=False):
            temps = well_data[temperature_col].to_numpy()
            values = well_data[value_col].to_numpy()
            if method == "diff":
                drdt.loc[well_data.index] = CurveProcessor.drdt_diff(temps, values)
            else:
                drdt.loc[well_data.index] = CurveProcessor.drdt_spline(
                    temps, values, lam=lam, min_points=min_points
                )

        data[DRDT_COL] = drdt
        return data

    @staticmethod
    def melt_peaks(
        drdt_data: pd.DataFrame,
        well_col: str = WELL_COL,
        temperature_col: str = "Temperature",
    ) -> pd.DataFrame:
        """Melting temperature (Tm) per well as the temperature of maximum dRdT.

        Wells whose dRdT is entirely missing get missing Tm and peak height.
        """
        _check_columns(drdt_data, [well_col, temperature_col, DRDT_COL], "dRdT data")

        rows = []
        for well, well_data in drdt_data.groupby(well_col, sort=False):
            curve = well_data[DRDT_COL]
            if curve.notna().any():
                peak_idx = curve.idxmax()
                tm = well_data.loc[peak_idx, temperature_col]
                height = curve.loc[peak_idx]
            else:
                tm = height = np.nan
            rows.append({well_col: well, "Tm": tm, "dRdT_Peak": height})

        return pd.DataFrame(rows, columns=[well_col, "Tm", "dRdT_Peak"])
