"""AnalysisEngine — reference-probe normalization and relative abundance.

Contains normalize_by_reference (delta Cq within each sample group),
calculate_deltadeltacq (relative to reference samples, per probe) and
replicate summaries for plot-ready tables.
"""

import warnings
from typing import Callable, Sequence, Union

import numpy as np
import pandas as pd

from qpcrplate.constants import CQ_COL, AnalysisConstants
from qpcrplate.errors import MissingReference

Aggregate = Union[str, Callable[[pd.Series], float]]


def _check_columns(df: pd.DataFrame, columns, what: str):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{what} missing required column(s): {', '.join(missing)}")


def _group_reference(
    values: pd.Series, is_ref: pd.Series, keys: list, aggregate: Aggregate
) -> pd.Series:
    """Aggregate reference values per group and broadcast back to every row."""
    ref_values = values.where(is_ref & values.notna())
    grouped = ref_values.groupby(keys, dropna=False)
    if callable(aggregate):
        return grouped.transform(
            lambda s: aggregate(s.dropna()) if s.notna().any() else np.nan
        )
    return grouped.transform(aggregate)


def _group_label(row: pd.Series) -> str:
    return "/".join(str(v) for v in row.values)


class AnalysisEngine:
    @staticmethod
    def normalize_by_reference(
        data: pd.DataFrame,
        ref_probes: Sequence[str],
        group_cols: Sequence[str] = ("Sample",),
        probe_col: str = "Probe",
        value_col: str = CQ_COL,
        aggregate: Aggregate = AnalysisConstants.REFERENCE_AGGREGATE,
    ) -> pd.DataFrame:
        """Normalize a value column against reference probes within each sample group.

        For every group (rows sharing `group_cols`), the reference value is the
        aggregate (median by default) of `value_col` over rows whose probe is
        in `ref_probes`, missing values excluded. It is attached to every row
        of the group, reference rows included, and used to derive:

            {value}.ref      reference value of the group
            {value}.norm     value - reference (log2 scale, one cycle = 2x)
            {value}.normexp  2 ** -norm (linear scale)

        Groups with no usable reference reading get missing values for all
        three columns; they are listed in result.attrs["_skipped_warnings"]
        and reported with a MissingReference warning.

        Args:
            ref_probes: Reference probe identifiers (e.g. housekeeping genes).
            group_cols: Columns identifying the biological sample group.
            aggregate: "median", "mean", or a callable taking the non-empty
                Series of a group's reference values.

        Returns:
            New DataFrame with the three derived columns added.
        """
        group_cols = list(group_cols)
        ref_probes = [ref_probes] if isinstance(ref_probes, str) else list(ref_probes)
        if not ref_probes:
            raise ValueError("At least one reference probe is required")
        _check_columns(data, group_cols + [probe_col, value_col], "Normalization data")

        result = data.copy()
        values = pd.to_numeric(result[value_col], errors="coerce")
        is_ref = result[probe_col].isin(ref_probes)
        keys = [result[c] for c in group_cols]

        ref = _group_reference(values, is_ref, keys, aggregate)
        norm = values - ref

        result[f"{value_col}.ref"] = ref
        result[f"{value_col}.norm"] = norm
        result[f"{value_col}.normexp"] = np.power(2.0, -norm)

        # Accumulate skipped groups for the caller
        missing = result.loc[ref.isna(), group_cols].drop_duplicates()
        missing_groups = [_group_label(row) for _, row in missing.iterrows()]
        _skipped_warnings = [
            f"Group '{g}': no usable reference probe ({', '.join(map(str, ref_probes))}) reading"
            for g in missing_groups
        ]
        if _skipped_warnings:
            warnings.warn(
                f"No reference reading for {len(missing_groups)} group(s): "
                f"{', '.join(missing_groups)}",
                MissingReference,
                stacklevel=2,
            )
        result.attrs["_skipped_warnings"] = _skipped_warnings
        return result

    @staticmethod
    def calculate_deltadeltacq(
        normalized: pd.DataFrame,
        ref_samples: Sequence[str],
        probe_col: str = "Probe",
        sample_col: str = "Sample",
        value_col: str = CQ_COL,
        aggregate: Aggregate = AnalysisConstants.REFERENCE_AGGREGATE,
    ) -> pd.DataFrame:
        """Compare normalized values against reference samples, probe by probe.

        Takes the output of normalize_by_reference. For each probe the
        reference is the aggregate of {value}.norm over rows whose sample is in
        `ref_samples`; adds:

            {value}.normref    per-probe reference of the normalized value
            {value}.deltanorm  norm - normref (delta-delta Cq)
            {value}.fold       2 ** -deltanorm (fold change)

        Probes without a usable reference-sample row get missing values and a
        MissingReference warning.
        """
        norm_col = f"{value_col}.norm"
        ref_samples = [ref_samples] if isinstance(ref_samples, str) else list(ref_samples)
        if not ref_samples:
            raise ValueError("At least one reference sample is required")
        _check_columns(normalized, [probe_col, sample_col, norm_col], "Delta-delta Cq data")

        result = normalized.copy()
        norm = result[norm_col]
        is_ref = result[sample_col].isin(ref_samples)

        ref = _group_reference(norm, is_ref, [result[probe_col]], aggregate)
        delta = norm - ref

        result[f"{value_col}.normref"] = ref
        result[f"{value_col}.deltanorm"] = delta
        result[f"{value_col}.fold"] = np.power(2.0, -delta)

        missing_probes = result.loc[ref.isna(), probe_col].drop_duplicates().astype(str).tolist()
        _skipped_warnings = [
            f"Probe '{p}': no normalized reading in reference sample(s) "
            f"{', '.join(map(str, ref_samples))}"
            for p in missing_probes
        ]
        if _skipped_warnings:
            warnings.warn(
                f"No reference-sample reading for {len(missing_probes)} probe(s): "
                f"{', '.join(missing_probes)}",
                MissingReference,
                stacklevel=2,
            )
        result.attrs["_skipped_warnings"] = _skipped_warnings
        return result

    @staticmethod
    def summarize_replicates(
        data: pd.DataFrame,
        group_cols: Sequence[str] = ("Sample", "Probe"),
        value_col: str = CQ_COL,
    ) -> pd.DataFrame:
        """Per-group count, mean, median and SD of a value column (NaN skipped)."""
        group_cols = list(group_cols)
        _check_columns(data, group_cols + [value_col], "Replicate data")

        summary = (
            data.groupby(group_cols, dropna=False)[value_col]
            .agg(["count", "mean", "median", "std"])
            .reset_index()
        )
        summary.columns = group_cols + [
            "n",
            f"{value_col}_Mean",
            f"{value_col}_Median",
            f"{value_col}_SD",
        ]
        return summary
