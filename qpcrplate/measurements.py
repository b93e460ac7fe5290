"""Measurement joiner — merges instrument measurements onto a plate plan.

Instrument readers (not part of this package) hand over either a DataFrame or
a sequence of per-reading records. Records are joined onto the plan on an
explicit well key; nothing is dropped silently in either direction.
"""

import warnings
from typing import Mapping, Sequence, Union

import pandas as pd

from qpcrplate.constants import WELL_COL
from qpcrplate.errors import UnmappedWell

ON_UNMAPPED_MODES = ("raise", "quarantine")


def as_measurement_table(
    records: Union[pd.DataFrame, Sequence[Mapping]],
    required: Sequence[str] = (WELL_COL,),
) -> pd.DataFrame:
    """Convert instrument records to a DataFrame and check required columns.

    Args:
        records: DataFrame, or sequence of dict-like records.
        required: Column names every record must carry.

    Returns:
        New DataFrame with a fresh RangeIndex.

    Raises:
        ValueError: If any required column is missing.
    """
    if isinstance(records, pd.DataFrame):
        table = records.copy()
    else:
        table = pd.DataFrame.from_records(list(records))

    missing = [c for c in required if c not in table.columns]
    if missing:
        raise ValueError(f"Measurements missing required column(s): {', '.join(missing)}")

    return table.reset_index(drop=True)


def join_measurements(
    plan: pd.DataFrame,
    measurements: pd.DataFrame,
    on: str = WELL_COL,
    on_unmapped: str = "raise",
    suffix: str = "_measured",
) -> pd.DataFrame:
    """Left-outer join of the plate plan with measurements on a well key.

    A plan well with several measurements (e.g. every cycle of a trace) fans
    out once per measurement. Plan wells without any measurement are kept
    with missing measurement columns. Measurement columns that share a name
    with a plan factor are kept side by side under `suffix`.

    Args:
        plan: Plate plan, unique on `on`.
        measurements: Instrument measurements carrying `on`.
        on: Join key declared on both sides.
        on_unmapped: "raise" to fail on measured wells absent from the plan,
            "quarantine" to leave them out of the join and return them in
            result.attrs["unmapped"] as a list of records.
        suffix: Appended to measurement columns colliding with plan columns.

    Returns:
        New DataFrame in plan order, then measurement order within each well.

    Raises:
        UnmappedWell: Measured wells absent from the plan (in "raise" mode).
        ValueError: Missing join key, duplicated plan wells, or unknown mode.
    """
    if on_unmapped not in ON_UNMAPPED_MODES:
        raise ValueError(
            f"on_unmapped must be one of {ON_UNMAPPED_MODES}, got {on_unmapped!r}"
        )
    if on not in plan.columns:
        raise ValueError(f"Plate plan has no join key column '{on}'")
    if on not in measurements.columns:
        raise ValueError(f"Measurements have no join key column '{on}'")

    dup_wells = plan.loc[plan[on].duplicated(), on].unique().tolist()
    if dup_wells:
        raise ValueError(f"Plate plan is not unique on '{on}': {dup_wells}")

    measurements = measurements.reset_index(drop=True)
    unmapped_mask = ~measurements[on].isin(plan[on])
    unmapped = measurements[unmapped_mask]
    if not unmapped.empty:
        unmapped_wells = unmapped[on].drop_duplicates().tolist()
        if on_unmapped == "raise":
            raise UnmappedWell(unmapped_wells)
        warnings.warn(
            f"{len(unmapped)} measurement(s) from {len(unmapped_wells)} well(s) "
            f"not in plate plan were quarantined: {unmapped_wells}",
            UserWarning,
            stacklevel=2,
        )
        measurements = measurements[~unmapped_mask]

    joined = plan.merge(
        measurements,
        on=on,
        how="left",
        suffixes=("", suffix),
        validate="one_to_many",
        sort=False,
    ).reset_index(drop=True)

    joined.attrs["unmapped"] = unmapped.to_dict("records")
    return joined
