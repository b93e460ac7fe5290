"""Plate geometry and plate plan construction.

A plate plan is a DataFrame with one row per well of a rectangular plate,
carrying the factors (probe, sample, dilution, ...) assigned to the well's
row and column. Plans are built by cross-joining a row key and a column key
against a blank plate, and every mismatch between the keys and the geometry
is raised as PlanInconsistency rather than silently dropped.
"""

import re
from collections.abc import Iterable
from typing import Sequence

import pandas as pd

from qpcrplate.constants import (
    PLATE_FORMATS,
    PLATE_COLUMNS,
    WELL_COL,
    WELL_ROW_COL,
    WELL_COLUMN_COL,
    AnalysisConstants,
)
from qpcrplate.errors import PlanInconsistency
from qpcrplate.utils import make_well_id, row_labels

_ROW_LABEL_RE = re.compile(r"^[A-Za-z]+$")
_COLKEY_SUFFIX = "__colkey"


# ==================== GEOMETRY ====================
def create_blank_plate(rows: Sequence[str], cols: Sequence[int]) -> pd.DataFrame:
    """Create a blank plate with one row per well, row-major in the given order.

    Args:
        rows: Ordered row labels (letters only, e.g. ["A", "B", ...]).
        cols: Ordered column numbers (positive integers).

    Returns:
        DataFrame with columns Well, WellRow, WellCol.

    Raises:
        PlanInconsistency: If the geometry is empty, or labels are duplicated
            or malformed.
    """
    rows = [str(r) for r in rows]
    try:
        cols = [int(c) for c in cols]
    except (TypeError, ValueError):
        raise PlanInconsistency(f"Column numbers must be integers, got {list(cols)}")

    if not rows or not cols:
        raise PlanInconsistency("Plate geometry needs at least one row and one column")

    bad_rows = [r for r in rows if not _ROW_LABEL_RE.match(r)]
    if bad_rows:
        raise PlanInconsistency("Row labels must be letters only", bad_rows)
    bad_cols = [c for c in cols if c < 1]
    if bad_cols:
        raise PlanInconsistency("Column numbers must be >= 1", bad_cols)

    dup_rows = sorted({r for r in rows if rows.count(r) > 1})
    if dup_rows:
        raise PlanInconsistency("Duplicate row labels in plate geometry", dup_rows)
    dup_cols = sorted({c for c in cols if cols.count(c) > 1})
    if dup_cols:
        raise PlanInconsistency("Duplicate column numbers in plate geometry", dup_cols)

    return pd.DataFrame(
        {
            WELL_COL: [make_well_id(r, c) for r in rows for c in cols],
            WELL_ROW_COL: [r for r in rows for _ in cols],
            WELL_COLUMN_COL: [c for _ in rows for c in cols],
        }
    )


def create_blank_plate_for(size: int) -> pd.DataFrame:
    """Blank plate for a standard well count (96, 384 or 1536)."""
    if size not in PLATE_FORMATS:
        raise ValueError(
            f"Unknown plate size {size}; expected one of {sorted(PLATE_FORMATS)}"
        )
    n_rows, n_cols = PLATE_FORMATS[size]
    return create_blank_plate(row_labels(n_rows), range(1, n_cols + 1))


def create_blank_plate_96well() -> pd.DataFrame:
    return create_blank_plate_for(96)


def create_blank_plate_384well() -> pd.DataFrame:
    return create_blank_plate_for(384)


def create_blank_plate_1536well() -> pd.DataFrame:
    return create_blank_plate_for(1536)


# ==================== KEY TABLES ====================
def _tile_values(name: str, values, n: int, each: int) -> list:
    if isinstance(values, str) or not isinstance(values, Iterable):
        values = [values]
    expanded = [v for v in values for _ in range(each)]
    if not expanded or n % len(expanded) != 0:
        raise ValueError(
            f"Factor '{name}': {len(expanded)} value(s) after each={each} "
            f"do not tile an axis of length {n}"
        )
    return expanded * (n // len(expanded))


def _create_key(axis_col: str, labels, each: int, factors: dict) -> pd.DataFrame:
    labels = list(labels)
    key = pd.DataFrame({axis_col: labels})
    for name, values in factors.items():
        key[name] = _tile_values(name, values, len(labels), each)
    return key


def create_rowkey(rows: Sequence[str], each: int = 1, **factors) -> pd.DataFrame:
    """Row key: one entry per row label with factor values tiled down the rows.

    Each factor's values are repeated `each` times consecutively and the
    resulting block is recycled to cover all rows, e.g. with 8 rows,
    Probe=["P1", "P2"], each=2 gives P1, P1, P2, P2, P1, P1, P2, P2.
    """
    return _create_key(WELL_ROW_COL, [str(r) for r in rows], each, factors)


def create_colkey(cols: Sequence[int], each: int = 1, **factors) -> pd.DataFrame:
    """Column key: one entry per column number with factor values tiled across."""
    return _create_key(WELL_COLUMN_COL, [int(c) for c in cols], each, factors)


def create_colkey_dilution_series(
    n_dilutions: int = 6,
    dilution_factor: float = 5,
    n_tech_reps: int = 3,
    control_types: Sequence[str] = AnalysisConstants.CONTROL_TYPES,
    cols: Sequence[int] = None,
) -> pd.DataFrame:
    """Column key for a dilution series followed by control columns, per replicate.

    Each technical replicate block holds `n_dilutions` +RT columns at
    dilution_factor^0, dilution_factor^-1, ... followed by one column per
    control type (at dilution 1). Blocks repeat left to right.

    Returns:
        DataFrame with WellCol, Dilution, DilutionNice, Type, TechRep.
    """
    if n_dilutions < 1 or n_tech_reps < 1:
        raise ValueError("n_dilutions and n_tech_reps must be >= 1")

    control_types = list(control_types)
    block = n_dilutions + len(control_types)
    if cols is None:
        cols = range(1, block * n_tech_reps + 1)
    cols = [int(c) for c in cols]
    if len(cols) != block * n_tech_reps:
        raise ValueError(
            f"Dilution series needs {block * n_tech_reps} columns, got {len(cols)}"
        )

    dilution = [float(dilution_factor) ** -i for i in range(n_dilutions)]
    dilution_nice = [f"{dilution_factor ** i:g}x" for i in range(n_dilutions)]
    return create_colkey(
        cols,
        Dilution=dilution + [1.0] * len(control_types),
        DilutionNice=dilution_nice + control_types,
        Type=[AnalysisConstants.POSITIVE_TYPE] * n_dilutions + control_types,
        TechRep=[rep for rep in range(1, n_tech_reps + 1) for _ in range(block)],
    )


# ==================== PLAN BUILDER ====================
def _require_columns(df: pd.DataFrame, columns, what: str):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise PlanInconsistency(f"{what} is missing required column(s)", missing)


def _wells_where(plate: pd.DataFrame, mask) -> list:
    return plate.loc[mask, WELL_COL].tolist()


def _validate_key(plate, key, axis_col, other_axis_col, what):
    _require_columns(key, [axis_col], what)
    stray = [c for c in (WELL_COL, other_axis_col) if c in key.columns]
    if stray:
        raise PlanInconsistency(f"{what} must not carry plate column(s)", stray)

    dup_labels = key.loc[key[axis_col].duplicated(keep=False), axis_col].unique().tolist()
    if dup_labels:
        raise PlanInconsistency(
            f"{what} has duplicate entries; affected wells",
            _wells_where(plate, plate[axis_col].isin(dup_labels)) or dup_labels,
        )

    outside = key.loc[~key[axis_col].isin(plate[axis_col]), axis_col].tolist()
    if outside:
        raise PlanInconsistency(f"{what} has entries outside the plate geometry", outside)

    uncovered = ~plate[axis_col].isin(key[axis_col])
    if uncovered.any():
        raise PlanInconsistency(
            f"{what} does not cover wells", _wells_where(plate, uncovered)
        )


def label_plate(
    plate: pd.DataFrame, rowkey: pd.DataFrame, colkey: pd.DataFrame
) -> pd.DataFrame:
    """Build a plate plan by joining a row key and a column key onto a plate.

    The row key is joined on WellRow and the column key on WellCol. Factor
    names present in both keys must agree for every well and are collapsed
    into a single column. The plan is returned in row-major order
    (row labels A..Z, AA.., then column number) whatever the order of the
    plate or the keys.

    Args:
        plate: Blank plate from create_blank_plate (Well, WellRow, WellCol).
        rowkey: One entry per row label, column WellRow plus factors.
        colkey: One entry per column number, column WellCol plus factors.

    Returns:
        New DataFrame, one row per well, plate columns followed by row key
        factors then column key factors.

    Raises:
        PlanInconsistency: Duplicate, missing or out-of-geometry key entries,
            or conflicting shared factors (names the offending wells).
    """
    _require_columns(plate, PLATE_COLUMNS, "Plate")
    dup_wells = plate.loc[plate[WELL_COL].duplicated(keep=False), WELL_COL].unique()
    if len(dup_wells):
        raise PlanInconsistency("Plate has duplicate wells", dup_wells)

    rowkey = rowkey.copy()
    colkey = colkey.copy()
    _require_columns(colkey, [WELL_COLUMN_COL], "Column key")
    try:
        colkey[WELL_COLUMN_COL] = colkey[WELL_COLUMN_COL].astype(int)
    except (TypeError, ValueError):
        raise PlanInconsistency("Column key WellCol values must be integers")
    _require_columns(rowkey, [WELL_ROW_COL], "Row key")
    rowkey[WELL_ROW_COL] = rowkey[WELL_ROW_COL].astype(str)

    _validate_key(plate, rowkey, WELL_ROW_COL, WELL_COLUMN_COL, "Row key")
    _validate_key(plate, colkey, WELL_COLUMN_COL, WELL_ROW_COL, "Column key")

    row_factors = [c for c in rowkey.columns if c != WELL_ROW_COL]
    shared = [c for c in colkey.columns if c != WELL_COLUMN_COL and c in row_factors]
    colkey = colkey.rename(columns={c: c + _COLKEY_SUFFIX for c in shared})

    plan = (
        plate[PLATE_COLUMNS]
        .merge(rowkey, on=WELL_ROW_COL, how="left", validate="many_to_one")
        .merge(colkey, on=WELL_COLUMN_COL, how="left", validate="many_to_one")
    )

    conflicts = pd.Series(False, index=plan.index)
    for name in shared:
        from_row = plan[name]
        from_col = plan[name + _COLKEY_SUFFIX]
        agree = (from_row == from_col) | (from_row.isna() & from_col.isna())
        conflicts |= ~agree
    if conflicts.any():
        raise PlanInconsistency(
            f"Row and column keys disagree on factor(s) {shared} for wells",
            _wells_where(plan, conflicts),
        )

    plan = plan.drop(columns=[c + _COLKEY_SUFFIX for c in shared])

    # row-major: rows A..Z, AA.., then ascending column number
    row_labels_sorted = sorted(pd.unique(plan[WELL_ROW_COL]), key=lambda r: (len(r), r))
    row_order = {r: i for i, r in enumerate(row_labels_sorted)}
    return (
        plan.assign(_row_order=plan[WELL_ROW_COL].map(row_order))
        .sort_values(["_row_order", WELL_COLUMN_COL], kind="mergesort")
        .drop(columns="_row_order")
        .reset_index(drop=True)
    )


def add_id_column(
    plan: pd.DataFrame, name: str, factors: Sequence[str], sep: str = "_"
) -> pd.DataFrame:
    """Add a derived identifier (e.g. SampleID) by concatenating factor values.

    Raises:
        PlanInconsistency: If the column already exists, a factor column is
            missing, or some well has a missing factor value.
    """
    factors = list(factors)
    if name in plan.columns:
        raise PlanInconsistency(f"Plan already has a '{name}' column")
    _require_columns(plan, factors, "Plan")

    incomplete = plan[factors].isna().any(axis=1)
    if incomplete.any():
        raise PlanInconsistency(
            f"Cannot build '{name}' from missing factor values in wells",
            _wells_where(plan, incomplete),
        )

    out = plan.copy()
    out[name] = plan[factors].astype(str).agg(sep.join, axis=1)
    return out


def plate_plan_summary(plan: pd.DataFrame) -> dict:
    """Shape and factor overview of a plate plan."""
    return {
        "n_rows": plan[WELL_ROW_COL].nunique(),
        "n_cols": plan[WELL_COLUMN_COL].nunique(),
        "n_wells": len(plan),
        "factors": [c for c in plan.columns if c not in PLATE_COLUMNS],
    }
