"""qPCR plate plan and normalization package.

Turns per-well instrument output into normalized, plot-ready tables given a
description of which sample and probe occupy each well. Provides:
- create_blank_plate / label_plate: Plate geometry and plate plan builder
- join_measurements: Left join of instrument measurements onto a plan
- CurveProcessor: Baseline subtraction and melt-curve dRdT
- AnalysisEngine: Reference-probe normalization and delta-delta Cq
- EfficiencyEstimator: Amplification efficiency from dilution series
- QualityControl: Plate completeness and replicate statistics
- export_to_excel: Multi-sheet Excel export
"""

from qpcrplate.constants import PLATE_FORMATS, AnalysisConstants
from qpcrplate.errors import (
    PlanInconsistency,
    UnmappedWell,
    UnsortedInputError,
    MissingReference,
    InsufficientData,
)
from qpcrplate.utils import (
    natural_sort_key,
    row_labels,
    make_well_id,
    split_well_id,
    make_row_names_lc1536,
    make_row_names_echo1536,
)
from qpcrplate.plate import (
    create_blank_plate,
    create_blank_plate_for,
    create_blank_plate_96well,
    create_blank_plate_384well,
    create_blank_plate_1536well,
    create_rowkey,
    create_colkey,
    create_colkey_dilution_series,
    label_plate,
    add_id_column,
    plate_plan_summary,
)
from qpcrplate.measurements import as_measurement_table, join_measurements
from qpcrplate.curves import CurveProcessor
from qpcrplate.analysis import AnalysisEngine
from qpcrplate.efficiency import EfficiencyEstimator
from qpcrplate.quality_control import QualityControl
from qpcrplate.export import export_to_excel

__version__ = "0.1.0"

__all__ = [
    "PLATE_FORMATS",
    "AnalysisConstants",
    "PlanInconsistency",
    "UnmappedWell",
    "UnsortedInputError",
    "MissingReference",
    "InsufficientData",
    "natural_sort_key",
    "row_labels",
    "make_well_id",
    "split_well_id",
    "make_row_names_lc1536",
    "make_row_names_echo1536",
    "create_blank_plate",
    "create_blank_plate_for",
    "create_blank_plate_96well",
    "create_blank_plate_384well",
    "create_blank_plate_1536well",
    "create_rowkey",
    "create_colkey",
    "create_colkey_dilution_series",
    "label_plate",
    "add_id_column",
    "plate_plan_summary",
    "as_measurement_table",
    "join_measurements",
    "CurveProcessor",
    "AnalysisEngine",
    "EfficiencyEstimator",
    "QualityControl",
    "export_to_excel",
]
