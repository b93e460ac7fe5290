"""Constants and configuration for plate plans and qPCR normalization.

Contains plate geometry presets, canonical column names, and analysis defaults.
"""

# ==================== PLATE GEOMETRY ====================
# Well count -> (rows, columns)
PLATE_FORMATS = {
    96: (8, 12),
    384: (16, 24),
    1536: (32, 48),
}

# ==================== COLUMN NAMES ====================
WELL_COL = "Well"
WELL_ROW_COL = "WellRow"
WELL_COLUMN_COL = "WellCol"
PLATE_COLUMNS = [WELL_COL, WELL_ROW_COL, WELL_COLUMN_COL]

CQ_COL = "Cq"
FLUOR_COL = "Fluor"
BASELINE_COL = "Baseline"
SIGNAL_COL = "Signal"
DRDT_COL = "dRdT"


# ==================== ANALYSIS CONSTANTS ====================
class AnalysisConstants:
    # Baseline subtraction
    BASELINE_MAX_CYCLE = 10
    AMP_PROGRAM = 2
    MELT_PROGRAM = 3

    # Melt curve derivative
    DRDT_METHOD = "spline"
    DRDT_METHODS = ("spline", "diff")
    SPLINE_LAM = None  # None: smoothing chosen by generalized cross-validation
    SPLINE_MIN_POINTS = 5

    # Normalization
    REFERENCE_AGGREGATE = "median"

    # Efficiency estimation
    POSITIVE_TYPE = "+RT"
    CONTROL_TYPES = ("-RT", "NT")
    MIN_POINTS_FOR_FIT = 2
    MIN_DILUTIONS_FOR_FIT = 2

    # Replicate QC
    CQ_HIGH_WARNING = 35.0
    CQ_LOW_WARNING = 10.0
    CV_WARNING_THRESHOLD = 0.05
