"""Export functions for plate plans and analysis tables.

Provides multi-sheet Excel export with analysis parameters, the plate plan,
a plate layout grid, and any number of named result tables.
"""

import io
from typing import Dict

import pandas as pd

from qpcrplate.constants import WELL_COL
from qpcrplate.quality_control import QualityControl

EXCEL_SHEET_NAME_LIMIT = 31


def export_to_excel(
    plan: pd.DataFrame,
    tables: Dict[str, pd.DataFrame] = None,
    params: dict = None,
    label_col: str = None,
) -> bytes:
    """Export a plate plan and result tables to a multi-sheet Excel workbook.

    Args:
        plan: Plate plan from label_plate.
        tables: Dict of sheet name -> DataFrame (e.g. normalized Cq,
            efficiency fits). Names are truncated to Excel's 31 characters.
        params: Optional analysis parameters written to a Parameters sheet.
        label_col: Plan column shown in the Plate_Layout grid; defaults to Well.

    Returns:
        Workbook contents as bytes.
    """
    output = io.BytesIO()
    label_col = label_col or WELL_COL

    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        if params:
            pd.DataFrame(
                [{"Parameter": k, "Value": str(v)} for k, v in params.items()]
            ).to_excel(writer, sheet_name="Parameters", index=False)

        plan.to_excel(writer, sheet_name="Plate_Plan", index=False)

        layout = QualityControl.plate_matrix(plan, label_col)
        if not layout.empty:
            layout.to_excel(writer, sheet_name="Plate_Layout")

        used = {"Parameters", "Plate_Plan", "Plate_Layout"}
        for name, table in (tables or {}).items():
            sheet_name = str(name)[:EXCEL_SHEET_NAME_LIMIT]
            if sheet_name in used:
                raise ValueError(f"Duplicate sheet name after truncation: {sheet_name!r}")
            used.add(sheet_name)
            table.to_excel(writer, sheet_name=sheet_name, index=False)

    return output.getvalue()
