"""
Pytest configuration and fixtures for qpcrplate tests.

This module provides shared plate geometries, key tables, and synthetic
instrument measurements for testing the plan builder and analysis pipeline.
"""

import numpy as np
import pandas as pd
import pytest

from qpcrplate import create_blank_plate, create_colkey, create_rowkey, label_plate


# ==================== PLATE FIXTURES ====================
@pytest.fixture
def plate_4x3():
    """Blank 4-row x 3-column plate (A-D x 1-3)."""
    return create_blank_plate(["A", "B", "C", "D"], [1, 2, 3])


@pytest.fixture
def rowkey_4():
    return create_rowkey(["A", "B", "C", "D"], Probe=["P1", "P2", "P3", "P4"])


@pytest.fixture
def colkey_3():
    return create_colkey([1, 2, 3], Sample=["S1", "S2", "S3"])


@pytest.fixture
def plan_4x3(plate_4x3, rowkey_4, colkey_3):
    """Plate plan: Probe by row, Sample by column."""
    return label_plate(plate_4x3, rowkey_4, colkey_3)


# ==================== MEASUREMENT FIXTURES ====================
@pytest.fixture
def cq_table():
    """Cq values for 2 samples x 3 probes x 2 replicates, GAPDH and ACT1 as references.

    Sample S1 references: GAPDH 18, 18 and ACT1 20, 20 -> median 19.
    Sample S2 references: GAPDH 17, 17 and ACT1 19, 19 -> median 18.
    """
    rows = []
    base = {
        ("S1", "GAPDH"): 18.0,
        ("S1", "ACT1"): 20.0,
        ("S1", "COL1A1"): 25.0,
        ("S2", "GAPDH"): 17.0,
        ("S2", "ACT1"): 19.0,
        ("S2", "COL1A1"): 22.0,
    }
    well = 1
    for (sample, probe), cq in base.items():
        for rep in (1, 2):
            rows.append(
                {
                    "Well": f"A{well}",
                    "Sample": sample,
                    "Probe": probe,
                    "TechRep": rep,
                    "Cq": cq,
                }
            )
            well += 1
    return pd.DataFrame(rows)


@pytest.fixture
def amp_traces():
    """Raw amplification traces for wells A1 and A2, 30 cycles, program 2.

    A1 sits on a background of 100 for the first 10 cycles, A2 on 250.
    """
    cycles = np.arange(1, 31)
    rows = []
    for well, background in (("A1", 100.0), ("A2", 250.0)):
        growth = 1000.0 / (1.0 + np.exp(-(cycles - 20.0)))
        for cycle, fluor in zip(cycles, background + np.round(growth)):
            rows.append(
                {"Well": well, "Program": 2, "Cycle": int(cycle), "Fluor": float(fluor)}
            )
    return pd.DataFrame(rows)


@pytest.fixture
def melt_traces():
    """Sigmoidal melt traces (program 3) with midpoint 82 C for wells A1 and A2.

    Temperatures are supplied in descending order to exercise explicit sorting.
    """
    temps = np.arange(65.0, 95.01, 0.5)[::-1]
    rows = []
    for well, amplitude in (("A1", 1000.0), ("A2", 800.0)):
        signal = amplitude / (1.0 + np.exp((temps - 82.0) / 1.0))
        for t, s in zip(temps, signal):
            rows.append({"Well": well, "Program": 3, "Temperature": t, "Signal": s})
    return pd.DataFrame(rows)
