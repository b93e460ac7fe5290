"""
Tests for plate geometry and plate plan construction.

Covers blank plates, key tables, the row/column key cross-join, and every
PlanInconsistency condition raised by the builder.
"""

import pandas as pd
import pytest

from qpcrplate import (
    PlanInconsistency,
    add_id_column,
    create_blank_plate,
    create_blank_plate_96well,
    create_blank_plate_384well,
    create_blank_plate_1536well,
    create_blank_plate_for,
    create_colkey,
    create_colkey_dilution_series,
    create_rowkey,
    label_plate,
    plate_plan_summary,
)


class TestCreateBlankPlate:
    def test_row_major_order(self):
        plate = create_blank_plate(["A", "B"], [1, 2, 3])

        assert plate["Well"].tolist() == ["A1", "A2", "A3", "B1", "B2", "B3"]
        assert list(plate.columns) == ["Well", "WellRow", "WellCol"]

    @pytest.mark.parametrize(
        "factory,n_wells,n_rows",
        [
            (create_blank_plate_96well, 96, 8),
            (create_blank_plate_384well, 384, 16),
            (create_blank_plate_1536well, 1536, 32),
        ],
    )
    def test_standard_sizes(self, factory, n_wells, n_rows):
        plate = factory()

        assert len(plate) == n_wells
        assert plate["Well"].is_unique
        assert plate["WellRow"].nunique() == n_rows

    def test_1536_rows_continue_past_z(self):
        plate = create_blank_plate_1536well()

        assert plate["WellRow"].iloc[-1] == "AF"
        assert plate["Well"].iloc[-1] == "AF48"

    def test_unknown_size_raises(self):
        with pytest.raises(ValueError):
            create_blank_plate_for(100)

    def test_duplicate_rows_raise(self):
        with pytest.raises(PlanInconsistency, match="Duplicate row"):
            create_blank_plate(["A", "A"], [1, 2])

    def test_duplicate_cols_raise(self):
        with pytest.raises(PlanInconsistency, match="Duplicate column"):
            create_blank_plate(["A", "B"], [1, 1])

    def test_empty_geometry_raises(self):
        with pytest.raises(PlanInconsistency):
            create_blank_plate([], [1, 2])

    def test_non_letter_row_raises(self):
        with pytest.raises(PlanInconsistency):
            create_blank_plate(["A1"], [1])


class TestKeyTables:
    def test_rowkey_each_and_recycle(self):
        key = create_rowkey(list("ABCDEFGH"), each=2, Probe=["P1", "P2"])

        assert key["Probe"].tolist() == ["P1", "P1", "P2", "P2", "P1", "P1", "P2", "P2"]

    def test_colkey_scalar_factor(self):
        key = create_colkey([1, 2, 3], Condition="ctrl")

        assert key["Condition"].tolist() == ["ctrl"] * 3

    def test_non_dividing_values_raise(self):
        with pytest.raises(ValueError, match="tile"):
            create_colkey([1, 2, 3], Sample=["S1", "S2"])

    def test_dilution_series_layout(self):
        key = create_colkey_dilution_series(
            n_dilutions=6, dilution_factor=5, n_tech_reps=3
        )

        assert len(key) == 24
        first_block = key.iloc[:8]
        assert first_block["Type"].tolist() == ["+RT"] * 6 + ["-RT", "NT"]
        assert first_block["DilutionNice"].tolist()[:3] == ["1x", "5x", "25x"]
        assert first_block["Dilution"].iloc[2] == pytest.approx(1 / 25)
        assert key["TechRep"].tolist() == [1] * 8 + [2] * 8 + [3] * 8

    def test_dilution_series_wrong_column_count(self):
        with pytest.raises(ValueError):
            create_colkey_dilution_series(n_dilutions=4, n_tech_reps=2, cols=range(1, 10))


class TestLabelPlate:
    def test_end_to_end_4x3(self, plan_4x3):
        assert len(plan_4x3) == 12
        b2 = plan_4x3[plan_4x3["Well"] == "B2"].iloc[0]
        assert b2["Probe"] == "P2"
        assert b2["Sample"] == "S2"

    def test_one_entry_per_well(self, plate_4x3, plan_4x3):
        assert plan_4x3["Well"].is_unique
        assert set(plan_4x3["Well"]) == set(plate_4x3["Well"])

    def test_idempotent(self, plate_4x3, rowkey_4, colkey_3):
        first = label_plate(plate_4x3, rowkey_4, colkey_3)
        second = label_plate(plate_4x3, rowkey_4, colkey_3)

        pd.testing.assert_frame_equal(first, second)

    def test_order_independent_of_key_order(self, plate_4x3, rowkey_4, colkey_3, plan_4x3):
        shuffled = label_plate(
            plate_4x3,
            rowkey_4.sample(frac=1, random_state=1),
            colkey_3.iloc[::-1],
        )

        pd.testing.assert_frame_equal(shuffled, plan_4x3)

    def test_plan_row_major_whatever_plate_order(self, plate_4x3, rowkey_4, colkey_3, plan_4x3):
        plan = label_plate(plate_4x3.iloc[::-1], rowkey_4, colkey_3)

        pd.testing.assert_frame_equal(plan, plan_4x3)

    def test_rows_past_z_sort_after_single_letters(self):
        plate = create_blank_plate(["AA", "B", "A"], [2, 1])
        rowkey = create_rowkey(["AA", "B", "A"], Probe=["x", "y", "z"])
        colkey = create_colkey([2, 1], Sample=["S2", "S1"])

        plan = label_plate(plate, rowkey, colkey)

        assert plan["Well"].tolist() == ["A1", "A2", "B1", "B2", "AA1", "AA2"]
        assert plan.loc[plan["Well"] == "AA1", "Probe"].iloc[0] == "x"

    def test_does_not_mutate_inputs(self, plate_4x3, rowkey_4, colkey_3):
        before = (plate_4x3.copy(), rowkey_4.copy(), colkey_3.copy())
        label_plate(plate_4x3, rowkey_4, colkey_3)

        pd.testing.assert_frame_equal(plate_4x3, before[0])
        pd.testing.assert_frame_equal(rowkey_4, before[1])
        pd.testing.assert_frame_equal(colkey_3, before[2])

    def test_duplicate_row_key_names_wells(self, plate_4x3, colkey_3):
        rowkey = pd.DataFrame({"WellRow": ["A", "B", "B", "C", "D"], "Probe": list("vwxyz")})

        with pytest.raises(PlanInconsistency) as exc_info:
            label_plate(plate_4x3, rowkey, colkey_3)

        assert exc_info.value.wells == ["B1", "B2", "B3"]
        assert "B2" in str(exc_info.value)

    def test_duplicate_col_key(self, plate_4x3, rowkey_4):
        colkey = pd.DataFrame({"WellCol": [1, 2, 2, 3], "Sample": list("wxyz")})

        with pytest.raises(PlanInconsistency, match="duplicate"):
            label_plate(plate_4x3, rowkey_4, colkey)

    def test_key_outside_geometry(self, plate_4x3, colkey_3):
        rowkey = create_rowkey(list("ABCDE"), Probe=list("vwxyz"))

        with pytest.raises(PlanInconsistency, match="outside") as exc_info:
            label_plate(plate_4x3, rowkey, colkey_3)

        assert exc_info.value.wells == ["E"]

    def test_key_not_covering_geometry(self, plate_4x3, rowkey_4):
        colkey = create_colkey([1, 2], Sample=["S1", "S2"])

        with pytest.raises(PlanInconsistency, match="does not cover") as exc_info:
            label_plate(plate_4x3, rowkey_4, colkey)

        assert exc_info.value.wells == ["A3", "B3", "C3", "D3"]

    def test_shared_factor_agreeing_collapses(self, plate_4x3, rowkey_4, colkey_3):
        rowkey = rowkey_4.assign(Type="+RT")
        colkey = colkey_3.assign(Type="+RT")

        plan = label_plate(plate_4x3, rowkey, colkey)

        assert list(plan.columns).count("Type") == 1
        assert (plan["Type"] == "+RT").all()

    def test_shared_factor_conflict_names_wells(self, plate_4x3, rowkey_4, colkey_3):
        rowkey = rowkey_4.assign(Type="+RT")
        colkey = colkey_3.assign(Type=["+RT", "+RT", "-RT"])

        with pytest.raises(PlanInconsistency, match="disagree") as exc_info:
            label_plate(plate_4x3, rowkey, colkey)

        assert exc_info.value.wells == ["A3", "B3", "C3", "D3"]

    def test_missing_key_column(self, plate_4x3, colkey_3):
        rowkey = pd.DataFrame({"Row": list("ABCD"), "Probe": list("wxyz")})

        with pytest.raises(PlanInconsistency, match="WellRow"):
            label_plate(plate_4x3, rowkey, colkey_3)

    def test_key_carrying_plate_column(self, plate_4x3, rowkey_4, colkey_3):
        rowkey = rowkey_4.assign(Well="A1")

        with pytest.raises(PlanInconsistency, match="plate column"):
            label_plate(plate_4x3, rowkey, colkey_3)

    def test_full_96_well_plan(self):
        plate = create_blank_plate_96well()
        rowkey = create_rowkey(list("ABCDEFGH"), each=2, Probe=["ACT1", "PGK1", "HSP12", "TPI1"])
        colkey = create_colkey(range(1, 13), each=4, BioRep=["R1", "R2", "R3"])

        plan = label_plate(plate, rowkey, colkey)

        assert len(plan) == 96
        assert plan.loc[plan["Well"] == "H12", "Probe"].iloc[0] == "TPI1"
        assert plan.loc[plan["Well"] == "H12", "BioRep"].iloc[0] == "R3"


class TestAddIdColumn:
    def test_concatenates_factors(self, plan_4x3):
        plan = add_id_column(plan_4x3, "TargetID", ["Probe", "Sample"])

        assert plan.loc[plan["Well"] == "C1", "TargetID"].iloc[0] == "P3_S1"
        assert "TargetID" not in plan_4x3.columns

    def test_refuses_overwrite(self, plan_4x3):
        with pytest.raises(PlanInconsistency, match="already"):
            add_id_column(plan_4x3, "Sample", ["Probe"])

    def test_missing_factor_value_names_wells(self, plan_4x3):
        plan = plan_4x3.copy()
        plan.loc[plan["Well"] == "A1", "Sample"] = None

        with pytest.raises(PlanInconsistency) as exc_info:
            add_id_column(plan, "SampleID", ["Sample", "Probe"])

        assert exc_info.value.wells == ["A1"]


class TestPlatePlanSummary:
    def test_summary(self, plan_4x3):
        summary = plate_plan_summary(plan_4x3)

        assert summary == {
            "n_rows": 4,
            "n_cols": 3,
            "n_wells": 12,
            "factors": ["Probe", "Sample"],
        }
