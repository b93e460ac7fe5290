"""Error and warning types raised by the plate plan and analysis pipeline.

Structural problems (plan/geometry mismatches, unmapped wells, unsorted
curves) raise. Data-sufficiency problems are reported as warnings and
degrade to missing values for the affected group only.
"""


def _format_wells(wells, limit: int = 20) -> str:
    wells = [str(w) for w in wells]
    shown = ", ".join(wells[:limit])
    if len(wells) > limit:
        shown += f", ... ({len(wells) - limit} more)"
    return shown


class PlanInconsistency(ValueError):
    """Row/column keys disagree with the plate geometry or with each other."""

    def __init__(self, message: str, wells=()):
        self.wells = list(wells)
        if self.wells:
            message = f"{message}: {_format_wells(self.wells)}"
        super().__init__(message)


class UnmappedWell(ValueError):
    """Measurements reference wells that are not part of the plate plan."""

    def __init__(self, wells):
        self.wells = list(wells)
        super().__init__(
            f"{len(self.wells)} measured well(s) not in plate plan: "
            f"{_format_wells(self.wells)}"
        )


class UnsortedInputError(ValueError):
    """Temperatures passed to a derivative estimator are not ascending."""


class MissingReference(UserWarning):
    """A group has no usable reference reading; its derived values are NaN."""


class InsufficientData(UserWarning):
    """A group has too few usable points; its derived values are NaN."""
