"""Per-iteration solver callbacks.

EnergyCallback records the cost pyceres reports after every iteration
so a tracking run can be inspected (or plotted) after the solve.
"""

import logging
import sys
from typing import TextIO

import pyceres

logger = logging.getLogger(__name__)


class EnergyCallback(pyceres.IterationCallback):
    """Record the solver cost after each iteration.

    Never requests early termination. Reuse across solves by calling
    reset() between them.

    Usage:
        callback = EnergyCallback()
        optimizer.solve_with_callback(callback=callback)
        callback.print_energy(output=sys.stdout)
    """

    def __init__(self) -> None:
        pyceres.IterationCallback.__init__(self)
        self._energy_record: list[float] = []

    def __call__(self, summary: pyceres.IterationSummary) -> pyceres.CallbackReturnType:
        """Append the reported cost and continue.

        Args:
            summary: Per-iteration summary from pyceres

        Returns:
            pyceres.CallbackReturnType.SOLVER_CONTINUE
        """
        self._energy_record.append(float(summary.cost))
        return pyceres.CallbackReturnType.SOLVER_CONTINUE

    @property
    def energy_record(self) -> list[float]:
        """Recorded costs in iteration order (copy)."""
        return list(self._energy_record)

    def __len__(self) -> int:
        return len(self._energy_record)

    def print_energy(self, output: TextIO = sys.stdout) -> None:
        """Write the recorded costs, one "<index> <cost>" line each.

        Indices are 1-based, in call order, framed by start/end markers.

        Args:
            output: Text stream to write to
        """
        output.write("Energy Started\n")
        for index, cost in enumerate(self._energy_record, start=1):
            output.write(f"{index} {cost:g}\n")
        output.write("Energy Ended\n")

    def reset(self) -> None:
        """Clear the recorded costs."""
        logger.debug(f"Resetting energy record ({len(self._energy_record)} entries)")
        self._energy_record.clear()
