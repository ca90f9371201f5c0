"""Diagnostic plots of positive and negative control traces for searched masses."""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import re

import matplotlib
from matplotlib.figure import Figure
matplotlib.rcParams['font.sans-serif'] = ['DejaVu Sans']

from .plates import PlateWell
from ..scans.extraction import PeakTrace


def _safe_name(text: str) -> str:
    return re.sub(r'[^A-Za-z0-9_.+-]', '_', text)


class TracePlotter:
    """Writes one PNG per (positive well, searched mass) overlaying every control trace."""

    def __init__(self, plotting_dir: str, dpi: int = 100):
        self.plotting_dir = Path(plotting_dir)
        self.dpi = dpi

    def plot_path(self, label: str, positive_well: PlateWell) -> Path:
        return self.plotting_dir / f"{_safe_name(positive_well.well_id)}_{_safe_name(label)}.png"

    def plot_positive_and_negative_controls(self,
                                            label: str,
                                            mass_charge: float,
                                            positive: Tuple[PlateWell, PeakTrace],
                                            negatives: Sequence[Tuple[PlateWell, Optional[PeakTrace]]]) -> str:
        """Plot intensity versus retention time for the positive and every negative well.

        Args:
            label: Searched mass label (e.g. 'CHEM_3')
            mass_charge: Searched mass charge, shown in the title
            positive: (well, trace) of the positive well
            negatives: (well, trace) of each negative control well

        Returns:
            Path of the written image
        """
        self.plotting_dir.mkdir(parents=True, exist_ok=True)
        fig = Figure(figsize=(8, 4))
        ax = fig.add_subplot(111)
        traces: List[Tuple[str, Optional[PeakTrace], dict]] = [
            (f"POS {positive[0].well_id}", positive[1], {'color': 'tab:red', 'linewidth': 1.5})]
        for well, trace in negatives:
            traces.append((f"NEG {well.well_id}", trace, {'color': 'tab:gray', 'linewidth': 0.8, 'alpha': 0.7}))

        for name, trace, style in traces:
            if trace is None or trace.is_empty:
                continue
            ax.plot(trace.retention_times, trace.intensities, label=name, **style)

        ax.set_xlabel('Retention time (sec)')
        ax.set_ylabel('Intensity')
        ax.set_title(f"{label}  m/z {mass_charge:.5f}")
        if ax.get_legend_handles_labels()[0]:
            ax.legend(fontsize=7, loc='upper right')

        out_path = self.plot_path(label, positive[0])
        fig.savefig(out_path, dpi=self.dpi, bbox_inches='tight')
        return str(out_path)
