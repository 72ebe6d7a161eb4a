"""
Plotting functions for eclipse sessions.

Capture-plan timeline, eclipse path map and solar altitude curve. Plain
lon/lat axes are used for the map; no basemap is drawn.
"""

from datetime import timedelta
from pathlib import Path
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import matplotlib.dates as mdates
import matplotlib.patches as mpatches
import pandas as pd

from .data_model import ContactTimes, EclipseRecord, ExposureSequenceStep, GeoCoordinate, PhaseTag

PHASE_COLORS = {
    PhaseTag.PARTIAL: '#ff7f0e',
    PhaseTag.BAILY: '#d62728',
    PhaseTag.CHROMOSPHERE: '#e377c2',
    PhaseTag.INNER_CORONA: '#1f77b4',
    PhaseTag.MID_CORONA: '#17becf',
    PhaseTag.OUTER_CORONA: '#9467bd',
    PhaseTag.PROMINENCE: '#8c564b',
    PhaseTag.TOTALITY_GENERIC: '#2ca02c',
    PhaseTag.FILTER_WARNING: '#7f7f7f',
}

CONTACT_COLORS = {
    'C1': '#bcbd22',
    'C2': 'black',
    'C3': 'black',
    'C4': '#bcbd22',
    'MAX': '#d62728',
}


def plot_sequence_timeline(
    sequence: Sequence[ExposureSequenceStep],
    contacts: ContactTimes,
    output_path: Optional[Path] = None,
    dpi: int = 150,
    figsize: tuple = (14, 6),
    around_totality: bool = False,
) -> plt.Figure:
    """
    Gantt-style chart of the capture plan with contact lines.

    Parameters
    ----------
    sequence : sequence of ExposureSequenceStep
        Capture plan.
    contacts : ContactTimes
        Contacts drawn as vertical lines.
    output_path : Path, optional
        Path to save the figure.
    around_totality : bool
        Zoom the x axis to C2 - 60 s .. C3 + 60 s when totality exists.

    Returns
    -------
    plt.Figure
        The matplotlib figure.
    """
    fig, ax = plt.subplots(figsize=figsize)

    if not sequence:
        ax.text(0.5, 0.5, 'No data', ha='center', va='center')
        return fig

    for i, step in enumerate(sequence):
        start = mdates.date2num(step.start_time)
        width = max(step.duration_seconds, 1.0) / 86400.0
        ax.barh(i, width, left=start, height=0.6,
                color=PHASE_COLORS.get(step.phase_tag, '#7f7f7f'),
                edgecolor='black', hatch='//' if step.requires_solar_filter else None)

    for name, instant in contacts.boundaries():
        ax.axvline(mdates.date2num(instant), color=CONTACT_COLORS.get(name, 'gray'),
                   linestyle='--', linewidth=1)
        ax.text(mdates.date2num(instant), len(sequence) - 0.4, name, ha='center', fontsize=8)

    ax.set_yticks(range(len(sequence)))
    ax.set_yticklabels([s.display_name for s in sequence])
    ax.invert_yaxis()
    ax.xaxis.set_major_formatter(mdates.DateFormatter('%H:%M:%S'))
    ax.set_xlabel('Time (UTC)')
    ax.set_title('Capture Plan')
    ax.tick_params(axis='x', rotation=45)

    if around_totality and contacts.c2 is not None and contacts.c3 is not None:
        ax.set_xlim(mdates.date2num(contacts.c2 - timedelta(seconds=60)),
                    mdates.date2num(contacts.c3 + timedelta(seconds=60)))

    used_tags = []
    for step in sequence:
        if step.phase_tag not in used_tags:
            used_tags.append(step.phase_tag)
    handles = [mpatches.Patch(color=PHASE_COLORS[t], label=t.value) for t in used_tags]
    handles.append(mpatches.Patch(facecolor='white', edgecolor='black', hatch='//', label='solar filter'))
    ax.legend(handles=handles, loc='lower right', fontsize=8)

    plt.tight_layout()

    if output_path:
        fig.savefig(output_path, dpi=dpi, bbox_inches='tight')

    return fig


def plot_eclipse_path(
    record: EclipseRecord,
    observer: Optional[GeoCoordinate] = None,
    output_path: Optional[Path] = None,
    dpi: int = 150,
    figsize: tuple = (12, 7),
) -> plt.Figure:
    """
    Central line of an eclipse with durations and the observer position.

    Returns
    -------
    plt.Figure
        The matplotlib figure.
    """
    fig, ax = plt.subplots(figsize=figsize)

    if not record.path:
        ax.text(0.5, 0.5, 'No path data', ha='center', va='center')
        return fig

    lons = [p.lon for p in record.path]
    lats = [p.lat for p in record.path]
    durations = [p.duration_seconds or 0 for p in record.path]

    ax.plot(lons, lats, color='#1f77b4', linewidth=1.5, zorder=1)
    sc = ax.scatter(lons, lats, c=durations, cmap='viridis', s=40, zorder=2)
    if any(durations):
        cbar = fig.colorbar(sc, ax=ax)
        cbar.set_label('Central duration (s)')

    for point in record.path:
        if point.location_name:
            ax.annotate(point.location_name, (point.lon, point.lat), fontsize=8,
                        xytext=(4, 4), textcoords='offset points')

    if observer is not None:
        ax.scatter([observer.longitude], [observer.latitude], marker='*', s=200,
                   color='#d62728', edgecolor='black', zorder=3, label='Observer')
        ax.legend(loc='best')

    ax.set_xlabel('Longitude (deg)')
    ax.set_ylabel('Latitude (deg)')
    ax.set_title(record.name)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if output_path:
        fig.savefig(output_path, dpi=dpi, bbox_inches='tight')

    return fig


def plot_sun_altitude(
    track_df: pd.DataFrame,
    contacts: Optional[ContactTimes] = None,
    output_path: Optional[Path] = None,
    dpi: int = 150,
    figsize: tuple = (12, 5),
) -> plt.Figure:
    """
    Solar altitude over the eclipse day from ``astronomy.sun_track`` output.

    Returns
    -------
    plt.Figure
        The matplotlib figure.
    """
    fig, ax = plt.subplots(figsize=figsize)

    if track_df.empty:
        ax.text(0.5, 0.5, 'No data', ha='center', va='center')
        return fig

    ax.plot(track_df['time'], track_df['altitude'], color='#ff7f0e')
    ax.axhline(0, color='gray', linewidth=1)

    if contacts is not None:
        ax.axvspan(contacts.c1, contacts.c4, color='#ff7f0e', alpha=0.15, label='Partial phase')
        if contacts.c2 is not None and contacts.c3 is not None:
            ax.axvspan(contacts.c2, contacts.c3, color='black', alpha=0.4, label='Totality')
        ax.legend(loc='best')

    ax.xaxis.set_major_formatter(mdates.DateFormatter('%H:%M'))
    ax.set_xlabel('Time (UTC)')
    ax.set_ylabel('Altitude (deg)')
    ax.set_title('Solar Altitude')
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if output_path:
        fig.savefig(output_path, dpi=dpi, bbox_inches='tight')

    return fig
