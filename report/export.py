"""
Tabular and archive exports of a tracking session.
"""
import csv
import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from typing import Dict

import pandas as pd

from report.metrics import region_intensities, transition_matrix
from report.viz import figure_to_png, plot_page_attention, plot_transition_matrix
from tracking.session import GazeSession

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ['page', 'label', 'count', 'total_duration']
TABLE_NAME = 'attention.csv'

_UNSAFE_TEXT = re.compile(r'[\s,"\']*[\r\n,"\'][\s,"\']*')


def sanitize_text(value: str) -> str:
    """Collapse each run of line breaks, commas and quotes (with the whitespace
    around it) into a single space."""
    return _UNSAFE_TEXT.sub(' ', value).strip()


def build_table(session: GazeSession) -> pd.DataFrame:
    """
    One row per registered region, attributed or not.

    Parameters:
    -----------
    session : GazeSession
        Session to read

    Returns:
    --------
    pd.DataFrame
        Columns 'page', 'label', 'count', 'total_duration' in page order,
        then region registration order
    """
    rows = []
    with session.lock:
        for page in session.index.pages():
            for region in session.index.regions(page):
                stat = session.aggregator.region_stat(page, region.id)
                rows.append({
                    'page': page,
                    'label': sanitize_text(region.label),
                    'count': stat.count,
                    'total_duration': stat.total_duration,
                })
    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def table_to_csv(table: pd.DataFrame) -> bytes:
    """Serialize a table with every text field quoted."""
    return table.to_csv(index=False, quoting=csv.QUOTE_NONNUMERIC).encode('utf-8')


@dataclass
class Bundle:
    """Attention table plus one composite PNG per page (``page_<n>.png``)."""
    table: pd.DataFrame
    images: Dict[str, bytes] = field(default_factory=dict)
    extras: Dict[str, bytes] = field(default_factory=dict)

    def to_zip(self) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(TABLE_NAME, table_to_csv(self.table))
            for name, payload in self.images.items():
                zf.writestr(name, payload)
            for name, payload in self.extras.items():
                zf.writestr(name, payload)
        return buf.getvalue()


def build_bundle(session: GazeSession, include_transitions: bool = False,
                 **plot_kwargs) -> Bundle:
    """
    Render every page of the loaded document with its attention overlay.

    Parameters:
    -----------
    session : GazeSession
        Session to read
    include_transitions : bool, optional
        Also render the region transition matrix as 'transitions.png',
        by default False
    **plot_kwargs
        Passed to ``plot_page_attention``

    Returns:
    --------
    Bundle
        Table from ``build_table`` and the per-page PNG images
    """
    # Snapshot under the lock, render outside it
    with session.lock:
        table = build_table(session)
        layout = session.layout
        pages = session.index.pages() if layout is not None else []
        log = session.aggregator.gaze_log
        snapshot = [
            (layout.get(page), session.index.regions(page), region_intensities(session, page))
            for page in pages
        ]
        transitions = transition_matrix(session)[0] if include_transitions else None

    bundle = Bundle(table=table)
    for page_layout, regions, intensities in snapshot:
        entries = [e for e in log if e.page == page_layout.page]
        fig = plot_page_attention(page_layout, entries, regions, intensities, **plot_kwargs)
        bundle.images[f"page_{page_layout.page}.png"] = figure_to_png(fig)
        logger.debug("Rendered page %s with %d gaze entries", page_layout.page, len(entries))

    if transitions is not None:
        bundle.extras['transitions.png'] = figure_to_png(plot_transition_matrix(transitions))

    return bundle
