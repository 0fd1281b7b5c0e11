import pandas as pd
import numpy as np
from typing import Dict, List, Tuple

from tracking.session import GazeSession

PAGE_METRIC_COLUMNS = [
    "page",
    "n_fixations",
    "mean_fix_dur_ms",
    "dwell_ms",
    "ttf_ms",
    "regions_hit",
    "n_regions",
]


def region_intensities(session: GazeSession, page: int) -> Dict[str, float]:
    """Highlight strength of each region on ``page``.

    Parameters
    ----------
    session : GazeSession
        Session to read.
    page : int
        Page id.

    Returns
    -------
    Dict[str, float]
        Region id to fixation count divided by the page's maximum count. All
        zeros when nothing on the page was attributed.
    """
    with session.lock:
        counts = {
            region.id: session.aggregator.region_stat(page, region.id).count
            for region in session.index.regions(page)
        }
    peak = max(counts.values(), default=0)
    if peak == 0:
        return {region_id: 0.0 for region_id in counts}
    return {region_id: count / peak for region_id, count in counts.items()}


def page_metrics(session: GazeSession) -> pd.DataFrame:
    """Calculate basic fixation metrics for each page of the loaded document.

    Parameters
    ----------
    session : GazeSession
        Session to read.

    Returns
    -------
    pd.DataFrame
        One row per page with ``n_fixations``, ``mean_fix_dur_ms``,
        ``dwell_ms``, ``ttf_ms`` (time from the session's first fixation to
        the page's first fixation), ``regions_hit`` and ``n_regions``.
    """
    with session.lock:
        pages = session.index.pages()
        fixations = session.aggregator.fixations
        stats = session.aggregator.region_stats

    if not pages:
        return pd.DataFrame(columns=PAGE_METRIC_COLUMNS)

    t0 = fixations[0].start if fixations else np.nan

    metrics = []
    for page in pages:
        on_page = [f for f in fixations if f.page == page]
        page_stats = [stat for (p, _), stat in stats.items() if p == page]

        durations = [f.duration for f in on_page]
        metrics.append({
            "page": page,
            "n_fixations": len(on_page),
            "mean_fix_dur_ms": float(np.mean(durations)) if durations else np.nan,
            "dwell_ms": float(np.sum(durations)),
            "ttf_ms": min(f.start for f in on_page) - t0 if on_page else np.nan,
            "regions_hit": sum(1 for stat in page_stats if stat.count > 0),
            "n_regions": len(page_stats),
        })

    return pd.DataFrame(metrics, columns=PAGE_METRIC_COLUMNS)


def transition_matrix(session: GazeSession) -> Tuple[pd.DataFrame, List[str]]:
    """Compute transitions between regions for the sequence of fixations.

    Fixations outside every region are skipped, so a glance at the margin
    between two lines still counts as a transition between those lines.
    Fixations credited before their page was re-rendered are skipped too.

    Parameters
    ----------
    session : GazeSession
        Session to read.

    Returns
    -------
    Tuple[pd.DataFrame, List[str]]
        Transition count matrix and the ordered list of region labels
        (``"<page>:<region id>"``, in order of first visit).
    """
    visited = [f"{fix.page}:{region_id}"
               for fix, region_id in session.aggregator.credited_fixations]

    if not visited:
        return pd.DataFrame(), []

    labels = list(dict.fromkeys(visited))
    index = {label: i for i, label in enumerate(labels)}
    mat = np.zeros((len(labels), len(labels)), dtype=int)

    prev = visited[0]
    for key in visited[1:]:
        mat[index[prev], index[key]] += 1
        prev = key

    matrix_df = pd.DataFrame(mat, index=labels, columns=labels)
    return matrix_df, labels
