"""
Visualization functions for page attention maps.
"""
import io
import math
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import matplotlib.patches as patches
from matplotlib.figure import Figure
from scipy.ndimage import gaussian_filter
import seaborn as sns

from tracking.layout import GazeLogEntry, PageLayout, Region


def density_grid(entries: List[GazeLogEntry], width: float, height: float,
                 bin_size: float = 4.0, radius: float = 40.0) -> np.ndarray:
    """
    Smoothed, intensity-weighted gaze density over a page.

    Parameters:
    -----------
    entries : List[GazeLogEntry]
        Log entries of a single page, page-local coordinates
    width, height : float
        Intrinsic page size
    bin_size : float, optional
        Histogram cell size in page units, by default 4.0
    radius : float, optional
        Spread of one gaze point in page units, by default 40.0

    Returns:
    --------
    np.ndarray
        (nx, ny) grid normalized to [0, 1]
    """
    nx = max(1, int(math.ceil(width / bin_size)))
    ny = max(1, int(math.ceil(height / bin_size)))
    if not entries:
        return np.zeros((nx, ny))

    xs = [e.x for e in entries]
    ys = [e.y for e in entries]
    weights = [e.intensity for e in entries]

    # Create 2D histogram
    hist, _, _ = np.histogram2d(xs, ys, bins=(nx, ny),
                                range=[[0, width], [0, height]], weights=weights)

    # Apply Gaussian filter for smoothing
    heat = gaussian_filter(hist, sigma=radius / bin_size / 2.0)

    # Normalize
    if heat.max() > 0:
        heat = heat / heat.max()
    return heat


def plot_page_attention(page: PageLayout, entries: List[GazeLogEntry],
                        regions: List[Region], intensities: Dict[str, float],
                        fig: Optional[Figure] = None, bin_size: float = 4.0,
                        radius: float = 40.0, cmap: str = 'jet', alpha: float = 0.6,
                        highlight_color: str = 'orange', dpi: int = 100) -> Figure:
    """
    Composite a page with its gaze density and region highlights.

    Parameters:
    -----------
    page : PageLayout
        Page to draw; its ``image`` is used as background when present
    entries : List[GazeLogEntry]
        Gaze log entries of this page
    regions : List[Region]
        Regions of this page
    intensities : Dict[str, float]
        Region id to highlight strength in [0, 1]
    fig : Optional[Figure], optional
        Matplotlib figure to plot on, by default None
    bin_size, radius : float, optional
        Density grid parameters, see ``density_grid``
    cmap : str, optional
        Colormap name, by default 'jet'
    alpha : float, optional
        Maximum heatmap opacity, by default 0.6
    highlight_color : str, optional
        Fill color of attended regions, by default 'orange'
    dpi : int, optional
        Figure resolution; the figure is sized so one page unit is one pixel

    Returns:
    --------
    Figure
        Matplotlib figure with the composite
    """
    w, h = page.width, page.height
    if fig is None:
        fig = plt.figure(figsize=(max(w / dpi, 1.0), max(h / dpi, 1.0)), dpi=dpi)

    ax = fig.add_axes([0, 0, 1, 1])
    ax.set_facecolor('white')

    if page.image is not None:
        ax.imshow(page.image, extent=[0, w, h, 0])

    # Region highlights, opacity follows attention relative to the page maximum
    for region in regions:
        strength = intensities.get(region.id, 0.0)
        if strength <= 0:
            continue
        rect = region.rect
        ax.add_patch(patches.Rectangle(
            (rect.left, rect.top), rect.width, rect.height,
            facecolor=highlight_color, edgecolor='none', alpha=0.15 + 0.35 * strength
        ))

    heat = density_grid(entries, w, h, bin_size=bin_size, radius=radius)
    if heat.max() > 0:
        # Leave cold cells transparent so the page shows through
        masked = np.ma.masked_where(heat < 0.02, heat)
        ax.imshow(masked.T, extent=[0, w, h, 0], cmap=cmap, alpha=alpha,
                  vmin=0.0, vmax=1.0, interpolation='bilinear')

    ax.set_xlim(0, w)
    ax.set_ylim(h, 0)  # Invert Y axis to match page coordinates
    ax.axis('off')

    return fig


def plot_transition_matrix(matrix: pd.DataFrame) -> Figure:
    """Display a heatmap of region transition counts."""

    fig = plt.figure(figsize=(6, 5))
    ax = fig.add_subplot(111)

    if isinstance(matrix, pd.DataFrame) and not matrix.empty:
        sns.heatmap(matrix, annot=True, fmt='g', cmap='Blues', ax=ax)
    else:
        ax.text(0.5, 0.5, 'No transitions', ha='center', va='center')
        ax.axis('off')
        return fig

    ax.set_title('Transition Matrix')
    ax.set_xlabel('Next region')
    ax.set_ylabel('Previous region')
    fig.tight_layout()

    return fig


def figure_to_png(fig: Figure, dpi: Optional[int] = None) -> bytes:
    """Render a figure to PNG bytes and close it."""
    buf = io.BytesIO()
    try:
        fig.savefig(buf, format='png', dpi=dpi or fig.dpi)
    finally:
        plt.close(fig)
    return buf.getvalue()
