"""
Functions for loading recorded gaze samples and document layouts, and saving exports
"""
import json
import logging
from pathlib import Path
from typing import Dict, List, Tuple, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from tracking.layout import DocumentLayout, PageLayout, Rect, Region

logger = logging.getLogger(__name__)

SAMPLE_COLUMNS = ['x', 'y', 't']


def load_samples(path: Union[str, Path], sample_rate: float = 30.0) -> pd.DataFrame:
    """
    Load a recorded gaze stream.

    Parameters:
    -----------
    path : Union[str, Path]
        CSV file with 'x' and 'y' viewport columns and an optional 't' column (ms)
    sample_rate : float, optional
        Rate in Hz used to synthesize timestamps when 't' is missing, by default 30.0

    Returns:
    --------
    pd.DataFrame
        Samples with 'x', 'y' and 't' columns, NaN rows dropped
    """
    path = Path(path)
    df = pd.read_csv(path)

    missing = [col for col in ('x', 'y') if col not in df.columns]
    if missing:
        raise ValueError(f"Required columns {missing} not found in {path}")

    if 't' not in df.columns:
        if sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        logger.warning("No 't' column in %s, assuming %.1f Hz", path, sample_rate)
        df['t'] = np.arange(len(df)) * (1000.0 / sample_rate)

    df = df[SAMPLE_COLUMNS].apply(pd.to_numeric, errors='coerce')
    n_before = len(df)
    df = df.dropna().reset_index(drop=True)
    if len(df) < n_before:
        logger.warning("Dropped %d malformed samples from %s", n_before - len(df), path)

    return df


def _parse_rect(data: Union[Dict, List], what: str) -> Rect:
    if isinstance(data, dict):
        return Rect(float(data['left']), float(data['top']),
                    float(data['width']), float(data['height']))
    if len(data) != 4:
        raise ValueError(f"{what} must have 4 values (left, top, width, height)")
    return Rect(*(float(v) for v in data))


def load_layout(path: Union[str, Path]) -> Tuple[DocumentLayout, Dict[int, List[Region]]]:
    """
    Load a rendered document description.

    Parameters:
    -----------
    path : Union[str, Path]
        JSON file shaped like::

            {"scroll_y": 0,
             "pages": [{"page": 1, "width": 612, "height": 792,
                        "screen_rect": [0, 0, 612, 792],
                        "image": "page1.png",
                        "regions": [{"id": "l1", "rect": [72, 72, 468, 14],
                                     "label": "First line"}]}]}

        ``image`` is optional and resolved relative to the JSON file.

    Returns:
    --------
    Tuple[DocumentLayout, Dict[int, List[Region]]]
        (layout, regions per page)
    """
    path = Path(path)
    with open(path, 'r') as f:
        doc = json.load(f)

    pages = []
    regions: Dict[int, List[Region]] = {}
    for entry in doc.get('pages', []):
        try:
            page = int(entry['page'])
            width, height = float(entry['width']), float(entry['height'])
        except KeyError as e:
            raise ValueError(f"Page entry in {path} is missing {e}") from e

        screen_rect = _parse_rect(entry.get('screen_rect', [0, 0, width, height]),
                                  f"screen_rect of page {page}")

        image = None
        if entry.get('image'):
            image_path = path.parent / entry['image']
            if image_path.exists():
                image = plt.imread(image_path)
            else:
                logger.warning("Image %s for page %s not found", image_path, page)

        pages.append(PageLayout(page=page, width=width, height=height,
                                screen_rect=screen_rect, image=image))
        regions[page] = []
        for r in entry.get('regions', []):
            try:
                region_id, rect = str(r['id']), r['rect']
            except KeyError as e:
                raise ValueError(f"Region entry on page {page} in {path} is missing {e}") from e
            regions[page].append(Region(page=page, id=region_id,
                                        rect=_parse_rect(rect, f"region {region_id!r}"),
                                        label=str(r.get('label', ''))))

    layout = DocumentLayout(pages, scroll_y=float(doc.get('scroll_y', 0.0)))
    return layout, regions


def save_bytes(payload: bytes, output_path: Union[str, Path]) -> None:
    """
    Write an in-memory export to disk.

    Parameters:
    -----------
    payload : bytes
        Bytes to write
    output_path : Union[str, Path]
        Destination file
    """
    path = Path(output_path)

    # Create parent directories if they don't exist
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
