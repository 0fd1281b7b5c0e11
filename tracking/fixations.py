"""
Streaming fixation detection with the I-DT (Dispersion-Threshold) algorithm.
"""
import logging
from collections import deque
from dataclasses import asdict
from typing import Deque, List, Optional

import numpy as np
import pandas as pd

from tracking.layout import Fixation, GazeSample

logger = logging.getLogger(__name__)

# ---------- Parameters ----------
DISPERSION_THRESHOLD = 60.0     # same units as the raw gaze coordinates
MIN_FIXATION_DURATION = 150.0   # ms
LOOKBACK_WINDOW = 1000.0        # ms
MIN_SAMPLES = 3
# --------------------------------

FIXATION_COLUMNS = ['page', 'x', 'y', 'start', 'end', 'duration']


class FixationClassifier:
    """
    Sliding-window I-DT classifier fed one sample at a time.

    A fixation consumes the samples that produced it: the buffer is emptied
    on emission, so the next fixation starts from a fresh window.
    """

    def __init__(self, dispersion_threshold: float = DISPERSION_THRESHOLD,
                 min_duration: float = MIN_FIXATION_DURATION,
                 window: float = LOOKBACK_WINDOW,
                 min_samples: int = MIN_SAMPLES):
        """
        Parameters:
        -----------
        dispersion_threshold : float, optional
            Maximum (max x - min x) + (max y - min y) of a fixation window
        min_duration : float, optional
            Minimum fixation duration in ms
        window : float, optional
            Samples older than this many ms before the newest one are evicted
        min_samples : int, optional
            Samples needed before detection is attempted
        """
        if min_samples < 1:
            raise ValueError("min_samples must be at least 1")
        if window < 0:
            raise ValueError("window must not be negative")
        self.dispersion_threshold = dispersion_threshold
        self.min_duration = min_duration
        self.window = window
        self.min_samples = min_samples
        self._buffer: Deque[GazeSample] = deque()

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()

    def duration(self) -> float:
        if not self._buffer:
            return 0.0
        return self._buffer[-1].t - self._buffer[0].t

    def dispersion(self) -> float:
        if not self._buffer:
            return 0.0
        xs = [s.x for s in self._buffer]
        ys = [s.y for s in self._buffer]
        return (max(xs) - min(xs)) + (max(ys) - min(ys))

    def push(self, sample: GazeSample) -> Optional[Fixation]:
        """
        Add a sample and return a fixation if the window now qualifies.

        Parameters:
        -----------
        sample : GazeSample
            Next sample, timestamps in ms

        Returns:
        --------
        Optional[Fixation]
            Fixation at the window centroid, with ``page=None`` and
            coordinates in the sample's units, or None
        """
        if self._buffer and sample.t < self._buffer[-1].t:
            logger.debug("Timestamp went backwards (%.1f < %.1f), restarting window",
                         sample.t, self._buffer[-1].t)
            self._buffer.clear()

        self._buffer.append(sample)

        # Evict everything outside the lookback window
        cutoff = sample.t - self.window
        while self._buffer[0].t < cutoff:
            self._buffer.popleft()

        if len(self._buffer) < self.min_samples:
            return None

        dur = self.duration()
        disp = self.dispersion()
        if dur < self.min_duration or disp > self.dispersion_threshold:
            return None

        n = len(self._buffer)
        fix = Fixation(
            page=None,
            x=sum(s.x for s in self._buffer) / n,
            y=sum(s.y for s in self._buffer) / n,
            start=self._buffer[0].t,
            end=self._buffer[-1].t,
            duration=dur,
        )
        self._buffer.clear()
        logger.debug("Fixation at (%.1f, %.1f) for %.0f ms from %d samples (dispersion %.1f)",
                     fix.x, fix.y, fix.duration, n, disp)
        return fix


def detect_fixations(df: pd.DataFrame,
                     dispersion_threshold: float = DISPERSION_THRESHOLD,
                     min_duration: float = MIN_FIXATION_DURATION,
                     window: float = LOOKBACK_WINDOW) -> pd.DataFrame:
    """
    Run the streaming classifier over a recorded sample table.

    Parameters:
    -----------
    df : pd.DataFrame
        Samples with 'x', 'y' and 't' (ms) columns
    dispersion_threshold : float, optional
        Maximum dispersion, by default DISPERSION_THRESHOLD
    min_duration : float, optional
        Minimum fixation duration in ms, by default MIN_FIXATION_DURATION
    window : float, optional
        Lookback window in ms, by default LOOKBACK_WINDOW

    Returns:
    --------
    pd.DataFrame
        One row per fixation in viewport coordinates
    """
    logger.debug('detect_fixations input shape: %s', df.shape)
    classifier = FixationClassifier(dispersion_threshold, min_duration, window)
    fixations: List[dict] = []

    df = df.sort_values('t', kind='stable')
    for x, y, t in zip(df['x'], df['y'], df['t']):
        # Skip NaN coordinates
        if np.isnan(x) or np.isnan(y):
            continue
        fix = classifier.push(GazeSample(float(x), float(y), float(t)))
        if fix is not None:
            fixations.append(asdict(fix))

    result = pd.DataFrame(fixations, columns=FIXATION_COLUMNS)
    logger.debug('detect_fixations output shape: %s', result.shape)
    return result
