"""
A tracking session: mapper, spatial index, classifier and aggregator driven by one gaze source.
"""
import logging
import threading
import time
from dataclasses import replace
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

from tracking.aggregator import AttentionAggregator
from tracking.fixations import FixationClassifier
from tracking.layout import DocumentLayout, Fixation, GazeSample, Region
from tracking.mapping import CoordinateMapper
from tracking.regions import SpatialIndex

logger = logging.getLogger(__name__)


class TrackingMode(Enum):
    """How incoming samples feed the gaze log."""
    FIXATION = "fixation"  # classify, log and attribute fixations
    RAW = "raw"            # log every mapped sample, no attribution


def _now_ms() -> float:
    return time.monotonic() * 1000.0


class GazeSession:
    """
    Single owner of all tracking state.

    Each sample runs mapper -> classifier -> aggregator to completion under
    the session lock; ``reset`` and document loads take the same lock, so
    they never interleave with a sample in flight.
    """

    def __init__(self, layout: Optional[DocumentLayout] = None,
                 mode: TrackingMode = TrackingMode.FIXATION,
                 classifier: Optional[FixationClassifier] = None):
        self._lock = threading.RLock()
        self.mode = mode
        self.classifier = classifier or FixationClassifier()
        self.index = SpatialIndex()
        self.aggregator = AttentionAggregator(self.index)
        self.layout: Optional[DocumentLayout] = None
        self.mapper: Optional[CoordinateMapper] = None
        self.paused = False
        self.samples_received = 0
        self.samples_dropped = 0
        if layout is not None:
            self.load_document(layout)

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def load_document(self, layout: DocumentLayout,
                      regions: Optional[Mapping[int, Iterable[Region]]] = None) -> None:
        """
        Replace the current document.

        Parameters:
        -----------
        layout : DocumentLayout
            Layout of the newly rendered document
        regions : Optional[Mapping[int, Iterable[Region]]], optional
            Content regions per page, by default None (pages without regions)
        """
        regions = {page: list(page_regions) for page, page_regions in (regions or {}).items()}
        unknown = [page for page in regions if page not in layout]
        if unknown:
            raise ValueError(f"Regions given for pages not in the layout: {unknown}")

        # Validate every page before touching the current document
        staged = SpatialIndex()
        for page in layout.pages:
            staged.register_page(page, regions.get(page, ()))

        with self._lock:
            self.layout = layout
            self.mapper = CoordinateMapper(layout)
            self.index.clear()
            for page in layout.pages:
                self.index.register_page(page, regions.get(page, ()))
            self.aggregator.reset()
            self.classifier.clear()
            logger.info("Loaded document with %d pages and %d regions", len(layout), len(self.index))

    def load_page(self, page: int, regions: Iterable[Region]) -> None:
        """Re-render one page: rebuild its regions and drop their old counters."""
        with self._lock:
            if self.layout is None or page not in self.layout:
                raise ValueError(f"Page {page} is not part of the loaded document")
            self.index.register_page(page, regions)
            self.aggregator.drop_page(page)

    def on_gaze(self, x: float, y: float, t: Optional[float] = None) -> Optional[Fixation]:
        """
        Feed one estimator sample through the pipeline.

        Parameters:
        -----------
        x, y : float
            Viewport coordinates
        t : Optional[float], optional
            Timestamp in ms; a monotonic clock is used when missing

        Returns:
        --------
        Optional[Fixation]
            The mapped fixation if this sample completed one
        """
        with self._lock:
            self.samples_received += 1
            if self.paused or self.mapper is None:
                self.samples_dropped += 1
                return None

            sample = GazeSample(x, y, _now_ms() if t is None else t)

            if self.mode is TrackingMode.RAW:
                self.aggregator.on_raw_sample(self.mapper.map(sample.x, sample.y))
                return None

            fix = self.classifier.push(sample)
            if fix is None:
                return None

            point = self.mapper.map(fix.x, fix.y)
            fix = replace(fix, page=point.page, x=point.x, y=point.y)
            self.aggregator.on_fixation(fix)
            return fix

    def pause(self) -> None:
        with self._lock:
            self.paused = True
            logger.info("Tracking paused")

    def resume(self) -> None:
        with self._lock:
            self.paused = False
            logger.info("Tracking resumed")

    def set_mode(self, mode: TrackingMode) -> None:
        with self._lock:
            if mode is not self.mode:
                self.classifier.clear()
                self.mode = mode
                logger.info("Tracking mode set to %s", mode.value)

    def reset(self) -> None:
        """Clear gaze log, fixations and region counters; regions stay registered."""
        with self._lock:
            self.aggregator.reset()
            self.classifier.clear()
            self.samples_received = 0
            self.samples_dropped = 0
            logger.info("Session data cleared")

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'samples_received': self.samples_received,
                'samples_dropped': self.samples_dropped,
                'buffered_samples': self.classifier.buffered,
                'fixations': len(self.aggregator.fixations),
                'gaze_log_size': len(self.aggregator.gaze_log),
                'pages': len(self.index.pages()),
                'regions': len(self.index),
                'mode': self.mode.value,
                'paused': self.paused,
            }
