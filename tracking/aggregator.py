"""
Gaze log and per-region attention statistics for one tracking session.
"""
import logging
import threading
from typing import Dict, List, Optional, Tuple

from tracking.layout import Fixation, GazeLogEntry, MappedPoint, RegionStat
from tracking.regions import SpatialIndex

logger = logging.getLogger(__name__)

RegionKey = Tuple[int, str]


def duration_weight(duration: float) -> int:
    """Heatmap weight of a fixation: one unit per 100 ms of dwell, at least 1."""
    return max(1, int(round(duration / 100.0)))


class AttentionAggregator:
    """
    Owns the session state: the flat gaze log used for density rendering,
    the ordered fixations and the counters of each attributed region.

    Readers get copies; the aggregator never draws anything itself.
    """

    def __init__(self, index: SpatialIndex):
        self.index = index
        self._lock = threading.RLock()
        self._gaze_log: List[GazeLogEntry] = []
        self._fixations: List[Fixation] = []
        # region credited to each fixation, parallel to _fixations
        self._credits: List[Optional[str]] = []
        self._stats: Dict[RegionKey, RegionStat] = {}

    def on_fixation(self, fixation: Fixation) -> Optional[str]:
        """
        Record a mapped fixation and attribute it to the region under it.

        Parameters:
        -----------
        fixation : Fixation
            Fixation in page-local coordinates (``page=None`` when unmapped)

        Returns:
        --------
        Optional[str]
            Id of the region credited, or None
        """
        with self._lock:
            self._fixations.append(fixation)
            self._gaze_log.append(GazeLogEntry(
                fixation.page, fixation.x, fixation.y, duration_weight(fixation.duration)
            ))

            region_id = self.index.find_region(fixation.page, fixation.x, fixation.y)
            self._credits.append(region_id)
            if region_id is None:
                return None

            stat = self._stats.setdefault((fixation.page, region_id), RegionStat())
            stat.count += 1
            stat.total_duration += fixation.duration
            logger.debug("Fixation credited to region %s on page %s", region_id, fixation.page)
            return region_id

    def on_raw_sample(self, point: MappedPoint) -> None:
        with self._lock:
            self._gaze_log.append(GazeLogEntry(point.page, point.x, point.y, 1))

    def reset(self) -> None:
        with self._lock:
            self._gaze_log = []
            self._fixations = []
            self._credits = []
            self._stats = {}

    def drop_page(self, page: int) -> None:
        """Forget the counters of a page whose regions were rebuilt."""
        with self._lock:
            orphaned = [key for key in self._stats if key[0] == page]
            for key in orphaned:
                del self._stats[key]
            self._credits = [
                None if fix.page == page else region_id
                for fix, region_id in zip(self._fixations, self._credits)
            ]
            if orphaned:
                logger.info("Dropped %d region stats of re-rendered page %s", len(orphaned), page)

    @property
    def gaze_log(self) -> List[GazeLogEntry]:
        with self._lock:
            return list(self._gaze_log)

    @property
    def fixations(self) -> List[Fixation]:
        with self._lock:
            return list(self._fixations)

    @property
    def credited_fixations(self) -> List[Tuple[Fixation, str]]:
        """Fixations still credited to a registered region, with that region id."""
        with self._lock:
            return [(fix, region_id) for fix, region_id in zip(self._fixations, self._credits)
                    if region_id is not None]

    def region_stat(self, page: int, region_id: str) -> RegionStat:
        with self._lock:
            stat = self._stats.get((page, region_id))
            if stat is None:
                return RegionStat()
            return RegionStat(stat.count, stat.total_duration)

    @property
    def region_stats(self) -> Dict[RegionKey, RegionStat]:
        """Counters of every currently registered region, zeros included."""
        with self._lock:
            result = {}
            for page in self.index.pages():
                for region in self.index.regions(page):
                    result[(page, region.id)] = self.region_stat(page, region.id)
            return result
