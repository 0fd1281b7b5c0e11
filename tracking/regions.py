"""
Per-page spatial index of content regions.
"""
import logging
from typing import Dict, Iterable, List, Optional

from tracking.layout import Region

logger = logging.getLogger(__name__)


class SpatialIndex:
    """
    Regions of each rendered page, kept in registration order.

    Lookup is a linear scan; the first region containing the point wins,
    which also settles overlapping regions.
    """

    def __init__(self):
        self._pages: Dict[int, List[Region]] = {}

    def register_page(self, page: int, regions: Iterable[Region]) -> None:
        """
        Build or rebuild the index for one page.

        Parameters:
        -----------
        page : int
            Page id
        regions : Iterable[Region]
            Regions of the page in page-local coordinates. Ids must be
            unique within the page.
        """
        ordered = []
        seen = set()
        for region in regions:
            if region.page != page:
                raise ValueError(f"Region {region.id!r} belongs to page {region.page}, not {page}")
            if region.id in seen:
                raise ValueError(f"Duplicate region id {region.id!r} on page {page}")
            seen.add(region.id)
            ordered.append(region)

        if page in self._pages:
            logger.debug("Rebuilding index for page %s", page)
        self._pages[page] = ordered
        logger.debug("Page %s indexed with %d regions", page, len(ordered))

    def find_region(self, page: Optional[int], x: float, y: float) -> Optional[str]:
        if page is None:
            return None
        for region in self._pages.get(page, ()):
            if region.rect.contains(x, y):
                return region.id
        return None

    def region(self, page: int, region_id: str) -> Optional[Region]:
        for region in self._pages.get(page, ()):
            if region.id == region_id:
                return region
        return None

    def regions(self, page: int) -> List[Region]:
        return list(self._pages.get(page, ()))

    def pages(self) -> List[int]:
        return sorted(self._pages)

    def has_region(self, page: int, region_id: str) -> bool:
        return self.region(page, region_id) is not None

    def drop_page(self, page: int) -> None:
        self._pages.pop(page, None)

    def clear(self) -> None:
        self._pages.clear()

    def __len__(self) -> int:
        return sum(len(regions) for regions in self._pages.values())
