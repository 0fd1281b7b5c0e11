"""
Records flowing through the tracking pipeline and the document layout they are mapped against.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle. Containment is half-open on the right and bottom edges."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x < self.right and self.top <= y < self.bottom

    def shifted(self, dx: float = 0.0, dy: float = 0.0) -> "Rect":
        return Rect(self.left + dx, self.top + dy, self.width, self.height)


@dataclass(frozen=True)
class GazeSample:
    """A single estimator sample in viewport coordinates, ``t`` in milliseconds."""
    x: float
    y: float
    t: float


@dataclass(frozen=True)
class MappedPoint:
    """
    A point resolved against the document.

    ``x``/``y`` are page-local intrinsic coordinates when ``page`` is set,
    otherwise the untouched viewport coordinates.
    """
    page: Optional[int]
    x: float
    y: float


@dataclass(frozen=True)
class Region:
    """A labeled content box (e.g. one line of text) in page-local coordinates."""
    page: int
    id: str
    rect: Rect
    label: str = ""


@dataclass(frozen=True)
class Fixation:
    """A detected fixation. Times and duration are in milliseconds."""
    page: Optional[int]
    x: float
    y: float
    start: float
    end: float
    duration: float


@dataclass
class RegionStat:
    count: int = 0
    total_duration: float = 0.0


@dataclass(frozen=True)
class GazeLogEntry:
    page: Optional[int]
    x: float
    y: float
    intensity: int = 1


@dataclass
class PageLayout:
    """
    One rendered page.

    ``width``/``height`` are the intrinsic render dimensions, ``screen_rect``
    is where the page sits in the viewport when the document is not scrolled.
    ``image`` optionally holds the rendered page as an (H, W[, C]) array.
    """
    page: int
    width: float
    height: float
    screen_rect: Rect
    image: Optional[np.ndarray] = field(default=None, repr=False)


class DocumentLayout:
    """
    On-screen layout of a rendered document.

    Pages keep their unscrolled screen rectangles; the current rectangle is
    always derived from the scroll offset so lookups follow the live layout.
    """

    def __init__(self, pages: Iterable[PageLayout], scroll_y: float = 0.0):
        self._pages: Dict[int, PageLayout] = {}
        for page in pages:
            if page.page in self._pages:
                raise ValueError(f"Duplicate page id: {page.page}")
            if page.width <= 0 or page.height <= 0:
                raise ValueError(f"Page {page.page} has non-positive intrinsic size")
            if page.screen_rect.width <= 0 or page.screen_rect.height <= 0:
                raise ValueError(f"Page {page.page} has non-positive screen size")
            self._pages[page.page] = page
        self.scroll_y = scroll_y

    @property
    def pages(self) -> List[int]:
        return sorted(self._pages)

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, page: int) -> bool:
        return page in self._pages

    def get(self, page: int) -> PageLayout:
        return self._pages[page]

    def page_size(self, page: int) -> Tuple[float, float]:
        layout = self._pages[page]
        return layout.width, layout.height

    def screen_rect(self, page: int) -> Rect:
        # Content moves up as the viewer scrolls down
        return self._pages[page].screen_rect.shifted(dy=-self.scroll_y)

    def page_at(self, x: float, y: float) -> Optional[int]:
        for page in self._pages:
            if self.screen_rect(page).contains(x, y):
                return page
        return None

    def scroll_to(self, offset: float) -> None:
        self.scroll_y = offset

    def scroll_by(self, delta: float) -> None:
        self.scroll_y += delta

    def set_screen_rect(self, page: int, rect: Rect) -> None:
        if rect.width <= 0 or rect.height <= 0:
            raise ValueError(f"Page {page} has non-positive screen size")
        self._pages[page].screen_rect = rect
        logger.debug("Page %s moved to %s", page, rect)

    @classmethod
    def stacked(cls, sizes: List[Tuple[float, float]], scale: float = 1.0,
                gap: float = 0.0, left: float = 0.0, top: float = 0.0) -> "DocumentLayout":
        """
        Lay pages out top to bottom, numbered from 1.

        Parameters:
        -----------
        sizes : List[Tuple[float, float]]
            Intrinsic (width, height) of each page
        scale : float, optional
            Screen pixels per intrinsic unit, by default 1.0
        gap : float, optional
            Vertical space between pages in screen pixels, by default 0.0
        left, top : float, optional
            Screen position of the first page, by default 0.0

        Returns:
        --------
        DocumentLayout
            Layout with one page per size
        """
        pages = []
        y = top
        for i, (w, h) in enumerate(sizes, start=1):
            rect = Rect(left, y, w * scale, h * scale)
            pages.append(PageLayout(page=i, width=w, height=h, screen_rect=rect))
            y += rect.height + gap
        return cls(pages)
