"""
Viewport to page coordinate mapping.
"""
from tracking.layout import DocumentLayout, MappedPoint


class CoordinateMapper:
    """
    Resolve viewport points to page-local intrinsic coordinates.

    The layout is consulted on every call, so scrolling or moving pages
    after rendering is reflected immediately.
    """

    def __init__(self, layout: DocumentLayout):
        self.layout = layout

    def map(self, x: float, y: float) -> MappedPoint:
        """
        Map a viewport point onto the page under it.

        Parameters:
        -----------
        x, y : float
            Viewport coordinates

        Returns:
        --------
        MappedPoint
            Page-local point, or ``page=None`` with the viewport coordinates
            when no page is under the point
        """
        page = self.layout.page_at(x, y)
        if page is None:
            return MappedPoint(None, x, y)

        rect = self.layout.screen_rect(page)
        width, height = self.layout.page_size(page)

        # Pull edge points one pixel inside the visible box
        dx = max(0.0, min(x - rect.left, rect.width - 1))
        dy = max(0.0, min(y - rect.top, rect.height - 1))

        return MappedPoint(page, dx * width / rect.width, dy * height / rect.height)
