"""Page model: the ordered staves of one scanned page."""

import logging

import numpy as np

from neume_editor.events import ChangeNotifier
from neume_editor.models import Coords, Zone

logger = logging.getLogger(__name__)


class Page:
    """A page of music: staves in reading order.

    Args:
        scale: Ratio of display coordinates to original document
            coordinates (default 1.0, no scaling).
        notifier: ChangeNotifier shared by every staff added to the page.
            A new one is created when None.

    Attributes:
        staves: Staves in reading order. The order is never reshuffled
            except by an explicit insertion through ``add_staff``.
        width: Display width, None until dimensions are set.
        height: Display height, None until dimensions are set.
    """

    def __init__(self, scale: float = 1.0, notifier: ChangeNotifier | None = None):
        self.staves = []
        self.scale = scale
        self.notifier = notifier if notifier is not None else ChangeNotifier()
        self.width: float | None = None
        self.height: float | None = None

    def set_dimensions(self, width: float, height: float) -> None:
        """Set the display size from original document dimensions."""
        self.width = self.scale * width
        self.height = self.scale * height

    @staticmethod
    def calc_dimensions(zones: list[Zone]) -> tuple[int, int]:
        """Page size implied by the facsimile zones of a document.

        Returns:
            ``(max_lrx, max_lry)``, or ``(0, 0)`` for no zones.
        """
        if not zones:
            return 0, 0
        corners = np.array([[z.lrx, z.lry] for z in zones])
        max_x, max_y = corners.max(axis=0)
        return int(max_x), int(max_y)

    def set_page_scale(self, scale: float) -> None:
        self.scale = scale

    def add_staff(self, staff, index: int | None = None) -> "Page":
        """Add a staff to the page.

        Args:
            staff: The staff to add. It shares the page's notifier unless it
                already has one.
            index: Position in reading order; appended when None.

        Returns:
            The page, for chaining.
        """
        if index is None:
            self.staves.append(staff)
        else:
            self.staves.insert(index, staff)

        if staff.notifier is None:
            staff.notifier = self.notifier

        return self

    def get_staff_by_id(self, sid: str):
        for staff in self.staves:
            if staff.id == sid:
                return staff
        return None

    def get_closest_staff(self, coords: Coords):
        """Find the staff closest to a point.

        The score of a staff is the vertical distance from its centre, plus
        the horizontal distance past its left or right edge when the point
        lies outside its horizontal span.

        Returns:
            The closest staff, or None if the page has no staves.
        """
        if not self.staves:
            return None

        uly = np.array([s.zone.uly for s in self.staves], dtype=float)
        lry = np.array([s.zone.lry for s in self.staves], dtype=float)
        ulx = np.array([s.zone.ulx for s in self.staves], dtype=float)
        lrx = np.array([s.zone.lrx for s in self.staves], dtype=float)

        dist = np.abs(coords.y - (lry - (lry - uly) / 2))
        dist += np.clip(ulx - coords.x, 0, None) + np.clip(coords.x - lrx, 0, None)

        return self.staves[int(np.argmin(dist))]

    def _staff_index(self, staff) -> int:
        for i, s in enumerate(self.staves):
            if s is staff:
                return i
        return -1

    def get_next_staff(self, staff):
        """Staff after ``staff`` in reading order, or None."""
        s_ind = self._staff_index(staff)
        if s_ind != -1 and s_ind + 1 < len(self.staves):
            return self.staves[s_ind + 1]
        return None

    def get_previous_staff(self, staff):
        """Staff before ``staff`` in reading order, or None."""
        s_ind = self._staff_index(staff)
        if s_ind > 0:
            return self.staves[s_ind - 1]
        return None

    def get_output_bounding_box(self, zone: Zone) -> Zone:
        """Convert a display zone back to original document coordinates."""
        return Zone.from_bbox([c / self.scale for c in zone.as_bbox()])
