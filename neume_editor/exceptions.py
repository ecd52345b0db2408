"""Exceptions raised by the neume editor model.

All errors are raised synchronously at the point of violation. None of
them are retried internally.
"""


class EditorError(Exception):
    """Base exception for neume editor model errors."""

    pass


class InvalidBoundingBox(EditorError):
    """Exception raised when a bounding box has ulx >= lrx or uly >= lry."""

    pass


class InvalidClefShape(EditorError):
    """Exception raised when a clef shape is not one of "c" or "f"."""

    pass


class InvalidStaffReference(EditorError):
    """Exception raised when an object that is not a Staff is given as a staff."""

    pass


class InvalidElementReference(EditorError):
    """Exception raised when the wrong kind of element is passed to a staff."""

    pass


class NoActingClef(EditorError):
    """Exception raised when a pitch is requested for an element with no clef before it."""

    pass


class ClassificationUnmatched(EditorError):
    """Exception raised when a melodic contour is not found in the search tree."""

    pass


class ForbiddenOperation(EditorError):
    """Exception raised for model operations that are never allowed.

    Deleting the first clef of a staff is the only such operation: every
    pitched element on a staff needs a clef acting on it.
    """

    pass
