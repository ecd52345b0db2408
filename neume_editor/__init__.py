"""Editing model for square-note neume notation.

This package holds the in-memory model behind an interactive editor for
scanned pages of plainchant. Pages hold staves, staves hold clefs, neumes,
divisions and an optional custos, and every pitch is derived from the
vertical position of a note relative to the clef acting on it.

The package is organised as:
1. Value models and configuration (``neume_editor.models``)
2. Staff elements and neume classification by melodic contour
3. Staff and page geometry: pitch arithmetic, ordering and snapping
4. Editing operations that report each change to a persistence sink
5. Import of pre-parsed document records

Example:
    Loading a staff and inserting a punctum:

    >>> from neume_editor import DocumentLoader, NeumeEditor, Page
    >>> from neume_editor.models import Coords, ElementKind, ElementRecord, StaffRecord
    >>>
    >>> page = DocumentLoader(Page()).load([
    ...     StaffRecord(id="s1", zone=[190, 302, 1450, 461]),
    ...     ElementRecord(kind=ElementKind.CLEF, id="c1", zone=[190, 278, 208, 331],
    ...                   attributes={"shape": "c", "line": 4}),
    ... ])
    >>> editor = NeumeEditor(page)
    >>> commands = editor.insert_punctum(Coords(x=400, y=330))
"""

from neume_editor.editor import NeumeEditor
from neume_editor.elements import Clef, Custos, Division, NeumeComponent, StaffElement
from neume_editor.events import ChangeNotifier, CommandLog
from neume_editor.loader import DocumentLoader
from neume_editor.neume import Neume
from neume_editor.page import Page
from neume_editor.search_tree import SearchTree, default_search_tree
from neume_editor.staff import Staff
