"""Neume classification by melodic contour.

A neume's shape is determined by the ups and downs between its notes. The
vocabulary of named shapes is a trie keyed by the contour symbols
``-1`` (down), ``0`` (repeat) and ``1`` (up), starting from a single
punctum at the root. The trie is built once from ``NEUME_TABLE`` and never
mutated afterwards, so a single instance is shared by every page.
"""

import logging
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, NamedTuple, Sequence

from neume_editor.exceptions import ClassificationUnmatched

logger = logging.getLogger(__name__)

CONTOUR_SYMBOLS = (-1, 0, 1)

# (contour, typeid, name); every prefix of a contour is itself in the table
NEUME_TABLE: tuple[tuple[tuple[int, ...], str, str], ...] = (
    ((), "punctum", "Punctum"),
    ((0,), "distropha", "Distropha"),
    ((0, 0), "tristropha", "Tristropha"),
    ((1,), "podatus", "Podatus"),
    ((1, 1), "scandicus.1", "Scandicus"),
    ((1, 1, 1), "scandicus.2", "Scandicus"),
    ((1, 1, 1, 1), "scandicus.3", "Scandicus"),
    ((1, 1, 1, 1, 1), "scandicus.4", "Scandicus"),
    ((1, 1, 1, 1, -1), "scandicus.flexus.3", "Scandicus Flexus"),
    ((1, 1, 1, -1), "scandicus.flexus.2", "Scandicus Flexus"),
    ((1, 1, -1), "scandicus.flexus.1", "Scandicus Flexus"),
    ((1, 1, -1, -1), "scandicus.subpunctis.1", "Scandicus Subpunctis"),
    ((1, 1, -1, -1, -1), "scandicus.subpunctis.2", "Scandicus Subpunctis"),
    ((1, -1), "torculus", "Torculus"),
    ((1, -1, 1), "torculus.resupinus.1", "Torculus Resupinus"),
    ((1, -1, 1, -1), "torculus.resupinus.2", "Torculus Resupinus"),
    ((1, -1, 1, -1, -1), "torculus.resupinus.3", "Torculus Resupinus"),
    ((1, -1, 1, -1, -1, -1), "torculus.resupinus.4", "Torculus Resupinus"),
    ((1, -1, -1), "podatus.subpunctis.1", "Podatus Subpunctis"),
    ((1, -1, -1, 1), "podatus.subpunctis.resupinus.1", "Podatus Subpunctis Resupinus"),
    ((1, -1, -1, -1), "podatus.subpunctis.2", "Podatus Subpunctis"),
    (
        (1, -1, -1, -1, 1),
        "podatus.subpunctis.resupinus.2",
        "Podatus Subpunctis Resupinus",
    ),
    ((1, -1, -1, -1, -1), "podatus.subpunctis.3", "Podatus Subpunctis"),
    (
        (1, -1, -1, -1, -1, 1),
        "podatus.subpunctis.resupinus.3",
        "Podatus Subpunctis Resupinus",
    ),
    ((1, -1, -1, -1, -1, -1), "podatus.subpunctis.4", "Podatus Subpunctis"),
    ((-1,), "clivis", "Clivis"),
    ((-1, 1), "porrectus", "Porrectus"),
    ((-1, 1, 1), "compound.2", "Compound Neume 2"),
    ((-1, 1, 1, -1), "compound.1", "Compound"),
    ((-1, 1, -1), "porrectus.flexus", "Porrectus Flexus"),
    ((-1, 1, -1, -1), "porrectus.subpunctis.1", "Porrectus Subpunctis"),
    (
        (-1, 1, -1, -1, 1),
        "porrectus.subpunctis.resupinus.1",
        "Porrectus Subpunctis Resupinus",
    ),
    ((-1, 1, -1, -1, -1), "porrectus.subpunctis.2", "Porrectus Subpunctis"),
    (
        (-1, 1, -1, -1, -1, 1),
        "porrectus.subpunctis.resupinus.2",
        "Porrectus Subpunctis Resupinus",
    ),
    ((-1, -1), "climacus.1", "Climacus"),
    ((-1, -1, 1), "climacus.resupinus.1", "Climacus Resupinus"),
    ((-1, -1, -1), "climacus.2", "Climacus"),
    ((-1, -1, -1, 1), "climacus.resupinus.2", "Climacus Resupinus"),
    ((-1, -1, -1, -1), "climacus.3", "Climacus"),
    ((-1, -1, -1, -1, 1), "climacus.resupinus.3", "Climacus Resupinus"),
    ((-1, -1, -1, -1, -1), "climacus.4", "Climacus"),
    ((-1, -1, -1, -1, -1, 1), "climacus.resupinus.4", "Climacus Resupinus"),
)


class NeumeType(NamedTuple):
    """Payload stored at a search tree node."""

    typeid: str
    name: str


class SearchResult(NamedTuple):
    """Outcome of a search tree lookup.

    Attributes:
        result: Payload of the matched node.
        prefix: True when only a prefix of the contour was found in the
            tree; ``result`` is then the payload of the deepest match.
    """

    result: NeumeType
    prefix: bool


class _Node:
    __slots__ = ("payload", "children")

    def __init__(self, payload: NeumeType | None = None):
        self.payload = payload
        self.children: Mapping[int, "_Node"] = {}


class SearchTree:
    """Immutable trie mapping melodic contours to neume types.

    Args:
        table: Iterable of ``(contour, typeid, name)`` rows. Intermediate
            nodes without a row of their own carry no payload.

    Raises:
        ValueError: If a contour contains a symbol other than -1, 0 or 1.
    """

    def __init__(self, table=NEUME_TABLE):
        self._root = _Node()
        num_nodes = 1
        for contour, typeid, name in table:
            node = self._root
            for symbol in contour:
                if symbol not in CONTOUR_SYMBOLS:
                    raise ValueError(f"invalid contour symbol {symbol!r} for {typeid}")
                if symbol not in node.children:
                    node.children[symbol] = _Node()
                    num_nodes += 1
                node = node.children[symbol]
            node.payload = NeumeType(typeid, name)

        self._freeze(self._root)
        self.num_nodes = num_nodes

    @classmethod
    def _freeze(cls, node: _Node) -> None:
        for child in node.children.values():
            cls._freeze(child)
        node.children = MappingProxyType(dict(node.children))

    def search(self, sequence: Sequence[int], allow_prefix: bool = False) -> SearchResult:
        """Look up a melodic contour.

        Args:
            sequence: Contour symbols, one per note after the root.
            allow_prefix: Accept the deepest matched node when the contour
                runs past the end of the tree.

        Returns:
            A SearchResult, with ``prefix`` set when only a prefix matched.

        Raises:
            ClassificationUnmatched: If the contour is not in the tree and no
                prefix match is allowed or possible.
        """
        node = self._root
        deepest = node.payload
        for symbol in sequence:
            child = node.children.get(symbol)
            if child is None:
                if allow_prefix and deepest is not None:
                    return SearchResult(deepest, True)
                raise ClassificationUnmatched(f"no neume matches contour {list(sequence)}")
            node = child
            if node.payload is not None:
                deepest = node.payload

        if node.payload is not None:
            return SearchResult(node.payload, False)
        if allow_prefix and deepest is not None:
            return SearchResult(deepest, True)
        raise ClassificationUnmatched(f"no neume matches contour {list(sequence)}")

    def __contains__(self, sequence) -> bool:
        try:
            self.search(sequence)
        except ClassificationUnmatched:
            return False
        return True


@lru_cache(maxsize=1)
def default_search_tree() -> SearchTree:
    """Return the shared search tree built from ``NEUME_TABLE``.

    Built on first use and cached for the life of the process.
    """
    tree = SearchTree()
    logger.debug(f"Built neume search tree with {tree.num_nodes} nodes")
    return tree
