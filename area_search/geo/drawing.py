from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.cancel import CancelToken
from .geometry import ShapeKind, Vertex


class DrawState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    SHAPE_COMPLETE = "shape_complete"


class DrawingError(RuntimeError):
    """UI event arrived in a state that does not accept it."""


def from_lnglat(pairs: Iterable[Sequence[float]]) -> List[Tuple[float, float]]:
    """Swap map-toolkit (lng, lat) pairs into (lat, lng)."""
    return [(float(p[1]), float(p[0])) for p in pairs]


class DrawingSession:
    """
    One user's drawing state: Idle -> Drawing -> ShapeComplete.

    The session owns the in-progress vertices and the cancel token of the
    search launched for the last completed shape. Starting a new shape
    cancels that search so its results are discarded. Validation is left to
    geometry.normalize().
    """

    def __init__(self):
        self.state = DrawState.IDLE
        self.kind: Optional[ShapeKind] = None
        self._vertices: List[Vertex] = []
        self._search: Optional[CancelToken] = None

    def start(self, kind: ShapeKind | str) -> None:
        if self._search is not None:
            self._search.cancel("new shape started")
            self._search = None
        self.kind = ShapeKind(kind)
        self._vertices = []
        self.state = DrawState.DRAWING

    def add_vertex(self, lat: float, lng: float) -> None:
        if self.state is not DrawState.DRAWING:
            raise DrawingError(f"cannot add a vertex while {self.state.value}")
        self._vertices.append(Vertex(float(lat), float(lng)))

    def complete(self) -> Tuple[ShapeKind, List[Vertex]]:
        """Finish the shape and return (kind, vertices) for the search."""
        if self.state is not DrawState.DRAWING:
            raise DrawingError(f"cannot complete a shape while {self.state.value}")
        self.state = DrawState.SHAPE_COMPLETE
        return self.shape()

    def shape(self) -> Tuple[ShapeKind, List[Vertex]]:
        if self.state is not DrawState.SHAPE_COMPLETE or self.kind is None:
            raise DrawingError("no completed shape")
        return self.kind, list(self._vertices)

    def attach_search(self) -> CancelToken:
        """Token for the search of the completed shape."""
        if self.state is not DrawState.SHAPE_COMPLETE:
            raise DrawingError("no completed shape to search")
        if self._search is not None:
            self._search.cancel("search restarted")
        self._search = CancelToken()
        return self._search

    def cancel(self) -> None:
        """Abort drawing (and any pending search) and go back to Idle."""
        if self._search is not None:
            self._search.cancel("session aborted")
            self._search = None
        self.reset()

    def reset(self) -> None:
        self.state = DrawState.IDLE
        self.kind = None
        self._vertices = []
