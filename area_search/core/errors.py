"""Domain errors raised by the search pipeline.

Services raise these; the HTTP router is the only place that turns them
into status codes.
"""


class GeometryError(ValueError):
    """The drawn shape cannot be searched. The user has to redraw it."""

    kind = "geometry_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DegenerateShape(GeometryError):
    kind = "degenerate_shape"


class SelfIntersecting(GeometryError):
    kind = "self_intersecting"


class InvalidVertex(GeometryError):
    kind = "invalid_vertex"


class TransformError(Exception):
    kind = "transform_error"


class MissingIdentifier(TransformError):
    kind = "missing_identifier"


class SearchError(Exception):
    kind = "search_error"


class StoreUnavailable(SearchError):
    kind = "store_unavailable"


class UnsupportedFilter(SearchError):
    kind = "unsupported_filter"


class SearchCancelled(SearchError):
    kind = "search_cancelled"
