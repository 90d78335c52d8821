"""
Nearest-neighbour index over average tile colours.

Classes:
    SpatialIndex: Protocol for a 3-D point index
    KDTreeIndex: SpatialIndex backed by scipy.spatial.KDTree
    DuplicateCoordinateError: Raised when a point is inserted twice
"""

from typing import Any, Dict, Generic, List, Optional, Protocol, Sequence, Tuple, TypeVar

import numpy as np
from scipy.spatial import KDTree

T = TypeVar("T")


class DuplicateCoordinateError(ValueError):
    """Raised when a point with identical coordinates is already indexed."""


class SpatialIndex(Protocol[T]):
    def insert(self, point: Sequence[float], ref: T) -> None:
        ...

    def nearest_k(self, point: Sequence[float], k: int) -> List[T]:
        ...


class KDTreeIndex(Generic[T]):
    """
    KD-tree over fixed-dimension points with attached references.

    Points are collected with insert(); the tree is (re)built lazily on the
    first query after a change.

    Example:
        >>> index = KDTreeIndex()
        >>> index.insert((255.0, 0.0, 0.0), "red.png")
        >>> index.insert((0.0, 0.0, 255.0), "blue.png")
        >>> index.nearest_k((200.0, 10.0, 10.0), 1)
        ['red.png']
    """

    def __init__(self, dimensions: int = 3):
        if dimensions < 1:
            raise ValueError(f"dimensions must be >= 1, got {dimensions}")
        self.dimensions = dimensions
        self._points: List[Tuple[float, ...]] = []
        self._refs: List[T] = []
        self._known: Dict[Tuple[float, ...], int] = {}
        self._tree: Optional[KDTree] = None

    def __len__(self):
        return len(self._points)

    def _key(self, point: Sequence[float]) -> Tuple[float, ...]:
        key = tuple(float(value) for value in point)
        if len(key) != self.dimensions:
            raise ValueError(f"Expected a {self.dimensions}-D point, got {len(key)} values")
        return key

    def insert(self, point: Sequence[float], ref: T) -> None:
        """
        Add a point.

        Raises:
            DuplicateCoordinateError: If the exact coordinates are already indexed
            ValueError: If the point has the wrong number of coordinates
        """
        key = self._key(point)
        if key in self._known:
            raise DuplicateCoordinateError(f"Point {key} is already in the index")
        self._known[key] = len(self._points)
        self._points.append(key)
        self._refs.append(ref)
        self._tree = None

    def nearest_k(self, point: Sequence[float], k: int) -> List[T]:
        """
        Return the references of the k nearest points, closest first.

        Fewer than k results are returned when the index holds fewer points.

        Raises:
            ValueError: If k < 1
        """
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        if not self._points:
            return []

        if self._tree is None:
            self._tree = KDTree(np.asarray(self._points, dtype=np.float64))

        k = min(int(k), len(self._points))
        _, indices = self._tree.query(np.asarray(self._key(point)), k=k)
        return [self._refs[int(i)] for i in np.atleast_1d(indices)]

    def nearest(self, point: Sequence[float]) -> Any:
        """
        Return the reference of the closest point.

        Raises:
            LookupError: If the index is empty
        """
        found = self.nearest_k(point, 1)
        if not found:
            raise LookupError("Spatial index is empty")
        return found[0]
