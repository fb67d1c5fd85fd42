"""Hierarchical greedy point clustering over a Web-Mercator grid index."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Optional, Sequence, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RADIUS = 80.0
DEFAULT_EXTENT = 512
DEFAULT_MIN_POINTS = 2
DEFAULT_MAX_ZOOM = 14


@dataclass(frozen=True, slots=True)
class GeoPoint(Generic[T]):
    latitude: float
    longitude: float
    payload: T = None


@dataclass(frozen=True, slots=True)
class Cluster(Generic[T]):
    """A group of input points. Singletons keep their original coordinates."""

    latitude: float
    longitude: float
    members: tuple[GeoPoint[T], ...] = field(default_factory=tuple)

    @property
    def point_count(self) -> int:
        return len(self.members)

    @property
    def is_cluster(self) -> bool:
        return len(self.members) > 1


def project_x(lng: float) -> float:
    return lng / 360.0 + 0.5


def project_y(lat: float) -> float:
    sin = math.sin(math.radians(lat))
    if sin >= 1.0:
        return 0.0
    if sin <= -1.0:
        return 1.0
    y = 0.5 - 0.25 * math.log((1 + sin) / (1 - sin)) / math.pi
    return min(max(y, 0.0), 1.0)


def unproject_x(x: float) -> float:
    return (x - 0.5) * 360.0


def unproject_y(y: float) -> float:
    y2 = (180.0 - y * 360.0) * math.pi / 180.0
    return 360.0 * math.atan(math.exp(y2)) / math.pi - 90.0


class GridIndex:
    """Uniform grid over projected coordinates answering radius queries.

    Cells are ``cell_size`` wide, so a query of radius ``cell_size`` only needs
    the 3x3 block of cells around the query point.
    """

    def __init__(self, xs: Sequence[float], ys: Sequence[float], cell_size: float) -> None:
        if cell_size <= 0:
            raise ValueError("cell_size must be positive")
        self.xs = np.asarray(xs, dtype=float)
        self.ys = np.asarray(ys, dtype=float)
        self.cell_size = cell_size
        self._buckets: dict[tuple[int, int], list[int]] = {}
        cols = np.floor(self.xs / cell_size).astype(np.int64)
        rows = np.floor(self.ys / cell_size).astype(np.int64)
        for idx, key in enumerate(zip(cols.tolist(), rows.tolist())):
            self._buckets.setdefault(key, []).append(idx)

    def __len__(self) -> int:
        return int(self.xs.size)

    def within(self, x: float, y: float, radius: float) -> list[int]:
        """Indices of points within ``radius`` of (x, y), ascending."""

        span = max(1, math.ceil(radius / self.cell_size))
        col = math.floor(x / self.cell_size)
        row = math.floor(y / self.cell_size)
        candidates: list[int] = []
        for dc in range(-span, span + 1):
            for dr in range(-span, span + 1):
                bucket = self._buckets.get((col + dc, row + dr))
                if bucket:
                    candidates.extend(bucket)
        if not candidates:
            return []
        ids = np.asarray(candidates, dtype=np.int64)
        dx = self.xs[ids] - x
        dy = self.ys[ids] - y
        hits = ids[dx * dx + dy * dy <= radius * radius]
        return sorted(hits.tolist())


class _Node:
    __slots__ = ("x", "y", "members", "exact")

    def __init__(self, x: float, y: float, members: list[int], exact: Optional[tuple[float, float]] = None) -> None:
        self.x = x
        self.y = y
        self.members = members
        self.exact = exact

    @property
    def weight(self) -> int:
        return len(self.members)


class SpatialClusterer:
    """Greedy radius clustering, evaluated level by level from ``max_zoom`` down.

    ``radius`` is in pixels of a tile of ``extent`` pixels; at zoom ``z`` the
    neighbourhood in normalized Mercator units is ``radius / (extent * 2**z)``.
    """

    def __init__(
        self,
        radius: float = DEFAULT_RADIUS,
        max_zoom: int = DEFAULT_MAX_ZOOM,
        min_zoom: int = 0,
        min_points: int = DEFAULT_MIN_POINTS,
        extent: int = DEFAULT_EXTENT,
    ) -> None:
        if radius <= 0:
            raise ValueError("radius must be positive")
        if min_points < 1:
            raise ValueError("min_points must be >= 1")
        if min_zoom > max_zoom:
            raise ValueError("min_zoom must not exceed max_zoom")
        self.radius = radius
        self.max_zoom = max_zoom
        self.min_zoom = min_zoom
        self.min_points = min_points
        self.extent = extent

    def radius_at(self, zoom: int) -> float:
        return self.radius / (self.extent * 2**zoom)

    def cluster(
        self,
        points: Sequence[GeoPoint[T]],
        zoom: Optional[int] = None,
        bbox: Optional[tuple[float, float, float, float]] = None,
    ) -> list[Cluster[T]]:
        """Cluster ``points`` as seen at ``zoom`` (defaults to ``max_zoom``).

        ``bbox`` is (west, south, east, north); a cluster is kept when any of its
        members falls inside it.
        """

        if not points:
            return []
        target = self.max_zoom if zoom is None else int(math.floor(zoom))
        target = max(self.min_zoom, min(target, self.max_zoom + 1))

        nodes = [
            _Node(project_x(p.longitude), project_y(p.latitude), [idx], (p.latitude, p.longitude))
            for idx, p in enumerate(points)
        ]
        for level in range(self.max_zoom, target - 1, -1):
            nodes = self._cluster_level(nodes, level)
        logger.debug(f"Clustered {len(points)} points into {len(nodes)} groups at zoom {target}")

        clusters: list[Cluster[T]] = []
        for node in nodes:
            members = tuple(points[idx] for idx in sorted(node.members))
            if bbox is not None and not any(_in_bbox(m.latitude, m.longitude, bbox) for m in members):
                continue
            if node.exact is not None:
                lat, lng = node.exact
            else:
                lat, lng = unproject_y(node.y), unproject_x(node.x)
            clusters.append(Cluster(latitude=lat, longitude=lng, members=members))
        return clusters

    def _cluster_level(self, nodes: list[_Node], zoom: int) -> list[_Node]:
        r = self.radius_at(zoom)
        index = GridIndex([n.x for n in nodes], [n.y for n in nodes], r)
        visited = [False] * len(nodes)
        result: list[_Node] = []

        for i, node in enumerate(nodes):
            if visited[i]:
                continue
            visited[i] = True
            neighbours = [j for j in index.within(node.x, node.y, r) if not visited[j]]
            total = node.weight + sum(nodes[j].weight for j in neighbours)

            if total > node.weight and total >= self.min_points:
                wx = node.x * node.weight
                wy = node.y * node.weight
                members = list(node.members)
                for j in neighbours:
                    visited[j] = True
                    other = nodes[j]
                    wx += other.x * other.weight
                    wy += other.y * other.weight
                    members.extend(other.members)
                result.append(_Node(wx / total, wy / total, members))
            else:
                result.append(node)
                if total > 1:
                    for j in neighbours:
                        visited[j] = True
                        result.append(nodes[j])
        return result


def cluster_points(
    points: Iterable[GeoPoint[T]],
    *,
    radius: float = DEFAULT_RADIUS,
    max_zoom: int = DEFAULT_MAX_ZOOM,
    min_points: int = DEFAULT_MIN_POINTS,
    extent: int = DEFAULT_EXTENT,
    bbox: Optional[tuple[float, float, float, float]] = None,
) -> list[Cluster[T]]:
    clusterer = SpatialClusterer(radius=radius, max_zoom=max_zoom, min_points=min_points, extent=extent)
    return clusterer.cluster(list(points), bbox=bbox)


def _in_bbox(lat: float, lng: float, bbox: tuple[float, float, float, float]) -> bool:
    west, south, east, north = bbox
    if not south <= lat <= north:
        return False
    if west <= east:
        return west <= lng <= east
    return lng >= west or lng <= east


def describe(clusters: Sequence[Cluster[Any]]) -> dict[str, int]:
    return {
        "clusters": sum(1 for c in clusters if c.is_cluster),
        "singletons": sum(1 for c in clusters if not c.is_cluster),
        "points": sum(c.point_count for c in clusters),
    }
