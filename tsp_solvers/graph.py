import itertools
import logging
import math
import random
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Sequence

import networkx as nx
import numpy as np

from tsp_solvers.errors import InvalidInputError

logger = logging.getLogger(__name__)

# Stands in for 1 / length when two locations coincide.
DEGENERATE_VISIBILITY = 1e12


class Location(NamedTuple):
    x: float
    y: float


@dataclass
class NodeCoordinates:
    idx: int
    city: int
    x: float
    y: float

    @classmethod
    def from_line(cls, line: str, idx: int):
        try:
            city, x, y = line.split()
            return cls(idx, int(city), float(x), float(y))
        except ValueError as exc:
            raise InvalidInputError(
                f"Malformed node coordinate line: {line!r}"
            ) from exc


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two (x, y) points."""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def as_locations(locations) -> List[Location]:
    """
    Copy an iterable of (x, y) pairs into a list of ``Location``.

    Raises ``InvalidInputError`` for an empty collection, for entries that
    are not pairs of numbers and for non-finite coordinates.
    """
    points = []
    for idx, loc in enumerate(locations):
        try:
            x, y = loc
            point = Location(float(x), float(y))
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(
                f"Location {idx} is not an (x, y) pair: {loc!r}"
            ) from exc
        if not np.isfinite(point).all():
            raise InvalidInputError(
                f"Location {idx} has non-finite coordinates: {loc!r}"
            )
        points.append(point)

    if not points:
        raise InvalidInputError("At least one location is required")
    return points


def random_locations(
    num_cities: int,
    width: float = 500.0,
    height: float = 500.0,
    seed: Optional[int] = None,
) -> List[Location]:
    if num_cities < 1:
        raise InvalidInputError("num_cities must be at least 1")
    rng = random.Random(seed)
    return [
        Location(rng.random() * width, rng.random() * height)
        for _ in range(num_cities)
    ]


def read_tsp_file(file_path: str) -> List[Location]:
    """Read the NODE_COORD_SECTION of a TSPLIB file as a list of locations."""
    with open(file_path) as f:
        lines = f.readlines()

    # Skip lines until reach the text "NODE_COORD_SECTION"
    while lines:
        if lines.pop(0).strip() == "NODE_COORD_SECTION":
            break
    else:
        raise InvalidInputError(f"{file_path} has no NODE_COORD_SECTION")

    locations = []
    for idx, line in enumerate(lines):
        if line.strip() == "EOF":
            break
        if not line.strip():
            continue
        node_coordinate = NodeCoordinates.from_line(line, idx)
        locations.append(Location(node_coordinate.x, node_coordinate.y))

    if not locations:
        raise InvalidInputError(f"{file_path} has no node coordinates")
    return locations


class Edge:
    """
    Handle on one unordered pair of cities in a ``TSPGraph``.

    ``graph.edge(i, j)`` and ``graph.edge(j, i)`` return equal handles that
    read and write the same slot of the graph's edge store.
    """

    __slots__ = ("_graph", "edge_id")

    def __init__(self, graph: "TSPGraph", edge_id: int):
        self._graph = graph
        self.edge_id = edge_id

    @property
    def nodes(self):
        u, v = self._graph._endpoints[self.edge_id]
        return int(u), int(v)

    @property
    def length(self) -> float:
        return float(self._graph._lengths[self.edge_id])

    @property
    def pheromone(self) -> float:
        return float(self._graph._pheromone[self.edge_id])

    @pheromone.setter
    def pheromone(self, value: float):
        self._graph.set_pheromone(self.edge_id, value)

    def __eq__(self, other):
        if not isinstance(other, Edge):
            return NotImplemented
        return self._graph is other._graph and self.edge_id == other.edge_id

    def __hash__(self):
        return hash((id(self._graph), self.edge_id))

    def __repr__(self):
        u, v = self.nodes
        return (
            f"Edge({u}, {v}, length={self.length:.3f}, "
            f"pheromone={self.pheromone:.3g})"
        )


class TSPGraph:
    """
    Complete symmetric edge matrix over a set of locations.

    The networkx graph ``g`` holds one node per city with its ``pos``. Every
    unordered pair of cities owns one slot in a flat edge store holding its
    length and its pheromone level; ``edge_index[i][j]`` and
    ``edge_index[j][i]`` point at the same slot.
    """

    def __init__(self, g: nx.Graph, pheromone_init: float = 1.0):
        if g.is_directed():
            raise InvalidInputError("TSPGraph needs an undirected graph")
        if g.number_of_nodes() == 0:
            raise InvalidInputError("At least one location is required")
        if sorted(g.nodes) != list(range(g.number_of_nodes())):
            raise InvalidInputError("Graph nodes must be labelled 0..n-1")
        self.g = g
        self.pheromone_init = pheromone_init
        self._cities = None
        self._add_edge_properties()

    @property
    def locations(self) -> List[Location]:
        return [Location(*self.g.nodes[city]["pos"]) for city in self.cities]

    @property
    def cities(self):
        if self._cities is None:
            self._cities = list(range(self.g.number_of_nodes()))
        return self._cities

    @property
    def num_cities(self):
        return len(self.cities)

    @property
    def num_edges(self):
        return len(self._lengths)

    @property
    def pheromone(self):
        """Pheromone level per edge id (read-only view)."""
        view = self._pheromone.view()
        view.flags.writeable = False
        return view

    def edge_id(self, i: int, j: int) -> int:
        if i == j:
            raise ValueError(f"City {i} has no edge to itself")
        return int(self._edge_index[i][j])

    def edge(self, i: int, j: int) -> Edge:
        return Edge(self, self.edge_id(i, j))

    def edges(self):
        return [Edge(self, edge_id) for edge_id in range(self.num_edges)]

    def length(self, i: int, j: int) -> float:
        if i == j:
            return 0.0
        return float(self._lengths[self._edge_index[i][j]])

    def lengths_from(self, city: int, candidates: Sequence[int]) -> np.ndarray:
        """Distances from ``city`` to each of ``candidates``, in candidate order."""
        return self._lengths[self._edge_index[city][list(candidates)]]

    def count_distinct_locations(self) -> int:
        return len(set(self.locations))

    def set_pheromone(self, edge_id: int, value: float):
        if not value >= 0:
            raise ValueError(f"Pheromone must be non-negative, got {value}")
        self._pheromone[edge_id] = value

    def reset_pheromone(self, value: Optional[float] = None):
        if value is not None:
            self.pheromone_init = value
        if not self.pheromone_init >= 0:
            raise InvalidInputError(
                f"pheromone_init must be non-negative, got {self.pheromone_init}"
            )
        self._pheromone = np.full(self.num_edges, float(self.pheromone_init))

    def evaporate(self, rate: float, floor: float = 0.0):
        """Scale the pheromone of every edge by ``1 - rate``, never below ``floor``."""
        self._pheromone *= 1.0 - rate
        np.maximum(self._pheromone, floor, out=self._pheromone)

    def deposit(self, i: int, j: int, amount: float):
        self._pheromone[self.edge_id(i, j)] += amount

    def edge_weights(
        self,
        city: int,
        candidates: Sequence[int],
        pheromone_weight: float = 1.0,
        length_weight: float = 1.0,
    ) -> np.ndarray:
        """
        Attractiveness of the edges from ``city`` to each candidate:
        ``pheromone ** pheromone_weight * (1 / length) ** length_weight``.

        Every factor and every weight is capped at ``weight_bound`` so that
        large exponents on degenerate edges still sum to a finite total.
        """
        edge_ids = self._edge_index[city][list(candidates)]
        bound = self.weight_bound
        with np.errstate(over="ignore", divide="ignore"):
            pheromone_factor = np.minimum(
                self._pheromone[edge_ids] ** pheromone_weight, bound
            )
            visibility_factor = np.minimum(
                self._visibility[edge_ids] ** length_weight, bound
            )
            return np.minimum(pheromone_factor * visibility_factor, bound)

    @property
    def weight_bound(self) -> float:
        return float(np.finfo(float).max) / max(self.num_cities, 1)

    def _add_edge_properties(self):
        n = self.num_cities
        num_edges = n * (n - 1) // 2
        self._edge_index = np.full((n, n), -1, dtype=np.intp)
        self._endpoints = np.zeros((num_edges, 2), dtype=np.intp)
        self._lengths = np.zeros(num_edges)

        for edge_id, (u, v) in enumerate(itertools.combinations(self.cities, 2)):
            self._edge_index[u][v] = edge_id
            self._edge_index[v][u] = edge_id
            self._endpoints[edge_id] = (u, v)
            self._lengths[edge_id] = distance(
                self.g.nodes[u]["pos"], self.g.nodes[v]["pos"]
            )

        self._visibility = np.full(num_edges, DEGENERATE_VISIBILITY)
        with np.errstate(over="ignore"):
            np.divide(
                1.0, self._lengths, out=self._visibility, where=self._lengths > 0
            )
        num_degenerate = int(np.count_nonzero(self._lengths == 0))
        if num_degenerate:
            logger.debug(
                "%d zero-length edges use visibility %g",
                num_degenerate,
                DEGENERATE_VISIBILITY,
            )
        self.reset_pheromone()

    @classmethod
    def from_locations(cls, locations, pheromone_init: float = 1.0) -> "TSPGraph":
        g = nx.Graph()
        for idx, location in enumerate(as_locations(locations)):
            g.add_node(idx, pos=(location.x, location.y))
        return cls(g, pheromone_init=pheromone_init)

    @classmethod
    def from_tsp_file(cls, file_path: str, pheromone_init: float = 1.0) -> "TSPGraph":
        locations = read_tsp_file(file_path)
        return cls.from_locations(locations, pheromone_init=pheromone_init)
