import logging
from typing import List, Tuple

import numpy as np

from tsp_solvers.errors import InvalidInputError
from tsp_solvers.graph import TSPGraph
from tsp_solvers.tour import compute_path_distance

logger = logging.getLogger(__name__)


def nearest_neighbor_tour(tsp_graph: TSPGraph, start: int) -> List[int]:
    """
    Grow a tour from ``start`` by always moving to the closest unvisited city.

    Ties go to the candidate that comes first in the remaining list, which
    keeps the cities in index order.
    """
    if not 0 <= start < tsp_graph.num_cities:
        raise InvalidInputError(f"Start city {start} is out of range")

    cities_not_visited = [city for city in tsp_graph.cities if city != start]
    tour = [start]
    current_city = start
    while cities_not_visited:
        distances = tsp_graph.lengths_from(current_city, cities_not_visited)
        # argmin returns the first occurrence of the minimum
        current_city = cities_not_visited.pop(int(np.argmin(distances)))
        tour.append(current_city)

    return tour


def greedy_tour(tsp_graph: TSPGraph) -> Tuple[List[int], float]:
    """Best nearest-neighbor tour over every possible start city."""
    best_path = None
    best_distance = float("inf")
    for start in tsp_graph.cities:
        path = nearest_neighbor_tour(tsp_graph, start)
        path_distance = compute_path_distance(path, tsp_graph)
        if best_path is None or path_distance < best_distance:
            best_path = path
            best_distance = path_distance

    logger.debug(
        "Greedy tour of %d cities has length %.3f",
        tsp_graph.num_cities,
        best_distance,
    )
    return best_path, best_distance
