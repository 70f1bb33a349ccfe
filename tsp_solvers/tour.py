import enum
from dataclasses import dataclass
from typing import List, Sequence

from tsp_solvers.errors import InvalidInputError
from tsp_solvers.graph import distance


class SolveStatus(enum.Enum):
    COMPLETED = "completed"
    STAGNATED = "stagnated"
    ITERATION_CAP = "iteration_cap"
    CANCELLED = "cancelled"


@dataclass
class Solution:
    """
    A tour returned to the caller together with its length.

    ``status`` tells how the solver stopped and ``iterations`` how many
    constructions it ran. Unpacks as ``tour, length``.
    """

    tour: List[int]
    length: float
    status: SolveStatus = SolveStatus.COMPLETED
    iterations: int = 0

    def __iter__(self):
        return iter((self.tour, self.length))


def tour_length(tour: Sequence[int], locations) -> float:
    """Length of the closed tour, including the edge back to the first location."""
    if len(tour) == 0:
        raise InvalidInputError("Cannot measure an empty tour")
    total = 0.0
    for k in range(len(tour) - 1):
        total += distance(locations[tour[k]], locations[tour[k + 1]])
    total += distance(locations[tour[-1]], locations[tour[0]])
    return total


def compute_path_distance(path: Sequence[int], graph, nint_flag: bool = False):
    distance_sum = 0
    if len(path) == 0:
        raise InvalidInputError("Cannot measure an empty tour")
    # Add the first city to the end to complete the round trip
    round_trip = [*path, path[0]]
    for i in range(len(round_trip) - 1):
        city_start, city_end = round_trip[i], round_trip[i + 1]
        if nint_flag:  # nint(x) = int(x + 0.5)
            distance_sum += int(graph.length(city_start, city_end) + 0.5)
        else:
            distance_sum += graph.length(city_start, city_end)
    return distance_sum


def tours_equal(a: Sequence[int], b: Sequence[int]) -> bool:
    """Exact equality: same indices in the same order."""
    return list(a) == list(b)


def same_cycle(a: Sequence[int], b: Sequence[int]) -> bool:
    """True when ``b`` is a rotation of ``a`` or of ``a`` reversed."""
    a, b = list(a), list(b)
    if len(a) != len(b):
        return False
    if not a:
        return True
    doubled = a + a
    n = len(a)
    forward = any(doubled[k : k + n] == b for k in range(n))
    if forward:
        return True
    reversed_doubled = doubled[::-1]
    return any(reversed_doubled[k : k + n] == b for k in range(n))


def is_permutation(tour: Sequence[int], n: int) -> bool:
    return len(tour) == n and sorted(tour) == list(range(n))


def validate_tour(tour: Sequence[int], n: int):
    if not is_permutation(tour, n):
        raise InvalidInputError(
            f"Tour is not a permutation of 0..{n - 1}: {list(tour)}"
        )
