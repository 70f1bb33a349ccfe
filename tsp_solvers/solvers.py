"""
Entry points for callers that hold a list of (x, y) locations and want a tour.

>>> solve_greedy([(0, 0), (0, 10), (10, 10), (10, 0)]).length
40.0
"""

import logging
from collections.abc import Mapping

from tsp_solvers.errors import InvalidInputError
from tsp_solvers.graph import TSPGraph
from tsp_solvers.greedy import greedy_tour
from tsp_solvers.model import ACOParams, BasicAcoTspModel
from tsp_solvers.tour import Solution, SolveStatus

logger = logging.getLogger(__name__)


def _as_params(params) -> ACOParams:
    if params is None:
        return ACOParams()
    if isinstance(params, ACOParams):
        return params
    if isinstance(params, Mapping):
        try:
            return ACOParams(**params)
        except TypeError as exc:
            raise InvalidInputError(f"Unknown ant colony parameter: {exc}") from exc
    raise InvalidInputError(
        f"params must be ACOParams or a mapping, got {type(params).__name__}"
    )


def solve_greedy(locations) -> Solution:
    tsp_graph = TSPGraph.from_locations(locations)
    tour, length = greedy_tour(tsp_graph)
    logger.info("Greedy: %d cities, length %.3f", tsp_graph.num_cities, length)
    return Solution(
        tour=tour,
        length=length,
        status=SolveStatus.COMPLETED,
        iterations=tsp_graph.num_cities,
    )


def solve_aco(locations, params=None, *, seed=None, cancel=None) -> Solution:
    """
    Run the basic ant colony on ``locations``.

    ``params`` is an ``ACOParams`` or a mapping of its fields. ``cancel`` may
    be any object with an ``is_set()`` method, such as ``threading.Event``; it
    is checked once per iteration.
    """
    params = _as_params(params)
    tsp_graph = TSPGraph.from_locations(locations, pheromone_init=params.pheromone_init)
    model = BasicAcoTspModel(tsp_graph, params=params, seed=seed, cancel=cancel)
    solution = model.run()
    logger.info(
        "ACO: %d cities, length %.3f after %d iterations (%s)",
        tsp_graph.num_cities,
        solution.length,
        solution.iterations,
        solution.status.value,
    )
    return solution


# method name -> (solver, keyword options it accepts)
SOLVERS = {
    "greedy": (solve_greedy, frozenset()),
    "aco": (solve_aco, frozenset({"params", "seed", "cancel"})),
}


def solve(locations, method: str = "greedy", **kwargs) -> Solution:
    """
    Run the solver named by ``method``.

    Keyword options are handed to that solver and must be ones it accepts:
    none for ``"greedy"``, ``params``, ``seed`` and ``cancel`` for ``"aco"``.
    """
    try:
        solver, options = SOLVERS[method]
    except KeyError:
        raise InvalidInputError(
            f"Unknown method {method!r}; choose one of {', '.join(SOLVERS)}"
        ) from None
    unknown = sorted(set(kwargs) - options)
    if unknown:
        raise InvalidInputError(
            f"Method {method!r} does not accept: {', '.join(unknown)}"
        )
    return solver(locations, **kwargs)
