import logging
from dataclasses import dataclass
from functools import partial
from typing import List, Optional, Sequence

import line_profiler
import mesa
import numpy as np

from tsp_solvers.errors import InvalidInputError, SamplingError
from tsp_solvers.graph import TSPGraph
from tsp_solvers.tour import (
    Solution,
    SolveStatus,
    compute_path_distance,
    tours_equal,
)

logger = logging.getLogger(__name__)


@dataclass
class ACOParams:
    """
    Parameters of the basic ant colony.

    pheromone_weight and length_weight are the exponents applied to the
    pheromone level and to the inverse edge length. Every ant step scales
    all pheromone by ``1 - evaporation_rate`` and then adds
    ``deposit_amount`` to the edge just walked. The run stops once more than
    ``stagnation_threshold`` consecutive iterations repeat the previous tour,
    or after ``max_iterations`` iterations.
    """

    pheromone_weight: float = 1.0
    length_weight: float = 1.0
    evaporation_rate: float = 0.1
    deposit_amount: float = 1.0
    stagnation_threshold: int = 10
    max_iterations: int = 1000
    pheromone_init: float = 1.0
    pheromone_floor: float = 1e-100

    def __post_init__(self):
        if not 0.0 < self.evaporation_rate < 1.0:
            raise InvalidInputError(
                f"evaporation_rate must be in (0, 1), got {self.evaporation_rate}"
            )
        for name in ("deposit_amount", "pheromone_init", "pheromone_floor"):
            value = getattr(self, name)
            if not value >= 0:
                raise InvalidInputError(
                    f"{name} must be non-negative, got {value}"
                )
        weights = (self.pheromone_weight, self.length_weight)
        if not np.isfinite(weights).all():
            raise InvalidInputError(
                "pheromone_weight and length_weight must be finite"
            )
        if self.stagnation_threshold < 0:
            raise InvalidInputError(
                "stagnation_threshold must be non-negative, "
                f"got {self.stagnation_threshold}"
            )
        if self.max_iterations < 1:
            raise InvalidInputError(
                f"max_iterations must be at least 1, got {self.max_iterations}"
            )


def transition_probabilities(
    tsp_graph: TSPGraph,
    current_city: int,
    candidates: Sequence[int],
    params: ACOParams,
) -> np.ndarray:
    """Probability of moving from ``current_city`` to each candidate."""
    results = tsp_graph.edge_weights(
        current_city, candidates, params.pheromone_weight, params.length_weight
    )
    if results.size == 0:
        raise SamplingError(f"No candidates to move to from city {current_city}")
    if not np.isfinite(results).all() or (results < 0).any():
        raise SamplingError(
            f"Invalid edge weights from city {current_city}: {results}"
        )

    norm = results.sum()
    if not (norm > 0 and np.isfinite(norm)):
        raise SamplingError(f"Edge weights from city {current_city} sum to {norm}")
    return results / norm


def sample_index(probabilities: np.ndarray, u: float) -> int:
    """
    Pick an index by splitting [0, 1) into consecutive intervals sized by
    ``probabilities`` and returning the one that contains ``u``.
    """
    cumulative = np.cumsum(probabilities)
    idx = int(np.searchsorted(cumulative, u * cumulative[-1], side="right"))
    if idx >= len(cumulative):
        # u * total rounded onto the upper bound
        idx = int(np.flatnonzero(probabilities)[-1])
    return idx


def extract_attr_fn(model, attr_name):
    return getattr(model, attr_name, None)


class BasicAntTSP(mesa.Agent):
    """
    A single ant that builds one full tour per step, starting at city 0.

    Pheromone is evaporated on every edge and deposited on the edge just
    walked after each move, so later moves of the same tour already see the
    update.
    """

    def __init__(self, model: mesa.Model, start_city: int = 0):
        super().__init__(model)
        self.start_city = start_city
        self.current_city = start_city
        self._cities_visited = []
        self._cities_not_visited = []
        self.tsp_solution = []
        self.tsp_distance = float("inf")

    def init_agent(self):
        city = self.start_city
        self.current_city = city
        self._cities_visited = [city]
        self._cities_not_visited = [
            c for c in self.model.tsp_graph.cities if c != city
        ]

    @line_profiler.profile
    def decide_next_city(self):
        current_city = self.current_city
        candidates = self._cities_not_visited
        if len(candidates) == 0:
            return current_city

        results = transition_probabilities(
            self.model.tsp_graph, current_city, candidates, self.model.params
        )
        return candidates[sample_index(results, self.model.random.random())]

    def update_pheromone(self, current_city, new_city):
        params = self.model.params
        tsp_graph = self.model.tsp_graph
        tsp_graph.evaporate(params.evaporation_rate, params.pheromone_floor)
        tsp_graph.deposit(current_city, new_city, params.deposit_amount)

    def step(self):
        self.init_agent()
        while self._cities_not_visited:
            current_city = self.current_city
            new_city = self.decide_next_city()
            self.update_pheromone(current_city, new_city)
            self._cities_visited.append(new_city)
            self._cities_not_visited.remove(new_city)
            self.current_city = new_city

        self.tsp_solution = self._cities_visited.copy()
        self.tsp_distance = compute_path_distance(
            self.tsp_solution, self.model.tsp_graph
        )


class BasicAcoTspModel(mesa.Model):
    """
    Sequential ant colony on a ``TSPGraph``.

    Each model step lets the one ant build a tour. The model stops running
    when the tour has repeated unchanged for more than
    ``params.stagnation_threshold`` consecutive steps, when
    ``params.max_iterations`` steps have run, or when ``cancel.is_set()``
    returns true after a step.
    """

    def __init__(
        self,
        tsp_graph: TSPGraph,
        params: Optional[ACOParams] = None,
        seed: Optional[int] = None,
        cancel=None,
    ):
        super().__init__(seed=seed)
        self.tsp_graph = tsp_graph
        self.params = params or ACOParams()
        self.num_cities = tsp_graph.num_cities
        if tsp_graph.count_distinct_locations() < 2:
            raise InvalidInputError(
                "The ant colony needs at least 2 distinct locations"
            )
        self.cancel = cancel

        self.ant = BasicAntTSP(self)
        self.initialize_data_collection()
        # Re-initialize pheromone levels
        self.tsp_graph.reset_pheromone(self.params.pheromone_init)
        self.running = True

    def initialize_data_collection(self) -> None:
        self.num_steps = 0
        self.previous_tour: List[int] = []
        self.repeat_count = 0
        self.status: Optional[SolveStatus] = None
        self.best_path: Optional[List[int]] = None
        self.best_distance = float("inf")
        self.tour_distance = float("inf")

        self.datacollector = mesa.DataCollector(
            model_reporters={
                "num_steps": partial(extract_attr_fn, attr_name="num_steps"),
                "tour_distance": partial(extract_attr_fn, attr_name="tour_distance"),
                "best_distance": partial(extract_attr_fn, attr_name="best_distance"),
                "repeat_count": partial(extract_attr_fn, attr_name="repeat_count"),
            },
            agent_reporters={
                "tsp_distance": partial(extract_attr_fn, attr_name="tsp_distance"),
            },
        )

    def collect_data(self):
        tour = self.ant.tsp_solution
        self.tour_distance = self.ant.tsp_distance

        if tours_equal(tour, self.previous_tour):
            self.repeat_count += 1
        else:
            self.repeat_count = 0
        self.previous_tour = tour

        if self.best_path is None or self.tour_distance < self.best_distance:
            self.best_distance = self.tour_distance
            self.best_path = tour

    def stop(self, status: SolveStatus):
        self.status = status
        self.running = False

    def step(self):
        self.agents.do("step")
        self.num_steps += 1
        self.collect_data()
        self.datacollector.collect(self)
        logger.debug(
            "Iteration %d: distance %.3f, repeats %d",
            self.num_steps,
            self.tour_distance,
            self.repeat_count,
        )

        if self.repeat_count > self.params.stagnation_threshold:
            self.stop(SolveStatus.STAGNATED)
        elif self.num_steps >= self.params.max_iterations:
            logger.warning(
                "Ant colony did not stagnate within %d iterations; "
                "returning best tour (%.3f)",
                self.params.max_iterations,
                self.best_distance,
            )
            self.stop(SolveStatus.ITERATION_CAP)
        elif self.cancel is not None and self.cancel.is_set():
            logger.info("Ant colony cancelled after %d iterations", self.num_steps)
            self.stop(SolveStatus.CANCELLED)

    def solution(self) -> Solution:
        if self.best_path is None:
            raise RuntimeError("The model has not run any iteration yet")
        if self.status is SolveStatus.STAGNATED:
            tour = self.ant.tsp_solution
        else:
            tour = self.best_path
        return Solution(
            tour=list(tour),
            length=compute_path_distance(tour, self.tsp_graph),
            status=self.status,
            iterations=self.num_steps,
        )

    def run(self) -> Solution:
        while self.running:
            self.step()
        return self.solution()
