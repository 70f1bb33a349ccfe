import networkx as nx
import numpy as np
import pytest

from tsp_solvers.errors import InvalidInputError
from tsp_solvers.graph import (
    DEGENERATE_VISIBILITY,
    Location,
    TSPGraph,
    as_locations,
    distance,
    random_locations,
    read_tsp_file,
)


def test_distance():
    assert distance((0, 0), (3, 4)) == 5.0
    assert distance((3, 4), (0, 0)) == 5.0
    assert distance((1.5, -2), (1.5, -2)) == 0.0


def test_distance_extreme_coordinates():
    assert distance((0.0, 0.0), (1e200, 0.0)) == 1e200
    assert distance((0.0, 0.0), (1e200, 1e200)) == pytest.approx(2 ** 0.5 * 1e200)
    assert distance((0.0, 0.0), (1e-200, 0.0)) > 0
    assert distance((0.0, 0.0), (0.0, 1e-200)) == 1e-200


def test_tiny_separation_is_not_degenerate():
    tsp_graph = TSPGraph.from_locations([(0.0, 0.0), (1e-200, 0.0), (5.0, 0.0)])
    assert tsp_graph.edge(0, 1).length > 0
    weights = tsp_graph.edge_weights(0, [1, 2])
    assert np.isfinite(weights).all()
    assert weights[0] > DEGENERATE_VISIBILITY


def test_as_locations_rejects_bad_input():
    with pytest.raises(InvalidInputError):
        as_locations([])
    with pytest.raises(InvalidInputError):
        as_locations([(0, 0), (1, 2, 3)])
    with pytest.raises(InvalidInputError):
        as_locations([(0, 0), ("a", 1)])
    with pytest.raises(InvalidInputError):
        as_locations([(0, float("nan"))])


def test_as_locations_copies_pairs():
    expected = [Location(0.0, 1.0), Location(2.0, 3.0)]
    assert as_locations([(0, 1), [2, 3]]) == expected


def test_edge_is_shared_between_directions(square):
    tsp_graph = TSPGraph.from_locations(square)
    forward, backward = tsp_graph.edge(0, 2), tsp_graph.edge(2, 0)

    assert forward == backward
    assert tsp_graph.edge_id(0, 2) == tsp_graph.edge_id(2, 0) == forward.edge_id

    forward.pheromone = 3.5
    assert backward.pheromone == 3.5
    tsp_graph.deposit(2, 0, 1.0)
    assert forward.pheromone == 4.5
    tsp_graph.set_pheromone(tsp_graph.edge_id(0, 2), 0.25)
    assert backward.pheromone == 0.25


def test_complete_graph_with_one_edge_per_pair(scattered):
    tsp_graph = TSPGraph.from_locations(scattered)
    n = len(scattered)

    assert tsp_graph.num_edges == n * (n - 1) // 2
    assert tsp_graph.g.number_of_nodes() == n
    assert len({e.nodes for e in tsp_graph.edges()}) == tsp_graph.num_edges
    for i in range(n):
        for j in range(n):
            if i != j:
                expected = distance(scattered[i], scattered[j])
                assert tsp_graph.length(i, j) == pytest.approx(expected)
                assert tsp_graph.edge_id(i, j) == tsp_graph.edge_id(j, i)


def test_no_self_edge(square):
    tsp_graph = TSPGraph.from_locations(square)
    assert tsp_graph.length(1, 1) == 0.0
    with pytest.raises(ValueError):
        tsp_graph.edge(1, 1)


def test_pheromone_initialised_and_read_only(square):
    tsp_graph = TSPGraph.from_locations(square, pheromone_init=2.0)
    assert np.all(tsp_graph.pheromone == 2.0)
    with pytest.raises(ValueError):
        tsp_graph.pheromone[0] = 1.0


def test_negative_pheromone_rejected(square):
    tsp_graph = TSPGraph.from_locations(square)
    with pytest.raises(ValueError):
        tsp_graph.edge(0, 1).pheromone = -1.0


def test_evaporation_never_negative(square):
    tsp_graph = TSPGraph.from_locations(square)
    for _ in range(5000):
        tsp_graph.evaporate(0.5)
    assert (tsp_graph.pheromone >= 0).all()

    tsp_graph.reset_pheromone(1.0)
    for _ in range(5000):
        tsp_graph.evaporate(0.5, floor=1e-9)
    assert np.all(tsp_graph.pheromone == 1e-9)


def test_evaporation_touches_every_edge_once(square):
    tsp_graph = TSPGraph.from_locations(square)
    tsp_graph.evaporate(0.1)
    assert np.allclose(tsp_graph.pheromone, 0.9)


def test_edge_weights(square):
    tsp_graph = TSPGraph.from_locations(square)
    tsp_graph.edge(0, 1).pheromone = 2.0

    weights = tsp_graph.edge_weights(
        0, [1, 2, 3], pheromone_weight=1.0, length_weight=1.0
    )
    assert weights == pytest.approx([2.0 / 10, 1.0 / 200 ** 0.5, 1.0 / 10])

    weights = tsp_graph.edge_weights(
        0, [1, 3], pheromone_weight=2.0, length_weight=0.0
    )
    assert weights == pytest.approx([4.0, 1.0])


def test_zero_length_edge_gets_bounded_visibility():
    tsp_graph = TSPGraph.from_locations([(1, 1), (1, 1), (4, 5)])
    assert tsp_graph.edge(0, 1).length == 0.0
    weights = tsp_graph.edge_weights(0, [1, 2])
    assert weights == pytest.approx([DEGENERATE_VISIBILITY, 1.0 / 5])
    assert np.isfinite(weights).all()


def test_degenerate_weight_stays_finite_for_large_exponents():
    tsp_graph = TSPGraph.from_locations([(1, 1), (1, 1), (4, 5)])
    weights = tsp_graph.edge_weights(0, [1, 2], length_weight=30.0)
    assert np.isfinite(weights).all()
    assert weights[0] == tsp_graph.weight_bound
    assert np.isfinite(weights.sum())

    tsp_graph.edge(0, 1).pheromone = 1e300
    weights = tsp_graph.edge_weights(0, [1, 2], pheromone_weight=5.0)
    assert np.isfinite(weights).all()


def test_count_distinct_locations():
    tsp_graph = TSPGraph.from_locations([(0, 0), (0, 0), (1, 0)])
    assert tsp_graph.count_distinct_locations() == 2


def test_rejects_directed_graph():
    g = nx.DiGraph()
    g.add_node(0, pos=(0, 0))
    with pytest.raises(InvalidInputError):
        TSPGraph(g)


def test_random_locations_is_seeded():
    assert random_locations(5, seed=1) == random_locations(5, seed=1)
    assert all(0 <= x < 500 and 0 <= y < 500 for x, y in random_locations(50, seed=2))


TSP_FILE = """NAME : square4
TYPE : TSP
DIMENSION : 4
EDGE_WEIGHT_TYPE : EUC_2D
NODE_COORD_SECTION
1 0 0
2 0 10
3 10 10
4 10 0
EOF
"""


def test_read_tsp_file(tmp_path):
    path = tmp_path / "square4.tsp"
    path.write_text(TSP_FILE)

    assert read_tsp_file(str(path)) == [(0, 0), (0, 10), (10, 10), (10, 0)]
    tsp_graph = TSPGraph.from_tsp_file(str(path))
    assert tsp_graph.num_cities == 4
    assert tsp_graph.length(0, 2) == pytest.approx(200 ** 0.5)


def test_read_tsp_file_without_coordinates(tmp_path):
    path = tmp_path / "broken.tsp"
    path.write_text("NAME : broken\nTYPE : TSP\n")
    with pytest.raises(InvalidInputError):
        read_tsp_file(str(path))

    path.write_text("NODE_COORD_SECTION\n1 0\nEOF\n")
    with pytest.raises(InvalidInputError):
        read_tsp_file(str(path))
