"""
Compare the greedy and ant colony tours on random or TSPLIB locations.
"""

import argparse
import logging

from tsp_solvers.graph import random_locations, read_tsp_file
from tsp_solvers.model import ACOParams
from tsp_solvers.solvers import solve_aco, solve_greedy


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Greedy and basic ACO tours through a set of locations."
    )
    p.add_argument(
        "--tsp-file", default=None, help="TSPLIB file with a NODE_COORD_SECTION"
    )
    p.add_argument(
        "--num-cities", type=int, default=100, help="Number of random locations"
    )
    p.add_argument(
        "--size", type=float, default=500.0, help="Width and height of the random map"
    )
    p.add_argument(
        "--seed", type=int, default=None, help="Seed for locations and ants"
    )
    p.add_argument("--max-iterations", type=int, default=1000)
    p.add_argument("--stagnation-threshold", type=int, default=10)
    p.add_argument("--evaporation-rate", type=float, default=0.1)
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv=None) -> int:
    args = build_argparser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.tsp_file:
        locations = read_tsp_file(args.tsp_file)
    else:
        locations = random_locations(
            args.num_cities, args.size, args.size, seed=args.seed
        )

    greedy = solve_greedy(locations)
    print(f"Greedy tour length: {greedy.length:.3f}")

    params = ACOParams(
        max_iterations=args.max_iterations,
        stagnation_threshold=args.stagnation_threshold,
        evaporation_rate=args.evaporation_rate,
    )
    aco = solve_aco(locations, params, seed=args.seed)
    print(
        f"Basic ACO tour length: {aco.length:.3f} "
        f"({aco.status.value}, {aco.iterations} iterations)"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
