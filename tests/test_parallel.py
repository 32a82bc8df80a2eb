# tests/test_parallel.py
"""
PARALLEL ITERATION TESTS
========================

Running the term rows and the normal-equation products on a thread pool
must give the SAME bits as the sequential path, not just close values.
"""

from multiprocessing.pool import ThreadPool

import numpy as np
import pytest

from mini_gpa import config
from mini_gpa.gpa import GuidedProjectionAlgorithm, SubVariable
from mini_gpa.gpa.assemble import assemble_system, build_rows
from mini_gpa.gpa.constraint_types import CoherentLength, SegmentLength, VectorLength
from mini_gpa.gpa.energy_types import ScalarEquality, SegmentParallelity


def build_network(sides: int = 8, seed: int = 3) -> GuidedProjectionAlgorithm:
    """Closed polygon with unit edges, a pinned vertex and a guided first edge."""
    rng = np.random.default_rng(seed)
    gpa = GuidedProjectionAlgorithm(epsilon=0.1, max_iteration=15)

    points = []
    for i in range(sides):
        angle = 2 * np.pi * i / sides
        points.append(gpa.add_variable(np.cos(angle) + 0.1 * rng.standard_normal(),
                                       np.sin(angle) + 0.1 * rng.standard_normal(),
                                       0.1 * rng.standard_normal()))

    for i in range(sides):
        gpa.add_constraint(SegmentLength(3, 1.0), [points[i], points[(i + 1) % sides]])

    for axis, value in enumerate((1.0, 0.0, 0.0)):
        gpa.add_energy(ScalarEquality(value), [SubVariable(points[0], [axis])], weight=5.0)

    normal = gpa.add_variable(0.0, 0.0, 2.0)
    gpa.add_constraint(VectorLength(1.0), [normal])

    length = gpa.add_variable(1.0)
    gpa.add_constraint(CoherentLength(3), [points[0], points[1], length])
    gpa.add_energy(SegmentParallelity([0.0, 1.0, 0.0]), [points[0], points[1], length],
                   weight=lambda iteration: 0.0 if iteration == 0 else 0.5)
    gpa.initialise_x()
    return gpa


@pytest.fixture
def two_workers():
    previous = config.get_config()
    config.set_config(config.EngineConfig(max_workers=2))
    yield
    config.set_config(previous)


def test_parallel_solve_is_bit_identical():
    sequential = build_network()
    parallel = build_network()

    x_sequential = sequential.solve()
    x_parallel = parallel.solve(parallel=True)

    assert np.array_equal(x_sequential, x_parallel)
    assert parallel.iteration == sequential.iteration == 15


def test_parallel_with_bounded_pool(two_workers):
    sequential = build_network(sides=5, seed=7)
    parallel = build_network(sides=5, seed=7)

    for _ in range(4):
        sequential.run_iteration()
        parallel.run_iteration(parallel=True)
        assert np.array_equal(sequential.x, parallel.x)


def test_parallel_assembly_matches_sequential():
    gpa = build_network()
    gpa.run_iteration()

    rows = build_rows(gpa.constraints, gpa.energies)
    with ThreadPool(processes=4) as pool:
        parallel_rows = build_rows(gpa.constraints, gpa.energies, pool)
        lhs_parallel, rhs_parallel = assemble_system(gpa.x, gpa.epsilon, *parallel_rows, pool)
    lhs, rhs = assemble_system(gpa.x, gpa.epsilon, *rows)

    assert len(rows[0]) == gpa.constraint_count
    assert len(rows[1]) == gpa.energy_count
    assert lhs == lhs_parallel
    assert np.array_equal(rhs, rhs_parallel)


def test_zero_weight_rows_are_dropped():
    gpa = build_network()
    constraint_rows, energy_rows = build_rows(gpa.constraints, gpa.energies)
    # Before the first update the guided edge still has weight 0
    assert len(energy_rows) == gpa.energy_count - 1
    assert len(constraint_rows) == gpa.constraint_count
