"""
Tests for the double-buffered lattice store.
"""

import numpy as np
import pytest

from snowflake_sim.lattice import (
    HEX_OFFSETS,
    ConfigurationError,
    Lattice,
    center_index,
    neighbors,
    parse_size,
    validate_size,
)


@pytest.mark.parametrize("size", [3, 5, 21, 101])
def test_initial_state(size):
    lat = Lattice(size, rho=0.5)
    cur = lat.current
    c = lat.center

    assert cur.attached.shape == (size, size)
    assert cur.attached.size == size * size

    # exactly one attached cell: the seed
    assert np.count_nonzero(cur.attached) == 1
    assert cur.attached[c, c]
    assert cur.crystal_mass[c, c] == 1.0
    assert cur.diffusive_mass[c, c] == 0.0

    expected = np.zeros((size, size), dtype=np.int64)
    for rr, cc in neighbors(c, c, size):
        expected[rr, cc] = 1
    np.testing.assert_array_equal(cur.attached_neighbors, expected)

    off = ~cur.attached
    assert np.all(cur.diffusive_mass[off] == 0.5)
    assert np.all(cur.boundary_mass == 0.0)


def test_center_is_one_past_geometric_center():
    assert center_index(21) == 11
    assert Lattice(21).center == 11


def test_size_three_seed_has_three_neighbors():
    lat = Lattice(3)
    assert lat.center == 2
    assert sorted(lat.neighbors(2, 2)) == [(1, 1), (1, 2), (2, 1)]
    assert lat.current.attached_neighbors.sum() == 3


def test_corner_has_three_neighbors():
    assert sorted(neighbors(0, 0, 5)) == [(0, 1), (1, 0), (1, 1)]
    assert sorted(neighbors(4, 4, 5)) == [(3, 3), (3, 4), (4, 3)]
    # the other two corners only touch two cells on this lattice
    assert len(list(neighbors(0, 4, 5))) == 2


def test_offsets_are_symmetric():
    pairs = {tuple(o) for o in HEX_OFFSETS}
    assert len(pairs) == 6
    for dr, dc in pairs:
        assert (-dr, -dc) in pairs


@pytest.mark.parametrize("bad", [0, -3, 4, 1, 2.0, "7", True, None])
def test_invalid_sizes_rejected(bad):
    with pytest.raises(ConfigurationError):
        validate_size(bad)


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)


def test_parse_size():
    assert parse_size("21") == 21
    assert parse_size(" 9 ") == 9
    for text in ["abc", "", "4", "-1", "3.0"]:
        with pytest.raises(ConfigurationError):
            parse_size(text)


def test_swap_exchanges_buffers_without_copy():
    lat = Lattice(7)
    cur, nxt = lat.current, lat.next
    assert cur is not nxt
    cur_arr = cur.diffusive_mass

    lat.swap()
    assert lat.current is nxt
    assert lat.next is cur
    assert lat.next.diffusive_mass is cur_arr

    lat.swap()
    assert lat.current is cur


def test_next_buffer_starts_as_copy():
    lat = Lattice(9)
    for a, b in zip(lat.current.fields(), lat.next.fields()):
        np.testing.assert_array_equal(a, b)
        assert a is not b


def test_is_edge():
    lat = Lattice(5)
    assert lat.is_edge(0, 2)
    assert lat.is_edge(4, 4)
    assert lat.is_edge(2, 0)
    assert not lat.is_edge(1, 1)
    assert not lat.is_edge(3, 3)


def test_total_mass_and_attached_cells():
    lat = Lattice(5, rho=0.25)
    # 24 vapor cells plus one seed of crystal mass 1
    assert lat.total_mass() == pytest.approx(24 * 0.25 + 1.0)
    np.testing.assert_array_equal(lat.attached_cells(), [[3, 3]])
