"""Tests for point sequences and circulators."""

import numpy as np
import pytest

from strokefit.geometry.point_sequence import PointSequence


def _square():
    return np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])


class TestPointSequence:
    """Tests for indexing rules."""

    def test_closed_indices_wrap(self):
        seq = PointSequence(_square(), closed=True)

        assert seq.to_index(4) == 0
        assert seq.to_index(-1) == 3
        np.testing.assert_array_equal(seq[5], [1.0, 0.0])

    def test_open_indices_out_of_range_raise(self):
        seq = PointSequence(_square(), closed=False)

        with pytest.raises(IndexError):
            seq[4]
        with pytest.raises(IndexError):
            seq.to_index(-1)

    def test_rejects_wrong_shape(self):
        with pytest.raises(ValueError):
            PointSequence([[0.0, 0.0, 0.0]])


class TestCirculator:
    """Tests for forward walks from a start index."""

    def test_closed_walk_visits_every_index_once(self):
        seq = PointSequence(_square(), closed=True)

        assert list(seq.circulator(2)) == [2, 3, 0, 1]

    def test_open_walk_stops_at_last_index(self):
        seq = PointSequence(_square(), closed=False)

        assert list(seq.circulator(1)) == [1, 2, 3]

    def test_iteration_restarts_from_start(self):
        seq = PointSequence(_square(), closed=True)
        circ = seq.circulator(1)

        first = list(circ)
        second = list(circ)

        assert first == second

    def test_manual_advance(self):
        seq = PointSequence(_square(), closed=False)
        circ = seq.circulator(2)

        assert not circ.done
        circ.advance()
        np.testing.assert_array_equal(circ.point, [0.0, 1.0])
        circ.advance()
        assert circ.done
