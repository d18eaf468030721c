"""
Fixed-size point sequence with open or closed (wrap-around) indexing.

Closed sequences take every index modulo the point count; open sequences
reject anything outside [0, N-1].
"""

import numpy as np


class PointSequence:
    """Ordered 2D points tagged open or closed."""

    def __init__(self, points, closed=False):
        pts = np.asarray(points, dtype=float)
        if pts.size == 0:
            pts = pts.reshape(0, 2)
        if pts.ndim != 2 or pts.shape[1] != 2:
            raise ValueError(f"Expected an (N, 2) array of points, got shape {pts.shape}")

        self._pts = pts
        self.closed = bool(closed)

    def __len__(self):
        return len(self._pts)

    def __getitem__(self, idx):
        return self._pts[self.to_index(idx)]

    def __iter__(self):
        return iter(self._pts)

    @property
    def array(self):
        """The underlying (N, 2) array. Treat as read-only."""
        return self._pts

    def to_index(self, idx):
        """Normalize an index, wrapping only when the sequence is closed."""
        n = len(self._pts)
        idx = int(idx)
        if self.closed and n > 0:
            return idx % n
        if idx < 0 or idx >= n:
            raise IndexError(f"Index {idx} out of range for open sequence of {n} points")
        return idx

    def circulator(self, start=0):
        """Forward circulator beginning at `start`."""
        return Circulator(self, start)


class Circulator:
    """
    Forward walk over a PointSequence from an arbitrary start index.

    On a closed sequence the walk wraps and is done once every index has
    been visited; on an open sequence it is done past the last index.
    """

    def __init__(self, sequence, start=0):
        self.sequence = sequence
        self.closed = sequence.closed
        self.start = sequence.to_index(start) if len(sequence) else 0
        self.index = self.start
        self.steps = 0

    @property
    def done(self):
        n = len(self.sequence)
        if self.closed:
            return self.steps >= n
        return self.index > n - 1

    @property
    def point(self):
        return self.sequence[self.index]

    def advance(self):
        self.steps += 1
        if self.closed:
            self.index = (self.index + 1) % len(self.sequence)
        else:
            self.index += 1
        return self

    def reset(self):
        self.index = self.start
        self.steps = 0

    def __iter__(self):
        self.reset()
        while not self.done:
            yield self.index
            self.advance()
