"""
Damped least-squares solver with one-sided box constraints.

Minimizes the sum of squares of a residual vector using Levenberg-Marquardt
steps with Marquardt diagonal scaling. Constraints are enforced by the step
strategy: parameters whose constraint is active and would be pushed further
out are frozen for the step, and the step is truncated where it would first
cross a bound.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np

from strokefit.tracer import get_tracer


class LSProblem(ABC):
    """Residual-function contract consumed by LSSolver."""

    @abstractmethod
    def error(self, x):
        """Scalar error (sum of squared residuals) at x."""

    @abstractmethod
    def eval(self, x):
        """Return (residuals, jacobian) at x."""

    @abstractmethod
    def params(self):
        """Current parameter vector."""

    @abstractmethod
    def set_params(self, x):
        """Store x as the current parameters."""


@dataclass(frozen=True)
class LSBoxConstraint:
    """sign * (x[index] - value) must stay non-negative."""
    index: int
    value: float
    sign: int = 1

    def slack(self, x):
        return self.sign * (x[self.index] - self.value)

    def satisfied(self, x, tol=0.0):
        return self.slack(x) >= -tol


class LSSolver:
    """Levenberg-Marquardt iteration over an LSProblem."""

    MAX_DAMPING = 1e12
    DAMPING_UP = 4.0
    DAMPING_DOWN = 0.5
    MAX_RETRIES = 8
    # Slack below this counts as sitting on the bound
    ACTIVE_TOL = 1e-12

    def __init__(self, problem, constraints=(), max_iter=100, default_damping=1.0):
        self.problem = problem
        self.constraints = list(constraints)
        self.max_iter = max_iter
        self.default_damping = default_damping

    def set_max_iter(self, max_iter):
        self.max_iter = int(max_iter)

    def set_default_damping(self, damping):
        self.default_damping = float(damping)

    def _frozen(self, x, step):
        """Parameters held fixed because their bound is active and the step pushes outward."""
        frozen = np.zeros(len(x), dtype=bool)
        for c in self.constraints:
            if c.slack(x) <= self.ACTIVE_TOL and c.sign * step[c.index] < 0:
                frozen[c.index] = True
        return frozen

    def _truncate(self, x, step):
        """Largest fraction of step that keeps every satisfied constraint satisfied."""
        fraction = 1.0
        for c in self.constraints:
            slack = c.slack(x)
            rate = c.sign * step[c.index]
            if slack > self.ACTIVE_TOL and rate < 0:
                fraction = min(fraction, slack / -rate)
        return fraction

    def _step(self, hessian, gradient, damping, x):
        scale = np.maximum(np.diag(hessian), 1e-12)
        lhs = hessian + damping * np.diag(scale)
        try:
            step = np.linalg.solve(lhs, -gradient)
        except np.linalg.LinAlgError:
            step = -np.linalg.pinv(lhs) @ gradient

        frozen = self._frozen(x, step)
        if frozen.any():
            free = ~frozen
            step = np.zeros_like(step)
            sub = lhs[np.ix_(free, free)]
            try:
                step[free] = np.linalg.solve(sub, -gradient[free])
            except np.linalg.LinAlgError:
                step[free] = -np.linalg.pinv(sub) @ gradient[free]

        return step * self._truncate(x, step)

    def solve(self, x0):
        """Return parameters locally minimizing the problem's error from x0."""
        tracer = get_tracer()

        x = np.asarray(x0, dtype=float).copy()
        damping = self.default_damping
        err = self.problem.error(x)

        for iteration in range(self.max_iter):
            residuals, jac = self.problem.eval(x)
            hessian = jac.T @ jac
            gradient = jac.T @ residuals

            improved = False
            for _ in range(self.MAX_RETRIES):
                step = self._step(hessian, gradient, damping, x)
                candidate = x + step
                candidate_err = self.problem.error(candidate)
                if np.isfinite(candidate_err) and candidate_err < err:
                    x, err = candidate, candidate_err
                    damping *= self.DAMPING_DOWN
                    improved = True
                    break
                damping = min(damping * self.DAMPING_UP, self.MAX_DAMPING)

            tracer.event(f"LM iteration {iteration}", level="DEBUG", error=err, damping=damping)

            if not improved or np.linalg.norm(step) < 1e-12:
                break

        self.problem.set_params(x)
        return x
