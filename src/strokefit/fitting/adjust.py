"""
Single-curve refinement of a fitted primitive.

CurveAdjustProblem exposes one candidate's curve to LSSolver. Clothoids are
solved in (curvature, end curvature) instead of (curvature, curvature
derivative): the DCURVATURE slot carries

    end_curvature = curvature + length * dcurvature

and the Jacobian is corrected by the chain rule to stay exact.
"""

from strokefit.fitting.solver import LSBoxConstraint, LSProblem, LSSolver
from strokefit.geometry.curves import CurveType, Param


class CurveAdjustProblem(LSProblem):
    """Binds one FitPrimitive and an ErrorComputer into the LSProblem contract."""

    def __init__(self, fit, error_computer):
        self.fit = fit
        self.error_computer = error_computer

    @property
    def curve(self):
        return self.fit.curve

    def _is_clothoid(self):
        return self.curve.kind == CurveType.CLOTHOID

    def error(self, x):
        self.set_params(x)
        return self.error_computer.compute_error(self.curve, self.fit.start_idx, self.fit.end_idx)

    def eval(self, x):
        self.set_params(x)
        residuals, jac = self.error_computer.compute_error_vector(
            self.curve, self.fit.start_idx, self.fit.end_idx
        )

        if self._is_clothoid():
            inv_length = 1.0 / x[Param.LENGTH]
            jac[:, Param.DCURVATURE] *= inv_length
            jac[:, Param.CURVATURE] -= jac[:, Param.DCURVATURE]
            dcurvature = (x[Param.DCURVATURE] - x[Param.CURVATURE]) * inv_length
            jac[:, Param.LENGTH] -= jac[:, Param.DCURVATURE] * dcurvature

        return residuals, jac

    def params(self):
        out = self.curve.params()
        if self._is_clothoid():
            out[Param.DCURVATURE] = out[Param.CURVATURE] + out[Param.LENGTH] * out[Param.DCURVATURE]
        return out

    def set_params(self, x):
        if not self._is_clothoid():
            self.curve.set_params(x)
            return

        native = x.copy()
        native[Param.DCURVATURE] = (x[Param.DCURVATURE] - x[Param.CURVATURE]) / x[Param.LENGTH]
        self.curve.set_params(native)


def adjustment_constraints(fit, inflection_accounting):
    constraints = [LSBoxConstraint(Param.LENGTH, fit.curve.length * 0.5, 1)]

    if inflection_accounting:
        kind = fit.curve.kind
        if kind >= CurveType.ARC:
            constraints.append(LSBoxConstraint(Param.CURVATURE, 0.0, fit.start_curv_sign))
        if kind == CurveType.CLOTHOID:
            constraints.append(LSBoxConstraint(Param.DCURVATURE, 0.0, fit.end_curv_sign))

    return constraints


def adjust_primitive(fit, error_computer, inflection_accounting, damping, max_iter=1):
    """
    Nudge fit.curve in place toward lower error.

    One damped step by default: candidates are refined, not re-solved.
    """
    problem = CurveAdjustProblem(fit, error_computer)
    solver = LSSolver(problem, adjustment_constraints(fit, inflection_accounting))
    solver.set_default_damping(damping)
    solver.set_max_iter(max_iter)
    problem.set_params(solver.solve(problem.params()))
    return fit
