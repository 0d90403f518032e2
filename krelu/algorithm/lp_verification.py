"""
LP based checks of halfspace representations.

Used to verify relaxations independently of the incidence based reasoning: a
row is redundant iff it is implied by the other rows, and two representations
describe the same region iff each implies every row of the other.
"""

from typing import List, Optional

import gurobipy as grb
import numpy as np

from krelu.util import config
from krelu.util.rational import to_float_matrix


class LPVerifier:

    """
    Solves small LPs over the region {x : H . [1, x] >= 0} with Gurobi.
    """

    def __init__(self, tolerance: Optional[float] = None):

        """
        Args:
            tolerance: The tolerance of the implication checks
        """

        self._tolerance = config.LP_TOLERANCE if tolerance is None else tolerance

        self._env = grb.Env(empty=True)
        self._env.setParam("OutputFlag", 0)
        self._env.start()

    @property
    def tolerance(self) -> float:
        return self._tolerance

    def minimize(self, H: np.ndarray, objective: np.ndarray) -> Optional[float]:

        """
        Minimizes objective . [1, x] over the region of H.

        Args:
            H           : A MxD halfspace matrix
            objective   : A row of length D

        Returns:
            The optimal value, -inf if unbounded and None if infeasible.
        """

        H = to_float_matrix(H)
        objective = to_float_matrix(objective)
        num_vars = H.shape[1] - 1

        grb_solver = grb.Model(env=self._env)
        x = grb_solver.addVars(num_vars, lb=-grb.GRB.INFINITY, ub=grb.GRB.INFINITY)
        input_vars = [x[i] for i in range(num_vars)]

        for row in H:
            grb_solver.addConstr(
                grb.LinExpr(row[1:], input_vars) + float(row[0]) >= 0
            )

        grb_solver.setObjective(
            grb.LinExpr(objective[1:], input_vars) + float(objective[0]),
            grb.GRB.MINIMIZE,
        )
        grb_solver.setParam("DualReductions", 0)
        grb_solver.optimize()

        status = grb_solver.status
        if status == grb.GRB.OPTIMAL:
            value = grb_solver.objVal
        elif status == grb.GRB.UNBOUNDED:
            value = -np.inf
        elif status == grb.GRB.INFEASIBLE:
            value = None
        else:
            raise RuntimeError(f"Gurobi finished with unexpected status {status}")

        grb_solver.dispose()
        return value

    def is_implied(self, H: np.ndarray, row: np.ndarray) -> bool:

        """
        Checks whether row . [1, x] >= 0 holds on the whole region of H.
        """

        value = self.minimize(H, row)
        return value is None or value >= -self._tolerance

    def redundant_rows(self, H: np.ndarray) -> List[int]:

        """
        Returns the indexes of rows implied by the remaining rows.
        """

        redundant = []
        for i in range(H.shape[0]):
            others = np.delete(H, i, axis=0)
            if self.is_implied(others, H[i]):
                redundant.append(i)
        return redundant

    def contains(self, H: np.ndarray, points: np.ndarray) -> bool:

        """
        Checks that all homogeneous points [1, x] satisfy H.
        """

        values = to_float_matrix(points) @ to_float_matrix(H).T
        return bool(np.all(values >= -self._tolerance))

    def same_region(self, H1: np.ndarray, H2: np.ndarray) -> bool:
        return all(self.is_implied(H1, row) for row in H2) and all(
            self.is_implied(H2, row) for row in H1
        )
