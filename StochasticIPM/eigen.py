import logging
from dataclasses import dataclass

import torch

logger = logging.getLogger(__name__)

class ConvergenceError(Exception):
    """Power iteration did not settle within the allowed iterations."""
    def __init__(self, message, value=None, n_iter=0):
        super().__init__(message)
        self.value = value
        self.n_iter = n_iter


@dataclass
class PowerIterationResult:
    value: float
    vector: torch.Tensor
    n_iter: int


@dataclass
class EigenAnalysis:
    lam: float
    u: torch.Tensor
    v: torch.Tensor


def power_iteration(matrix, n0=None, tol=1e-6, max_iter=10000, relative=False):
    """Dominant eigenvalue and eigenvector of a non-negative matrix.

       Iterates N_{t+1} = K N_t and tracks r_t = sum(N_{t+1}) / sum(N_t)
       until successive ratios differ by less than tol. The tolerance is
       absolute unless relative is set, in which case it is scaled by the
       current ratio. The returned vector sums to one."""
    if matrix.dim() != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {tuple(matrix.shape)}.")
    if n0 is None:
        n0 = torch.ones(matrix.shape[0], dtype=matrix.dtype)
    pop = torch.as_tensor(n0, dtype=matrix.dtype)
    if pop.shape != (matrix.shape[0],):
        raise ValueError("Initial vector must match the matrix: "
                         + f"{tuple(pop.shape)}, {tuple(matrix.shape)}.")
    if pop.sum() == 0:
        raise ValueError("Initial vector must have a nonzero sum.")
    pop = pop / pop.sum()

    ratio = None
    for n_iter in range(1, max_iter + 1):
        new_pop = matrix @ pop
        new_ratio = float(new_pop.sum() / pop.sum())
        if new_pop.sum() == 0:
            raise ConvergenceError("Population collapsed to zero during power iteration.",
                                   new_ratio, n_iter)
        pop = new_pop / new_pop.sum()
        if ratio is not None:
            scale = abs(new_ratio) if relative else 1.0
            if abs(new_ratio - ratio) < tol*scale:
                logger.debug("Power iteration converged after %d iterations.", n_iter)
                return PowerIterationResult(new_ratio, pop, n_iter)
        ratio = new_ratio
    raise ConvergenceError(f"Power iteration did not converge in {max_iter} iterations.",
                           ratio, max_iter)


def growth_rate(matrix, n0=None, tol=1e-6, max_iter=10000, relative=False):
    return power_iteration(matrix, n0, tol, max_iter, relative).value

def stable_distribution(matrix, n0=None, tol=1e-6, max_iter=10000, relative=False):
    return power_iteration(matrix, n0, tol, max_iter, relative).vector

def reproductive_value(matrix, u=None, n0=None, tol=1e-6, max_iter=10000, relative=False):
    """Left eigenvector of the matrix, scaled so that sum(u*v) is one."""
    if u is None:
        u = stable_distribution(matrix, n0, tol, max_iter, relative)
    v = power_iteration(matrix.T, n0, tol, max_iter, relative).vector
    return v / torch.sum(v*u)

def eigen_analysis(matrix, n0=None, tol=1e-6, max_iter=10000, relative=False):
    result = power_iteration(matrix, n0, tol, max_iter, relative)
    v = reproductive_value(matrix, result.vector, n0, tol, max_iter, relative)
    logger.info("lambda = %.6f after %d iterations", result.value, result.n_iter)
    return EigenAnalysis(result.value, result.vector, v)
