import logging

import torch

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

class Config():
    def __init__(self,
                 dtype=torch.float64,
                 min_x=0,
                 max_x=20,
                 n_bins=200,
                 tol=1e-6,
                 max_iter=10000,
                 delta_t=0.01):
        #############
        # Torch Setup
        #############
        # Power iteration and the variance sums are sensitive to
        # rounding, so double precision is the default here.
        self.dtype = dtype

        ################
        # IPM Parameters
        ################
        self.min_x = min_x
        self.max_x = max_x
        self.n_bins = n_bins

        ##########################
        # Eigen-analysis Parameters
        ##########################
        self.tol = tol
        self.max_iter = max_iter

        ######################
        # Diffusion Parameters
        ######################
        self.delta_t = delta_t

        self._validate()

    @property
    def dx(self):
        return (self.max_x - self.min_x) / (self.n_bins - 1)

    def _validate(self):
        if self.n_bins < 2:
            raise ValueError(f"n_bins must be at least 2, got {self.n_bins}.")
        if self.max_x <= self.min_x:
            raise ValueError("max_x must be greater than min_x: "
                             + f"{self.min_x}, {self.max_x}.")
        if self.tol <= 0:
            raise ValueError(f"tol must be positive, got {self.tol}.")
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be at least 1, got {self.max_iter}.")
        steps_per_unit(self.delta_t)


def steps_per_unit(delta_t):
    """Number of Euler steps in one time unit. The diffusion is only
       recorded at whole time units, so delta_t must divide 1."""
    if delta_t <= 0 or delta_t > 1:
        raise ValueError(f"delta_t must be in (0, 1], got {delta_t}.")
    n_steps = int(round(1 / delta_t))
    if abs(n_steps * delta_t - 1) > 1e-9:
        raise ValueError(f"delta_t must divide one time unit, got {delta_t}.")
    return n_steps


def configure_logging(level=logging.INFO, log_file=None):
    handlers = [logging.StreamHandler()]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    return logging.getLogger("StochasticIPM")
