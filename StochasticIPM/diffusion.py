import logging
import math

import pandas as pd
import torch

from StochasticIPM.config import steps_per_unit
from StochasticIPM.rng import make_generator

logger = logging.getLogger(__name__)

def drift(y, lam, demvar, envvar):
    """Infinitesimal mean of log total reproductive value. Zero once the
       population is extinct (y <= 0)."""
    mu = math.log(lam) - (envvar + demvar*torch.exp(-y)) / (2*lam**2)
    return torch.where(y > 0, mu, torch.zeros_like(y))

def infinitesimal_variance(y, lam, demvar, envvar):
    nu = (envvar + demvar*torch.exp(-y)) / lam**2
    return torch.where(y > 0, nu, torch.zeros_like(y))


def simulate_diffusion(lam,
                       demvar,
                       envvar,
                       y0,
                       t_max,
                       delta_t=0.01,
                       n_sim=1,
                       b=None,
                       generator=None,
                       dtype=torch.float64):
    """Euler-Maruyama simulation of the diffusion approximation for log
       population size, clamped to [0, b] after every step. The process is
       recorded at each whole time unit, giving an n_sim x (t_max + 1)
       table indexed by realization."""
    lam = float(lam)
    demvar = float(demvar)
    envvar = float(envvar)
    if lam <= 0:
        raise ValueError(f"lam must be positive, got {lam}.")
    if demvar < 0 or envvar < 0:
        raise ValueError("Variances must be non-negative: "
                         + f"{demvar}, {envvar}.")
    n_steps = steps_per_unit(delta_t)
    if generator is None:
        generator = make_generator()

    y = torch.clamp(torch.full((n_sim,), float(y0), dtype=dtype), min=0, max=b)
    history = torch.empty((n_sim, t_max + 1), dtype=dtype)
    history[:, 0] = y
    for t in range(1, t_max + 1):
        for _ in range(n_steps):
            mu = drift(y, lam, demvar, envvar)
            nu = infinitesimal_variance(y, lam, demvar, envvar)
            noise = torch.randn(n_sim, generator=generator, dtype=dtype)
            y = y + mu*delta_t + noise*torch.sqrt(nu*delta_t)
            y = torch.clamp(y, min=0, max=b)
        history[:, t] = y
    logger.debug("Simulated %d diffusion paths for %d time units.", n_sim, t_max)
    return trajectories_to_frame(history)


def trajectories_to_frame(history):
    df = pd.DataFrame(data=history.numpy())
    df.index.name = 'realization'
    df.columns.name = 'time'
    return df

def extinction_curve(trajectories, threshold=0):
    """Fraction of realizations at or below threshold at each time."""
    return (trajectories <= threshold).mean(axis=0)

def quantile_bands(trajectories, probs=(0.05, 0.25, 0.5, 0.75, 0.95)):
    """Quantiles across realizations at each time, one row per time."""
    return trajectories.quantile(list(probs), axis=0).T
