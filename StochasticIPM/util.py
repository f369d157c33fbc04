import math

import torch

# Survival is never certain, every individual has some chance of exiting.
MAX_SURVIVAL = 0.99

def NormPDF(x, mu, sigma):
    """Compute the normal pdf of x given a mean and standard deviation."""
    return (torch.exp(-((x - mu)**2) / (2*sigma**2))
            / (sigma * math.sqrt(2.0*math.pi)))

def logistic(x):
    return 1 / (1 + torch.exp(-x))

def clamp_survival(prob):
    return torch.clamp(prob, min=0, max=MAX_SURVIVAL)

def as_tensor(value, dtype):
    if value is None:
        value = 0.0
    return torch.as_tensor(value, dtype=dtype)


class TableFunction():
    """Piecewise-linear function through the points (xs, ys). Values
       outside the table are held constant at the end values."""
    def __init__(self, xs, ys):
        self.xs = torch.as_tensor(xs)
        self.ys = torch.as_tensor(ys, dtype=self.xs.dtype)
        if self.xs.dim() != 1 or self.xs.shape != self.ys.shape:
            raise ValueError("xs and ys must be 1D and of equal length: "
                             + f"{tuple(self.xs.shape)}, {tuple(self.ys.shape)}.")
        if len(self.xs) < 2:
            raise ValueError("TableFunction needs at least two points.")
        if (torch.diff(self.xs) < 0).any():
            raise ValueError("xs must be non-decreasing.")

    def __call__(self, x):
        x = torch.as_tensor(x, dtype=self.xs.dtype)
        flat = torch.clamp(x.reshape(-1),
                           min=float(self.xs[0]),
                           max=float(self.xs[-1]))
        idx = torch.searchsorted(self.xs, flat, right=True)
        idx = torch.clamp(idx, min=1, max=len(self.xs) - 1)
        x0 = self.xs[idx - 1]
        x1 = self.xs[idx]
        y0 = self.ys[idx - 1]
        y1 = self.ys[idx]
        # Zero width segments (repeated xs) take the left value
        width = x1 - x0
        safe_width = torch.where(width > 0, width, torch.ones_like(width))
        frac = torch.where(width > 0, (flat - x0) / safe_width, torch.zeros_like(width))
        return (y0 + frac*(y1 - y0)).reshape(x.shape)


class InverseCDF():
    """Samples states in proportion to a vector of weights on a grid by
       inverting the cumulative weights."""
    def __init__(self, grid, weights):
        grid = torch.as_tensor(grid)
        weights = torch.as_tensor(weights, dtype=grid.dtype)
        if (weights < 0).any() or weights.sum() <= 0:
            raise ValueError("weights must be non-negative with a positive sum.")
        cdf = torch.cumsum(weights, dim=0) / weights.sum()
        self.quantile = TableFunction(cdf, grid)

    def __call__(self, p):
        return self.quantile(p)

    def sample(self, n, generator=None):
        p = torch.rand(n, generator=generator, dtype=self.quantile.xs.dtype)
        return self.quantile(p)
