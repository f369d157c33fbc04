import math
from dataclasses import dataclass

import numpy as np
import pandas as pd
import torch
from scipy import stats
from scipy.interpolate import BSpline

@dataclass
class GrowthFit:
    coef: torch.Tensor
    fitted: torch.Tensor
    residuals: torch.Tensor
    std_residuals: torch.Tensor
    sigma: float
    aic: float


def load_census(file_path):
    return pd.read_csv(file_path)

def thin_census(df, n=300, x='size', y='size1'):
    """Pick n rows at evenly spaced positions, keep complete (x, y) pairs
       and sort by x."""
    picks = np.round(np.linspace(0, len(df) - 1, n)).astype(int)
    thinned = df.iloc[picks][[x, y]].dropna()
    return thinned.sort_values(x).reset_index(drop=True)


def fit_growth(df, x='size', y='size1'):
    """Least squares fit of y ~ x with standardized residuals and the
       Gaussian AIC."""
    xs = torch.tensor(df[x].to_numpy(), dtype=torch.float64)
    ys = torch.tensor(df[y].to_numpy(), dtype=torch.float64)
    n = len(xs)
    if n < 3:
        raise ValueError(f"Need at least 3 observations to fit growth, got {n}.")
    design = torch.stack([torch.ones_like(xs), xs], dim=1)
    coef = torch.linalg.lstsq(design, ys.reshape(-1, 1)).solution.reshape(-1)
    fitted = design @ coef
    resid = ys - fitted
    n_par = design.shape[1]
    rss = float(torch.sum(resid**2))
    sigma = math.sqrt(rss / (n - n_par))
    # Leverages are the diagonal of the hat matrix X (X'X)^-1 X'
    hat = torch.sum((design @ torch.linalg.inv(design.T @ design)) * design, dim=1)
    std_resid = resid / (sigma * torch.sqrt(1 - hat))
    # The error variance counts as a parameter.
    aic = n*math.log(2*math.pi) + n*math.log(rss / n) + n + 2*(n_par + 1)
    return GrowthFit(coef, fitted, resid, std_resid, sigma, aic)


@dataclass
class SmoothFit:
    fitted: np.ndarray
    edf: float
    lam: float
    gcv: float
    aic: float


def _bspline_basis(x, n_basis):
    # Equally spaced knots extend past both ends, so straight lines are in
    # the null space of the difference penalty.
    n_seg = n_basis - 3
    lo, hi = x.min(), x.max()
    pad = 1e-6 * (hi - lo)
    lo, hi = lo - pad, hi + pad
    step = (hi - lo) / n_seg
    knots = lo + step*np.arange(-3, n_seg + 4)
    return BSpline.design_matrix(x, knots, 3).toarray()


def _penalized_fit(basis, penalty, y, lam):
    smoother = np.linalg.solve(basis.T @ basis + lam*penalty, basis.T)
    fitted = basis @ (smoother @ y)
    edf = float(np.trace(smoother @ basis))
    rss = float(np.sum((y - fitted)**2))
    return fitted, edf, rss


def smooth_fit(x, y, lam=None, n_basis=10):
    """Penalized regression spline of y on x: a cubic B-spline basis with a
       second difference penalty on the coefficients. lam is chosen by
       generalized cross validation when not given. The effective degrees
       of freedom are the trace of the smoother matrix and give the AIC."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    n_distinct = len(np.unique(x))
    if n_distinct < 5:
        raise ValueError(f"Need at least 5 distinct x values to smooth, got {n_distinct}.")
    n = len(x)
    basis = _bspline_basis(x, n_basis)
    diffs = np.diff(np.eye(n_basis), n=2, axis=0)
    penalty = diffs.T @ diffs

    def gcv(edf, rss):
        return n*rss / (n - edf)**2

    if lam is None:
        best = None
        for trial in 10**np.linspace(-6, 6, 61):
            _, edf, rss = _penalized_fit(basis, penalty, y, trial)
            if edf < n and (best is None or gcv(edf, rss) < best[0]):
                best = (gcv(edf, rss), trial)
        lam = best[1]
    fitted, edf, rss = _penalized_fit(basis, penalty, y, lam)
    score = gcv(edf, rss) if edf < n else math.inf
    # Same Gaussian likelihood as fit_growth, with edf in place of the
    # number of coefficients.
    if rss > 0:
        aic = n*math.log(2*math.pi) + n*math.log(rss / n) + n + 2*(edf + 1)
    else:
        aic = -math.inf
    return SmoothFit(fitted, edf, float(lam), score, aic)


def smooth_trend(x, y, lam=None):
    """Penalized spline of y on x evaluated at x."""
    return smooth_fit(x, y, lam).fitted


def growth_diagnostics(df, x='size', y='size1'):
    """Table behind the four growth diagnostic panels: residuals against
       fitted values, a normal quantile plot, the scale-location plot and
       the linear against smooth fit."""
    fit = fit_growth(df, x, y)
    fitted = fit.fitted.numpy()
    resid = fit.residuals.numpy()
    std_resid = fit.std_residuals.numpy()
    scale = np.sqrt(np.abs(std_resid))

    theoretical, _ = stats.probplot(std_resid, dist='norm', fit=False)
    quantiles = np.empty_like(std_resid)
    quantiles[np.argsort(std_resid, kind='stable')] = theoretical

    return pd.DataFrame({x: df[x].to_numpy(),
                         y: df[y].to_numpy(),
                         'fitted': fitted,
                         'residual': resid,
                         'residual_smooth': smooth_trend(fitted, resid),
                         'std_residual': std_resid,
                         'theoretical_quantile': quantiles,
                         'scale': scale,
                         'scale_smooth': smooth_trend(fitted, scale)})


def compare_growth_fits(df, x='size', y='size1'):
    """Linear and smooth fits of y on x side by side. The AIC of each fit
       is in attrs['aic'] and the smooth's effective degrees of freedom in
       attrs['edf']."""
    fit = fit_growth(df, x, y)
    smooth = smooth_fit(df[x].to_numpy(), df[y].to_numpy())
    comparison = pd.DataFrame({x: df[x].to_numpy(),
                               'linear': fit.fitted.numpy(),
                               'smooth': smooth.fitted})
    comparison.attrs['aic'] = {'linear': fit.aic, 'smooth': smooth.aic}
    comparison.attrs['edf'] = smooth.edf
    return comparison
