import logging
import math
from dataclasses import dataclass, field

import torch
import numpy as np
from scipy.integrate import quad_vec

logger = logging.getLogger(__name__)

@dataclass
class DemographicVariance:
    value: float
    components: torch.Tensor
    meanvs: torch.Tensor
    meanvb: torch.Tensor
    starvs: torch.Tensor
    starvb: torch.Tensor
    failed: torch.Tensor = None
    messages: dict = field(default_factory=dict)


def _combine(ipm, u, z, meanvs, meanvb, starvs, starvb):
    """Per grid point contributions u(x)*[...]*dx to the demographic
       variance, where u(x) = u/dx is the stable size density."""
    z = ipm.environment(z)
    surv = ipm.survival(z)
    fec = ipm.fecundity(z)
    sig_b = ipm.vital_rates.fecundity_variance(ipm.xs, z)
    sig_bs = ipm.vital_rates.survival_fecundity_covariance(ipm.xs, z)
    u_density = u / ipm.dx
    inner = (meanvs**2 * surv * (1 - surv)
             + meanvb**2 * sig_b
             + 2 * meanvs * meanvb * sig_bs
             + surv * (starvs - meanvs**2)
             + fec * (starvb - meanvb**2))
    return u_density * inner * ipm.dx


def demographic_variance(ipm, u, v, z=None):
    """Demographic variance by summing over the grid. Densities are taken
       as (target, source) matrices so that column sums against v give the
       expected reproductive value of a survivor or recruit."""
    u = torch.as_tensor(u, dtype=ipm.config.dtype)
    v_col = torch.reshape(torch.as_tensor(v, dtype=ipm.config.dtype), (ipm.n_bins, 1))
    growth = ipm.growth_matrix(z)
    recruits = ipm.offspring_matrix(z)

    meanvs = torch.sum(growth * v_col, dim=0) * ipm.dx
    meanvb = torch.sum(recruits * v_col, dim=0) * ipm.dx
    starvs = torch.sum(growth * v_col**2, dim=0) * ipm.dx
    starvb = torch.sum(recruits * v_col**2, dim=0) * ipm.dx

    components = _combine(ipm, u, z, meanvs, meanvb, starvs, starvb)
    value = float(components.sum())
    logger.info("Demographic variance = %.6g", value)
    return DemographicVariance(value, components, meanvs, meanvb, starvs, starvb)


def demographic_variance_quad(ipm, u, v, z=None, limit=200):
    """Demographic variance with the integrals over next year's size done
       by adaptive quadrature against the interpolated reproductive value.
       The four integrals of a grid point share one vector-valued integrand.
       limit is the number of subintervals allowed on top of those between
       grid points. Grid points where an integral fails are flagged in
       `failed`, get a NaN component and are left out of the total."""
    dtype = ipm.config.dtype
    z = ipm.environment(z)
    u = torch.as_tensor(u, dtype=dtype)
    xs = ipm.xs.numpy()
    vs = torch.as_tensor(v, dtype=dtype).numpy()
    vital_rates = ipm.vital_rates
    # v(y) has a kink at every interior grid point.
    knots = xs[1:-1]
    n_intervals = len(knots) + 1

    def integrate(x):
        def integrand(y):
            vy = np.interp(y, xs, vs)
            y = torch.tensor(y, dtype=dtype)
            fs = float(vital_rates.growth_density(x, y, z))
            fb = float(vital_rates.offspring_density(x, y, z))
            return np.array([fs*vy, fb*vy, fs*vy**2, fb*vy**2])
        res, _, info = quad_vec(integrand, ipm.min_x, ipm.max_x,
                                norm='max', points=knots,
                                limit=n_intervals + limit, full_output=True)
        if not info.success:
            return res, info.message
        if not np.isfinite(res).all():
            return res, "non-finite integral"
        return res, None

    sums = torch.full((4, ipm.n_bins), math.nan, dtype=dtype)
    failed = torch.zeros(ipm.n_bins, dtype=torch.bool)
    messages = {}
    for i, x in enumerate(ipm.xs):
        values, message = integrate(x)
        sums[:, i] = torch.as_tensor(values, dtype=dtype)
        if message is not None:
            failed[i] = True
            messages[i] = message

    meanvs, meanvb, starvs, starvb = sums
    components = _combine(ipm, u, z, meanvs, meanvb, starvs, starvb)
    components[failed] = math.nan
    value = float(torch.nansum(components))
    if failed.any():
        logger.warning("Quadrature failed at %d of %d grid points; they are "
                       "excluded from the demographic variance.",
                       int(failed.sum()), ipm.n_bins)
    logger.info("Demographic variance (quadrature) = %.6g", value)
    return DemographicVariance(value, components, meanvs, meanvb, starvs, starvb,
                               failed, messages)
