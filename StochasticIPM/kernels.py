import logging

import torch

import StochasticIPM.eigen as eigen
import StochasticIPM.util as util

logger = logging.getLogger(__name__)

class IPM():
    """Discretizes the vital rates of a size structured population on a
       regular grid of n_bins sizes spanning [min_x, max_x]."""
    def __init__(self, config, vital_rates):
        # Config provides global settings
        self.config = config
        self.vital_rates = vital_rates
        self.init_kernel_helpers(config.n_bins, config.min_x, config.max_x)

    def init_kernel_helpers(self, n_bins, min_x, max_x):
        self.n_bins = n_bins
        self.min_x = min_x
        self.max_x = max_x
        self.shape = (self.n_bins, self.n_bins)
        self.dx = (self.max_x - self.min_x) / (self.n_bins - 1)
        self.xs = torch.linspace(self.min_x,
                                 self.max_x,
                                 self.n_bins,
                                 dtype=self.config.dtype)
        # Columns index the size now, rows the size next time step.
        self.from_x = torch.reshape(self.xs, (1, self.n_bins))
        self.to_x = torch.reshape(self.xs, (self.n_bins, 1))

    def environment(self, z=None):
        return util.as_tensor(z, self.config.dtype)

    def survival(self, z=None):
        """Survival at each grid point, clamped to [0, 0.99]."""
        z = self.environment(z)
        return util.clamp_survival(self.vital_rates.survival(self.xs, z))

    def fecundity(self, z=None):
        z = self.environment(z)
        return self.vital_rates.fecundity(self.xs, z)

    def growth_matrix(self, z=None):
        z = self.environment(z)
        return self.vital_rates.growth_density(self.from_x, self.to_x, z)

    def offspring_matrix(self, z=None):
        z = self.environment(z)
        return self.vital_rates.offspring_density(self.from_x, self.to_x, z)

    def survival_kernel(self, z=None):
        surv = torch.reshape(self.survival(z), (1, self.n_bins))
        return self.dx * surv * self.growth_matrix(z)

    def fecundity_kernel(self, z=None):
        fec = torch.reshape(self.fecundity(z), (1, self.n_bins))
        return self.dx * fec * self.offspring_matrix(z)

    def build_kernel(self, z=None):
        kernel = self.survival_kernel(z) + self.fecundity_kernel(z)
        n_negative = int((kernel < 0).sum())
        if n_negative > 0:
            logger.debug("Clamping %d negative kernel entries to zero.", n_negative)
        return torch.clamp(kernel, min=0)

    def eigen_analysis(self, z=None, n0=None, relative=False):
        """lambda, u and v of the kernel with the tolerance and iteration
           cap taken from the config."""
        return eigen.eigen_analysis(self.build_kernel(z), n0=n0,
                                    tol=self.config.tol,
                                    max_iter=self.config.max_iter,
                                    relative=relative)
