import torch

import StochasticIPM.util as util

class _VitalRates():
    """Survival, fecundity and size transitions of an individual of size x
       in environment z. Subclasses provide the survival, fecundity,
       growth_mean and recruit_mean functions along with growth_sd and
       recruit_sd; densities and samplers are shared."""
    # Range of sizes the model is usually discretized over.
    natural_range = (0, 1)

    def survival(self, x, z=0):
        raise NotImplementedError

    def fecundity(self, x, z=0):
        raise NotImplementedError

    def growth_mean(self, x, z=0):
        raise NotImplementedError

    def recruit_mean(self, x, z=0):
        raise NotImplementedError

    def growth_density(self, x, y, z=0):
        """Density of size y next year for a survivor of size x."""
        return util.NormPDF(y, self.growth_mean(x, z), self.growth_sd)

    def offspring_density(self, x, y, z=0):
        """Density of size y for a recruit produced by a parent of size x."""
        return util.NormPDF(y, self.recruit_mean(x, z), self.recruit_sd)

    def fecundity_variance(self, x, z=0):
        # Offspring counts are Poisson, so the variance equals the mean.
        return self.fecundity(x, z)

    def survival_fecundity_covariance(self, x, z=0):
        return torch.zeros_like(torch.as_tensor(x))

    ##########
    # Sampling
    ##########
    def sample_offspring_counts(self, x, generator=None, z=0):
        return torch.poisson(self.fecundity(x, z), generator=generator)

    def sample_survival(self, x, generator=None, z=0):
        prob = util.clamp_survival(self.survival(x, z))
        return torch.bernoulli(prob, generator=generator).bool()

    def sample_growth(self, x, generator=None, z=0):
        noise = torch.randn(x.shape, generator=generator, dtype=x.dtype)
        return self.growth_mean(x, z) + self.growth_sd*noise

    def sample_offspring_sizes(self, parents, generator=None, z=0):
        noise = torch.randn(parents.shape, generator=generator, dtype=parents.dtype)
        return self.recruit_mean(parents, z) + self.recruit_sd*noise


class SizeStructured(_VitalRates):
    natural_range = (0, 20)

    def __init__(self,
                 surv_int=-1.0,
                 surv_z=0.35,
                 fec_int=-4.0,
                 fec_z=0.3,
                 grow_int=1.5,
                 grow_z=0.85,
                 grow_sd=1.2,
                 rcsz_mean=2.0,
                 rcsz_sd=0.8):
        self.surv_int = torch.tensor(surv_int)
        self.surv_z = torch.tensor(surv_z)
        self.fec_int = torch.tensor(fec_int)
        self.fec_z = torch.tensor(fec_z)
        self.grow_int = torch.tensor(grow_int)
        self.grow_z = torch.tensor(grow_z)
        self.growth_sd = torch.tensor(grow_sd)
        self.rcsz_mean = torch.tensor(rcsz_mean)
        self.recruit_sd = torch.tensor(rcsz_sd)

    def survival(self, x, z=0):
        return util.logistic(self.surv_int + self.surv_z*x + z)

    def fecundity(self, x, z=0):
        return torch.exp(self.fec_int + self.fec_z*x)

    def growth_mean(self, x, z=0):
        return self.grow_int + self.grow_z*x + z

    def recruit_mean(self, x, z=0):
        return self.rcsz_mean*torch.ones_like(torch.as_tensor(x))


class Monocarp(_VitalRates):
    """Monocarpic perennial on log size. Plants that survive and flower
       produce seed and then die, so survival excludes flowering plants
       and fecundity is survival times flowering, seed production and
       establishment."""
    natural_range = (-2.65, 6.8)

    def __init__(self,
                 surv_int=-0.65,
                 surv_z=0.75,
                 flow_int=-18.0,
                 flow_z=6.9,
                 grow_int=0.96,
                 grow_z=0.59,
                 grow_sd=0.67,
                 rcsz_int=-0.08,
                 rcsz_sd=0.76,
                 seed_int=1.0,
                 seed_z=2.2,
                 p_r=0.007):
        ## Survival and flowering
        self.surv_int = torch.tensor(surv_int)
        self.surv_z = torch.tensor(surv_z)
        self.flow_int = torch.tensor(flow_int)
        self.flow_z = torch.tensor(flow_z)
        ## Growth
        self.grow_int = torch.tensor(grow_int)
        self.grow_z = torch.tensor(grow_z)
        self.growth_sd = torch.tensor(grow_sd)
        ## Recruitment
        self.rcsz_int = torch.tensor(rcsz_int)
        self.recruit_sd = torch.tensor(rcsz_sd)
        self.seed_int = torch.tensor(seed_int)
        self.seed_z = torch.tensor(seed_z)
        self.p_r = torch.tensor(p_r)

    def flowering(self, x):
        return util.logistic(self.flow_int + self.flow_z*x)

    def seeds(self, x):
        return torch.exp(self.seed_int + self.seed_z*x)

    def survival_to_flowering(self, x):
        return util.logistic(self.surv_int + self.surv_z*x)

    def survival(self, x, z=0):
        return self.survival_to_flowering(x) * (1 - self.flowering(x))

    def fecundity(self, x, z=0):
        return (self.survival_to_flowering(x)
                * self.flowering(x) * self.seeds(x) * self.p_r)

    def growth_mean(self, x, z=0):
        return self.grow_int + self.grow_z*x + z

    def recruit_mean(self, x, z=0):
        return self.rcsz_int*torch.ones_like(torch.as_tensor(x))
