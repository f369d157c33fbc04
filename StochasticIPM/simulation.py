import logging
import math

import pandas as pd
import torch

import StochasticIPM.util as util
from StochasticIPM.diffusion import trajectories_to_frame
from StochasticIPM.rng import spawn_generators

logger = logging.getLogger(__name__)

class StructuredSimulation():
    """Individual based simulation of the population described by an IPM.
       Individuals are tracked only by their size, and the population is
       summarised by its total reproductive value."""
    def __init__(self, ipm, u, v, z=None):
        self.ipm = ipm
        self.vital_rates = ipm.vital_rates
        self.dtype = ipm.config.dtype
        self.z = ipm.environment(z)
        self.min_x = ipm.min_x
        self.max_x = ipm.max_x
        self.initial_sizes = util.InverseCDF(ipm.xs, u)
        self.v = util.TableFunction(ipm.xs, torch.as_tensor(v, dtype=self.dtype))

    def init_pop(self, n0, generator=None):
        """Exactly n0 sizes drawn from the stable size distribution."""
        return self.initial_sizes.sample(n0, generator)

    def total_reproductive_value(self, sizes):
        return float(self.v(sizes).sum())

    def _demography(self, sizes, generator):
        counts = self.vital_rates.sample_offspring_counts(sizes, generator, self.z)
        parents = torch.repeat_interleave(sizes, counts.long())
        recruits = self.vital_rates.sample_offspring_sizes(parents, generator, self.z)
        alive = self.vital_rates.sample_survival(sizes, generator, self.z)
        grown = self.vital_rates.sample_growth(sizes[alive], generator, self.z)
        return counts, alive, grown, recruits

    def run_one_step(self, sizes, generator=None):
        _, _, grown, recruits = self._demography(sizes, generator)
        new_sizes = torch.cat([grown, recruits])
        return torch.clamp(new_sizes, min=self.min_x, max=self.max_x)

    def simulate_one(self, n0, t_max, v_max, generator=None):
        """Total reproductive value at times 0..t_max for one realization.
           The run stops once the total falls to 1 or below, or exceeds
           v_max, and the remaining times repeat the last value."""
        sizes = self.init_pop(n0, generator)
        values = torch.empty(t_max + 1, dtype=self.dtype)
        values[0] = self.total_reproductive_value(sizes)
        if values[0] <= 1 or values[0] > v_max:
            values[:] = values[0]
            return values
        for t in range(1, t_max + 1):
            sizes = self.run_one_step(sizes, generator)
            total = self.total_reproductive_value(sizes)
            values[t] = total
            if total <= 1 or total > v_max:
                values[t:] = total
                break
        return values

    def simulate(self, n_sim, n0, t_max, v_max=math.inf, seed=None):
        generators = spawn_generators(seed, n_sim)
        history = torch.empty((n_sim, t_max + 1), dtype=self.dtype)
        for i, generator in enumerate(generators):
            history[i] = self.simulate_one(n0, t_max, v_max, generator)
            if (i + 1) % 100 == 0:
                logger.info("Finished %d of %d realizations.", i + 1, n_sim)
        return trajectories_to_frame(history)

    def simulate_census(self, n0, t_max, generator=None, max_pop=100000):
        """Individual level records (size, size1, survived, offspring) for
           each year, in the layout of a field census. size1 is missing for
           individuals that died."""
        sizes = self.init_pop(n0, generator)
        records = []
        for year in range(t_max):
            if len(sizes) == 0 or len(sizes) > max_pop:
                logger.info("Census stopped in year %d with %d individuals.",
                            year, len(sizes))
                break
            counts, alive, grown, recruits = self._demography(sizes, generator)
            grown = torch.clamp(grown, min=self.min_x, max=self.max_x)
            recruits = torch.clamp(recruits, min=self.min_x, max=self.max_x)
            size1 = torch.full_like(sizes, math.nan)
            size1[alive] = grown
            records.append(pd.DataFrame({'year': year,
                                         'size': sizes.numpy(),
                                         'size1': size1.numpy(),
                                         'survived': alive.numpy(),
                                         'offspring': counts.long().numpy()}))
            sizes = torch.cat([grown, recruits])
        if not records:
            return pd.DataFrame(columns=['year', 'size', 'size1', 'survived', 'offspring'])
        return pd.concat(records, ignore_index=True)
