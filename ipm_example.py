import math

import torch
import matplotlib.pyplot as plt

from StochasticIPM.config import Config
import StochasticIPM.demography as demography
import StochasticIPM.diffusion as diffusion
from StochasticIPM.kernels import IPM
from StochasticIPM.rng import make_generator
from StochasticIPM.vital_rates import Monocarp

model = Monocarp()
L, U = model.natural_range
config = Config(dtype=torch.float64,
                min_x=L,
                max_x=U,
                n_bins=100)

##############
# Model Driver
##############

ipm = IPM(config, model)
analysis = ipm.eigen_analysis()
demvar = demography.demographic_variance(ipm, analysis.u, analysis.v).value
print(f"lambda = {analysis.lam:.4f}, demographic variance = {demvar:.4f}")

paths = diffusion.simulate_diffusion(analysis.lam, demvar, 0.0, math.log(10), 30,
                                     n_sim=500, generator=make_generator(1))
extinct = diffusion.extinction_curve(paths)

fig, ax = plt.subplots()
ax.plot(extinct.index, extinct.to_numpy())
ax.set_xlabel('Years')
ax.set_ylabel('Fraction extinct')
plt.show()
