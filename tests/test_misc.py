import logging

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import torch
import pytest

from StochasticIPM.config import Config, configure_logging, steps_per_unit
import StochasticIPM.diagnostics as diagnostics
import StochasticIPM.diffusion as diffusion
from StochasticIPM.rng import make_generator, spawn_generators
import StochasticIPM.visualization as viz

########
# Config
########
def test_config_defaults():
    config = Config()
    assert config.dtype == torch.float64
    assert config.dx == pytest.approx(20 / 199)

@pytest.mark.parametrize("kwargs", [{'tol': 0}, {'max_iter': 0}, {'delta_t': 0.3}])
def test_config_invalid(kwargs):
    with pytest.raises(ValueError):
        Config(**kwargs)

@pytest.mark.parametrize("delta_t,expected", [(1, 1), (0.5, 2), (0.01, 100), (0.001, 1000)])
def test_steps_per_unit(delta_t, expected):
    assert steps_per_unit(delta_t) == expected

def test_configure_logging(tmp_path):
    log_file = tmp_path / 'run.log'
    logger = configure_logging(logging.DEBUG, log_file)
    assert logger.name == 'StochasticIPM'

#####
# RNG
#####
def test_generators_reproducible():
    first = [torch.rand(3, generator=g) for g in spawn_generators(5, 4)]
    second = [torch.rand(3, generator=g) for g in spawn_generators(5, 4)]
    for a, b in zip(first, second):
        torch.testing.assert_close(a, b)

def test_generators_distinct():
    draws = [torch.rand(3, generator=g) for g in spawn_generators(5, 4)]
    assert not torch.equal(draws[0], draws[1])
    assert not torch.equal(draws[2], draws[3])

def test_make_generator():
    a = torch.rand(2, generator=make_generator(1))
    b = torch.rand(2, generator=make_generator(1))
    torch.testing.assert_close(a, b)

def test_negative_count():
    with pytest.raises(ValueError):
        spawn_generators(1, -1)

###############
# Visualization
###############
@pytest.fixture
def paths():
    return diffusion.simulate_diffusion(1.01, 0.5, 0.01, 2.0, 10, n_sim=20,
                                        generator=make_generator(2))

def test_plots(ipm, kernel, analysis, paths):
    viz.kernel_imshow(kernel.numpy(), ipm.xs.numpy())
    viz.plot_eigenvectors(ipm.xs.numpy(), analysis.u.numpy(), analysis.v.numpy())
    fig, ax = viz.plot_trajectory_bands(paths, label='Diffusion')
    viz.plot_trajectory_bands(np.exp(paths), ax=ax, label='Exp', log=True)
    viz.plot_final_histogram(paths)
    plt.close('all')

def test_growth_plot():
    rng = np.random.default_rng(0)
    size = np.sort(rng.uniform(0, 5, 100))
    df = pd.DataFrame({'size': size, 'size1': 1 + 0.5*size + rng.normal(0, 0.3, 100)})
    fig, axes = viz.plot_growth_diagnostics(diagnostics.growth_diagnostics(df),
                                            diagnostics.compare_growth_fits(df))
    assert axes.shape == (2, 2)
    plt.close('all')
