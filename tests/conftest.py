import torch
import pytest

from StochasticIPM.config import Config
from StochasticIPM.kernels import IPM
from StochasticIPM.rng import make_generator
from StochasticIPM.vital_rates import _VitalRates, Monocarp, SizeStructured

class ConstantRates(_VitalRates):
    """Size independent rates with no growth, for tests that need the
       outcome of a step to be predictable."""
    natural_range = (0, 10)

    def __init__(self, surv=0.5, fec=0.0, recruit_size=1.0, sd=0.5):
        self.surv = surv
        self.fec = fec
        self.recruit_size = recruit_size
        self.growth_sd = sd
        self.recruit_sd = sd

    def survival(self, x, z=0):
        return self.surv*torch.ones_like(torch.as_tensor(x))

    def fecundity(self, x, z=0):
        return self.fec*torch.ones_like(torch.as_tensor(x))

    def growth_mean(self, x, z=0):
        return x + z

    def recruit_mean(self, x, z=0):
        return self.recruit_size*torch.ones_like(torch.as_tensor(x))


@pytest.fixture
def config():
    return Config()

@pytest.fixture
def small_config():
    return Config(n_bins=50, tol=1e-10)

@pytest.fixture
def size_model():
    return SizeStructured()

@pytest.fixture
def monocarp():
    return Monocarp()

@pytest.fixture
def ipm(config: Config, size_model):
    return IPM(config, size_model)

@pytest.fixture
def small_ipm(small_config: Config, size_model):
    return IPM(small_config, size_model)

@pytest.fixture
def monocarp_ipm(monocarp):
    L, U = monocarp.natural_range
    return IPM(Config(min_x=L, max_x=U, n_bins=100), monocarp)

@pytest.fixture
def kernel(ipm: IPM):
    return ipm.build_kernel()

@pytest.fixture
def analysis(ipm: IPM):
    return ipm.eigen_analysis()

@pytest.fixture
def small_analysis(small_ipm: IPM):
    return small_ipm.eigen_analysis()

@pytest.fixture
def generator():
    return make_generator(1234)

@pytest.fixture
def constant_rates():
    return ConstantRates

# Environment values shift survival and growth
@pytest.fixture(params=[-1.0, 0.0, 0.5])
def env(request):
    return request.param
