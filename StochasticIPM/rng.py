"""Independent random streams for simulation realizations.

Each realization gets its own torch.Generator seeded from a child of one
numpy SeedSequence, so realizations are statistically independent and a
run can be replayed exactly from its master seed.
"""

import numpy as np
import torch

def spawn_generators(seed, n):
    """Return n independent torch generators derived from seed."""
    if n < 0:
        raise ValueError(f"Number of generators must be non-negative, got {n}.")
    children = np.random.SeedSequence(seed).spawn(n)
    generators = []
    for child in children:
        generator = torch.Generator()
        generator.manual_seed(int(child.generate_state(1, dtype=np.uint64)[0]))
        generators.append(generator)
    return generators

def make_generator(seed=None):
    """Single torch generator, seeded from the system entropy when no seed
       is given."""
    return spawn_generators(seed, 1)[0]
