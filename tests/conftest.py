# conftest.py
# Shared fixtures: deterministic random sequences, a numpy-backed sketch
# engine with a fresh cache per test, and the synthetic HGT genome.

import numpy as np
import pytest

from phagecompare.cache import SignatureCache
from phagecompare.minhash import PureSketchBackend, SketchEngine


def random_dna(length, seed=0, gc=0.5):
    rng = np.random.default_rng(seed)
    p_gc = gc / 2
    p_at = (1 - gc) / 2
    return "".join(rng.choice(list("ACGT"), size=length, p=[p_at, p_gc, p_gc, p_at]))


def mutate(sequence, rate, seed=0):
    """Point substitutions at the given per-base rate"""
    rng = np.random.default_rng(seed)
    bases = list(sequence)
    for i in np.flatnonzero(rng.random(len(bases)) < rate):
        bases[i] = {"A": "C", "C": "G", "G": "T", "T": "A"}[bases[i]]
    return "".join(bases)


# ------------------------------- Fixtures ------------------------------------

@pytest.fixture
def make_dna():
    return random_dna


@pytest.fixture
def make_mutant():
    return mutate


@pytest.fixture
def pure_engine():
    engine = SketchEngine(cache=SignatureCache(), backend=PureSketchBackend())
    yield engine
    engine.close()


@pytest.fixture
def island_genome():
    """
    43 kb genome: 50% GC background with a 3 kb insert of 90% GC at [20000, 23000).

    With window=2000 / step=1000 the 42 windows are 38 x 50%, 2 x 70% (the
    flanking windows half on the insert) and 2 x 90%; only the 90% windows
    reach |z| >= 2.
    """
    background = "ATGC" * 5000
    insert = "GCGCGCGCGA" * 300
    return background + insert + background
