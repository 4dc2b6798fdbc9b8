import numpy as np
import pytest

from causal_tables import RandomGraphConfig, ValidationError, erdos_renyi, random_graph


def test_undirected_graph_is_symmetric_without_loops():
    adj = random_graph(30, RandomGraphConfig(edge_prob=0.3), seed=0)
    assert adj.shape == (30, 30)
    assert adj.dtype == np.int8
    assert np.array_equal(adj, adj.T)
    assert np.all(np.diag(adj) == 0)
    assert set(np.unique(adj)) <= {0, 1}


def test_directed_and_weighted():
    w = random_graph(20, RandomGraphConfig(edge_prob=0.5, directed=True, weight_scale=2.0), seed=1)
    assert w.dtype == float
    assert np.all(w >= 0)
    assert np.all(np.diag(w) == 0)
    assert not np.array_equal(w != 0, (w != 0).T)


def test_edge_probability_extremes():
    assert random_graph(10, RandomGraphConfig(edge_prob=0.0), seed=0).sum() == 0
    full = erdos_renyi(10, 1.0, seed=0)
    assert full.sum() == 10 * 9


def test_reproducible_with_seed():
    assert np.array_equal(erdos_renyi(15, 0.2, seed=42), erdos_renyi(15, 0.2, seed=42))


def test_invalid_config():
    with pytest.raises(ValidationError):
        RandomGraphConfig(edge_prob=1.5)
    with pytest.raises(ValidationError):
        RandomGraphConfig(weight_scale=0.0)
    with pytest.raises(ValidationError):
        random_graph(-1)
