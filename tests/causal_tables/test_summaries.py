import numpy as np
import pytest
from scipy import sparse, stats

from causal_tables import Friends, Mean, OrderStatistics, Product, ShapeError, Sum, UnsupportedOperationError


@pytest.fixture
def env():
    # path graph 0 - 1 - 2 plus an isolated unit 3
    G = np.array(
        [
            [0, 1, 0, 0],
            [1, 0, 1, 0],
            [0, 1, 0, 0],
            [0, 0, 0, 0],
        ]
    )
    return {"G": G, "X": np.array([1.0, 2.0, 3.0, 4.0]), "w": np.array([1.0, 10.0, 100.0, 1000.0])}


def test_sum(env):
    assert np.allclose(Sum("X", "G").summarize(env), [2.0, 4.0, 2.0, 0.0])


def test_weighted_sum(env):
    assert np.allclose(Sum("X", "G", weights="w").summarize(env), [20.0, 301.0, 20.0, 0.0])


def test_sparse_matrix(env):
    env = dict(env, G=sparse.csr_matrix(env["G"]))
    assert np.allclose(Sum("X", "G").summarize(env), [2.0, 4.0, 2.0, 0.0])


def test_mean_and_product_without_neighbours(env):
    assert np.allclose(Mean("X", "G").summarize(env), [2.0, 2.0, 2.0, 0.0])
    assert np.allclose(Product("X", "G").summarize(env), [2.0, 3.0, 2.0, 1.0])


def test_order_statistics_are_descending_and_padded(env):
    out = OrderStatistics("X", "G").summarize(env)
    assert out.shape == (4, 2)
    assert np.allclose(out[1], [3.0, 1.0])
    assert out[0, 0] == 2.0 and np.isnan(out[0, 1])
    assert np.all(np.isnan(out[3]))


def test_friends(env):
    assert np.allclose(Friends("G").summarize(env), [1.0, 2.0, 1.0, 0.0])


def test_shape_mismatch(env):
    env = dict(env, X=np.ones(3))
    with pytest.raises(ShapeError):
        Sum("X", "G").summarize(env)


def test_closed_form_only_for_unweighted_sum(env):
    marginals = [stats.norm(0, 1)] * 4
    dists = Sum("X", "G").conditional_distribution(marginals, env["G"])
    assert np.allclose([d.var() for d in dists[:3]], [1.0, 2.0, 1.0])
    for s in (Mean("X", "G"), Product("X", "G"), OrderStatistics("X", "G"), Friends("G"), Sum("X", "G", weights="w")):
        with pytest.raises(UnsupportedOperationError):
            s.conditional_distribution(marginals, env["G"])


def test_closed_form_flag():
    assert Sum("X", "G").closed_form
    assert not Sum("X", "G", weights="w").closed_form
    assert not any(s.closed_form for s in (Mean("X", "G"), Product("X", "G"), OrderStatistics("X", "G"), Friends("G")))
