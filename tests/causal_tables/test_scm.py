import numpy as np
import pytest
from scipy import stats

from causal_tables import (
    CausalTable,
    GeneratorError,
    StructuralCausalModel,
    Sum,
    ValidationError,
    erdos_renyi,
    rand,
)


def beta_bernoulli_normal():
    dgp = [
        ("W", "distribution", lambda env: stats.beta(2, 4)),
        ("A", "distribution", lambda env: [stats.bernoulli(w) for w in env.W]),
        ("Y", "distribution", lambda env: stats.norm(env.A + env.W, 1)),
    ]
    return StructuralCausalModel(dgp, "A", "Y", causes={"A": ["W"], "Y": ["A", "W"]})


def test_rand_columns_and_rows():
    """W, A and Y become data columns with one row per unit."""
    scm = beta_bernoulli_normal()
    table = rand(scm, 100, seed=0)

    assert isinstance(table, CausalTable)
    assert set(table.columns) == {"W", "A", "Y"}
    assert table.nrow == 100
    assert table.treatment == ("A",)
    assert table.response == ("Y",)
    assert table.causes["Y"] == {"A", "W"}
    assert set(np.unique(table["A"])) <= {0, 1}


@pytest.mark.parametrize("n", [0, 1, 7, 50])
def test_column_lengths_equal_n(n):
    table = beta_bernoulli_normal().rand(n, seed=1)
    assert table.nrow == n
    for name in table.columns:
        assert len(table[name]) == n


def test_rand_reproducible_with_seed():
    scm = beta_bernoulli_normal()
    t1 = scm.rand(30, seed=123)
    t2 = scm.rand(30, seed=123)
    for name in t1.columns:
        assert np.allclose(t1[name], t2[name])


def test_cyclic_causes_rejected():
    dgp = [
        ("A", "distribution", lambda env: stats.bernoulli(0.5)),
        ("Y", "distribution", lambda env: stats.norm(0, 1)),
    ]
    with pytest.raises(ValidationError):
        StructuralCausalModel(dgp, "A", "Y", causes={"A": ["Y"], "Y": ["A"]})


def test_labels_must_be_steps():
    dgp = [("A", "distribution", lambda env: stats.bernoulli(0.5))]
    with pytest.raises(ValidationError):
        StructuralCausalModel(dgp, "A", "Y")
    with pytest.raises(ValidationError):
        StructuralCausalModel(dgp + [("Y", "distribution", lambda env: stats.norm())], "A", "Y", causes={"A": [], "Y": ["Q"]})


def test_default_causes_use_unlabeled_steps():
    dgp = [
        ("W", "distribution", lambda env: stats.norm()),
        ("A", "distribution", lambda env: stats.bernoulli(0.5)),
        ("Y", "distribution", lambda env: stats.norm(env.A)),
    ]
    table = StructuralCausalModel(dgp, "A", "Y").rand(5, seed=0)
    assert table.causes == {"A": {"W"}, "Y": {"W"}}


def test_joint_distribution_is_split_into_columns():
    dgp = [
        ("Z", "distribution", lambda env: stats.multivariate_normal(mean=[0.0, 0.0])),
        ("A", "distribution", lambda env: stats.bernoulli(0.5)),
        ("Y", "distribution", lambda env: stats.norm(env.Z[:, 0] + env.A)),
    ]
    table = StructuralCausalModel(dgp, "A", "Y", causes={"A": [], "Y": ["Z", "A"]}).rand(10, seed=0)
    assert {"Z1", "Z2", "A", "Y"} == set(table.columns)
    assert table["Z1"].shape == (10,)


def test_non_distribution_steps_are_arrays():
    """Graphs, transforms and summaries are stored in `arrays`, with the summary descriptor kept."""
    dgp = [
        ("G", "opaque_random", lambda env: erdos_renyi(env.n, 0.5, seed=env.rng)),
        ("A", "distribution", lambda env: stats.bernoulli(0.5)),
        ("As", "network_summary", lambda env: Sum("A", "G")),
        ("Y", "distribution", lambda env: stats.norm(env.As, 1)),
    ]
    scm = StructuralCausalModel(dgp, "A", "Y", causes={"A": [], "Y": ["A", "As"]})
    table = scm.rand(20, seed=0)

    assert set(table.columns) == {"A", "Y"}
    assert set(table.arrays) == {"G", "As"}
    assert table.arrays["G"].shape == (20, 20)
    assert np.allclose(table.arrays["As"], table.arrays["G"] @ table["A"])
    assert table.summaries == {"As": Sum("A", "G")}


def test_arraynames_route_distribution_steps():
    dgp = [
        ("B", "distribution", lambda env: stats.norm()),
        ("A", "distribution", lambda env: stats.bernoulli(0.5)),
        ("Y", "distribution", lambda env: stats.norm()),
    ]
    table = StructuralCausalModel(dgp, "A", "Y", arraynames="B").rand(4, seed=0)
    assert "B" not in table.columns
    assert table.arrays["B"].shape == (4,)


def test_generator_error_names_failing_step():
    def boom(env):
        raise RuntimeError("bad parameter")

    dgp = [
        ("A", "distribution", lambda env: stats.bernoulli(0.5)),
        ("Y", "distribution", boom),
    ]
    with pytest.raises(GeneratorError) as info:
        StructuralCausalModel(dgp, "A", "Y").rand(3)
    assert info.value.step == "Y"
    assert "bad parameter" in str(info.value)


def test_distribution_step_must_return_a_distribution():
    dgp = [
        ("A", "distribution", lambda env: stats.bernoulli(0.5)),
        ("Y", "distribution", lambda env: 3.0),
    ]
    with pytest.raises(GeneratorError):
        StructuralCausalModel(dgp, "A", "Y").rand(3)


def test_update_arrays_recomputes_summaries():
    dgp = [
        ("G", "opaque_random", lambda env: erdos_renyi(env.n, 0.4, seed=env.rng)),
        ("A", "distribution", lambda env: stats.bernoulli(0.5)),
        ("As", "network_summary", lambda env: Sum("A", "G")),
        ("Y", "distribution", lambda env: stats.norm(env.As, 1)),
    ]
    scm = StructuralCausalModel(dgp, "A", "Y", causes={"A": [], "Y": ["A", "As"]})
    table = scm.rand(15, seed=3)
    treated = table.replace(data={**table.data, "A": np.ones(15)})

    updated = scm.update_arrays(treated)
    G = table.arrays["G"]
    assert np.allclose(updated.arrays["G"], G)
    assert np.allclose(updated.arrays["As"], G.sum(axis=1))
    # the original table still holds the sampled summary
    assert np.allclose(table.arrays["As"], G @ table["A"])


def test_summarize_with_default_causes():
    """A treatment summary inherits the treatment's parents without becoming its own parent."""
    path = np.array([[0, 1, 0], [1, 0, 1], [0, 1, 0]])
    dgp = [
        ("G", "transform", lambda env: path),
        ("W", "distribution", lambda env: stats.norm()),
        ("A", "distribution", lambda env: stats.bernoulli(0.5)),
        ("As", "network_summary", lambda env: Sum("A", "G")),
        ("Y", "distribution", lambda env: stats.norm(env.A + env.As + env.W)),
    ]
    table = StructuralCausalModel(dgp, "A", "Y").rand(3, seed=0)
    assert table.causes["A"] == {"W", "As"}

    summarized = table.summarize()
    assert summarized.treatment == ("A", "As")
    assert summarized.causes["As"] == {"W"}
    assert "As" not in summarized.causes["As"]
    assert np.allclose(summarized["As"], path @ table["A"])


def test_update_arrays_refreshes_summarized_columns():
    path = np.array([[0, 1, 0], [1, 0, 1], [0, 1, 0]])
    dgp = [
        ("G", "transform", lambda env: path),
        ("A", "distribution", lambda env: stats.bernoulli(0.5)),
        ("As", "network_summary", lambda env: Sum("A", "G")),
        ("Y", "distribution", lambda env: stats.norm(env.As, 1)),
    ]
    scm = StructuralCausalModel(dgp, "A", "Y", causes={"A": [], "Y": ["A", "As"]})
    table = scm.rand(3, seed=2).summarize()
    treated = table.replace(data={**table.data, "A": np.ones(3), "As": np.zeros(3)})

    updated = scm.update_arrays(treated)
    assert np.allclose(updated["As"], [1.0, 2.0, 1.0])
    assert np.allclose(updated.arrays["As"], [1.0, 2.0, 1.0])
    assert np.allclose(scm.conmean(updated, "Y"), [1.0, 2.0, 1.0])
