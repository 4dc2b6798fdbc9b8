import logging

import numpy as np
from scipy import stats

from causal_tables import (
    StructuralCausalModel,
    Sum,
    condensity,
    conmean,
    erdos_renyi,
    intervene,
    treat_all,
)


def main():
    logging.basicConfig(level=logging.INFO)

    dgp = [
        ("G", "opaque_random", lambda env: erdos_renyi(env.n, 0.05, seed=env.rng)),
        ("W", "distribution", lambda env: stats.beta(2, 4)),
        ("A", "distribution", lambda env: stats.bernoulli(0.3)),
        ("As", "network_summary", lambda env: Sum("A", "G")),
        ("Y", "distribution", lambda env: stats.norm(env.A + env.As + env.W, 1)),
    ]
    scm = StructuralCausalModel(dgp, "A", "Y", causes={"A": ["W"], "Y": ["A", "As", "W"]})

    table = scm.rand(200, seed=0)
    print(table)
    print("Confounders:", sorted(table.confounder_names()))

    # exact distribution of the number of treated neighbours
    dists = condensity(scm, table, "As")
    print("Mean treated neighbours of unit 0:", dists[0].mean())

    treated = scm.update_arrays(intervene(table, treat_all))
    effect = np.mean(conmean(scm, treated, "Y") - conmean(scm, table, "Y"))
    print("Average effect of treating everyone:", effect)

if __name__ == "__main__":
    main()
