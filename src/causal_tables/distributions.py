from __future__ import annotations
from functools import reduce
from typing import Any, Callable, Dict, List, Sequence, Tuple
import numpy as np
from scipy import stats

from .errors import UnsupportedOperationError

Array = np.ndarray
Params = Dict[str, Any]
# signature: f(params_a, params_b) -> frozen distribution of the sum
ConvolutionFn = Callable[[Params, Params], Any]

# ---- Inspection ----
# Distributions are scipy.stats frozen objects. Univariate ones expose `.dist`
# (an rv_continuous / rv_discrete); joint ones (multivariate_normal, dirichlet, ...)
# only expose `rvs`.

def is_univariate(obj: Any) -> bool:
    return isinstance(getattr(obj, "dist", None), (stats.rv_continuous, stats.rv_discrete))

def is_joint(obj: Any) -> bool:
    return not is_univariate(obj) and callable(getattr(obj, "rvs", None)) and not isinstance(obj, (list, tuple, np.ndarray))

def is_distribution(obj: Any) -> bool:
    return is_univariate(obj) or is_joint(obj)

def is_distribution_sequence(obj: Any) -> bool:
    if isinstance(obj, np.ndarray):
        if obj.dtype != object or obj.ndim != 1:
            return False
    elif not isinstance(obj, (list, tuple)):
        return False
    return all(is_univariate(d) for d in obj)

def family(dist: Any) -> str:
    return dist.dist.name

def is_discrete(dist: Any) -> bool:
    return isinstance(dist.dist, stats.rv_discrete)

def parameters(dist: Any) -> Params:
    """Shape, loc and (for continuous families) scale parameters of a frozen distribution."""
    gen = dist.dist
    names = [s.strip() for s in gen.shapes.split(",")] if gen.shapes else []
    if isinstance(gen, stats.rv_discrete):
        names.append("loc")
        params: Params = {"loc": 0}
    else:
        names += ["loc", "scale"]
        params = {"loc": 0.0, "scale": 1.0}
    params.update(zip(names, dist.args))
    params.update(dist.kwds)
    return params

def point_mass(value: int = 0) -> Any:
    """Degenerate distribution at an integer value (the sum of no random variables is 0)."""
    return stats.randint(value, value + 1)

def is_point_mass(dist: Any) -> bool:
    if not is_univariate(dist) or family(dist) != "randint":
        return False
    p = parameters(dist)
    return bool(np.all(np.asarray(p["high"]) - np.asarray(p["low"]) == 1))

def unstack(dists: Any, n: int) -> List[Any]:
    """Turn a (possibly vectorised) frozen distribution into n scalar ones."""
    if is_distribution_sequence(dists):
        out = list(dists)
        if len(out) != n:
            raise ValueError(f"Expected {n} distributions, got {len(out)}.")
        return out
    if not is_univariate(dists):
        raise UnsupportedOperationError(f"Cannot split {type(dists).__name__} into per-unit distributions.")
    params = {k: np.broadcast_to(np.asarray(v), (n,)) for k, v in parameters(dists).items()}
    return [dists.dist(**{k: v[i].item() for k, v in params.items()}) for i in range(n)]

def density(dist: Any, x: Any) -> Any:
    """pmf for discrete families, pdf otherwise."""
    if is_univariate(dist) and is_discrete(dist):
        return dist.pmf(x)
    return dist.pdf(x)

# ---- Closed-form convolutions ----
# Each entry maps an ordered pair of family names to a function of both
# parameter dicts. Lookup also tries the swapped pair.

def _same(a: Any, b: Any, what: str, fa: str, fb: str) -> None:
    if not np.allclose(a, b):
        raise UnsupportedOperationError(
            f"No closed-form convolution of {fa} and {fb} with different {what} ({a} vs {b})."
        )

def _conv_norm(p: Params, q: Params):
    return stats.norm(loc=p["loc"] + q["loc"], scale=np.sqrt(p["scale"] ** 2 + q["scale"] ** 2))

def _conv_cauchy(p: Params, q: Params):
    return stats.cauchy(loc=p["loc"] + q["loc"], scale=p["scale"] + q["scale"])

def _conv_poisson(p: Params, q: Params):
    return stats.poisson(mu=p["mu"] + q["mu"], loc=p["loc"] + q["loc"])

def _conv_binom(p: Params, q: Params):
    # bernoulli is binom with n=1
    _same(p["p"], q["p"], "success probability", "binom", "binom")
    return stats.binom(n=p.get("n", 1) + q.get("n", 1), p=p["p"], loc=p["loc"] + q["loc"])

def _conv_nbinom(p: Params, q: Params):
    _same(p["p"], q["p"], "success probability", "nbinom", "nbinom")
    return stats.nbinom(n=p["n"] + q["n"], p=p["p"], loc=p["loc"] + q["loc"])

def _conv_gamma(p: Params, q: Params):
    # expon is gamma with a=1, chi2 is gamma with a=df/2 and scale 2
    _same(p["scale"], q["scale"], "scale", "gamma", "gamma")
    return stats.gamma(a=p.get("a", 1.0) + q.get("a", 1.0), loc=p["loc"] + q["loc"], scale=p["scale"])

def _conv_chi2(p: Params, q: Params):
    _same(p["scale"], q["scale"], "scale", "chi2", "chi2")
    return stats.chi2(df=p["df"] + q["df"], loc=p["loc"] + q["loc"], scale=p["scale"])

def _as_gamma(p: Params, fam: str) -> Params:
    if fam == "chi2":
        return {"a": p["df"] / 2.0, "loc": p["loc"], "scale": 2.0 * p["scale"]}
    return p

def _conv_gamma_like(fa: str, fb: str) -> ConvolutionFn:
    def f(p: Params, q: Params):
        return _conv_gamma(_as_gamma(p, fa), _as_gamma(q, fb))
    return f

CONVOLUTIONS: Dict[Tuple[str, str], ConvolutionFn] = {
    ("norm", "norm"): _conv_norm,
    ("cauchy", "cauchy"): _conv_cauchy,
    ("poisson", "poisson"): _conv_poisson,
    ("binom", "binom"): _conv_binom,
    ("bernoulli", "bernoulli"): _conv_binom,
    ("bernoulli", "binom"): _conv_binom,
    ("nbinom", "nbinom"): _conv_nbinom,
    ("chi2", "chi2"): _conv_chi2,
    ("gamma", "gamma"): _conv_gamma,
    ("expon", "expon"): _conv_gamma,
    ("expon", "gamma"): _conv_gamma,
    ("chi2", "gamma"): _conv_gamma_like("chi2", "gamma"),
    ("chi2", "expon"): _conv_gamma_like("chi2", "expon"),
}

def _shift(dist: Any, by: Any) -> Any:
    p = parameters(dist)
    p["loc"] = p["loc"] + by
    return dist.dist(**p)

def convolve_pair(a: Any, b: Any) -> Any:
    """Distribution of A + B for independent A ~ a, B ~ b."""
    if not (is_univariate(a) and is_univariate(b)):
        raise UnsupportedOperationError("Convolution is only defined for univariate distributions.")
    if is_point_mass(a):
        return _shift(b, parameters(a)["low"] + parameters(a)["loc"])
    if is_point_mass(b):
        return _shift(a, parameters(b)["low"] + parameters(b)["loc"])
    fa, fb = family(a), family(b)
    if (fa, fb) in CONVOLUTIONS:
        return CONVOLUTIONS[(fa, fb)](parameters(a), parameters(b))
    if (fb, fa) in CONVOLUTIONS:
        return CONVOLUTIONS[(fb, fa)](parameters(b), parameters(a))
    raise UnsupportedOperationError(f"No closed-form convolution is implemented for {fa} and {fb}.")

def convolve(dists: Sequence[Any]) -> Any:
    """Convolve a list of independent univariate distributions left to right.

    An empty list gives a point mass at zero; a single distribution is returned unchanged.
    """
    dists = list(dists)
    if len(dists) == 0:
        return point_mass(0)
    if len(dists) == 1:
        return dists[0]
    return reduce(convolve_pair, dists)
