"""Ground truth: the exact conditional distribution of a DGP step given a table.

The generators of the DGP are replayed against the columns of a CausalTable
instead of against freshly drawn values. If a column was replaced (for
instance by an intervention on treatment), every later step sees the
replacement, which is what makes counterfactual ground truth possible.
"""
from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Any, Callable
import numpy as np

from . import distributions as D
from .dgp import Environment, Step, StepKind
from .errors import GeneratorError, UnsupportedOperationError, ValidationError
from .summaries import NetworkSummary
from .table import CausalTable
from .utils import collect_columns

if TYPE_CHECKING:
    from .scm import StructuralCausalModel

Array = np.ndarray
logger = logging.getLogger(__name__)

def _restricted_environment(scm: "StructuralCausalModel", table: CausalTable, pos: int) -> Environment:
    source = table.environment()
    env = Environment(table.nrow)
    for s in scm.dgp.steps[:pos]:
        value = collect_columns(source, s.name)
        if value is not None:
            env.bind(s.name, value)
    return env

def _generate(s: Step, env: Environment) -> Any:
    try:
        return s.generator(env)
    except Exception as e:
        raise GeneratorError(s.name, f"{type(e).__name__}: {e}") from e

def condensity(scm: "StructuralCausalModel", table: CausalTable, name: str) -> Any:
    """Conditional distribution of step `name` given the steps before it in `table`.

    Returns whatever the step's generator returns for distribution steps (a
    frozen scipy.stats distribution, possibly with per-row parameters, or a
    list of n distributions). Summary steps return a list of n distributions.
    """
    pos = scm.dgp.index(name)
    s = scm.dgp.steps[pos]
    if s.kind is StepKind.OPAQUE_RANDOM:
        raise UnsupportedOperationError(
            f"`{name}` is generated from randomness that cannot be reconstructed from data; it has no conditional density."
        )

    env = _restricted_environment(scm, table, pos)
    out = _generate(s, env)
    logger.debug(f"Recovering the conditional density of `{name}` ({s.kind.value}) from {len(env)} earlier steps")

    if s.kind is StepKind.DISTRIBUTION:
        if not (D.is_distribution(out) or D.is_distribution_sequence(out)):
            raise GeneratorError(name, f"expected a distribution or a sequence of distributions, got {type(out).__name__}")
        return out

    if isinstance(out, NetworkSummary):
        return _summary_density(scm, table, out, env)
    if s.kind is StepKind.TRANSFORM:
        raise UnsupportedOperationError(
            f"`{name}` is a transform that is not a network summary; its conditional density cannot be derived."
        )
    raise GeneratorError(name, f"expected a NetworkSummary, got {type(out).__name__}")

def _summary_density(scm: "StructuralCausalModel", table: CausalTable, summary: NetworkSummary, env: Environment):
    if summary.target is None or not summary.closed_form:
        # raises before the target is touched; counts and non-sum aggregates have no closed form
        return summary.conditional_distribution([], None)
    n = table.nrow
    marginals = D.unstack(condensity(scm, table, summary.target), n)
    try:
        matrix = env[summary.matrix]
    except KeyError as e:
        raise GeneratorError(summary.matrix, str(e)) from e
    return summary.conditional_distribution(marginals, matrix)

def _each(dists: Any, n: int, fn: Callable[[Any], Any]) -> Array:
    if D.is_joint(dists):
        raise UnsupportedOperationError("Row-wise moments are only available for univariate distributions.")
    if D.is_distribution_sequence(dists):
        return np.array([fn(d) for d in dists], dtype=float)
    return np.broadcast_to(np.asarray(fn(dists), dtype=float), (n,)).copy()

def conmean(scm: "StructuralCausalModel", table: CausalTable, name: str) -> Array:
    """Conditional mean of `name` for every row."""
    return _each(condensity(scm, table, name), table.nrow, lambda d: d.mean())

def convar(scm: "StructuralCausalModel", table: CausalTable, name: str) -> Array:
    """Conditional variance of `name` for every row."""
    return _each(condensity(scm, table, name), table.nrow, lambda d: d.var())

def propensity(scm: "StructuralCausalModel", table: CausalTable, name: str) -> Array:
    """(Generalized) propensity score: the conditional density or mass at the observed value of `name`."""
    dists = condensity(scm, table, name)
    observed = collect_columns(table.environment(), name)
    if observed is None:
        raise ValidationError(f"`{name}` has no observed values in the table.")
    observed = np.asarray(observed)
    if D.is_distribution_sequence(dists):
        return np.array([D.density(d, x) for d, x in zip(dists, observed)], dtype=float)
    return np.broadcast_to(np.asarray(D.density(dists, observed), dtype=float), (table.nrow,)).copy()
