"""causal_tables: synthetic data with known causal structure and exact ground truth.

Main entrypoints: `StructuralCausalModel(dgp, treatment, response, causes)`,
`scm.rand(n)` and `condensity(scm, table, name)`.
"""

from .errors import CausalTablesError, ValidationError, GeneratorError, UnsupportedOperationError, ShapeError
from .graph import parents, children, confounders, mediators, instruments, is_acyclic
from .distributions import convolve, point_mass
from .summaries import NetworkSummary, Sum, Mean, Product, OrderStatistics, Friends
from .networks import RandomGraphConfig, random_graph, erdos_renyi
from .table import CausalTable
from .dgp import StepKind, Step, Environment, Path, DataGeneratingProcess
from .scm import StructuralCausalModel, rand
from .density import condensity, conmean, convar, propensity
from .interventions import intervene, treat_all, treat_none

__all__ = [
    "CausalTablesError",
    "ValidationError",
    "GeneratorError",
    "UnsupportedOperationError",
    "ShapeError",
    "parents",
    "children",
    "confounders",
    "mediators",
    "instruments",
    "is_acyclic",
    "convolve",
    "point_mass",
    "NetworkSummary",
    "Sum",
    "Mean",
    "Product",
    "OrderStatistics",
    "Friends",
    "RandomGraphConfig",
    "random_graph",
    "erdos_renyi",
    "CausalTable",
    "StepKind",
    "Step",
    "Environment",
    "Path",
    "DataGeneratingProcess",
    "StructuralCausalModel",
    "rand",
    "condensity",
    "conmean",
    "convar",
    "propensity",
    "intervene",
    "treat_all",
    "treat_none",
]
