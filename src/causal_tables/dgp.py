from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union
import numpy as np

from . import distributions as D
from .errors import GeneratorError, ValidationError
from .summaries import NetworkSummary
from .utils import Seed, rng

Array = np.ndarray
logger = logging.getLogger(__name__)


class StepKind(str, Enum):
    """What a step's generator returns, and therefore how its value is realised."""
    DISTRIBUTION = "distribution"
    TRANSFORM = "transform"
    OPAQUE_RANDOM = "opaque_random"
    NETWORK_SUMMARY = "network_summary"


class Environment(Mapping):
    """Values bound so far during a single `rand` or `condensity` call.

    Append-only: a name can be bound once. Generators read it like a dict
    (`env["W"]`) or by attribute (`env.W`). `n` is the number of rows and `rng`
    the generator of the current draw (None while recovering densities).
    """

    def __init__(self, n: int, rng: Optional[np.random.Generator] = None):
        self.n = n
        self.rng = rng
        self._values: Dict[str, Any] = {}

    def bind(self, name: str, value: Any) -> None:
        if name in self._values:
            raise ValidationError(f"`{name}` is already bound in this environment.")
        self._values[name] = value

    def __getitem__(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            raise KeyError(f"`{name}` is not bound; steps may only refer to earlier steps (bound: {list(self._values)})") from None

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"`{name}` is not bound in this environment") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Environment(n={self.n}, names={list(self._values)})"


@dataclass(frozen=True)
class Step:
    name: str
    kind: StepKind
    generator: Callable[[Environment], Any]

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name:
            raise ValidationError(f"Step names must be non-empty strings, got {self.name!r}.")
        try:
            object.__setattr__(self, "kind", StepKind(self.kind))
        except ValueError:
            kinds = [k.value for k in StepKind]
            raise ValidationError(f"Step `{self.name}` has kind {self.kind!r}; expected one of {kinds}.") from None
        if not callable(self.generator):
            raise ValidationError(f"Step `{self.name}` needs a callable generator.")


@dataclass
class Path:
    """Everything realised by one pass through a DGP, in step order."""
    values: Dict[str, Any]
    summaries: Dict[str, NetworkSummary] = field(default_factory=dict)
    n: int = 0


StepLike = Union[Step, Tuple[str, Union[StepKind, str], Callable[[Environment], Any]]]


class DataGeneratingProcess:
    """An ordered list of steps. A step's generator may only read earlier steps."""

    def __init__(self, steps: Iterable[StepLike]):
        self.steps: List[Step] = [s if isinstance(s, Step) else Step(*s) for s in steps]
        seen = set()
        dupes = []
        for s in self.steps:
            if s.name in seen:
                dupes.append(s.name)
            seen.add(s.name)
        if dupes:
            raise ValidationError(f"Step names must be unique; repeated: {dupes}")
        self._index = {s.name: i for i, s in enumerate(self.steps)}

    @property
    def names(self) -> List[str]:
        return [s.name for s in self.steps]

    @property
    def kinds(self) -> List[StepKind]:
        return [s.kind for s in self.steps]

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __contains__(self, name: str) -> bool:
        return name in self._index

    def index(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError:
            raise ValidationError(f"`{name}` is not a step of the DataGeneratingProcess.") from None

    def step(self, name: str) -> Step:
        return self.steps[self.index(name)]

    def merge(self, other: "DataGeneratingProcess") -> "DataGeneratingProcess":
        shared = [s for s in self.names if s in other]
        if shared:
            raise ValidationError(f"Cannot merge DataGeneratingProcesses that share step names {shared}.")
        return DataGeneratingProcess(self.steps + other.steps)

    def __repr__(self) -> str:
        inner = ", ".join(f"{s.name}:{s.kind.value}" for s in self.steps)
        return f"DataGeneratingProcess([{inner}])"

    def rand(self, n: int, seed: Seed = None) -> Path:
        """Evaluate every step in order and return the realised path."""
        if int(n) != n or n < 0:
            raise ValidationError(f"n must be a non-negative integer, got {n}.")
        n = int(n)
        r = rng(seed)
        env = Environment(n, r)
        summaries: Dict[str, NetworkSummary] = {}

        for s in self.steps:
            try:
                out = s.generator(env)
                value = realize(s, out, env)
            except GeneratorError:
                raise
            except Exception as e:
                raise GeneratorError(s.name, f"{type(e).__name__}: {e}") from e
            env.bind(s.name, value)
            if isinstance(out, NetworkSummary):
                summaries[s.name] = out
            logger.debug(f"Step `{s.name}` ({s.kind.value}) -> {_describe(value)}")

        logger.info(f"Drew {n} rows from a DataGeneratingProcess with {len(self)} steps")
        return Path(values=dict(env), summaries=summaries, n=n)


def realize(s: Step, out: Any, env: Environment) -> Any:
    """Turn a generator's output into a concrete value according to the step kind."""
    n = env.n
    if s.kind is StepKind.DISTRIBUTION:
        return _draw(s, out, n, env.rng)
    if s.kind is StepKind.NETWORK_SUMMARY:
        if not isinstance(out, NetworkSummary):
            raise GeneratorError(s.name, f"expected a NetworkSummary, got {type(out).__name__}")
        return out.summarize(env)
    if s.kind is StepKind.TRANSFORM and isinstance(out, NetworkSummary):
        return out.summarize(env)
    return out

def _draw(s: Step, out: Any, n: int, r: np.random.Generator) -> Array:
    if D.is_univariate(out):
        return np.asarray(out.rvs(size=n, random_state=r))
    if D.is_distribution_sequence(out):
        if len(out) != n:
            raise GeneratorError(s.name, f"returned {len(out)} distributions for {n} rows")
        return np.array([d.rvs(random_state=r) for d in out])
    if D.is_joint(out):
        # n draws stacked as rows; draw at least once so the column count is known
        m = max(n, 1)
        sample = np.asarray(out.rvs(size=m, random_state=r))
        return sample.reshape(m, -1)[:n]
    raise GeneratorError(s.name, f"expected a distribution or a sequence of distributions, got {type(out).__name__}")

def _describe(value: Any) -> str:
    shape = getattr(value, "shape", None)
    if shape is not None:
        return f"{type(value).__name__}{tuple(shape)}"
    return type(value).__name__
