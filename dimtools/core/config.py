"""
Solver configuration.

Numerical thresholds used by the preprocessor, the eigensolver and the
graph builder. They live in one frozen dataclass that is passed explicitly
to every component, so no call depends on module-level state.

YAML layout (either flat or nested under ``solver``):

    solver:
      rank_tol: 1.0e-10
      singular_tol: 1.0e-10
      symmetry_tol: 1.0e-8
      zero_tol: 1.0e-8
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from dimtools.errors import InvalidInputError


@dataclass(frozen=True)
class SolverConfig:
    """Thresholds for rank, singularity, symmetry and zero tests."""
    rank_tol: float = 1e-10      # relative, preprocessing eigenvalues / column std
    singular_tol: float = 1e-10  # relative, smallest RHS eigenvalue
    symmetry_tol: float = 1e-8   # relative to the largest absolute entry
    zero_tol: float = 1e-8       # trivial eigenpair detection

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInputError(f"{f.name} must be a number, got {value!r}")
            if not value >= 0:
                raise InvalidInputError(f"{f.name} must be non-negative, got {value!r}")
            object.__setattr__(self, f.name, float(value))

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SolverConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise InvalidInputError(
                f"Unknown solver config keys: {unknown}. Known: {sorted(known)}"
            )
        return cls(**raw)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_config(
    path: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> SolverConfig:
    """
    Load solver configuration from YAML, then apply keyword overrides.

    Args:
        path: Optional YAML file. Keys may sit at top level or under 'solver'.
        **overrides: Field values that take precedence over the file.

    Returns:
        A new SolverConfig
    """
    raw: Dict[str, Any] = {}

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Solver config not found: {config_path}")

        with open(config_path) as f:
            loaded = yaml.safe_load(f) or {}

        if not isinstance(loaded, dict):
            raise InvalidInputError(
                f"Solver config must be a mapping, got {type(loaded).__name__}"
            )
        raw = loaded.get('solver', loaded)
        if not isinstance(raw, dict):
            raise InvalidInputError("'solver' section must be a mapping")

    config = SolverConfig.from_dict(raw)
    if overrides:
        SolverConfig.from_dict(overrides)  # key check
        config = replace(config, **overrides)
    return config


def resolve_config(config: Optional[SolverConfig]) -> SolverConfig:
    """Return the given config, or a fresh default one."""
    if config is None:
        return SolverConfig()
    if not isinstance(config, SolverConfig):
        raise InvalidInputError(
            f"config must be a SolverConfig, got {type(config).__name__}"
        )
    return config
