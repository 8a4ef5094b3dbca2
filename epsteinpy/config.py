"""Tolerance configuration.

:class:`ToleranceSpec` replaces module-level tolerance constants: every
evaluation receives one explicitly (or builds the default), so no process-wide
state influences a result.
"""

import json
import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

log = logging.getLogger(__name__)


class ToleranceSpec(BaseModel):
    """Accuracy targets and iteration budgets of one evaluation.

    Attributes
    ----------
    relative:
        Target relative error of the returned value.
    safety:
        Factor applied to the truncation target of each lattice sum, so that
        the two tails together stay below ``relative``.
    ewald_scale:
        Splitting parameter in units of ``V ** (1 / d)``.
    max_radius:
        Largest enumeration radius, in units of the splitting parameter.
    max_points:
        Lattice point budget of a single sum.
    expansion_radius:
        Orders closer than this to a nonpositive integer are evaluated with the
        pole-free Laurent expansion.
    pole_tolerance:
        Orders closer than this to a pole are treated as exactly singular.
    max_iterations:
        Budget of continued fraction and power series loops.
    quadrature_max_level:
        Largest tanh-sinh refinement level (step ``2 ** -level``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    relative: float = Field(default=1e-14, gt=0.0, lt=1.0)
    safety: float = Field(default=0.5, gt=0.0, le=1.0)
    ewald_scale: float = Field(default=1.0, gt=0.0)
    max_radius: float = Field(default=64.0, gt=0.0)
    max_points: int = Field(default=5_000_000, ge=1)
    expansion_radius: float = Field(default=0.25, gt=0.0, lt=0.5)
    pole_tolerance: float = Field(default=1e-12, ge=0.0)
    max_iterations: int = Field(default=5000, ge=10)
    quadrature_max_level: int = Field(default=12, ge=3, le=20)

    @model_validator(mode="after")
    def pole_tolerance_inside_expansion(self) -> Self:
        if self.pole_tolerance >= self.expansion_radius:
            raise ValueError(
                f"pole_tolerance ({self.pole_tolerance}) must be smaller than "
                f"expansion_radius ({self.expansion_radius})"
            )
        return self

    @classmethod
    def from_file(cls, path_config: str | Path) -> "ToleranceSpec":
        """Read a tolerance specification from a JSON or YAML file.

        The file may either hold the fields at top level or below a
        ``tolerance`` key.
        """
        path_config = Path(path_config)
        match path_config.suffix:
            case ".json":
                with open(path_config) as data:
                    config = json.load(data)
            case ".yaml" | ".yml":
                with open(path_config) as data:
                    config = yaml.safe_load(data)
            case _:
                raise ValueError(
                    "The provided tolerance file needs to be a json or yaml file!"
                )
        if config is None:
            raise ValueError(f"Could not read tolerance file {path_config}.")
        if "tolerance" in config:
            config = config["tolerance"]
        log.debug(f"Tolerance specification read from {path_config}: {config}")
        return cls(**config)


DEFAULT_TOLERANCE = ToleranceSpec()


def resolve_tolerance(tolerance: "ToleranceSpec | float | None") -> ToleranceSpec:
    """Return a :class:`ToleranceSpec` for the value accepted by the entry points.

    ``None`` gives the default, a float overrides only the relative tolerance.
    """
    if tolerance is None:
        return DEFAULT_TOLERANCE
    if isinstance(tolerance, ToleranceSpec):
        return tolerance
    return ToleranceSpec(relative=float(tolerance))
