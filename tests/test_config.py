import json
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from epsteinpy.config import DEFAULT_TOLERANCE, ToleranceSpec, resolve_tolerance


def test_defaults() -> None:
    spec = ToleranceSpec()
    assert spec.relative == 1e-14
    assert spec.ewald_scale == 1.0
    assert spec.pole_tolerance < spec.expansion_radius


def test_resolve_tolerance() -> None:
    assert resolve_tolerance(None) is DEFAULT_TOLERANCE
    assert resolve_tolerance(1e-8).relative == 1e-8
    spec = ToleranceSpec(max_points=100)
    assert resolve_tolerance(spec) is spec


@pytest.mark.parametrize(
    "fields",
    [
        {"relative": 0.0},
        {"relative": 2.0},
        {"expansion_radius": 0.6},
        {"expansion_radius": 0.1, "pole_tolerance": 0.2},
        {"quadrature_max_level": 40},
        {"unknown": 1},
    ],
)
def test_invalid_fields(fields: dict) -> None:
    with pytest.raises(ValidationError):
        ToleranceSpec(**fields)


def test_frozen() -> None:
    spec = ToleranceSpec()
    with pytest.raises(ValidationError):
        spec.relative = 1e-3


def test_from_json(tmp_path: Path) -> None:
    path = tmp_path / "tolerance.json"
    path.write_text(json.dumps({"relative": 1e-10, "max_points": 1000}))
    spec = ToleranceSpec.from_file(path)
    assert spec.relative == 1e-10
    assert spec.max_points == 1000


def test_from_yaml_with_section(tmp_path: Path) -> None:
    path = tmp_path / "tolerance.yaml"
    path.write_text(yaml.safe_dump({"tolerance": {"ewald_scale": 1.5, "safety": 0.25}}))
    spec = ToleranceSpec.from_file(str(path))
    assert spec.ewald_scale == 1.5
    assert spec.safety == 0.25


def test_from_file_errors(tmp_path: Path) -> None:
    path = tmp_path / "tolerance.toml"
    path.write_text("relative = 1e-10\n")
    with pytest.raises(ValueError):
        ToleranceSpec.from_file(path)

    empty = tmp_path / "empty.yml"
    empty.write_text("")
    with pytest.raises(ValueError):
        ToleranceSpec.from_file(empty)
