import json
from pathlib import Path

from click.testing import CliRunner

from epsteinpy.cli import cli


def test_bessel_command() -> None:
    result = CliRunner().invoke(cli, ["bessel", "--nu", "2.1", "--x", "1.2", "--y", "1.3"])
    assert result.exit_code == 0, result.output
    assert "3.6167928917" in result.output


def test_zeta_command() -> None:
    result = CliRunner().invoke(
        cli, ["zeta", "--nu", "2", "--matrix", "1", "--x", "0", "--y", "0"]
    )
    assert result.exit_code == 0, result.output
    assert "value: 3.28986813369" in result.output
    assert "error:" in result.output


def test_zeta_command_with_gram_and_tolerance_file(tmp_path: Path) -> None:
    path = tmp_path / "tolerance.json"
    path.write_text(json.dumps({"tolerance": {"relative": 1e-12}}))
    result = CliRunner().invoke(
        cli,
        [
            "zeta",
            "--nu",
            "1",
            "--matrix",
            "1,0,0;0,1,0;0,0,1",
            "--gram",
            "--x",
            "0,0,0",
            "--y",
            "0.5,0.5,0.5",
            "--tolerance",
            str(path),
        ],
    )
    assert result.exit_code == 0, result.output
    assert "value: -1.74756459463" in result.output


def test_regularized_flag() -> None:
    result = CliRunner().invoke(
        cli, ["zeta", "--nu", "1.5", "--matrix", "1", "--x", "0.3", "--y", "0", "--regularized"]
    )
    assert result.exit_code == 0, result.output


def test_invalid_lattice_fails() -> None:
    result = CliRunner().invoke(
        cli, ["zeta", "--nu", "1", "--matrix", "1,2;2,4", "--x", "0,0", "--y", "0,0"]
    )
    assert result.exit_code != 0
