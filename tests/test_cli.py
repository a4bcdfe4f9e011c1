"""CLI parser and command behaviour tests."""

from __future__ import annotations

import sys
import textwrap
from pathlib import Path

import pytest

from typeclosure.cli import EXIT_UNRESOLVED, EXIT_USAGE, _build_parser, main


def _graph(tmp_path: Path) -> Path:
    path = tmp_path / "graph.yml"
    path.write_text(
        textwrap.dedent(
            """
            types:
              R:
                fields:
                  self: R
                  other: Other
              Other: {}
              Broken:
                fields:
                  x: X
              Derived:
                supertype: MissingBase
            """
        ),
        encoding="utf-8",
    )
    return path


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "check-graph", "g.yml", "R"])
    assert args.verbose is True
    assert args.command == "check-graph"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["check-python", "pkg.mod:Cls", "--verbose"])
    assert args.verbose is True
    assert args.targets == ["pkg.mod:Cls"]


def test_cli_collects_ignored_modules() -> None:
    parser = _build_parser()
    args = parser.parse_args(
        ["check-python", "pkg.mod:Cls", "--ignore-module", "a", "--ignore-module", "b"]
    )
    assert args.ignored_modules == ["a", "b"]


def test_check_graph_reports_success(tmp_path: Path, capsys) -> None:
    main(["--config", str(tmp_path), "check-graph", str(_graph(tmp_path)), "R"])

    out = capsys.readouterr().out
    assert "R: closure resolved (2 types)" in out


def test_check_graph_reports_offending_type(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(tmp_path), "check-graph", str(_graph(tmp_path)), "Broken"])

    assert excinfo.value.code == EXIT_UNRESOLVED
    assert "Broken: unresolvable type X" in capsys.readouterr().out


def test_supertype_anomaly_flag(tmp_path: Path, capsys) -> None:
    graph = str(_graph(tmp_path))

    with pytest.raises(SystemExit):
        main(["--config", str(tmp_path), "check-graph", graph, "Derived"])
    assert "unresolvable type MissingBase" in capsys.readouterr().out

    main(["--config", str(tmp_path), "--reproduce-supertype-anomaly", "check-graph", graph, "Derived"])
    assert "Derived: closure resolved (1 types)" in capsys.readouterr().out


def test_check_python_reports_missing_module(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(tmp_path), "check-python", "nonexistent_typeclosure_pkg:Thing"])

    assert excinfo.value.code == EXIT_UNRESOLVED
    assert "unresolvable type nonexistent_typeclosure_pkg:Thing" in capsys.readouterr().out


def test_check_python_resolves_library_classes(tmp_path: Path, capsys) -> None:
    main(["--config", str(tmp_path), "check-python", "typeclosure.models:ClosureResult"])

    assert "typeclosure.models:ClosureResult: closure resolved" in capsys.readouterr().out


def test_malformed_graph_is_usage_error(tmp_path: Path, capsys) -> None:
    path = tmp_path / "bad.yml"
    path.write_text("types: [A]\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(tmp_path), "check-graph", str(path), "A"])

    assert excinfo.value.code == EXIT_USAGE


def test_disabled_provider_is_usage_error(tmp_path: Path) -> None:
    (tmp_path / ".typeclosure.yml").write_text("providers:\n  enabled: [registry]\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(tmp_path), "check-python", "typeclosure.models:ClosureResult"])

    assert excinfo.value.code == EXIT_USAGE


def test_providers_command_lists_builtins(tmp_path: Path, capsys) -> None:
    main(["--config", str(tmp_path), "providers"])

    names = capsys.readouterr().out.split()
    assert "registry" in names
    assert "python" in names


def test_configured_recursion_limit_is_applied(tmp_path: Path, monkeypatch, capsys) -> None:
    (tmp_path / ".typeclosure.yml").write_text("walker:\n  recursion_limit: 5000\n", encoding="utf-8")
    applied: list[int] = []
    monkeypatch.setattr(sys, "setrecursionlimit", applied.append)

    main(["--config", str(tmp_path), "check-graph", str(_graph(tmp_path)), "R"])

    assert applied == [5000]
    assert "R: closure resolved" in capsys.readouterr().out


def test_recursion_limit_left_alone_by_default(tmp_path: Path, monkeypatch) -> None:
    applied: list[int] = []
    monkeypatch.setattr(sys, "setrecursionlimit", applied.append)

    main(["--config", str(tmp_path), "check-graph", str(_graph(tmp_path)), "R"])

    assert applied == []
