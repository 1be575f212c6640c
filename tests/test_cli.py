"""
Tests for the command-line front end in scripts/flowlens_cli.py.
"""

import json
import os
import sys

import pytest


def _ensure_scripts_on_path():
    repo_root = os.path.dirname(os.path.dirname(__file__))
    scripts_dir = os.path.join(repo_root, "scripts")
    if scripts_dir not in sys.path:
        sys.path.insert(0, scripts_dir)


_ensure_scripts_on_path()

import flowlens_cli  # noqa: E402

SCRIPTS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "scripts")
CONTACTS = os.path.join(SCRIPTS_DIR, "sample_contacts_sync.yaml")
TYPED = os.path.join(SCRIPTS_DIR, "sample_typed_ports.yaml")


def run(capsys, *argv):
    code = flowlens_cli.main(list(argv))
    return code, capsys.readouterr()


class TestCli:
    def test_version(self, capsys):
        from flowlens_core import __version__

        code, out = run(capsys, "--version")
        assert code == 0
        assert out.out.strip() == __version__

    def test_list_samples(self, capsys):
        code, out = run(capsys, "--list-samples")
        samples = json.loads(out.out)

        assert code == 0
        assert CONTACTS in samples or os.path.realpath(CONTACTS) in samples

    def test_missing_path(self, capsys):
        code, out = run(capsys)
        assert code == 2
        assert "missing workflow path" in out.err

    def test_unreadable_path(self, capsys, tmp_path):
        code, out = run(capsys, str(tmp_path / "nope.yaml"))
        assert code == 2

    def test_analyze_sample(self, capsys):
        code, out = run(capsys, CONTACTS)
        report = json.loads(out.out)

        assert code == 0
        assert {i["category"] for i in report["issues"]} >= {"external-call", "orphan"}
        assert report["after"]["errorProbability"] < report["before"]["errorProbability"]
        assert "graph" not in report

    def test_analyze_writes_out_file(self, capsys, tmp_path):
        out_path = tmp_path / "report.json"
        code, _ = run(capsys, CONTACTS, "--include-graph", "--out", str(out_path))
        report = json.loads(out_path.read_text(encoding="utf-8"))

        assert code == 0
        optimized = {n["id"] for n in report["graph"]["nodes"] if n["optimized"]}
        assert "node-5" in optimized

    def test_stats(self, capsys):
        code, out = run(capsys, CONTACTS, "--stats")
        stats = json.loads(out.out)

        assert code == 0
        assert stats["nodes"] == 6
        assert stats["edges"] == 4
        assert stats["components"] == 2
        assert stats["acyclic"] is True
        assert stats["kinds"]["integration"] == 2

    def test_validate_strict(self, capsys):
        code, out = run(capsys, TYPED, "--validate", "--strict")
        payload = json.loads(out.out)

        assert code == 1
        assert payload["rejected"] == ["e3"]
        assert payload["results"]["e1"] == {"ok": True}

    def test_validate_with_config(self, capsys, tmp_path):
        cfg = tmp_path / "cfg.yaml"
        cfg.write_text("allow_number_to_string: true\n", encoding="utf-8")
        code, out = run(capsys, TYPED, "--validate", "--strict", "--config", str(cfg))

        assert code == 0
        assert json.loads(out.out)["rejected"] == []

    def test_cycle(self, capsys, tmp_path):
        path = tmp_path / "loop.yaml"
        path.write_text(
            "nodes: [{id: a, kind: action}, {id: b, kind: data}]\n"
            "edges: [{source: a, target: b}, {source: b, target: a}]\n",
            encoding="utf-8",
        )
        code, out = run(capsys, str(path))
        assert code == 2
        assert "cycle detected" in out.err

        code, out = run(capsys, str(path), "--on-cycle", "report", "--strict")
        assert code == 1
        assert json.loads(out.out)["summary"]["critical"] == 1

    def test_export_graphml(self, capsys, tmp_path):
        pytest.importorskip("networkx")
        path = tmp_path / "flow.graphml"
        code, _ = run(capsys, CONTACTS, "--export-graphml", str(path))

        assert code == 0
        assert path.exists()

    def test_export_graphml_unwritable_path(self, capsys, tmp_path):
        pytest.importorskip("networkx")
        path = tmp_path / "no-such-dir" / "flow.graphml"
        code, out = run(capsys, CONTACTS, "--export-graphml", str(path))

        assert code == 2
        assert "cannot export GraphML" in out.err

    def test_export_graphml_without_networkx(self, capsys, tmp_path, monkeypatch):
        import flowlens_core.graph as graph_module

        monkeypatch.setattr(graph_module, "HAS_NETWORKX", False)
        code, out = run(capsys, CONTACTS, "--export-graphml", str(tmp_path / "flow.graphml"))

        assert code == 2
        assert "NetworkX is required" in out.err
