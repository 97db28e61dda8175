"""End-to-end tests over a small data directory: service, CLI, and config."""

import json
import tempfile
from pathlib import Path

import yaml
from click.testing import CliRunner

from kindex.cli import cli
from kindex.config import DEFAULT_CONFIG, load_config
from kindex.service import KnowledgeService


def _write(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def _make_data(root: Path) -> None:
    _write(root / "sessions" / "2026" / "01" / "s1.json", {
        "id": "s1",
        "createdAt": "2026-01-05T10:00:00Z",
        "summary": {"title": "Add OAuth login"},
        "tags": ["auth", "api"],
    })
    _write(root / "sessions" / "2026" / "02" / "s2.json", {
        "id": "s2",
        "createdAt": "2026-02-01T10:00:00Z",
        "summary": {"title": "Refresh tokens"},
        "tags": ["auth"],
        "resumedFrom": "s1",
    })
    _write(root / "sessions" / "2026" / "02" / "s3.json", {
        "id": "s3",
        "createdAt": "2026-02-02T10:00:00Z",
        "tags": ["auth"],
    })
    _write(root / "decisions" / "2026" / "02" / "d1.json", {
        "id": "d1",
        "createdAt": "2026-02-03T00:00:00Z",
        "title": "Short-lived access tokens",
        "tags": ["auth"],
        "status": "approved",
        "relatedSessions": ["s2"],
    })


def _config(root: Path, **overrides) -> dict:
    return load_config(_write_config(root, **overrides))


def _write_config(root: Path, **overrides) -> Path:
    cfg = {"data_path": str(root)}
    cfg.update(overrides)
    path = root / "config.yaml"
    path.write_text(yaml.dump(cfg))
    return path


def test_load_config_merges_file_and_env(monkeypatch):
    monkeypatch.delenv("KINDEX_DATA_PATH", raising=False)
    monkeypatch.delenv("KINDEX_INDEX_MAX_AGE", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        path = _write_config(root, index={"recent_months": 2})
        cfg = load_config(path)
        assert cfg["index"]["recent_months"] == 2
        assert cfg["index"]["max_age_seconds"] == 300
        assert cfg["graph"] == DEFAULT_CONFIG["graph"]
        assert cfg["data_path"] == str(root.resolve())

        monkeypatch.setenv("KINDEX_DATA_PATH", str(root / "elsewhere"))
        monkeypatch.setenv("KINDEX_INDEX_MAX_AGE", "60")
        cfg = load_config(path)
        assert cfg["data_path"] == str((root / "elsewhere").resolve())
        assert cfg["index"]["max_age_seconds"] == 60.0


def test_service_graph_and_listings(monkeypatch):
    monkeypatch.delenv("KINDEX_DATA_PATH", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_data(root)
        service = KnowledgeService(_config(root))

        sessions = service.list_sessions({"limit": "1"})
        assert [s["id"] for s in sessions["data"]] == ["s2"]
        assert sessions["pagination"]["total"] == 2

        graph = service.get_knowledge_graph()
        assert sorted(n.id for n in graph.nodes) == ["session:s1", "session:s2", "unit:decision:d1"]
        refs = {(e.source, e.target) for e in graph.edges if e.directed}
        assert refs == {("session:s2", "session:s1"), ("unit:decision:d1", "session:s2")}

        analysis = service.analyze_knowledge_graph()
        assert analysis["clusterStats"].total_clusters == 1

        status = service.get_index_status()
        assert status["sessions"]["itemCount"] == 3
        assert (root / ".indexes" / "sessions" / "2026" / "02.json").exists()

        report = service.rebuild_all_indexes()
        assert report["sessions"]["partitionCount"] == 2
        assert report["decisions"]["itemCount"] == 1


def test_cli_commands(monkeypatch):
    monkeypatch.delenv("KINDEX_DATA_PATH", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_data(root)
        config_path = str(_write_config(root))
        runner = CliRunner()

        result = runner.invoke(cli, ["-c", config_path, "index", "rebuild"])
        assert result.exit_code == 0, result.output
        assert "Rebuild complete" in result.output

        result = runner.invoke(cli, ["-c", config_path, "sessions", "--json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert [s["id"] for s in payload["data"]] == ["s2", "s1"]

        result = runner.invoke(cli, ["-c", config_path, "graph", "--json", "--entity", "session", "--focus", "session:s1"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert {n["id"] for n in payload["nodes"]} == {"session:s1", "session:s2"}
        assert payload["clusterStats"]["totalClusters"] == 1

        result = runner.invoke(cli, ["-c", config_path, "index", "status"])
        assert result.exit_code == 0, result.output
        assert "sessions" in result.output


def test_cli_init_creates_layout():
    with tempfile.TemporaryDirectory() as tmpdir:
        target = Path(tmpdir) / "kb"
        result = CliRunner().invoke(cli, ["init", "--path", str(target)])
        assert result.exit_code == 0, result.output
        for d in ["sessions", "decisions", "patterns", "rules", ".indexes"]:
            assert (target / d).is_dir()
        cfg = yaml.safe_load((target / "config.yaml").read_text())
        assert cfg["data_path"] == str(target.resolve())


def test_cli_renders_bracketed_record_text(monkeypatch):
    monkeypatch.delenv("KINDEX_DATA_PATH", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(root / "sessions" / "2026" / "03" / "s1.json", {
            "id": "s1",
            "createdAt": "2026-03-01T10:00:00Z",
            "title": "Handle [/] in parser",
            "tags": ["[bold]", "parser"],
        })
        _write(root / "sessions" / "2026" / "03" / "s2.json", {
            "id": "s2",
            "createdAt": "2026-03-02T10:00:00Z",
            "title": "[red]ok[/red]",
            "tags": ["parser"],
        })
        _write(root / "decisions" / "2026" / "03" / "d1.json", {
            "id": "d1",
            "createdAt": "2026-03-03T00:00:00Z",
            "title": "Keep [/] literal",
        })
        config_path = str(_write_config(root))
        runner = CliRunner()

        result = runner.invoke(cli, ["-c", config_path, "sessions"])
        assert result.exit_code == 0, result.output
        assert "[/]" in result.output
        assert "[red]ok[/red]" in result.output

        result = runner.invoke(cli, ["-c", config_path, "decisions"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["-c", config_path, "graph"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["-c", config_path, "tags"])
        assert result.exit_code == 0, result.output
        assert "[bold]" in result.output


def test_cli_limit_defaults_to_config(monkeypatch):
    monkeypatch.delenv("KINDEX_DATA_PATH", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_data(root)
        config_path = str(_write_config(root, listing={"default_limit": 1}))
        runner = CliRunner()

        result = runner.invoke(cli, ["-c", config_path, "sessions", "--json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["pagination"]["limit"] == 1
        assert [s["id"] for s in payload["data"]] == ["s2"]

        result = runner.invoke(cli, ["-c", config_path, "sessions", "--json", "--limit", "5"])
        assert json.loads(result.output)["pagination"]["limit"] == 5


def test_tag_analytics_through_service_and_cli(monkeypatch):
    monkeypatch.delenv("KINDEX_DATA_PATH", raising=False)
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _make_data(root)
        service = KnowledgeService(_config(root))

        assert service.get_tag_stats() == [{"name": "auth", "count": 3}, {"name": "api", "count": 1}]
        network = service.get_tag_network()
        assert network["edges"] == [{"source": "api", "target": "auth", "weight": 1}]

        config_path = str(root / "config.yaml")
        result = CliRunner().invoke(cli, ["-c", config_path, "tags", "--network", "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["edges"] == network["edges"]

        result = CliRunner().invoke(cli, ["-c", config_path, "tags", "--json", "--limit", "1"])
        assert json.loads(result.output) == {"tags": [{"name": "auth", "count": 3}]}
