# recordops/tests/test_cli.py
import json

import pytest

from recordops import cli
from recordops.config.app_config import get_settings


@pytest.fixture
def seed(tmp_path, monkeypatch):
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("BULK_DELETE_INTER_BATCH_DELAY", "0")
    get_settings.cache_clear()
    data = {
        "employees": {
            f"e{i}": {"company": "AAA" if i < 6 else "BBB", "status": "active"} for i in range(8)
        }
    }
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    yield str(path)
    get_settings.cache_clear()


def _base(seed):
    return ["--collection", "employees", "--seed", seed, "--where", "company", "==", "AAA"]


def test_preview_lists_matches(seed, capsys):
    assert cli.main(_base(seed) + ["--preview"]) == 0
    out = capsys.readouterr().out
    assert "6 record(s) in 'employees' match" in out
    assert "e0:" in out


def test_preview_writes_csv(seed, tmp_path, capsys):
    target = tmp_path / "out.csv"
    assert cli.main(_base(seed) + ["--preview", "--csv", str(target)]) == 0
    lines = target.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 7
    assert "Wrote" in capsys.readouterr().out


def test_delete_with_yes_prints_stats(seed, capsys):
    rc = cli.main(_base(seed) + ["--yes", "--batch-size", "4", "--retry-delay", "0"])
    assert rc == 0
    out = capsys.readouterr().out
    assert "batch 2/2" in out
    stats = json.loads(out[out.index("{"):])
    assert (stats["found"], stats["deleted"], stats["failed"]) == (6, 6, 0)
    assert stats["batches_processed"] == 2


def test_dry_run_skips_confirmation(seed, capsys, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda *_: pytest.fail("prompted on dry run"))
    assert cli.main(_base(seed) + ["--dry-run"]) == 0
    stats = json.loads(capsys.readouterr().out.split("match\n", 1)[1])
    assert stats["found"] == 6
    assert stats["deleted"] == 0


def test_declined_confirmation_aborts(seed, capsys, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda *_: "no")
    assert cli.main(_base(seed)) == 1
    assert "aborted" in capsys.readouterr().out


def test_bad_operator_is_usage_error(seed, capsys):
    argv = ["--collection", "employees", "--seed", seed, "--where", "company", "~", "AAA"]
    assert cli.main(argv) == 2
    assert "unknown operator" in capsys.readouterr().err


def test_validation_error_exit_code(seed, capsys):
    argv = ["--collection", "employees", "--seed", seed, "--where", "company", "==", ""]
    assert cli.main(argv) == 2
    assert "value is required" in capsys.readouterr().err
