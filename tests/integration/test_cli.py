import json
from pathlib import Path

import pytest

from cli.main import main


def test_cli_runs_preset_with_overrides(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    main(["--preset", "separable-sigmoid-sgd", "--epochs", "2", "--verbosity", "none"])
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])

    run_dir = Path("runs/separable-sigmoid-sgd")
    assert payload["epochs"] == 2
    assert Path(payload["metrics"]) == run_dir / "metrics_train.jsonl"
    assert (run_dir / "metrics.jsonl").exists()
    assert (run_dir / "manifest.json").exists()


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list-presets"])
    assert excinfo.value.code == 0
    names = capsys.readouterr().out.split()
    assert "blobs-softmax-adam" in names
    assert "blobs-relu-sgd" in names


def test_cli_merges_partial_yaml_override_and_dumps_config(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    override = tmp_path / "override.yaml"
    override.write_text("train:\n  epochs: 1\n  batch_size: 4\n  verbosity: none\n")
    dump = tmp_path / "resolved" / "config.json"

    main(
        [
            "--preset",
            "sine-regression",
            "--config",
            str(override),
            "--seed",
            "5",
            "--run-dir",
            str(tmp_path / "sine"),
            "--dump-config",
            str(dump),
        ]
    )

    resolved = json.loads(dump.read_text())
    assert resolved["train"]["epochs"] == 1
    assert resolved["train"]["batch_size"] == 4
    assert resolved["train"]["seed"] == 5
    assert resolved["data"]["options"]["seed"] == 5
    assert resolved["model"]["layers"][0]["n_out"] == 16
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert payload["epochs"] == 1
    assert (tmp_path / "sine" / "summary.json").exists()
