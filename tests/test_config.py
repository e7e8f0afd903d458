from __future__ import annotations

from pathlib import Path

import pytest

from knncf.config import BaselineConfig, KNNConfig, load_config, override


def test_defaults() -> None:
    cfg = KNNConfig()
    assert (cfg.sim, cfg.user_based, cfg.k, cfg.min_k, cfg.n_jobs) == ("msd", True, 40, 1, 1)


@pytest.mark.parametrize("kwargs", [{"k": 0}, {"min_k": -1}, {"n_jobs": 0}, {"sim": "nope"}])
def test_invalid_options_rejected(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        KNNConfig(**kwargs)


def test_load_yaml_sections(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("knn:\n  sim: cosine\n  user_based: false\n  k: 5\nbaseline:\n  epochs: 3\n")
    knn_cfg, baseline_cfg = load_config(path)
    assert knn_cfg == KNNConfig(sim="cosine", user_based=False, k=5)
    assert baseline_cfg == BaselineConfig(epochs=3)


def test_load_yaml_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")
    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(bad)


def test_override_skips_none() -> None:
    cfg = override(KNNConfig(), k=3, sim=None)
    assert cfg.k == 3
    assert cfg.sim == "msd"
