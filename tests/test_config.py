"""Tests for core.config."""

import pytest

from core.config import ConfigError, ConfigStore, ModelConfig


def test_defaults_cover_every_stage():
    data = ModelConfig().to_dict()
    assert set(data["models"]) == {
        "requirementAnalysis", "uiSpecSynthesis", "coding", "evaluation", "validation",
    }
    assert data["providerUrl"] == "https://api.anthropic.com"


def test_partial_update_keeps_other_models():
    store = ConfigStore()
    before = store.get()
    updated = store.update({"models": {"coding": "claude-opus-4-1"}})
    assert updated.coding == "claude-opus-4-1"
    assert updated.evaluation == before.evaluation


def test_update_provider_url():
    store = ConfigStore()
    assert store.update({"providerUrl": "http://localhost:8080"}).provider_url == "http://localhost:8080"


def test_snapshot_survives_later_updates():
    store = ConfigStore()
    snapshot = store.get()
    store.update({"models": {"coding": "other-model"}})
    assert snapshot.coding != "other-model"


@pytest.mark.parametrize("partial", [
    {"models": {"painting": "x"}},
    {"models": {"coding": ""}},
    {"models": {"coding": 3}},
    {"models": "coding"},
    {"temperature": 0.5},
    ["coding"],
])
def test_invalid_update_is_rejected_atomically(partial):
    store = ConfigStore()
    before = store.get()
    with pytest.raises(ConfigError):
        store.update(partial)
    assert store.get() == before


def test_reset_restores_defaults():
    store = ConfigStore()
    store.update({"models": {"validation": "tiny-model"}, "providerUrl": "http://proxy"})
    assert store.reset() == ModelConfig()
