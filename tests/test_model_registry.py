import pytest

from models.task import CapabilityMode
from orchestrator.model_registry import ModelRegistry

pytestmark = pytest.mark.unit


def test_default_registry_covers_both_modes():
    registry = ModelRegistry.from_yaml()
    assert registry.model_for(CapabilityMode.DOCUMENT_REASONING) == "gemini-3-pro-preview"
    assert registry.model_for(CapabilityMode.GROUNDED_SEARCH) == "gemini-2.5-flash"
    assert registry.profile(CapabilityMode.DOCUMENT_REASONING).thinking_budget == 4096
    assert registry.profile(CapabilityMode.GROUNDED_SEARCH).thinking_budget is None


def test_overrides_return_a_copy():
    registry = ModelRegistry.from_yaml()
    overridden = registry.with_overrides(reasoning_model="gemini-2.5-pro", thinking_budget=1024)
    profile = overridden.profile(CapabilityMode.DOCUMENT_REASONING)
    assert profile.model_name == "gemini-2.5-pro"
    assert profile.thinking_budget == 1024
    assert registry.model_for(CapabilityMode.DOCUMENT_REASONING) == "gemini-3-pro-preview"


def test_missing_file(tmp_path):
    with pytest.raises(ValueError, match="not found"):
        ModelRegistry.from_yaml(str(tmp_path / "nope.yaml"))


@pytest.mark.parametrize(
    "content",
    [
        "",
        "models: {}\n",
        "capabilities:\n  document_reasoning:\n    model: m1\n",
        "capabilities:\n  document_reasoning:\n    model: m1\n  grounded_search: {}\n",
        "capabilities:\n  telepathy:\n    model: m1\n",
    ],
)
def test_invalid_registry(tmp_path, content):
    path = tmp_path / "registry.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError):
        ModelRegistry.from_yaml(str(path))
