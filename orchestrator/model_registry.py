from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

import yaml

from models.task import CapabilityMode


@dataclass(frozen=True)
class CapabilityProfile:
    mode: CapabilityMode
    model_name: str
    thinking_budget: int | None = None
    temperature: float | None = None


@dataclass
class ModelRegistry:
    _profiles: dict[CapabilityMode, CapabilityProfile]

    @classmethod
    def from_yaml(cls, path: str | None = None) -> "ModelRegistry":
        registry_path = (
            Path(path)
            if path
            else Path(__file__).resolve().parent.parent / "config" / "model_registry.yaml"
        )
        if not registry_path.exists():
            raise ValueError(f"Model registry not found at {registry_path}")

        data = yaml.safe_load(registry_path.read_text(encoding="utf-8"))
        if not data or "capabilities" not in data:
            raise ValueError("Invalid model registry: missing capabilities")

        profiles: dict[CapabilityMode, CapabilityProfile] = {}
        for key, pdata in data["capabilities"].items():
            try:
                mode = CapabilityMode(key)
            except ValueError as exc:
                raise ValueError(f"Unknown capability mode in registry: {key}") from exc
            if not isinstance(pdata, dict) or not pdata.get("model"):
                raise ValueError(f"Missing model for capability {key}")

            budget = pdata.get("thinking_budget")
            temperature = pdata.get("temperature")
            profiles[mode] = CapabilityProfile(
                mode=mode,
                model_name=str(pdata["model"]),
                thinking_budget=int(budget) if budget is not None else None,
                temperature=float(temperature) if temperature is not None else None,
            )

        missing = [m.value for m in CapabilityMode if m not in profiles]
        if missing:
            raise ValueError(f"Model registry missing capabilities: {missing}")

        return cls(_profiles=profiles)

    def profile(self, mode: CapabilityMode) -> CapabilityProfile:
        return self._profiles[mode]

    def model_for(self, mode: CapabilityMode) -> str:
        return self._profiles[mode].model_name

    def with_overrides(
        self,
        *,
        reasoning_model: str | None = None,
        search_model: str | None = None,
        thinking_budget: int | None = None,
    ) -> "ModelRegistry":
        """Return a copy with environment overrides applied."""
        profiles = dict(self._profiles)
        reasoning = profiles[CapabilityMode.DOCUMENT_REASONING]
        if reasoning_model:
            reasoning = replace(reasoning, model_name=reasoning_model)
        if thinking_budget is not None:
            reasoning = replace(reasoning, thinking_budget=thinking_budget)
        profiles[CapabilityMode.DOCUMENT_REASONING] = reasoning
        if search_model:
            profiles[CapabilityMode.GROUNDED_SEARCH] = replace(
                profiles[CapabilityMode.GROUNDED_SEARCH], model_name=search_model
            )
        return ModelRegistry(_profiles=profiles)
