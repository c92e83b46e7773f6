from models.task import CapabilityMode, StrategyDecision, TaskKind

_DOCUMENT_REASONING = StrategyDecision(mode=CapabilityMode.DOCUMENT_REASONING, enforce_schema=True)
# Live web search and structured-output enforcement are mutually exclusive on the backend.
_GROUNDED_SEARCH = StrategyDecision(mode=CapabilityMode.GROUNDED_SEARCH, enforce_schema=False)


def select_strategy(
    task: TaskKind, has_supporting_document: bool, has_target_identifier: bool
) -> StrategyDecision:
    """
    Choose the backend capability profile for a run.

    Pure function of the task and input shape. `has_target_identifier` only
    changes the prompt template for audits, never the capability mode.
    """
    if task is TaskKind.AUDIT:
        return _DOCUMENT_REASONING if has_supporting_document else _GROUNDED_SEARCH
    if task in (TaskKind.BOM, TaskKind.PART_SEARCH):
        return _GROUNDED_SEARCH
    if task is TaskKind.FIRMWARE:
        return _DOCUMENT_REASONING
    raise ValueError(f"Unsupported task: {task!r}")
