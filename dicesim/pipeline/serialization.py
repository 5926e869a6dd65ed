"""
Serialization of transform pipelines.

Steps are saved as flat records carrying ``type``, ``id``, ``enabled`` and
the fields of their variant, with symbols written as camelCase aggregate
field names (``hollowHits``). Loading accepts any symbol spelling.
"""

from typing import Any, Optional

from catchery import log_warning

from dicesim.core.constants import Symbol
from dicesim.pipeline.pipeline import Pipeline
from dicesim.pipeline.steps import (
    AddSymbols,
    CombatSwitch,
    ElitePromotion,
    PipelineStep,
    SwitchSymbols,
    SymbolCost,
)


def _symbol_map_to_dict(values: dict[Symbol, int]) -> dict[str, int]:
    return {symbol.camel_field: amount for symbol, amount in values.items()}


def _parts_to_list(parts: Optional[list[SymbolCost]]) -> Optional[list[dict[str, Any]]]:
    if not parts:
        return None
    return [{"symbol": part.symbol.camel_field, "units": part.units} for part in parts]


class StepSerializer:
    """Serializer for converting steps to dictionary format."""

    @staticmethod
    def serialize(step: PipelineStep) -> dict[str, Any]:
        """
        Serialize a step to a flat record.

        Args:
            step (PipelineStep): The step to serialize.

        Returns:
            dict[str, Any]: The record.

        Raises:
            ValueError: If the step type is not supported.

        """
        if isinstance(step, ElitePromotion):
            return StepSerializer._serialize_elite_promotion(step)
        elif isinstance(step, AddSymbols):
            return StepSerializer._serialize_add_symbols(step)
        elif isinstance(step, SwitchSymbols):
            return StepSerializer._serialize_switch_symbols(step)
        elif isinstance(step, CombatSwitch):
            return StepSerializer._serialize_combat_switch(step)
        else:
            raise ValueError(f"Unsupported step type: {type(step)}")

    @staticmethod
    def _serialize_base_step(step: PipelineStep) -> dict[str, Any]:
        return {
            "type": getattr(step, "type", step.__class__.__name__),
            "id": step.id,
            "enabled": step.enabled,
        }

    @staticmethod
    def _serialize_elite_promotion(step: ElitePromotion) -> dict[str, Any]:
        data = StepSerializer._serialize_base_step(step)
        data["symbols"] = [symbol.camel_field for symbol in step.symbols]
        data["max"] = step.max
        return data

    @staticmethod
    def _serialize_add_symbols(step: AddSymbols) -> dict[str, Any]:
        data = StepSerializer._serialize_base_step(step)
        data["delta"] = _symbol_map_to_dict(step.delta)
        return data

    @staticmethod
    def _serialize_switch_symbols(step: SwitchSymbols) -> dict[str, Any]:
        data = StepSerializer._serialize_base_step(step)
        data["from"] = step.from_symbol.camel_field if step.from_symbol else None
        data["fromParts"] = _parts_to_list(step.from_parts)
        data["to"] = step.to_symbol.camel_field
        data["ratio"] = {"x": step.ratio.x, "y": step.ratio.y}
        data["max"] = step.max
        return data

    @staticmethod
    def _serialize_combat_switch(step: CombatSwitch) -> dict[str, Any]:
        data = StepSerializer._serialize_base_step(step)
        data["costSymbol"] = step.cost_symbol.camel_field
        data["costParts"] = _parts_to_list(step.cost_parts)
        data["costCount"] = step.cost_count
        data["selfDelta"] = _symbol_map_to_dict(step.self_delta)
        data["oppDelta"] = _symbol_map_to_dict(step.opp_delta)
        data["max"] = step.max
        return data


class StepDeserializer:
    """Factory for creating steps from dictionary data."""

    @staticmethod
    def deserialize(data: dict[str, Any]) -> PipelineStep | None:
        """
        Deserialize a record to the matching step.

        Args:
            data (dict[str, Any]): The record.

        Returns:
            PipelineStep | None: The step, or None if the record is not a
                recognized or well-formed step.

        """
        if not isinstance(data, dict):
            log_warning(
                f"Pipeline step must be an object, got {type(data).__name__}",
                {"data": data},
            )
            return None

        step_type = data.get("type")
        try:
            if step_type == "ElitePromotion":
                return StepDeserializer._deserialize_elite_promotion(data)
            elif step_type == "AddSymbols":
                return StepDeserializer._deserialize_add_symbols(data)
            elif step_type == "SwitchSymbols":
                return StepDeserializer._deserialize_switch_symbols(data)
            elif step_type == "CombatSwitch":
                return StepDeserializer._deserialize_combat_switch(data)
            else:
                log_warning(
                    f"Unknown pipeline step type: {step_type}",
                    {"step_type": step_type, "step_id": data.get("id")},
                )
                return None
        except (AttributeError, KeyError, ValueError, TypeError) as e:
            log_warning(
                f"Dropping malformed pipeline step '{data.get('id', 'Unknown')}': {e}",
                {"step_type": step_type, "step_id": data.get("id"), "error": str(e)},
            )
            return None

    @staticmethod
    def _common(data: dict[str, Any]) -> dict[str, Any]:
        common: dict[str, Any] = {"enabled": bool(data.get("enabled", True))}
        if data.get("id"):
            common["id"] = str(data["id"])
        return common

    @staticmethod
    def _parts(raw: Any) -> Optional[list[SymbolCost]]:
        if not isinstance(raw, list) or not raw:
            return None
        return [
            SymbolCost(symbol=part["symbol"], units=part.get("units", 1))
            for part in raw
        ]

    @staticmethod
    def _deserialize_elite_promotion(data: dict[str, Any]) -> ElitePromotion:
        kwargs = StepDeserializer._common(data)
        if data.get("symbols") is not None:
            kwargs["symbols"] = data["symbols"]
        return ElitePromotion(max=data.get("max"), **kwargs)

    @staticmethod
    def _deserialize_add_symbols(data: dict[str, Any]) -> AddSymbols:
        return AddSymbols(delta=data.get("delta") or {}, **StepDeserializer._common(data))

    @staticmethod
    def _deserialize_switch_symbols(data: dict[str, Any]) -> SwitchSymbols:
        ratio = data.get("ratio") or {}
        return SwitchSymbols(
            from_symbol=data.get("from"),
            from_parts=StepDeserializer._parts(data.get("fromParts")),
            to_symbol=data["to"],
            ratio={"x": ratio.get("x", 1), "y": ratio.get("y", 1)},
            max=data.get("max"),
            **StepDeserializer._common(data),
        )

    @staticmethod
    def _deserialize_combat_switch(data: dict[str, Any]) -> CombatSwitch:
        return CombatSwitch(
            cost_symbol=data.get("costSymbol") or "specials",
            cost_count=data.get("costCount") or 1,
            cost_parts=StepDeserializer._parts(data.get("costParts")),
            self_delta=data.get("selfDelta") or {},
            opp_delta=data.get("oppDelta") or {},
            max=data.get("max"),
            **StepDeserializer._common(data),
        )


class PipelineSerializer:
    """Converts whole pipelines to and from lists of records."""

    @staticmethod
    def serialize(pipeline: Pipeline) -> list[dict[str, Any]]:
        return [StepSerializer.serialize(step) for step in pipeline.steps]

    @staticmethod
    def deserialize(data: list[Any]) -> Pipeline:
        """
        Rebuilds a pipeline, skipping records that cannot be loaded.

        Args:
            data (list[Any]): The serialized steps.

        Returns:
            Pipeline: The pipeline holding every recognized step, in order.

        """
        steps = []
        for record in data:
            step = StepDeserializer.deserialize(record)
            if step is not None:
                steps.append(step)
        return Pipeline(steps=steps)


def coerce_pipeline(value: Any) -> Any:
    """Turns a list of serialized steps into a Pipeline, leaving anything else as is."""
    if isinstance(value, list):
        return PipelineSerializer.deserialize(value)
    return value
