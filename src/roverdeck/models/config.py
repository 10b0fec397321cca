"""Navigation and SDR configuration models with total decoding.

Remote records carry ``nav_config`` / ``sdr_config`` as loosely typed JSON.
``decode_nav_config`` and ``decode_sdr_config`` are the single boundary
where that JSON becomes typed configuration: every missing or invalid
field falls back to its default, field by field, and decoding never raises.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from roverdeck.exceptions import ConfigValidationError


class GainMode(StrEnum):
    """SDR gain control mode."""
    AUTO = "auto"
    MANUAL = "manual"


class SdrDirection(StrEnum):
    """SDR signal direction."""
    RX = "rx"
    TX = "tx"


class NavConfig(BaseModel):
    """Navigation tuning sent to the rover's path follower."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    base_speed: float = Field(default=0.6, ge=0, le=2, alias="baseSpeed")
    turn_speed: float = Field(default=1.0, ge=0, le=3, alias="turnSpeed")
    position_epsilon: float = Field(default=2, ge=0, alias="positionEpsilon")
    heading_tolerance: float = Field(default=20, ge=0, le=180, alias="headingTolerance")


class SdrConfig(BaseModel):
    """Software-defined radio settings."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    frequency: float = Field(default=2400, description="Center frequency, MHz")
    bandwidth: float = Field(default=5, description="Bandwidth, MHz")
    sample_rate: float = Field(default=5, alias="sampleRate", description="Sample rate, MS/s")
    gain_mode: GainMode = Field(default=GainMode.AUTO, alias="gainMode")
    gain_value: float = Field(default=40, alias="gainValue")
    direction: SdrDirection = SdrDirection.RX
    channel: str = "A"


DEFAULT_NAV = NavConfig()
DEFAULT_SDR = SdrConfig()


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _decode_fields(model: type[BaseModel], default: BaseModel, raw: object) -> dict[str, Any]:
    """Validate each field of *raw* on its own, keeping the default on failure."""
    values: dict[str, Any] = {}
    if not isinstance(raw, Mapping):
        return values

    for name, field in model.model_fields.items():
        key = field.alias or name
        if key in raw:
            value = raw[key]
        elif name in raw:
            value = raw[name]
        else:
            continue
        if value is None:
            continue
        if field.annotation is float and not _is_number(value):
            continue
        candidate = default.model_dump()
        candidate[name] = value
        try:
            checked = model.model_validate(candidate)
        except PydanticValidationError:
            continue
        values[name] = getattr(checked, name)
    return values


def decode_nav_config(raw: object) -> NavConfig:
    """Decode a stored navigation config; never fails."""
    return DEFAULT_NAV.model_copy(update=_decode_fields(NavConfig, DEFAULT_NAV, raw))


def decode_sdr_config(raw: object) -> SdrConfig:
    """Decode a stored SDR config; never fails."""
    return DEFAULT_SDR.model_copy(update=_decode_fields(SdrConfig, DEFAULT_SDR, raw))


def _apply_patch(config: BaseModel, patch: Mapping[str, Any]) -> BaseModel:
    model = type(config)
    aliases = {field.alias: name for name, field in model.model_fields.items() if field.alias}
    merged = config.model_dump()
    for key, value in patch.items():
        name = aliases.get(key, key)
        if name not in model.model_fields:
            raise ConfigValidationError(f"Unknown {model.__name__} field: {key!r}")
        if model.model_fields[name].annotation is float and not _is_number(value):
            raise ConfigValidationError(f"{key} must be a finite number, got {value!r}")
        merged[name] = value
    try:
        return model.model_validate(merged)
    except PydanticValidationError as exc:
        raise ConfigValidationError(str(exc)) from exc


def patch_nav_config(config: NavConfig, patch: Mapping[str, Any]) -> NavConfig:
    """Return a new NavConfig with *patch* merged in.

    Raises:
        ConfigValidationError: If a key is unknown or a value out of range.
    """
    return _apply_patch(config, patch)


def patch_sdr_config(config: SdrConfig, patch: Mapping[str, Any]) -> SdrConfig:
    """Return a new SdrConfig with *patch* merged in.

    Raises:
        ConfigValidationError: If a key is unknown or a value invalid.
    """
    return _apply_patch(config, patch)


def to_record(config: NavConfig | SdrConfig) -> dict[str, Any]:
    """Serialize a config in the store's camelCase JSON shape."""
    return config.model_dump(mode="json", by_alias=True)
