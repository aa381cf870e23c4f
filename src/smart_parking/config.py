# File: src/smart_parking/config.py
"""
Configuration for the Smart Parking engine

Settings come from, in increasing priority:
1. Defaults on ParkingSettings
2. A YAML file (--config or SMART_PARKING_CONFIG)
3. SMART_PARKING_DATABASE_URL / SMART_PARKING_LOG_LEVEL

Example file:

    database_url: sqlite:///parking.db
    vehicle_type_policy: first_seen
    vehicle_types:
      - {id: 1, name: CAR, rate_per_hour: 10}
    layout:
      - name: G
        slots:
          - {label: A1, distance: 5, type: CAR}
"""

from typing import Dict, List, Optional, Any, Mapping
from decimal import Decimal
from pathlib import Path
import logging
import os

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigurationError
from .infrastructure.database import DEFAULT_VEHICLE_TYPES
from .infrastructure.repositories import TYPE_POLICIES, TYPE_POLICY_FIRST_SEEN


CONFIG_ENV_VAR = "SMART_PARKING_CONFIG"
DATABASE_URL_ENV_VAR = "SMART_PARKING_DATABASE_URL"
LOG_LEVEL_ENV_VAR = "SMART_PARKING_LOG_LEVEL"

DEFAULT_DATABASE_URL = "sqlite:///smart_parking.db"


# ============================================================================
# SETTINGS MODELS
# ============================================================================

class VehicleTypeConfig(BaseModel):
    """One row of the vehicle_types lookup table"""
    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    name: str = Field(min_length=1, max_length=20)
    rate_per_hour: Decimal = Field(ge=0)

    @field_validator('name')
    @classmethod
    def normalise_name(cls, v):
        return v.strip().upper()


class SlotConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str = Field(min_length=1, max_length=20)
    distance: int = Field(ge=0, description="Distance from the entry")
    type: str = Field(min_length=1, description="Vehicle type name")


class FloorConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=50)
    slots: List[SlotConfig] = Field(default_factory=list)

    @model_validator(mode='after')
    def unique_labels(self):
        labels = [slot.label for slot in self.slots]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise ValueError(f"Floor {self.name} has duplicate slot labels: {', '.join(duplicates)}")
        return self


class ParkingSettings(BaseModel):
    """Everything the engine, store and CLI need at start-up"""
    model_config = ConfigDict(extra='forbid')

    database_url: str = DEFAULT_DATABASE_URL
    echo_sql: bool = False
    busy_timeout_seconds: float = Field(default=5.0, gt=0)
    allocation_retries: int = Field(default=3, ge=0)
    vehicle_type_policy: str = TYPE_POLICY_FIRST_SEEN
    currency_symbol: str = "₹"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    vehicle_types: List[VehicleTypeConfig] = Field(
        default_factory=lambda: [VehicleTypeConfig(**entry) for entry in DEFAULT_VEHICLE_TYPES]
    )
    layout: List[FloorConfig] = Field(default_factory=list)

    @field_validator('vehicle_type_policy')
    @classmethod
    def validate_policy(cls, v):
        if v not in TYPE_POLICIES:
            raise ValueError(f"vehicle_type_policy must be one of {', '.join(TYPE_POLICIES)}")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode='after')
    def validate_layout_types(self):
        ids = [t.id for t in self.vehicle_types]
        if len(ids) != len(set(ids)):
            raise ValueError("vehicle_types ids must be unique")

        known = {t.name for t in self.vehicle_types}
        for floor in self.layout:
            for slot in floor.slots:
                if slot.type.strip().upper() not in known:
                    raise ValueError(
                        f"Slot {floor.name}-{slot.label} uses unknown vehicle type {slot.type}"
                    )
        return self

    def vehicle_type_rows(self) -> List[Dict[str, Any]]:
        return [t.model_dump() for t in self.vehicle_types]

    def layout_rows(self) -> List[Dict[str, Any]]:
        return [floor.model_dump() for floor in self.layout]


# ============================================================================
# LOADING
# ============================================================================

def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping at the top level")
    return data


def load_settings(path: Optional[str] = None,
                  env: Optional[Mapping[str, str]] = None) -> ParkingSettings:
    """
    Build ParkingSettings from an optional YAML file and the environment.
    Raises ConfigurationError on unreadable or invalid configuration.
    """
    env = os.environ if env is None else env

    path = path or env.get(CONFIG_ENV_VAR)
    data: Dict[str, Any] = _read_yaml(Path(path)) if path else {}

    if env.get(DATABASE_URL_ENV_VAR):
        data['database_url'] = env[DATABASE_URL_ENV_VAR]
    if env.get(LOG_LEVEL_ENV_VAR):
        data['log_level'] = env[LOG_LEVEL_ENV_VAR]

    try:
        return ParkingSettings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def apply_overrides(settings: ParkingSettings, **overrides: Any) -> ParkingSettings:
    """
    Return settings with command-line overrides applied, validated the same
    way as file and environment values. None values are ignored.
    """
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if not overrides:
        return settings

    try:
        return ParkingSettings(**{**settings.model_dump(), **overrides})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
