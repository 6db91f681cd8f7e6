"""Local user preferences: measurement units and the rest timer default.

Preferences live in a small JSON file next to the user's other PerioLifts
data and are read from disk only once per store.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

KG_TO_LBS = 2.20462
CM_TO_INCHES = 0.393701


class Preferences(BaseModel):
    """Persisted preference values."""
    use_metric_system: bool = False
    use_default_rest_time: bool = False
    default_rest_time_seconds: int = Field(default=120, ge=0)


class PreferencesStore:
    """JSON file backed key-value store for :class:`Preferences`."""

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        self._cache: Preferences | None = None

    def load(self) -> Preferences:
        """Read preferences from disk, writing the defaults when the file is missing or unreadable."""
        if self.path.exists():
            try:
                with self.path.open("r", encoding="utf-8") as fh:
                    return Preferences.model_validate(json.load(fh))
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.warning("Ignoring unreadable preferences file %s: %s", self.path, e)
        defaults = Preferences()
        self.save(defaults)
        return defaults

    def save(self, preferences: Preferences) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(preferences.model_dump(), fh, indent=2)
        self._cache = preferences

    def get(self) -> Preferences:
        if self._cache is None:
            self._cache = self.load()
        return self._cache

    def get_value(self, key: str) -> Any:
        return getattr(self.get(), key, None)

    def set_value(self, key: str, value: Any) -> Preferences:
        """Update one preference and persist it. Unknown keys raise ``KeyError``."""
        if key not in Preferences.model_fields:
            raise KeyError(key)
        updated = Preferences.model_validate({**self.get().model_dump(), key: value})
        self.save(updated)
        return updated


class UnitsSettings:
    """Converts and formats values for the user's measurement system.

    Stored values are always metric; display values follow the preference.
    """

    def __init__(self, store: PreferencesStore):
        self._store = store

    @property
    def use_metric_system(self) -> bool:
        return self._store.get().use_metric_system

    def set_use_metric_system(self, value: bool) -> None:
        self._store.set_value("use_metric_system", value)

    @property
    def weight_unit(self) -> str:
        return "kg" if self.use_metric_system else "lbs"

    @property
    def length_unit(self) -> str:
        return "cm" if self.use_metric_system else "in"

    def convert_weight(self, kg: float) -> float:
        return kg if self.use_metric_system else kg * KG_TO_LBS

    def convert_weight_to_metric(self, value: float) -> float:
        return value if self.use_metric_system else value / KG_TO_LBS

    def convert_length(self, cm: float) -> float:
        return cm if self.use_metric_system else cm * CM_TO_INCHES

    def convert_length_to_metric(self, value: float) -> float:
        return value if self.use_metric_system else value / CM_TO_INCHES

    def format_weight(self, kg: float, decimals: int = 1) -> str:
        return f"{self.convert_weight(kg):.{decimals}f} {self.weight_unit}"

    def format_length(self, cm: float, decimals: int = 1) -> str:
        return f"{self.convert_length(cm):.{decimals}f} {self.length_unit}"


class RestTimeSettings:
    """Chooses the rest time to use after a set."""

    def __init__(self, store: PreferencesStore):
        self._store = store

    @property
    def use_default_rest_time(self) -> bool:
        return self._store.get().use_default_rest_time

    @property
    def default_rest_time(self) -> int:
        return self._store.get().default_rest_time_seconds

    def set_use_default_rest_time(self, value: bool) -> None:
        self._store.set_value("use_default_rest_time", value)

    def set_default_rest_time(self, seconds: int) -> None:
        self._store.set_value("default_rest_time_seconds", seconds)

    def effective_rest_time(self, program_rest_time: int | None) -> int:
        """The user's default when it overrides the program, else the program's own value."""
        if self.use_default_rest_time:
            return self.default_rest_time
        if program_rest_time is not None and program_rest_time > 0:
            return program_rest_time
        return self.default_rest_time
