"""mbench run configuration — dataclass defaults, YAML loading, validation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Self

import yaml

from mbench.core.errors import ConfigurationError
from mbench.core.operations import get_catalog
from mbench.core.types import DEFAULT_ALIGNMENT, RoundMode, parse_round_mode

MATH_ERRHANDLING_CHANNELS = ("errno", "except")
EXCEPTION_LABEL_MODES = ("first", "full")


@dataclass
class BenchConfig:
    op: str = "exp"
    round_mode: str = "tonearest"
    alignment: int = DEFAULT_ALIGNMENT
    repeat: int = 1
    min_ops: int = 0
    error_precision: int = 53
    threads: int | None = None
    output_field_width: int = 0
    output_precision: int = -1
    verbose: int = 1
    math_errhandling: list[str] = field(default_factory=lambda: list(MATH_ERRHANDLING_CHANNELS))
    exception_labels: str = "first"

    @property
    def rounding(self) -> RoundMode:
        return parse_round_mode(self.round_mode)

    @property
    def math_errno(self) -> bool:
        return "errno" in self.math_errhandling

    @property
    def track_exceptions(self) -> bool:
        return "except" in self.math_errhandling

    @property
    def full_labels(self) -> bool:
        return self.exception_labels == "full"

    def validate(self) -> Self:
        """Raise ConfigurationError for the first invalid setting."""
        get_catalog().resolve(self.op)
        parse_round_mode(self.round_mode)
        if self.alignment <= 0:
            raise ConfigurationError(f"alignment must be positive, got {self.alignment}")
        if self.repeat < 1:
            raise ConfigurationError(f"repeat must be >= 1, got {self.repeat}")
        if self.min_ops < 0:
            raise ConfigurationError(f"min_ops must be >= 0, got {self.min_ops}")
        if self.error_precision <= 0:
            raise ConfigurationError(f"error_precision must be positive, got {self.error_precision}")
        if self.threads is not None and self.threads < 1:
            raise ConfigurationError(f"threads must be >= 1, got {self.threads}")
        if self.output_field_width < 0:
            raise ConfigurationError(f"output_field_width must be >= 0, got {self.output_field_width}")
        if self.output_precision < -1:
            raise ConfigurationError(f"output_precision must be >= -1, got {self.output_precision}")
        unknown = set(self.math_errhandling) - set(MATH_ERRHANDLING_CHANNELS)
        if unknown:
            raise ConfigurationError(
                f"math_errhandling must be a subset of {list(MATH_ERRHANDLING_CHANNELS)}, got {sorted(unknown)}"
            )
        if self.exception_labels not in EXCEPTION_LABEL_MODES:
            raise ConfigurationError(
                f"exception_labels must be one of {list(EXCEPTION_LABEL_MODES)}, got {self.exception_labels!r}"
            )
        return self

    # -- (de)serialization ---------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        valid = {f.name for f in fields(cls)}
        unknown = set(data) - valid
        if unknown:
            raise ConfigurationError(f"Unknown configuration key(s): {sorted(unknown)}")
        try:
            config = cls(**data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from None
        return config.validate()

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ConfigurationError(f"Config file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def replace(self, **overrides: Any) -> Self:
        """Copy with every non-None override applied, validated."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return type(self).from_dict(data)
