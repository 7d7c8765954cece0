"""Configuration for the SQL-backed scoring store."""

from __future__ import annotations

import dataclasses as dc
import math
import os


@dc.dataclass(frozen=True, slots=True)
class StoreConfig:
    """Store behaviour that is not held in the database.

    Attributes
    ----------
    default_point_value
        Points awarded per fix of a category that has no configured value
        in the campaign's point table. Default is 1.

    """

    default_point_value: float = 1.0

    @staticmethod
    def _parse_non_negative_float(env_var: str, default: float) -> float:
        """Read a non-negative number env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            msg = f"{env_var} must be a number, got: {raw!r}"
            raise ValueError(msg) from exc
        if not math.isfinite(value) or value < 0:
            msg = f"{env_var} must be a finite non-negative number, got: {value}"
            raise ValueError(msg)
        return value

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Create configuration from ``BUGBASH_DEFAULT_POINT_VALUE``."""
        return cls(
            default_point_value=cls._parse_non_negative_float(
                "BUGBASH_DEFAULT_POINT_VALUE", 1.0
            )
        )
