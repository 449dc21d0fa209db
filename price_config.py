from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

PRICE_CONFIG_ENV = "BLIND_QUOTE_PRICE_CONFIG"


class PriceConfigError(ValueError):
    pass


@dataclass(frozen=True)
class PriceMatrix:
    fabric_type: str
    widths_mm: Tuple[int, ...]
    drops_mm: Tuple[int, ...]
    # prices[drop_index][width_index]
    prices: Tuple[Tuple[float, ...], ...]

    @property
    def min_width(self) -> int:
        return self.widths_mm[0]

    @property
    def max_width(self) -> int:
        return self.widths_mm[-1]

    @property
    def min_drop(self) -> int:
        return self.drops_mm[0]

    @property
    def max_drop(self) -> int:
        return self.drops_mm[-1]


@dataclass(frozen=True)
class PriceConfig:
    revision: str
    matrices: Mapping[str, PriceMatrix]
    accessory_prices: Mapping[str, float] = field(default_factory=dict)

    def get_price_matrix(self, fabric_type: str) -> Optional[PriceMatrix]:
        return self.matrices.get(fabric_type)

    def get_accessory_price(self, key: str) -> Optional[float]:
        price = self.accessory_prices.get(key)
        if price is None:
            return None
        return float(price)


def _as_number(value: object) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _parse_axis(raw: object, *, name: str, fabric_type: str) -> Tuple[int, ...]:
    if not isinstance(raw, list) or not raw:
        raise PriceConfigError(f"Matrix {fabric_type!r} is missing '{name}'")
    axis: List[int] = []
    for v in raw:
        n = _as_number(v)
        if n is None or n <= 0:
            raise PriceConfigError(f"Matrix {fabric_type!r} has an invalid {name} value: {v!r}")
        axis.append(int(n))
    if axis != sorted(set(axis)):
        raise PriceConfigError(f"Matrix {fabric_type!r} '{name}' must be strictly ascending")
    return tuple(axis)


def _parse_matrix(fabric_type: str, raw: Mapping[str, object]) -> PriceMatrix:
    widths = _parse_axis(raw.get("widths_mm"), name="widths_mm", fabric_type=fabric_type)
    drops = _parse_axis(raw.get("drops_mm"), name="drops_mm", fabric_type=fabric_type)

    grid = raw.get("prices")
    if not isinstance(grid, list) or len(grid) != len(drops):
        raise PriceConfigError(
            f"Matrix {fabric_type!r} must have one price row per drop ({len(drops)} expected)"
        )
    rows: List[Tuple[float, ...]] = []
    for drop, row in zip(drops, grid):
        if not isinstance(row, list) or len(row) != len(widths):
            raise PriceConfigError(
                f"Matrix {fabric_type!r} row for drop {drop} must have {len(widths)} prices"
            )
        cells: List[float] = []
        for cell in row:
            n = _as_number(cell)
            if n is None:
                raise PriceConfigError(f"Matrix {fabric_type!r} has a non-numeric price at drop {drop}")
            cells.append(n)
        rows.append(tuple(cells))

    return PriceMatrix(fabric_type=fabric_type, widths_mm=widths, drops_mm=drops, prices=tuple(rows))


def price_config_from_dict(data: Mapping[str, object], *, source: str = "<dict>") -> PriceConfig:
    revision = data.get("revision")
    if not isinstance(revision, str) or not revision.strip():
        raise PriceConfigError(f"Missing/invalid 'revision' in {source}")

    matrices_raw = data.get("matrices")
    if not isinstance(matrices_raw, dict) or not matrices_raw:
        raise PriceConfigError(f"Missing/invalid 'matrices' in {source}")
    matrices: Dict[str, PriceMatrix] = {}
    for fabric_type, raw in matrices_raw.items():
        if not isinstance(fabric_type, str) or not fabric_type.strip() or not isinstance(raw, dict):
            continue
        matrices[fabric_type.strip()] = _parse_matrix(fabric_type.strip(), raw)

    accessory_prices: Dict[str, float] = {}
    acc_raw = data.get("accessory_prices", {})
    if isinstance(acc_raw, dict):
        for key, value in acc_raw.items():
            n = _as_number(value)
            # Unpriced keys stay absent so lookups degrade to 0.
            if isinstance(key, str) and key.strip() and n is not None:
                accessory_prices[key.strip()] = n

    return PriceConfig(revision=revision.strip(), matrices=matrices, accessory_prices=accessory_prices)


def load_price_config(path: Path) -> PriceConfig:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise PriceConfigError(f"Expected JSON object in {path}")
    return price_config_from_dict(data, source=str(path))


def resolve_price_config(env_file: Optional[Path] = None) -> PriceConfig:
    """
    Load the active price config.

    `BLIND_QUOTE_PRICE_CONFIG` (environment or `.env`) points at a JSON price config;
    without it the bundled sample config is used.
    """
    load_dotenv(dotenv_path=env_file or Path.cwd() / ".env")
    path_str = str(os.getenv(PRICE_CONFIG_ENV, "")).strip()
    if path_str:
        return load_price_config(Path(path_str))

    from sample_price_config import load_sample_price_config

    return load_sample_price_config()
