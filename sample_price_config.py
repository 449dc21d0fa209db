from __future__ import annotations

from typing import Dict, Tuple

from price_config import PriceConfig, PriceMatrix

_WIDTHS_MM: Tuple[int, ...] = (300, 600, 900, 1200, 1500, 1800, 2100, 2400, 2700, 3000)
_DROPS_MM: Tuple[int, ...] = (300, 600, 900, 1200, 1500, 1800, 2100, 2500)

# fabric type -> (base price, price per square metre)
_FABRIC_RATES: Dict[str, Tuple[float, float]] = {
    "A": (60.0, 38.0),
    "B": (70.0, 46.0),
    "C": (80.0, 55.0),
    "SN": (95.0, 68.0),
}


def _matrix(fabric_type: str, base: float, per_m2: float) -> PriceMatrix:
    rows = []
    for drop in _DROPS_MM:
        rows.append(tuple(float(round(base + per_m2 * (w / 1000.0) * (drop / 1000.0))) for w in _WIDTHS_MM))
    return PriceMatrix(fabric_type=fabric_type, widths_mm=_WIDTHS_MM, drops_mm=_DROPS_MM, prices=tuple(rows))


def load_sample_price_config() -> PriceConfig:
    """
    Hardcoded demo price config for roller blinds.

    The matrices follow the usual area-based shape of a supplier sheet; accessory keys
    cover sale prices, F1 cost prices and F2 service fees.
    """
    matrices = {ft: _matrix(ft, base, rate) for ft, (base, rate) in _FABRIC_RATES.items()}

    accessory_prices = {
        # sale prices
        "comboBracket": 10.0,
        "winderHD": 20.0,
        "motorStandard": 250.0,
        "remoteStandard": 100.0,
        "chargerStandard": 50.0,
        "cord3m": 10.0,
        # F2 services
        "wifiHub": 200.0,
        "delivery": 100.0,
        "install": 20.0,
        "removal": 20.0,
        # internal cost basis
        "cost-winder": 8.0,
        "cost-motor": 160.0,
        "cost-A-1ch-remote": 45.0,
        "cost-A-16ch-remote": 60.0,
        "cost-charger": 25.0,
        "cost-3mcord": 4.0,
        "cost-dual-combo": 3.5,
        "cost-slim": 2.5,
    }

    return PriceConfig(
        revision="Roller blind sample (2026)",
        matrices=matrices,
        accessory_prices=accessory_prices,
    )
