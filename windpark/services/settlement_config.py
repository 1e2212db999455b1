from __future__ import annotations

from decimal import Decimal

from django.conf import settings

DEFAULTS: dict[str, str] = {
    "WINDPARK_DEFAULT_WEA_SHARE_PERCENTAGE": "10",
    "WINDPARK_DEFAULT_POOL_SHARE_PERCENTAGE": "90",
    "WINDPARK_DEFAULT_TOLERANCE_PERCENTAGE": "5",
    "WINDPARK_ROUNDING_CORRECTION_LIMIT": "0.05",
    "WINDPARK_DISTRIBUTION_RESIDUAL_TOLERANCE": "0.01",
}


def setting_decimal(name: str) -> Decimal:
    return Decimal(str(getattr(settings, name, DEFAULTS[name])))


def default_wea_share_percentage() -> Decimal:
    return setting_decimal("WINDPARK_DEFAULT_WEA_SHARE_PERCENTAGE")


def default_pool_share_percentage() -> Decimal:
    return setting_decimal("WINDPARK_DEFAULT_POOL_SHARE_PERCENTAGE")


def default_tolerance_percentage() -> Decimal:
    return setting_decimal("WINDPARK_DEFAULT_TOLERANCE_PERCENTAGE")


def rounding_correction_limit() -> Decimal:
    return setting_decimal("WINDPARK_ROUNDING_CORRECTION_LIMIT")


def distribution_residual_tolerance() -> Decimal:
    return setting_decimal("WINDPARK_DISTRIBUTION_RESIDUAL_TOLERANCE")
