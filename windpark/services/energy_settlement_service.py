"""Stromabrechnung mit DULDUNG-Logik.

Der Erlös des Netzbetreibers ist die Quelle der Wahrheit und wird nie aus
Produktion x Preis neu berechnet. Die Produktion der einzelnen WEA dient
ausschließlich als Verteilschlüssel.

DULDUNG (SMOOTHED):
    Ausgleich = (Ist-Produktion - Durchschnitt) x Vergütungssatz
    positiv -> Abzug, negativ -> Zuschlag
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from decimal import Decimal
from typing import Iterable, Protocol

from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from ..models import EnergySettlement, EnergySettlementItem
from .settlement_config import (
    default_tolerance_percentage,
    distribution_residual_tolerance,
    rounding_correction_limit,
)
from .settlement_errors import InvalidSettlementArgument, SettlementNotFound, SettlementPermissionDenied
from .settlement_math import HUNDRED, ZERO, quantize_cent, quantize_pct5, sum_cents, to_decimal
from .settlement_repository import DjangoSettlementRepository, SettlementRepository, TurbineProductionData

logger = logging.getLogger(__name__)

DistributionMode = EnergySettlement.DistributionMode
KWH3 = Decimal("0.001")


@dataclass(frozen=True)
class EnergySettlementInput:
    park_id: int
    year: int
    month: int | None
    net_operator_revenue_eur: Decimal
    distribution_mode: str
    mandant_id: int
    tolerance_percentage: Decimal | None = None
    rate_per_kwh_ct: Decimal | None = None
    net_operator_reference: str = ""


@dataclass(frozen=True)
class TurbineDistribution:
    turbine_id: int
    turbine_designation: str
    operator_fund_id: int
    operator_fund_name: str
    production_kwh: Decimal
    production_share_pct: Decimal
    base_revenue_eur: Decimal
    final_revenue_eur: Decimal
    deviation_from_average: Decimal | None = None
    tolerance_adjustment_eur: Decimal | None = None


@dataclass(frozen=True)
class EnergySettlementResult:
    total_production_kwh: Decimal
    average_production_kwh: Decimal
    turbine_count: int
    distributions: tuple[TurbineDistribution, ...]
    calculation_details: dict[str, object]

    @property
    def total_distributed_eur(self) -> Decimal:
        return sum_cents(distribution.final_revenue_eur for distribution in self.distributions)


@dataclass(frozen=True)
class OperatorSummary:
    operator_fund_id: int
    operator_fund_name: str
    turbine_count: int
    total_production_kwh: Decimal
    total_base_revenue_eur: Decimal
    total_adjustment_eur: Decimal
    total_final_revenue_eur: Decimal


class EnergyDistributionStrategy(Protocol):
    key: str
    label: str

    def distribute(
        self,
        *,
        production_data: list[TurbineProductionData],
        total_production_kwh: Decimal,
        average_production_kwh: Decimal,
        net_operator_revenue_eur: Decimal,
    ) -> list[TurbineDistribution]:
        ...


def production_share(production_kwh: Decimal, total_production_kwh: Decimal) -> Decimal:
    if total_production_kwh <= 0:
        return Decimal(0)
    return production_kwh / total_production_kwh


def apply_rounding_correction(
    distributions: list[TurbineDistribution],
    net_operator_revenue_eur: Decimal,
) -> list[TurbineDistribution]:
    if not distributions:
        return distributions
    total_distributed = sum_cents(distribution.final_revenue_eur for distribution in distributions)
    difference = quantize_cent(net_operator_revenue_eur) - total_distributed
    if difference == 0 or abs(difference) > rounding_correction_limit():
        return distributions
    last = distributions[-1]
    corrected = replace(last, final_revenue_eur=quantize_cent(last.final_revenue_eur + difference))
    return distributions[:-1] + [corrected]


class ProportionalDistributionStrategy:
    key = DistributionMode.PROPORTIONAL
    label = "Proportional nach kWh-Anteil"

    def distribute(
        self,
        *,
        production_data: list[TurbineProductionData],
        total_production_kwh: Decimal,
        average_production_kwh: Decimal,
        net_operator_revenue_eur: Decimal,
    ) -> list[TurbineDistribution]:
        distributions: list[TurbineDistribution] = []
        for turbine in production_data:
            share = production_share(turbine.production_kwh, total_production_kwh)
            revenue = quantize_cent(share * net_operator_revenue_eur)
            distributions.append(
                TurbineDistribution(
                    turbine_id=turbine.turbine_id,
                    turbine_designation=turbine.turbine_designation,
                    operator_fund_id=turbine.operator_fund_id,
                    operator_fund_name=turbine.operator_fund_name,
                    production_kwh=turbine.production_kwh,
                    production_share_pct=quantize_pct5(share * HUNDRED),
                    base_revenue_eur=revenue,
                    final_revenue_eur=revenue,
                )
            )
        return apply_rounding_correction(distributions, net_operator_revenue_eur)


class SmoothedDistributionStrategy:
    key = DistributionMode.SMOOTHED
    label = "Duldung (Glättung auf Durchschnitt)"

    def __init__(self, rate_per_kwh_ct: Decimal) -> None:
        self.rate_per_kwh_eur = to_decimal(rate_per_kwh_ct) / HUNDRED

    def adjustment_kwh(self, production_kwh: Decimal, average_production_kwh: Decimal) -> Decimal:
        return production_kwh - average_production_kwh

    def distribute(
        self,
        *,
        production_data: list[TurbineProductionData],
        total_production_kwh: Decimal,
        average_production_kwh: Decimal,
        net_operator_revenue_eur: Decimal,
    ) -> list[TurbineDistribution]:
        distributions: list[TurbineDistribution] = []
        for turbine in production_data:
            share = production_share(turbine.production_kwh, total_production_kwh)
            base_revenue = share * net_operator_revenue_eur
            deviation = turbine.production_kwh - average_production_kwh
            adjustment = self.adjustment_kwh(turbine.production_kwh, average_production_kwh) * self.rate_per_kwh_eur
            distributions.append(
                TurbineDistribution(
                    turbine_id=turbine.turbine_id,
                    turbine_designation=turbine.turbine_designation,
                    operator_fund_id=turbine.operator_fund_id,
                    operator_fund_name=turbine.operator_fund_name,
                    production_kwh=turbine.production_kwh,
                    production_share_pct=quantize_pct5(share * HUNDRED),
                    base_revenue_eur=quantize_cent(base_revenue),
                    deviation_from_average=quantize_cent(deviation),
                    tolerance_adjustment_eur=quantize_cent(adjustment),
                    final_revenue_eur=quantize_cent(base_revenue - adjustment),
                )
            )
        return apply_rounding_correction(distributions, net_operator_revenue_eur)


class ToleratedDistributionStrategy(SmoothedDistributionStrategy):
    """Duldung mit Toleranzband um den Durchschnitt.

    Innerhalb des Bands gibt es keinen Ausgleich; außerhalb wird nur die
    Abweichung zur Bandgrenze ausgeglichen.
    """

    key = DistributionMode.TOLERATED
    label = "Duldung mit Toleranzgrenze"

    def __init__(self, rate_per_kwh_ct: Decimal, tolerance_percentage: Decimal) -> None:
        super().__init__(rate_per_kwh_ct)
        self.tolerance_factor = to_decimal(tolerance_percentage) / HUNDRED

    def adjustment_kwh(self, production_kwh: Decimal, average_production_kwh: Decimal) -> Decimal:
        lower_bound = average_production_kwh * (1 - self.tolerance_factor)
        upper_bound = average_production_kwh * (1 + self.tolerance_factor)
        if production_kwh > upper_bound:
            return production_kwh - upper_bound
        if production_kwh < lower_bound:
            return production_kwh - lower_bound
        return Decimal(0)


def distribution_strategy_for(
    mode: str,
    *,
    rate_per_kwh_ct: Decimal | None = None,
    tolerance_percentage: Decimal | None = None,
) -> EnergyDistributionStrategy:
    if mode == DistributionMode.PROPORTIONAL:
        return ProportionalDistributionStrategy()
    if mode not in (DistributionMode.SMOOTHED, DistributionMode.TOLERATED):
        raise InvalidSettlementArgument(f"Unbekannter Verteilungsmodus: {mode}")
    rate = to_decimal(rate_per_kwh_ct) if rate_per_kwh_ct is not None else None
    if rate is None or rate <= 0:
        raise InvalidSettlementArgument(f"{mode} benötigt einen Vergütungssatz (ct/kWh)")
    if mode == DistributionMode.SMOOTHED:
        return SmoothedDistributionStrategy(rate)
    if tolerance_percentage is None:
        tolerance_percentage = default_tolerance_percentage()
    if to_decimal(tolerance_percentage) < 0:
        raise InvalidSettlementArgument("Toleranz darf nicht negativ sein")
    return ToleratedDistributionStrategy(rate, to_decimal(tolerance_percentage))


class EnergySettlementService:
    def __init__(self, repository: SettlementRepository | None = None) -> None:
        self.repository = repository or DjangoSettlementRepository()

    def calculate_energy_settlement(self, settlement_input: EnergySettlementInput) -> EnergySettlementResult:
        revenue = to_decimal(settlement_input.net_operator_revenue_eur)
        if revenue < 0:
            raise InvalidSettlementArgument("Netzbetreiber-Erlös kann nicht negativ sein")
        month = settlement_input.month
        if month is not None and not 1 <= int(month) <= 12:
            raise InvalidSettlementArgument("Monat muss zwischen 1 und 12 liegen")

        park = self.repository.load_park(settlement_input.park_id)
        if park is None:
            raise SettlementNotFound(f"Park mit ID {settlement_input.park_id} nicht gefunden")
        if park.mandant_id != settlement_input.mandant_id:
            raise SettlementPermissionDenied("Keine Berechtigung für diesen Park")

        strategy = distribution_strategy_for(
            settlement_input.distribution_mode,
            rate_per_kwh_ct=settlement_input.rate_per_kwh_ct,
            tolerance_percentage=settlement_input.tolerance_percentage,
        )

        production_data = self.repository.load_production_data(
            settlement_input.park_id,
            settlement_input.year,
            month,
            settlement_input.mandant_id,
        )
        if not production_data:
            period_label = f"{month}/{settlement_input.year}" if month else str(settlement_input.year)
            raise SettlementNotFound(
                f"Keine Produktionsdaten für Park {settlement_input.park_id} im Zeitraum {period_label} gefunden"
            )

        total_production_kwh = sum((turbine.production_kwh for turbine in production_data), Decimal(0))
        turbine_count = len(production_data)
        average_production_kwh = total_production_kwh / turbine_count

        distributions = strategy.distribute(
            production_data=production_data,
            total_production_kwh=total_production_kwh,
            average_production_kwh=average_production_kwh,
            net_operator_revenue_eur=revenue,
        )

        total_distributed = sum_cents(distribution.final_revenue_eur for distribution in distributions)
        if abs(total_distributed - revenue) > distribution_residual_tolerance():
            logger.warning(
                "Verteilungsdifferenz Park %s: %s vs %s (Diff: %s)",
                settlement_input.park_id,
                total_distributed,
                revenue,
                total_distributed - revenue,
            )

        calculation_details = {
            "total_production_kwh": total_production_kwh,
            "net_operator_revenue_eur": revenue,
            "average_production_kwh": average_production_kwh,
            "turbine_count": turbine_count,
            "distributions": [asdict(distribution) for distribution in distributions],
            "tolerance_mode": {
                "mode": strategy.key,
                "tolerance_percentage": settlement_input.tolerance_percentage,
                "rate_per_kwh_ct": settlement_input.rate_per_kwh_ct,
            },
            "calculated_at": timezone.now().isoformat(),
        }
        return EnergySettlementResult(
            total_production_kwh=total_production_kwh,
            average_production_kwh=average_production_kwh,
            turbine_count=turbine_count,
            distributions=tuple(distributions),
            calculation_details=calculation_details,
        )

    @staticmethod
    def save_energy_settlement(
        settlement_input: EnergySettlementInput,
        result: EnergySettlementResult,
    ) -> EnergySettlement:
        average_kwh = result.average_production_kwh.quantize(KWH3)
        with transaction.atomic():
            settlement = EnergySettlement.objects.create(
                mandant_id=settlement_input.mandant_id,
                park_id=settlement_input.park_id,
                year=settlement_input.year,
                month=settlement_input.month,
                net_operator_revenue_eur=quantize_cent(settlement_input.net_operator_revenue_eur),
                net_operator_reference=settlement_input.net_operator_reference or "",
                total_production_kwh=result.total_production_kwh.quantize(KWH3),
                distribution_mode=settlement_input.distribution_mode,
                tolerance_percentage=settlement_input.tolerance_percentage or None,
                status=EnergySettlement.Status.CALCULATED,
                calculation_details=result.calculation_details,
            )
            EnergySettlementItem.objects.bulk_create(
                [
                    EnergySettlementItem(
                        energy_settlement=settlement,
                        turbine_id=distribution.turbine_id,
                        recipient_fund_id=distribution.operator_fund_id,
                        production_share_kwh=distribution.production_kwh.quantize(KWH3),
                        production_share_pct=distribution.production_share_pct,
                        revenue_share_eur=distribution.final_revenue_eur,
                        distribution_key=format_distribution_key(distribution, settlement_input.distribution_mode),
                        average_production_kwh=average_kwh,
                        deviation_kwh=distribution.deviation_from_average or None,
                        tolerance_adjustment=distribution.tolerance_adjustment_eur or None,
                    )
                    for distribution in result.distributions
                ]
            )
        logger.info(
            "Stromabrechnung %s für Park %s gespeichert (%s WEA, %s EUR).",
            settlement.pk,
            settlement_input.park_id,
            result.turbine_count,
            settlement.net_operator_revenue_eur,
        )
        return settlement

    @staticmethod
    def load_energy_settlement(settlement_id: int, mandant_id: int) -> EnergySettlement | None:
        return (
            EnergySettlement.objects.filter(pk=settlement_id, mandant_id=mandant_id)
            .select_related("park")
            .prefetch_related(
                Prefetch(
                    "items",
                    queryset=EnergySettlementItem.objects.select_related("recipient_fund", "turbine").order_by("id"),
                )
            )
            .first()
        )


def format_distribution_key(distribution: TurbineDistribution, mode: str) -> str:
    if mode in (DistributionMode.SMOOTHED, DistributionMode.TOLERATED):
        adjustment = distribution.tolerance_adjustment_eur or ZERO
        adjustment_type = "ABZUG" if adjustment > 0 else "ZUSCHLAG"
        deviation = distribution.deviation_from_average or ZERO
        return f"DULDUNG {adjustment_type}: {abs(adjustment):.2f} EUR ({deviation:.2f} kWh)"
    return f"{mode}: {distribution.production_share_pct:.3f}%"


def calculate_single_turbine_adjustment(
    actual_production_kwh: Decimal | str | int,
    average_production_kwh: Decimal | str | int,
    rate_per_kwh_ct: Decimal | str | int,
) -> Decimal:
    deviation = to_decimal(actual_production_kwh) - to_decimal(average_production_kwh)
    return quantize_cent(deviation * to_decimal(rate_per_kwh_ct) / HUNDRED)


def aggregate_by_operator(
    distributions: Iterable[TurbineDistribution],
) -> dict[int, list[TurbineDistribution]]:
    grouped: dict[int, list[TurbineDistribution]] = {}
    for distribution in distributions:
        grouped.setdefault(distribution.operator_fund_id, []).append(distribution)
    return grouped


def calculate_operator_summary(distributions: Iterable[TurbineDistribution]) -> list[OperatorSummary]:
    summaries: list[OperatorSummary] = []
    for operator_fund_id, items in aggregate_by_operator(distributions).items():
        summaries.append(
            OperatorSummary(
                operator_fund_id=operator_fund_id,
                operator_fund_name=items[0].operator_fund_name,
                turbine_count=len(items),
                total_production_kwh=sum_cents(item.production_kwh for item in items),
                total_base_revenue_eur=sum_cents(item.base_revenue_eur for item in items),
                total_adjustment_eur=sum_cents(item.tolerance_adjustment_eur or ZERO for item in items),
                total_final_revenue_eur=sum_cents(item.final_revenue_eur for item in items),
            )
        )
    return summaries
