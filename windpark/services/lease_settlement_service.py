from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from ..models import LeaseSettlementPeriod, PlotArea
from .settlement_config import default_pool_share_percentage, default_wea_share_percentage
from .settlement_errors import InvalidSettlementArgument, SettlementNotFound, SettlementPermissionDenied
from .settlement_math import HUNDRED, MONTHS_PER_YEAR, ZERO, quantize_cent, sum_cents, to_decimal
from .settlement_repository import (
    AdvancePaymentInfo,
    DjangoSettlementRepository,
    LeaseSnapshot,
    ParkSnapshot,
    PlotAreaSnapshot,
    PlotSnapshot,
    SettlementRepository,
)

logger = logging.getLogger(__name__)

AreaType = PlotArea.AreaType
PeriodType = LeaseSettlementPeriod.PeriodType

SPECIAL_AREA_TYPES = (AreaType.WEG, AreaType.AUSGLEICH, AreaType.KABEL)
ADVANCE_INTERVAL_FACTORS = {
    LeaseSettlementPeriod.AdvanceInterval.MONTHLY: 1,
    LeaseSettlementPeriod.AdvanceInterval.QUARTERLY: 3,
    LeaseSettlementPeriod.AdvanceInterval.YEARLY: 12,
}


@dataclass(frozen=True)
class PlotAreaCalculationResult:
    plot_area_id: int
    plot_id: int
    plot_number: str
    cadastral_district: str
    field_number: str
    area_type: str
    area_sqm: Decimal | None
    length_m: Decimal | None
    compensation_type: str
    compensation_fixed_amount: Decimal | None
    compensation_percentage: Decimal | None
    minimum_rent: Decimal
    revenue_share: Decimal
    calculated_amount: Decimal
    difference: Decimal


@dataclass(frozen=True)
class LeaseCalculationResult:
    lease_id: int
    lessor_id: int
    lessor_name: str
    lessor_address: str | None
    lessor_bank_iban: str
    lessor_bank_bic: str
    lessor_bank_name: str
    plot_areas: tuple[PlotAreaCalculationResult, ...]
    total_minimum_rent: Decimal
    total_revenue_share: Decimal
    total_payment: Decimal
    total_difference: Decimal
    wea_count: int
    pool_count: int
    other_count: int
    # Nur bei Jahresendabrechnung befüllt
    paid_advances: Decimal = ZERO
    remaining_amount: Decimal | None = None


@dataclass(frozen=True)
class SettlementTotals:
    lease_count: int
    total_minimum_rent: Decimal
    total_revenue_share: Decimal
    total_payment: Decimal
    total_difference: Decimal
    wea_area_count: int
    pool_area_count: int
    other_area_count: int


@dataclass(frozen=True)
class SettlementResult:
    park_id: int
    park_name: str
    year: int
    calculated_at: datetime
    period_type: str
    minimum_rent_per_turbine: Decimal | None
    wea_share_percentage: Decimal | None
    pool_share_percentage: Decimal | None
    total_revenue: Decimal
    revenue_phase_percentage: Decimal | None
    revenue_per_turbine: Decimal
    payment_per_turbine: Decimal
    leases: tuple[LeaseCalculationResult, ...]
    totals: SettlementTotals


@dataclass(frozen=True)
class FinalSettlementResult(SettlementResult):
    paid_advances: Decimal
    remaining_amount: Decimal
    advance_payments: tuple[AdvancePaymentInfo, ...]
    linked_energy_settlement_id: int | None = None
    linked_energy_settlement_revenue: Decimal | None = None


@dataclass(frozen=True)
class AdvanceCalculationResult:
    lease_id: int
    lessor_id: int
    lessor_name: str
    lessor_address: str | None
    lessor_bank_iban: str
    lessor_bank_bic: str
    lessor_bank_name: str
    monthly_minimum_rent: Decimal
    wea_share_amount: Decimal
    pool_share_amount: Decimal
    total_advance: Decimal
    wea_count: int
    pool_area_sqm: Decimal


@dataclass(frozen=True)
class AdvanceTotals:
    lease_count: int
    total_monthly_advance: Decimal
    total_wea_share: Decimal
    total_pool_share: Decimal
    total_wea_count: int
    total_pool_area_sqm: Decimal


@dataclass(frozen=True)
class MonthlyAdvanceResult:
    park_id: int
    park_name: str
    year: int
    month: int
    calculated_at: datetime
    yearly_minimum_rent_total: Decimal
    monthly_minimum_rent_total: Decimal
    wea_share_percentage: Decimal
    pool_share_percentage: Decimal
    advances: tuple[AdvanceCalculationResult, ...]
    totals: AdvanceTotals
    period_type: str = PeriodType.ADVANCE


@dataclass(frozen=True)
class DistributionBasis:
    total_standort_sqm: Decimal
    total_pool_sqm: Decimal
    total_wea_area_count: int
    turbine_count: int
    payment_per_turbine: Decimal
    revenue_per_turbine: Decimal
    minimum_rent_per_turbine: Decimal | None
    wea_share_percentage: Decimal | None
    pool_share_percentage: Decimal | None
    weg_rate: Decimal
    ausgleich_rate: Decimal
    kabel_rate: Decimal


@dataclass
class _LeaseTotals:
    lease: LeaseSnapshot
    plot_areas: list[PlotAreaCalculationResult] = field(default_factory=list)
    wea_count: int = 0
    pool_count: int = 0
    other_count: int = 0

    def add(self, area_result: PlotAreaCalculationResult) -> None:
        self.plot_areas.append(area_result)
        if area_result.area_type == AreaType.WEA_STANDORT:
            self.wea_count += 1
        elif area_result.area_type == AreaType.POOL:
            self.pool_count += 1
        else:
            self.other_count += 1

    def freeze(self) -> LeaseCalculationResult:
        lessor = self.lease.lessor
        total_minimum_rent = sum_cents(area.minimum_rent for area in self.plot_areas)
        total_revenue_share = sum_cents(area.revenue_share for area in self.plot_areas)
        return LeaseCalculationResult(
            lease_id=self.lease.id,
            lessor_id=lessor.id,
            lessor_name=lessor.display_name,
            lessor_address=lessor.address,
            lessor_bank_iban=lessor.bank_iban,
            lessor_bank_bic=lessor.bank_bic,
            lessor_bank_name=lessor.bank_name,
            plot_areas=tuple(self.plot_areas),
            total_minimum_rent=total_minimum_rent,
            total_revenue_share=total_revenue_share,
            total_payment=sum_cents(area.calculated_amount for area in self.plot_areas),
            total_difference=quantize_cent(total_revenue_share - total_minimum_rent),
            wea_count=self.wea_count,
            pool_count=self.pool_count,
            other_count=self.other_count,
        )


@dataclass
class _LeaseAdvance:
    lease: LeaseSnapshot
    wea_share_amount: Decimal = ZERO
    pool_share_amount: Decimal = ZERO
    special_amount: Decimal = ZERO
    wea_count: int = 0
    pool_area_sqm: Decimal = ZERO

    def freeze(self) -> AdvanceCalculationResult:
        lessor = self.lease.lessor
        monthly_minimum_rent = quantize_cent(self.wea_share_amount + self.pool_share_amount)
        return AdvanceCalculationResult(
            lease_id=self.lease.id,
            lessor_id=lessor.id,
            lessor_name=lessor.display_name,
            lessor_address=lessor.address,
            lessor_bank_iban=lessor.bank_iban,
            lessor_bank_bic=lessor.bank_bic,
            lessor_bank_name=lessor.bank_name,
            monthly_minimum_rent=monthly_minimum_rent,
            wea_share_amount=self.wea_share_amount,
            pool_share_amount=self.pool_share_amount,
            total_advance=quantize_cent(self.special_amount + monthly_minimum_rent),
            wea_count=self.wea_count,
            pool_area_sqm=self.pool_area_sqm,
        )


def special_area_amount(area: PlotAreaSnapshot, basis: DistributionBasis) -> Decimal:
    area_sqm = to_decimal(area.area_sqm)
    if area.area_type == AreaType.WEG:
        return area_sqm * basis.weg_rate
    if area.area_type == AreaType.AUSGLEICH:
        return area_sqm * basis.ausgleich_rate
    if area.area_type == AreaType.KABEL:
        return to_decimal(area.length_m) * basis.kabel_rate
    return ZERO


def standort_ratio(area_sqm: Decimal, basis: DistributionBasis) -> Decimal:
    if basis.total_standort_sqm > 0 and area_sqm > 0:
        return area_sqm / basis.total_standort_sqm
    if basis.total_wea_area_count > 0:
        return Decimal(1) / Decimal(basis.total_wea_area_count)
    return Decimal(0)


def pool_ratio(area_sqm: Decimal, basis: DistributionBasis) -> Decimal:
    if basis.total_pool_sqm > 0 and area_sqm > 0:
        return area_sqm / basis.total_pool_sqm
    return Decimal(0)


def calculate_plot_area(
    area: PlotAreaSnapshot,
    plot: PlotSnapshot,
    basis: DistributionBasis,
) -> PlotAreaCalculationResult:
    area_sqm = to_decimal(area.area_sqm)
    minimum_rent = ZERO
    revenue_share = ZERO
    calculated_amount = ZERO

    if area.compensation_fixed_amount is not None:
        calculated_amount = area.compensation_fixed_amount
        minimum_rent = area.compensation_fixed_amount
    elif area.area_type in (AreaType.WEA_STANDORT, AreaType.POOL):
        if area.area_type == AreaType.WEA_STANDORT:
            share_pct = basis.wea_share_percentage or ZERO
            ratio = standort_ratio(area_sqm, basis)
        else:
            share_pct = basis.pool_share_percentage or ZERO
            ratio = pool_ratio(area_sqm, basis)
        factor = share_pct / HUNDRED * basis.turbine_count * ratio
        calculated_amount = basis.payment_per_turbine * factor
        if basis.minimum_rent_per_turbine is not None:
            minimum_rent = basis.minimum_rent_per_turbine * factor
        revenue_share = basis.revenue_per_turbine * factor
    elif area.area_type in SPECIAL_AREA_TYPES:
        calculated_amount = special_area_amount(area, basis)

    minimum_rent = quantize_cent(minimum_rent)
    revenue_share = quantize_cent(revenue_share)
    return PlotAreaCalculationResult(
        plot_area_id=area.id,
        plot_id=plot.id,
        plot_number=plot.plot_number,
        cadastral_district=plot.cadastral_district,
        field_number=plot.field_number,
        area_type=area.area_type,
        area_sqm=area.area_sqm,
        length_m=area.length_m,
        compensation_type=area.compensation_type,
        compensation_fixed_amount=area.compensation_fixed_amount,
        compensation_percentage=area.compensation_percentage,
        minimum_rent=minimum_rent,
        revenue_share=revenue_share,
        calculated_amount=quantize_cent(calculated_amount),
        difference=revenue_share - minimum_rent,
    )


def turbine_payment(
    *,
    total_revenue: Decimal,
    revenue_phase_percentage: Decimal | None,
    turbine_count: int,
    minimum_rent_per_turbine: Decimal | None,
) -> tuple[Decimal, Decimal]:
    revenue_per_turbine = ZERO
    if total_revenue > 0 and revenue_phase_percentage is not None and turbine_count > 0:
        revenue_per_turbine = total_revenue * revenue_phase_percentage / HUNDRED / turbine_count
    if minimum_rent_per_turbine is None:
        return revenue_per_turbine, revenue_per_turbine
    return revenue_per_turbine, max(revenue_per_turbine, minimum_rent_per_turbine)


def area_totals(plots: list[PlotSnapshot]) -> tuple[Decimal, Decimal, int]:
    total_standort_sqm = Decimal(0)
    total_pool_sqm = Decimal(0)
    total_wea_area_count = 0
    for plot in plots:
        for area in plot.areas:
            if area.area_type == AreaType.WEA_STANDORT:
                total_wea_area_count += 1
                total_standort_sqm += to_decimal(area.area_sqm)
            elif area.area_type == AreaType.POOL:
                total_pool_sqm += to_decimal(area.area_sqm)
    return total_standort_sqm, total_pool_sqm, total_wea_area_count


class LeaseSettlementService:
    """Pachtabrechnung eines Windparks (Vorschuss und Jahresendabrechnung)."""

    def __init__(self, repository: SettlementRepository | None = None) -> None:
        self.repository = repository or DjangoSettlementRepository()

    def _load_park(self, park_id: int, mandant_id: int) -> ParkSnapshot:
        park = self.repository.load_park(park_id)
        if park is None:
            raise SettlementNotFound(f"Park mit ID {park_id} nicht gefunden")
        if park.mandant_id != mandant_id:
            raise SettlementPermissionDenied("Keine Berechtigung für diesen Park")
        return park

    @staticmethod
    def _validate_month(month: int | None) -> int:
        if month is None or not 1 <= int(month) <= 12:
            raise InvalidSettlementArgument("Monat muss zwischen 1 und 12 liegen")
        return int(month)

    def _resolve_total_revenue(
        self,
        *,
        park_id: int,
        year: int,
        mandant_id: int,
        override: Decimal | None,
        linked_revenue: Decimal | None,
    ) -> Decimal:
        if override is not None:
            return to_decimal(override)
        if linked_revenue is not None:
            return linked_revenue
        period_revenue = self.repository.load_final_period_revenue(park_id, year, mandant_id)
        if period_revenue is not None:
            return period_revenue
        return ZERO

    def calculate_settlement(
        self,
        park_id: int,
        year: int,
        mandant_id: int,
        period_type: str = PeriodType.FINAL,
        month: int | None = None,
        total_revenue: Decimal | str | int | None = None,
        linked_energy_settlement_id: int | None = None,
    ) -> SettlementResult | FinalSettlementResult:
        if period_type not in PeriodType.values:
            raise InvalidSettlementArgument(f"Unbekannter Periodentyp: {period_type}")
        if period_type == PeriodType.ADVANCE:
            self._validate_month(month)

        park = self._load_park(park_id, mandant_id)

        linked_revenue = None
        if linked_energy_settlement_id is not None:
            linked_revenue = self.repository.load_energy_settlement_revenue(linked_energy_settlement_id, mandant_id)

        resolved_revenue = self._resolve_total_revenue(
            park_id=park_id,
            year=year,
            mandant_id=mandant_id,
            override=to_decimal(total_revenue) if total_revenue is not None else None,
            linked_revenue=linked_revenue,
        )

        active_phase = park.active_revenue_phase(year)
        revenue_phase_percentage = active_phase.revenue_share_percentage if active_phase else None

        revenue_per_turbine, payment_per_turbine = turbine_payment(
            total_revenue=resolved_revenue,
            revenue_phase_percentage=revenue_phase_percentage,
            turbine_count=park.turbine_count,
            minimum_rent_per_turbine=park.minimum_rent_per_turbine,
        )

        plots = self.repository.load_plots_with_areas(park_id, mandant_id)
        total_standort_sqm, total_pool_sqm, total_wea_area_count = area_totals(plots)
        basis = DistributionBasis(
            total_standort_sqm=total_standort_sqm,
            total_pool_sqm=total_pool_sqm,
            total_wea_area_count=total_wea_area_count,
            turbine_count=park.turbine_count,
            payment_per_turbine=payment_per_turbine,
            revenue_per_turbine=revenue_per_turbine,
            minimum_rent_per_turbine=park.minimum_rent_per_turbine,
            wea_share_percentage=park.wea_share_percentage,
            pool_share_percentage=park.pool_share_percentage,
            weg_rate=park.weg_compensation_per_sqm or ZERO,
            ausgleich_rate=park.ausgleich_compensation_per_sqm or ZERO,
            kabel_rate=park.kabel_compensation_per_m or ZERO,
        )

        lease_map: dict[int, _LeaseTotals] = {}
        for plot in plots:
            lease = plot.active_lease
            if lease is None:
                continue
            lease_totals = lease_map.setdefault(lease.id, _LeaseTotals(lease=lease))
            for area in plot.areas:
                lease_totals.add(calculate_plot_area(area, plot, basis))

        leases = [lease_totals.freeze() for lease_totals in lease_map.values()]
        totals = SettlementTotals(
            lease_count=len(leases),
            total_minimum_rent=sum_cents(lease.total_minimum_rent for lease in leases),
            total_revenue_share=sum_cents(lease.total_revenue_share for lease in leases),
            total_payment=sum_cents(lease.total_payment for lease in leases),
            total_difference=sum_cents(lease.total_difference for lease in leases),
            wea_area_count=sum(lease.wea_count for lease in leases),
            pool_area_count=sum(lease.pool_count for lease in leases),
            other_area_count=sum(lease.other_count for lease in leases),
        )

        base_fields = {
            "park_id": park.id,
            "park_name": park.name,
            "year": year,
            "calculated_at": timezone.now(),
            "period_type": period_type,
            "minimum_rent_per_turbine": park.minimum_rent_per_turbine,
            "wea_share_percentage": park.wea_share_percentage,
            "pool_share_percentage": park.pool_share_percentage,
            "total_revenue": quantize_cent(resolved_revenue),
            "revenue_phase_percentage": revenue_phase_percentage,
            "revenue_per_turbine": quantize_cent(revenue_per_turbine),
            "payment_per_turbine": quantize_cent(payment_per_turbine),
            "totals": totals,
        }
        if period_type != PeriodType.FINAL:
            return SettlementResult(leases=tuple(leases), **base_fields)

        advance_payments = self.repository.load_advance_payments(park_id, year, mandant_id)
        paid_advances = sum_cents(payment.amount for payment in advance_payments)
        leases = [self._reconcile_lease(lease, advance_payments) for lease in leases]
        return FinalSettlementResult(
            leases=tuple(leases),
            paid_advances=paid_advances,
            remaining_amount=max(ZERO, quantize_cent(totals.total_payment - paid_advances)),
            advance_payments=tuple(advance_payments),
            linked_energy_settlement_id=linked_energy_settlement_id,
            linked_energy_settlement_revenue=linked_revenue,
            **base_fields,
        )

    @staticmethod
    def _reconcile_lease(
        lease: LeaseCalculationResult,
        advance_payments: list[AdvancePaymentInfo],
    ) -> LeaseCalculationResult:
        paid = sum_cents(payment.lease_amounts.get(lease.lease_id, ZERO) for payment in advance_payments)
        return replace(
            lease,
            paid_advances=paid,
            remaining_amount=max(ZERO, quantize_cent(lease.total_payment - paid)),
        )

    def calculate_monthly_advance(
        self,
        park_id: int,
        year: int,
        month: int,
        mandant_id: int,
    ) -> MonthlyAdvanceResult:
        month = self._validate_month(month)
        park = self._load_park(park_id, mandant_id)

        minimum_rent_per_turbine = park.minimum_rent_per_turbine or ZERO
        wea_share_percentage = park.wea_share_percentage or default_wea_share_percentage()
        pool_share_percentage = park.pool_share_percentage or default_pool_share_percentage()

        plots = self.repository.load_plots_with_areas(park_id, mandant_id)
        total_standort_sqm, total_pool_sqm, total_wea_area_count = area_totals(plots)
        basis = DistributionBasis(
            total_standort_sqm=total_standort_sqm,
            total_pool_sqm=total_pool_sqm,
            total_wea_area_count=total_wea_area_count,
            turbine_count=park.turbine_count,
            payment_per_turbine=minimum_rent_per_turbine,
            revenue_per_turbine=ZERO,
            minimum_rent_per_turbine=minimum_rent_per_turbine,
            wea_share_percentage=wea_share_percentage,
            pool_share_percentage=pool_share_percentage,
            weg_rate=park.weg_compensation_per_sqm or ZERO,
            ausgleich_rate=park.ausgleich_compensation_per_sqm or ZERO,
            kabel_rate=park.kabel_compensation_per_m or ZERO,
        )

        yearly_minimum_rent_base = minimum_rent_per_turbine * park.turbine_count
        yearly_wea_total = yearly_minimum_rent_base * wea_share_percentage / HUNDRED
        yearly_pool_total = yearly_minimum_rent_base * pool_share_percentage / HUNDRED

        yearly_special_compensation = ZERO
        for plot in plots:
            for area in plot.areas:
                if area.area_type not in SPECIAL_AREA_TYPES:
                    continue
                yearly_special_compensation += self._yearly_special_amount(area, basis)
        yearly_minimum_rent_total = quantize_cent(yearly_minimum_rent_base + yearly_special_compensation)

        advance_map: dict[int, _LeaseAdvance] = {}
        for plot in plots:
            lease = plot.active_lease
            if lease is None:
                continue
            advance = advance_map.setdefault(lease.id, _LeaseAdvance(lease=lease))
            for area in plot.areas:
                area_sqm = to_decimal(area.area_sqm)
                if area.area_type == AreaType.WEA_STANDORT:
                    advance.wea_count += 1
                    ratio = standort_ratio(area_sqm, basis)
                    advance.wea_share_amount += quantize_cent(yearly_wea_total * ratio / MONTHS_PER_YEAR)
                elif area.area_type == AreaType.POOL:
                    if area_sqm <= 0:
                        continue
                    advance.pool_area_sqm += area_sqm
                    ratio = pool_ratio(area_sqm, basis)
                    advance.pool_share_amount += quantize_cent(yearly_pool_total * ratio / MONTHS_PER_YEAR)
                elif area.area_type in SPECIAL_AREA_TYPES:
                    advance.special_amount += quantize_cent(
                        self._yearly_special_amount(area, basis) / MONTHS_PER_YEAR
                    )

        advances = [advance.freeze() for advance in advance_map.values()]
        return MonthlyAdvanceResult(
            park_id=park.id,
            park_name=park.name,
            year=year,
            month=month,
            calculated_at=timezone.now(),
            yearly_minimum_rent_total=yearly_minimum_rent_total,
            monthly_minimum_rent_total=quantize_cent(yearly_minimum_rent_total / MONTHS_PER_YEAR),
            wea_share_percentage=wea_share_percentage,
            pool_share_percentage=pool_share_percentage,
            advances=tuple(advances),
            totals=AdvanceTotals(
                lease_count=len(advances),
                total_monthly_advance=sum_cents(advance.total_advance for advance in advances),
                total_wea_share=sum_cents(advance.wea_share_amount for advance in advances),
                total_pool_share=sum_cents(advance.pool_share_amount for advance in advances),
                total_wea_count=total_wea_area_count,
                total_pool_area_sqm=total_pool_sqm,
            ),
        )

    @staticmethod
    def _yearly_special_amount(area: PlotAreaSnapshot, basis: DistributionBasis) -> Decimal:
        if area.compensation_fixed_amount is not None:
            return area.compensation_fixed_amount
        return special_area_amount(area, basis)

    @staticmethod
    def save_settlement_calculation(period_id: int, result: SettlementResult) -> LeaseSettlementPeriod:
        """Schreibt die Summen einer Berechnung in die Abrechnungsperiode."""
        with transaction.atomic():
            period = LeaseSettlementPeriod.objects.select_for_update().filter(pk=period_id).first()
            if period is None:
                raise SettlementNotFound(f"Abrechnungsperiode mit ID {period_id} nicht gefunden")
            period.total_revenue = result.total_revenue
            period.total_minimum_rent = result.totals.total_minimum_rent
            period.total_actual_rent = result.totals.total_payment
            period.status = LeaseSettlementPeriod.Status.IN_PROGRESS
            period.save(
                update_fields=[
                    "total_revenue",
                    "total_minimum_rent",
                    "total_actual_rent",
                    "status",
                    "updated_at",
                ]
            )
        logger.info(
            "Pachtabrechnung %s gespeichert: Erlös %s, Pacht %s.",
            period_id,
            result.total_revenue,
            result.totals.total_payment,
        )
        return period

    def calculate_period(
        self,
        period: LeaseSettlementPeriod,
        mandant_id: int,
        total_revenue: Decimal | str | int | None = None,
        save_result: bool = True,
    ) -> SettlementResult | FinalSettlementResult | MonthlyAdvanceResult:
        """Berechnet eine gespeicherte Abrechnungsperiode und speichert optional die Summen."""
        if period.mandant_id != mandant_id:
            raise SettlementPermissionDenied("Keine Berechtigung für diese Abrechnungsperiode")
        if period.status == LeaseSettlementPeriod.Status.CLOSED:
            raise InvalidSettlementArgument("Geschlossene Perioden können nicht neu berechnet werden")

        if period.period_type == PeriodType.ADVANCE:
            advance = self.calculate_monthly_advance(period.park_id, period.year, period.month or 1, mandant_id)
            if save_result:
                factor = ADVANCE_INTERVAL_FACTORS.get(period.advance_interval, 1)
                period.total_minimum_rent = quantize_cent(advance.totals.total_monthly_advance * factor)
                if period.status == LeaseSettlementPeriod.Status.OPEN:
                    period.status = LeaseSettlementPeriod.Status.IN_PROGRESS
                period.save(update_fields=["total_minimum_rent", "status", "updated_at"])
                logger.info(
                    "Vorschussperiode %s gespeichert: %s EUR (%s).",
                    period.pk,
                    period.total_minimum_rent,
                    period.advance_interval,
                )
            return advance

        if total_revenue is None and period.linked_energy_settlement_id is None and period.total_revenue:
            total_revenue = period.total_revenue
        result = self.calculate_settlement(
            period.park_id,
            period.year,
            mandant_id,
            period_type=PeriodType.FINAL,
            total_revenue=total_revenue,
            linked_energy_settlement_id=period.linked_energy_settlement_id,
        )
        if save_result:
            self.save_settlement_calculation(period.pk, result)
            period.refresh_from_db()
        return result
