from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol

from django.db.models import DecimalField, Prefetch, Q, Sum, Value
from django.db.models.functions import Coalesce

from ..models import (
    EnergySettlement,
    Invoice,
    LeasePlot,
    LeaseSettlementPeriod,
    Park,
    Plot,
    PlotArea,
    Turbine,
    TurbineOperator,
    TurbineProduction,
)
from .settlement_math import optional_decimal, to_decimal

logger = logging.getLogger(__name__)

ACTIVE = "ACTIVE"
COUNTED_PRODUCTION_STATUSES = (
    TurbineProduction.Status.CONFIRMED,
    TurbineProduction.Status.INVOICED,
)
PAID_INVOICE_STATUSES = (Invoice.Status.SENT, Invoice.Status.PAID)


@dataclass(frozen=True)
class RevenuePhaseSnapshot:
    phase_number: int
    start_year: int
    end_year: int | None
    revenue_share_percentage: Decimal

    def covers(self, years_in_operation: int) -> bool:
        if years_in_operation < self.start_year:
            return False
        return self.end_year is None or years_in_operation <= self.end_year


@dataclass(frozen=True)
class TurbineSnapshot:
    id: int
    designation: str


@dataclass(frozen=True)
class ParkSnapshot:
    id: int
    name: str
    mandant_id: int
    commissioning_date: date | None = None
    minimum_rent_per_turbine: Decimal | None = None
    wea_share_percentage: Decimal | None = None
    pool_share_percentage: Decimal | None = None
    weg_compensation_per_sqm: Decimal | None = None
    ausgleich_compensation_per_sqm: Decimal | None = None
    kabel_compensation_per_m: Decimal | None = None
    turbines: tuple[TurbineSnapshot, ...] = ()
    revenue_phases: tuple[RevenuePhaseSnapshot, ...] = ()

    @property
    def turbine_count(self) -> int:
        return len(self.turbines)

    def active_revenue_phase(self, year: int) -> RevenuePhaseSnapshot | None:
        """Erste passende Phase nach aufsteigendem Startjahr.

        Ohne Inbetriebnahmedatum gilt das Abrechnungsjahr als erstes Betriebsjahr.
        """
        if self.commissioning_date is not None:
            years_in_operation = year - self.commissioning_date.year + 1
        else:
            years_in_operation = 1
        phases = sorted(self.revenue_phases, key=lambda phase: (phase.start_year, phase.phase_number))
        for phase in phases:
            if phase.covers(years_in_operation):
                return phase
        return None


@dataclass(frozen=True)
class LessorSnapshot:
    id: int
    first_name: str = ""
    last_name: str = ""
    company_name: str = ""
    street: str = ""
    house_number: str = ""
    postal_code: str = ""
    city: str = ""
    country: str = "Deutschland"
    bank_iban: str = ""
    bank_bic: str = ""
    bank_name: str = ""

    @property
    def display_name(self) -> str:
        if self.company_name:
            return self.company_name
        return f"{self.first_name or ''} {self.last_name or ''}".strip() or "Unbekannt"

    @property
    def address(self) -> str | None:
        parts: list[str] = []
        if self.street:
            parts.append(f"{self.street} {self.house_number}".strip())
        if self.postal_code and self.city:
            parts.append(f"{self.postal_code} {self.city}")
        elif self.city:
            parts.append(self.city)
        if self.country and self.country != "Deutschland":
            parts.append(self.country)
        return ", ".join(parts) if parts else None


@dataclass(frozen=True)
class LeaseSnapshot:
    id: int
    status: str
    start_date: date
    lessor: LessorSnapshot


@dataclass(frozen=True)
class PlotAreaSnapshot:
    id: int
    area_type: str
    area_sqm: Decimal | None = None
    length_m: Decimal | None = None
    compensation_type: str = PlotArea.CompensationType.ANNUAL
    compensation_fixed_amount: Decimal | None = None
    compensation_percentage: Decimal | None = None


@dataclass(frozen=True)
class PlotSnapshot:
    id: int
    plot_number: str
    cadastral_district: str
    field_number: str
    areas: tuple[PlotAreaSnapshot, ...] = ()
    leases: tuple[LeaseSnapshot, ...] = ()

    @property
    def active_lease(self) -> LeaseSnapshot | None:
        # Mehrere aktive Verträge: frühester Vertragsbeginn, dann kleinste ID.
        active = [lease for lease in self.leases if lease.status == ACTIVE]
        if not active:
            return None
        return min(active, key=lambda lease: (lease.start_date, lease.id))


@dataclass(frozen=True)
class TurbineProductionData:
    turbine_id: int
    turbine_designation: str
    operator_fund_id: int
    operator_fund_name: str
    production_kwh: Decimal


@dataclass(frozen=True)
class AdvancePaymentInfo:
    month: int
    amount: Decimal
    invoice_id: int | None = None
    invoice_number: str | None = None
    paid_at: datetime | None = None
    lease_amounts: dict[int, Decimal] = field(default_factory=dict)


class SettlementRepository(Protocol):
    def load_park(self, park_id: int) -> ParkSnapshot | None:
        ...

    def load_plots_with_areas(self, park_id: int, mandant_id: int) -> list[PlotSnapshot]:
        ...

    def load_production_data(
        self,
        park_id: int,
        year: int,
        month: int | None,
        mandant_id: int,
    ) -> list[TurbineProductionData]:
        ...

    def load_advance_payments(self, park_id: int, year: int, mandant_id: int) -> list[AdvancePaymentInfo]:
        ...

    def load_energy_settlement_revenue(self, settlement_id: int, mandant_id: int) -> Decimal | None:
        ...

    def load_final_period_revenue(self, park_id: int, year: int, mandant_id: int) -> Decimal | None:
        ...


def operator_reference_date(year: int, month: int | None) -> date:
    if month:
        return date(year, month, 15)
    return date(year, 12, 31)


class DjangoSettlementRepository:
    """Liest Snapshots für die Abrechnungen über das Django-ORM."""

    def load_park(self, park_id: int) -> ParkSnapshot | None:
        park = (
            Park.objects.filter(pk=park_id)
            .prefetch_related(
                Prefetch(
                    "turbines",
                    queryset=Turbine.objects.filter(status=Turbine.Status.ACTIVE).order_by("designation", "id"),
                    to_attr="active_turbines",
                ),
                "revenue_phases",
            )
            .first()
        )
        if park is None:
            return None
        return ParkSnapshot(
            id=park.pk,
            name=park.name,
            mandant_id=park.mandant_id,
            commissioning_date=park.commissioning_date,
            minimum_rent_per_turbine=optional_decimal(park.minimum_rent_per_turbine),
            wea_share_percentage=optional_decimal(park.wea_share_percentage),
            pool_share_percentage=optional_decimal(park.pool_share_percentage),
            weg_compensation_per_sqm=optional_decimal(park.weg_compensation_per_sqm),
            ausgleich_compensation_per_sqm=optional_decimal(park.ausgleich_compensation_per_sqm),
            kabel_compensation_per_m=optional_decimal(park.kabel_compensation_per_m),
            turbines=tuple(
                TurbineSnapshot(id=turbine.pk, designation=turbine.designation)
                for turbine in park.active_turbines
            ),
            revenue_phases=tuple(
                RevenuePhaseSnapshot(
                    phase_number=phase.phase_number,
                    start_year=phase.start_year,
                    end_year=phase.end_year,
                    revenue_share_percentage=to_decimal(phase.revenue_share_percentage),
                )
                for phase in park.revenue_phases.all()
            ),
        )

    def load_plots_with_areas(self, park_id: int, mandant_id: int) -> list[PlotSnapshot]:
        plots = (
            Plot.objects.filter(park_id=park_id, mandant_id=mandant_id, status=Plot.Status.ACTIVE)
            .prefetch_related(
                Prefetch(
                    "plot_areas",
                    queryset=PlotArea.objects.filter(
                        compensation_type=PlotArea.CompensationType.ANNUAL
                    ).order_by("id"),
                    to_attr="annual_areas",
                ),
                Prefetch(
                    "lease_plots",
                    queryset=LeasePlot.objects.select_related("lease__lessor").order_by("lease__start_date", "lease_id"),
                    to_attr="lease_links",
                ),
            )
            .order_by("id")
        )

        snapshots: list[PlotSnapshot] = []
        for plot in plots:
            snapshots.append(
                PlotSnapshot(
                    id=plot.pk,
                    plot_number=plot.plot_number,
                    cadastral_district=plot.cadastral_district,
                    field_number=plot.field_number,
                    areas=tuple(self._area_snapshot(area) for area in plot.annual_areas),
                    leases=tuple(self._lease_snapshot(link.lease) for link in plot.lease_links),
                )
            )
        return snapshots

    @staticmethod
    def _area_snapshot(area: PlotArea) -> PlotAreaSnapshot:
        return PlotAreaSnapshot(
            id=area.pk,
            area_type=area.area_type,
            area_sqm=optional_decimal(area.area_sqm),
            length_m=optional_decimal(area.length_m),
            compensation_type=area.compensation_type,
            compensation_fixed_amount=optional_decimal(area.compensation_fixed_amount),
            compensation_percentage=optional_decimal(area.compensation_percentage),
        )

    @staticmethod
    def _lease_snapshot(lease) -> LeaseSnapshot:
        lessor = lease.lessor
        return LeaseSnapshot(
            id=lease.pk,
            status=lease.status,
            start_date=lease.start_date,
            lessor=LessorSnapshot(
                id=lessor.pk,
                first_name=lessor.first_name,
                last_name=lessor.last_name,
                company_name=lessor.company_name,
                street=lessor.street,
                house_number=lessor.house_number,
                postal_code=lessor.postal_code,
                city=lessor.city,
                country=lessor.country,
                bank_iban=lessor.bank_iban,
                bank_bic=lessor.bank_bic,
                bank_name=lessor.bank_name,
            ),
        )

    def load_production_data(
        self,
        park_id: int,
        year: int,
        month: int | None,
        mandant_id: int,
    ) -> list[TurbineProductionData]:
        reference_date = operator_reference_date(year, month)
        turbines = list(
            Turbine.objects.filter(park_id=park_id, status=Turbine.Status.ACTIVE).order_by("designation", "id")
        )
        turbine_ids = [turbine.pk for turbine in turbines]

        production_queryset = TurbineProduction.objects.filter(
            turbine_id__in=turbine_ids,
            year=year,
            mandant_id=mandant_id,
            status__in=COUNTED_PRODUCTION_STATUSES,
        )
        if month:
            production_queryset = production_queryset.filter(month=month)
        totals_by_turbine = {
            row["turbine_id"]: to_decimal(row["total_kwh"])
            for row in production_queryset.values("turbine_id").annotate(
                total_kwh=Coalesce(
                    Sum("production_kwh"),
                    Value(Decimal("0.000")),
                    output_field=DecimalField(max_digits=16, decimal_places=3),
                )
            )
        }

        # Mehrere gültige Zuordnungen: spätestes "gültig ab", dann größte ID.
        operator_by_turbine: dict[int, TurbineOperator] = {}
        assignments = (
            TurbineOperator.objects.filter(
                turbine_id__in=turbine_ids,
                status=TurbineOperator.Status.ACTIVE,
                valid_from__lte=reference_date,
            )
            .filter(Q(valid_to__isnull=True) | Q(valid_to__gt=reference_date))
            .select_related("operator_fund")
            .order_by("turbine_id", "-valid_from", "-id")
        )
        for assignment in assignments:
            operator_by_turbine.setdefault(assignment.turbine_id, assignment)

        result: list[TurbineProductionData] = []
        for turbine in turbines:
            operator = operator_by_turbine.get(turbine.pk)
            if operator is None:
                logger.warning(
                    "Kein aktiver Betreiber für Turbine %s (%s) am %s, Turbine wird nicht verteilt.",
                    turbine.designation,
                    turbine.pk,
                    reference_date.isoformat(),
                )
                continue
            result.append(
                TurbineProductionData(
                    turbine_id=turbine.pk,
                    turbine_designation=turbine.designation,
                    operator_fund_id=operator.operator_fund_id,
                    operator_fund_name=operator.operator_fund.name,
                    production_kwh=totals_by_turbine.get(turbine.pk, Decimal("0")),
                )
            )
        return result

    def load_advance_payments(self, park_id: int, year: int, mandant_id: int) -> list[AdvancePaymentInfo]:
        periods = (
            LeaseSettlementPeriod.objects.filter(
                park_id=park_id,
                year=year,
                mandant_id=mandant_id,
                period_type=LeaseSettlementPeriod.PeriodType.ADVANCE,
                month__isnull=False,
            )
            .prefetch_related(
                Prefetch(
                    "invoices",
                    queryset=Invoice.objects.filter(status__in=PAID_INVOICE_STATUSES).order_by("id"),
                    to_attr="paid_invoices",
                )
            )
            .order_by("month", "id")
        )

        payments: list[AdvancePaymentInfo] = []
        for period in periods:
            invoices = period.paid_invoices
            period_total = sum(
                (to_decimal(invoice.gross_amount) for invoice in invoices),
                Decimal("0.00"),
            )
            if period_total <= 0:
                continue
            lease_amounts: dict[int, Decimal] = {}
            for invoice in invoices:
                if invoice.lease_id is None:
                    continue
                lease_amounts[invoice.lease_id] = lease_amounts.get(invoice.lease_id, Decimal("0.00")) + to_decimal(
                    invoice.gross_amount
                )
            first_invoice = invoices[0]
            payments.append(
                AdvancePaymentInfo(
                    month=period.month,
                    amount=period_total,
                    invoice_id=first_invoice.pk,
                    invoice_number=first_invoice.invoice_number or None,
                    paid_at=first_invoice.paid_at,
                    lease_amounts=lease_amounts,
                )
            )
        return payments

    def load_energy_settlement_revenue(self, settlement_id: int, mandant_id: int) -> Decimal | None:
        revenue = (
            EnergySettlement.objects.filter(pk=settlement_id, mandant_id=mandant_id)
            .values_list("net_operator_revenue_eur", flat=True)
            .first()
        )
        return to_decimal(revenue) if revenue is not None else None

    def load_final_period_revenue(self, park_id: int, year: int, mandant_id: int) -> Decimal | None:
        revenue = (
            LeaseSettlementPeriod.objects.filter(
                park_id=park_id,
                year=year,
                mandant_id=mandant_id,
                period_type=LeaseSettlementPeriod.PeriodType.FINAL,
            )
            .order_by("id")
            .values_list("total_revenue", flat=True)
            .first()
        )
        return optional_decimal(revenue)
