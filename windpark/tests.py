from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import connection
from django.db.migrations.loader import MigrationLoader
from django.test import SimpleTestCase, TestCase, override_settings

from .models import (
    EnergySettlement,
    Fund,
    Invoice,
    Lease,
    LeasePlot,
    LeaseSettlementPeriod,
    Mandant,
    Park,
    Person,
    Plot,
    PlotArea,
    RevenuePhase,
    Turbine,
    TurbineOperator,
    TurbineProduction,
)
from .services.energy_settlement_service import (
    EnergySettlementInput,
    EnergySettlementService,
    TurbineDistribution,
    aggregate_by_operator,
    calculate_operator_summary,
    calculate_single_turbine_adjustment,
    distribution_strategy_for,
    format_distribution_key,
)
from .services.lease_settlement_service import FinalSettlementResult, LeaseSettlementService
from .services.settlement_errors import (
    InvalidSettlementArgument,
    SettlementNotFound,
    SettlementPermissionDenied,
)
from .services.settlement_math import format_money_de
from .services.settlement_repository import (
    AdvancePaymentInfo,
    DjangoSettlementRepository,
    LeaseSnapshot,
    LessorSnapshot,
    ParkSnapshot,
    PlotAreaSnapshot,
    PlotSnapshot,
    RevenuePhaseSnapshot,
    TurbineProductionData,
    TurbineSnapshot,
)

WEA = PlotArea.AreaType.WEA_STANDORT
POOL = PlotArea.AreaType.POOL


@dataclass
class InMemorySettlementRepository:
    park: ParkSnapshot | None = None
    plots: list = field(default_factory=list)
    production: list = field(default_factory=list)
    advance_payments: list = field(default_factory=list)
    energy_revenues: dict = field(default_factory=dict)
    final_period_revenue: Decimal | None = None

    def load_park(self, park_id):
        if self.park is None or self.park.id != park_id:
            return None
        return self.park

    def load_plots_with_areas(self, park_id, mandant_id):
        return list(self.plots)

    def load_production_data(self, park_id, year, month, mandant_id):
        return list(self.production)

    def load_advance_payments(self, park_id, year, mandant_id):
        return list(self.advance_payments)

    def load_energy_settlement_revenue(self, settlement_id, mandant_id):
        return self.energy_revenues.get(settlement_id)

    def load_final_period_revenue(self, park_id, year, mandant_id):
        return self.final_period_revenue


def build_park(**overrides) -> ParkSnapshot:
    values = {
        "id": 1,
        "name": "Windpark Nord",
        "mandant_id": 7,
        "minimum_rent_per_turbine": Decimal("1000"),
        "wea_share_percentage": Decimal("10"),
        "pool_share_percentage": Decimal("90"),
        "turbines": (TurbineSnapshot(id=1, designation="WEA 1"),),
    }
    values.update(overrides)
    return ParkSnapshot(**values)


def build_lease(lease_id=11, start=date(2015, 1, 1), status="ACTIVE") -> LeaseSnapshot:
    return LeaseSnapshot(
        id=lease_id,
        status=status,
        start_date=start,
        lessor=LessorSnapshot(
            id=lease_id * 10,
            first_name="Hanna",
            last_name="Meyer",
            street="Dorfstraße",
            house_number="4",
            postal_code="25899",
            city="Niebüll",
            bank_iban="DE02120300000000202051",
        ),
    )


def build_plot(*areas, leases=None, plot_id=1) -> PlotSnapshot:
    return PlotSnapshot(
        id=plot_id,
        plot_number=f"{plot_id}/1",
        cadastral_district="Bordelum",
        field_number="3",
        areas=tuple(areas),
        leases=tuple(leases if leases is not None else [build_lease()]),
    )


def standard_plot() -> PlotSnapshot:
    return build_plot(
        PlotAreaSnapshot(id=1, area_type=WEA, area_sqm=Decimal("1000")),
        PlotAreaSnapshot(id=2, area_type=POOL, area_sqm=Decimal("500")),
    )


class LeaseSettlementCalculationTests(SimpleTestCase):
    def _service(self, **repo_values) -> LeaseSettlementService:
        repo_values.setdefault("park", build_park())
        repo_values.setdefault("plots", [standard_plot()])
        return LeaseSettlementService(repository=InMemorySettlementRepository(**repo_values))

    def test_minimum_rent_is_split_between_standort_and_pool(self):
        result = self._service().calculate_settlement(1, 2024, 7, total_revenue=Decimal("0"))

        self.assertEqual(result.revenue_per_turbine, Decimal("0.00"))
        self.assertEqual(result.payment_per_turbine, Decimal("1000.00"))
        self.assertEqual(len(result.leases), 1)
        lease = result.leases[0]
        amounts = {area.area_type: area.calculated_amount for area in lease.plot_areas}
        self.assertEqual(amounts[WEA], Decimal("100.00"))
        self.assertEqual(amounts[POOL], Decimal("900.00"))
        self.assertEqual(lease.total_payment, Decimal("1000.00"))
        self.assertEqual(lease.total_minimum_rent, Decimal("1000.00"))
        self.assertEqual(result.totals.total_payment, Decimal("1000.00"))
        self.assertEqual(result.totals.wea_area_count, 1)
        self.assertEqual(result.totals.pool_area_count, 1)

    def test_payment_never_falls_below_minimum_rent(self):
        park = build_park(
            revenue_phases=(RevenuePhaseSnapshot(1, 1, None, Decimal("10")),),
            turbines=(TurbineSnapshot(1, "WEA 1"), TurbineSnapshot(2, "WEA 2")),
        )
        service = self._service(park=park)

        low = service.calculate_settlement(1, 2024, 7, total_revenue=Decimal("5000"))
        self.assertEqual(low.revenue_per_turbine, Decimal("250.00"))
        self.assertEqual(low.payment_per_turbine, Decimal("1000.00"))

        high = service.calculate_settlement(1, 2024, 7, total_revenue=Decimal("100000"))
        self.assertEqual(high.revenue_per_turbine, Decimal("5000.00"))
        self.assertEqual(high.payment_per_turbine, Decimal("5000.00"))
        self.assertEqual(high.leases[0].total_payment, Decimal("10000.00"))
        self.assertEqual(high.leases[0].total_difference, Decimal("8000.00"))

    def test_revenue_phase_follows_years_in_operation(self):
        park = build_park(
            commissioning_date=date(2020, 6, 1),
            revenue_phases=(
                RevenuePhaseSnapshot(2, 11, None, Decimal("12")),
                RevenuePhaseSnapshot(1, 1, 10, Decimal("8")),
            ),
        )
        service = self._service(park=park)

        early = service.calculate_settlement(1, 2029, 7, total_revenue=Decimal("100000"))
        late = service.calculate_settlement(1, 2031, 7, total_revenue=Decimal("100000"))

        self.assertEqual(early.revenue_phase_percentage, Decimal("8"))
        self.assertEqual(late.revenue_phase_percentage, Decimal("12"))
        self.assertEqual(late.payment_per_turbine, Decimal("12000.00"))

    def test_fixed_amount_overrides_every_formula(self):
        plot = build_plot(
            PlotAreaSnapshot(id=1, area_type=WEA, area_sqm=Decimal("1000")),
            PlotAreaSnapshot(
                id=2,
                area_type=POOL,
                area_sqm=Decimal("500"),
                compensation_fixed_amount=Decimal("333.33"),
            ),
        )
        result = self._service(plots=[plot]).calculate_settlement(1, 2024, 7, total_revenue=Decimal("0"))

        pool_area = [area for area in result.leases[0].plot_areas if area.area_type == POOL][0]
        self.assertEqual(pool_area.calculated_amount, Decimal("333.33"))
        self.assertEqual(pool_area.minimum_rent, Decimal("333.33"))

    def test_special_areas_use_park_rates(self):
        park = build_park(
            weg_compensation_per_sqm=Decimal("0.50"),
            kabel_compensation_per_m=Decimal("2"),
        )
        plot = build_plot(
            PlotAreaSnapshot(id=3, area_type=PlotArea.AreaType.WEG, area_sqm=Decimal("200")),
            PlotAreaSnapshot(id=4, area_type=PlotArea.AreaType.KABEL, length_m=Decimal("100")),
            PlotAreaSnapshot(id=5, area_type=PlotArea.AreaType.AUSGLEICH, area_sqm=Decimal("900")),
        )
        result = self._service(park=park, plots=[plot]).calculate_settlement(1, 2024, 7)

        amounts = [area.calculated_amount for area in result.leases[0].plot_areas]
        self.assertEqual(amounts, [Decimal("100.00"), Decimal("200.00"), Decimal("0.00")])
        self.assertEqual(result.totals.other_area_count, 3)

    def test_plots_without_active_lease_are_skipped(self):
        orphan = build_plot(
            PlotAreaSnapshot(id=9, area_type=POOL, area_sqm=Decimal("500")),
            leases=[build_lease(status="DRAFT")],
            plot_id=2,
        )
        result = self._service(plots=[standard_plot(), orphan]).calculate_settlement(1, 2024, 7)
        self.assertEqual(result.totals.lease_count, 1)
        # Die Poolfläche des Waisen-Flurstücks zählt trotzdem zur Gesamtfläche.
        pool_area = [area for area in result.leases[0].plot_areas if area.area_type == POOL][0]
        self.assertEqual(pool_area.calculated_amount, Decimal("450.00"))

    def test_earliest_active_lease_wins(self):
        later = build_lease(lease_id=20, start=date(2018, 1, 1))
        earlier = build_lease(lease_id=30, start=date(2016, 1, 1))
        plot = build_plot(
            PlotAreaSnapshot(id=1, area_type=WEA, area_sqm=Decimal("1000")),
            leases=[later, earlier],
        )
        result = self._service(plots=[plot]).calculate_settlement(1, 2024, 7)
        self.assertEqual(result.leases[0].lease_id, 30)

    def test_lessor_details_are_formatted(self):
        result = self._service().calculate_settlement(1, 2024, 7)
        lease = result.leases[0]
        self.assertEqual(lease.lessor_name, "Hanna Meyer")
        self.assertEqual(lease.lessor_address, "Dorfstraße 4, 25899 Niebüll")
        self.assertEqual(lease.lessor_bank_iban, "DE02120300000000202051")

    def test_revenue_resolution_order(self):
        service = self._service(
            energy_revenues={5: Decimal("40000")},
            final_period_revenue=Decimal("20000"),
            park=build_park(revenue_phases=(RevenuePhaseSnapshot(1, 1, None, Decimal("10")),)),
        )
        self.assertEqual(
            service.calculate_settlement(1, 2024, 7, total_revenue=Decimal("1"), linked_energy_settlement_id=5).total_revenue,
            Decimal("1.00"),
        )
        linked = service.calculate_settlement(1, 2024, 7, linked_energy_settlement_id=5)
        self.assertEqual(linked.total_revenue, Decimal("40000.00"))
        self.assertEqual(linked.linked_energy_settlement_revenue, Decimal("40000"))
        self.assertEqual(service.calculate_settlement(1, 2024, 7).total_revenue, Decimal("20000.00"))

    def test_final_settlement_reconciles_paid_advances(self):
        payments = [
            AdvancePaymentInfo(month=1, amount=Decimal("300.00"), lease_amounts={11: Decimal("300.00")}),
            AdvancePaymentInfo(month=2, amount=Decimal("300.00"), lease_amounts={11: Decimal("300.00")}),
        ]
        result = self._service(advance_payments=payments).calculate_settlement(1, 2024, 7)

        self.assertIsInstance(result, FinalSettlementResult)
        self.assertEqual(result.paid_advances, Decimal("600.00"))
        self.assertEqual(result.remaining_amount, Decimal("400.00"))
        self.assertEqual(result.leases[0].paid_advances, Decimal("600.00"))
        self.assertEqual(result.leases[0].remaining_amount, Decimal("400.00"))

    def test_remaining_amount_is_never_negative(self):
        payments = [AdvancePaymentInfo(month=1, amount=Decimal("1500.00"), lease_amounts={11: Decimal("1500.00")})]
        result = self._service(advance_payments=payments).calculate_settlement(1, 2024, 7)
        self.assertEqual(result.remaining_amount, Decimal("0.00"))
        self.assertEqual(result.leases[0].remaining_amount, Decimal("0.00"))

    def test_advance_settlement_is_not_reconciled(self):
        result = self._service().calculate_settlement(1, 2024, 7, period_type="ADVANCE", month=3)
        self.assertNotIsInstance(result, FinalSettlementResult)
        self.assertIsNone(result.leases[0].remaining_amount)

    def test_monthly_advance_splits_minimum_rent(self):
        result = self._service().calculate_monthly_advance(1, 2024, 3, 7)

        self.assertEqual(result.yearly_minimum_rent_total, Decimal("1000.00"))
        self.assertEqual(result.monthly_minimum_rent_total, Decimal("83.33"))
        advance = result.advances[0]
        self.assertEqual(advance.wea_share_amount, Decimal("8.33"))
        self.assertEqual(advance.pool_share_amount, Decimal("75.00"))
        self.assertEqual(advance.total_advance, Decimal("83.33"))
        self.assertEqual(advance.pool_area_sqm, Decimal("500"))
        self.assertEqual(result.totals.total_wea_count, 1)

    @override_settings(WINDPARK_DEFAULT_WEA_SHARE_PERCENTAGE="20", WINDPARK_DEFAULT_POOL_SHARE_PERCENTAGE="80")
    def test_monthly_advance_uses_configured_default_shares(self):
        park = build_park(wea_share_percentage=None, pool_share_percentage=None, minimum_rent_per_turbine=Decimal("1200"))
        result = self._service(park=park).calculate_monthly_advance(1, 2024, 1, 7)
        self.assertEqual(result.wea_share_percentage, Decimal("20"))
        self.assertEqual(result.advances[0].wea_share_amount, Decimal("20.00"))
        self.assertEqual(result.advances[0].pool_share_amount, Decimal("80.00"))

    def test_monthly_advance_includes_special_areas(self):
        park = build_park(weg_compensation_per_sqm=Decimal("1.20"))
        plot = build_plot(
            PlotAreaSnapshot(id=1, area_type=WEA, area_sqm=Decimal("1000")),
            PlotAreaSnapshot(id=3, area_type=PlotArea.AreaType.WEG, area_sqm=Decimal("100")),
        )
        result = self._service(park=park, plots=[plot]).calculate_monthly_advance(1, 2024, 1, 7)
        self.assertEqual(result.yearly_minimum_rent_total, Decimal("1120.00"))
        self.assertEqual(result.advances[0].total_advance, Decimal("18.33"))

    def test_unknown_park_raises_not_found(self):
        service = self._service(park=None)
        with self.assertRaises(SettlementNotFound) as ctx:
            service.calculate_settlement(1, 2024, 7)
        self.assertIsInstance(ctx.exception, ObjectDoesNotExist)

    def test_foreign_mandant_is_denied(self):
        with self.assertRaises(PermissionDenied):
            self._service().calculate_settlement(1, 2024, 99)
        with self.assertRaises(SettlementPermissionDenied):
            self._service().calculate_monthly_advance(1, 2024, 1, 99)

    def test_standort_areas_without_size_share_equally(self):
        park = build_park(
            commissioning_date=date(2024, 1, 1),
            revenue_phases=(RevenuePhaseSnapshot(1, 5, None, Decimal("10")),),
        )
        plot = build_plot(
            PlotAreaSnapshot(id=1, area_type=WEA),
            PlotAreaSnapshot(id=2, area_type=WEA),
        )
        result = self._service(park=park, plots=[plot]).calculate_settlement(
            1, 2024, 7, total_revenue=Decimal("1000000")
        )

        amounts = [area.calculated_amount for area in result.leases[0].plot_areas]
        self.assertEqual(amounts, [Decimal("50.00"), Decimal("50.00")])
        self.assertEqual(result.totals.wea_area_count, 2)

    def test_pool_area_without_size_gets_nothing(self):
        plot = build_plot(PlotAreaSnapshot(id=2, area_type=POOL))
        result = self._service(plots=[plot]).calculate_settlement(1, 2024, 7, total_revenue=Decimal("0"))

        amounts = [area.calculated_amount for area in result.leases[0].plot_areas]
        self.assertEqual(amounts, [Decimal("0.00")])

    def test_year_before_first_phase_has_no_revenue_share(self):
        park = build_park(
            commissioning_date=date(2024, 1, 1),
            revenue_phases=(RevenuePhaseSnapshot(1, 5, None, Decimal("10")),),
        )
        result = self._service(park=park).calculate_settlement(1, 2024, 7, total_revenue=Decimal("1000000"))

        self.assertIsNone(result.revenue_phase_percentage)
        self.assertEqual(result.revenue_per_turbine, Decimal("0.00"))
        self.assertEqual(result.payment_per_turbine, Decimal("1000.00"))
        self.assertEqual(result.leases[0].total_revenue_share, Decimal("0.00"))

    def test_invalid_arguments(self):
        service = self._service()
        with self.assertRaises(InvalidSettlementArgument):
            service.calculate_settlement(1, 2024, 7, period_type="ADVANCE", month=13)
        with self.assertRaises(InvalidSettlementArgument):
            service.calculate_settlement(1, 2024, 7, period_type="QUARTER")
        with self.assertRaises(ValueError):
            service.calculate_monthly_advance(1, 2024, 0, 7)


def production(turbine_id, kwh, fund_id=100, fund_name="Betreiber GmbH") -> TurbineProductionData:
    return TurbineProductionData(
        turbine_id=turbine_id,
        turbine_designation=f"WEA {turbine_id}",
        operator_fund_id=fund_id,
        operator_fund_name=fund_name,
        production_kwh=Decimal(kwh),
    )


class EnergySettlementCalculationTests(SimpleTestCase):
    def _service(self, production_data, park=None) -> EnergySettlementService:
        return EnergySettlementService(
            repository=InMemorySettlementRepository(
                park=park or build_park(),
                production=production_data,
            )
        )

    def _input(self, mode, revenue="100000", **overrides) -> EnergySettlementInput:
        values = {
            "park_id": 1,
            "year": 2024,
            "month": None,
            "net_operator_revenue_eur": Decimal(revenue),
            "distribution_mode": mode,
            "mandant_id": 7,
        }
        values.update(overrides)
        return EnergySettlementInput(**values)

    def test_smoothed_distribution_levels_revenue(self):
        service = self._service([production(1, "600000"), production(2, "400000")])
        result = service.calculate_energy_settlement(self._input("SMOOTHED", rate_per_kwh_ct=Decimal("10")))

        first, second = result.distributions
        self.assertEqual(result.average_production_kwh, Decimal("500000"))
        self.assertEqual((first.base_revenue_eur, second.base_revenue_eur), (Decimal("60000.00"), Decimal("40000.00")))
        self.assertEqual(first.deviation_from_average, Decimal("100000.00"))
        self.assertEqual(second.deviation_from_average, Decimal("-100000.00"))
        self.assertEqual(first.tolerance_adjustment_eur, Decimal("10000.00"))
        self.assertEqual(second.tolerance_adjustment_eur, Decimal("-10000.00"))
        self.assertEqual((first.final_revenue_eur, second.final_revenue_eur), (Decimal("50000.00"), Decimal("50000.00")))
        self.assertEqual(result.total_distributed_eur, Decimal("100000.00"))
        self.assertEqual(format_distribution_key(first, "SMOOTHED"), "DULDUNG ABZUG: 10000.00 EUR (100000.00 kWh)")
        self.assertEqual(
            format_distribution_key(second, "SMOOTHED"),
            "DULDUNG ZUSCHLAG: 10000.00 EUR (-100000.00 kWh)",
        )

    def test_tolerated_distribution_only_compensates_outside_band(self):
        service = self._service([production(1, "600000"), production(2, "400000")])
        result = service.calculate_energy_settlement(
            self._input("TOLERATED", rate_per_kwh_ct=Decimal("10"), tolerance_percentage=Decimal("5"))
        )

        first, second = result.distributions
        self.assertEqual(first.tolerance_adjustment_eur, Decimal("7500.00"))
        self.assertEqual(second.tolerance_adjustment_eur, Decimal("-7500.00"))
        self.assertEqual(first.final_revenue_eur, Decimal("52500.00"))
        self.assertEqual(second.final_revenue_eur, Decimal("47500.00"))
        self.assertEqual(result.calculation_details["tolerance_mode"]["mode"], "TOLERATED")

    def test_tolerated_inside_band_has_no_adjustment(self):
        service = self._service([production(1, "510000"), production(2, "490000")])
        result = service.calculate_energy_settlement(
            self._input("TOLERATED", rate_per_kwh_ct=Decimal("10"), tolerance_percentage=Decimal("5"))
        )
        self.assertEqual([item.tolerance_adjustment_eur for item in result.distributions], [Decimal("0.00")] * 2)
        self.assertEqual(result.distributions[0].final_revenue_eur, Decimal("51000.00"))

    @override_settings(WINDPARK_DEFAULT_TOLERANCE_PERCENTAGE="5")
    def test_tolerated_without_tolerance_uses_default(self):
        service = self._service([production(1, "600000"), production(2, "400000")])
        result = service.calculate_energy_settlement(self._input("TOLERATED", rate_per_kwh_ct=Decimal("10")))
        self.assertEqual(result.distributions[0].final_revenue_eur, Decimal("52500.00"))

    def test_zero_tolerance_matches_smoothed(self):
        data = [production(1, "612345.5"), production(2, "500000"), production(3, "387654.5")]
        smoothed = self._service(data).calculate_energy_settlement(
            self._input("SMOOTHED", rate_per_kwh_ct=Decimal("8.18"))
        )
        tolerated = self._service(data).calculate_energy_settlement(
            self._input("TOLERATED", rate_per_kwh_ct=Decimal("8.18"), tolerance_percentage=Decimal("0"))
        )
        self.assertEqual(
            [item.final_revenue_eur for item in smoothed.distributions],
            [item.final_revenue_eur for item in tolerated.distributions],
        )
        self.assertEqual(smoothed.distributions[1].tolerance_adjustment_eur, Decimal("0.00"))

    def test_proportional_distribution_conserves_revenue(self):
        service = self._service([production(1, "1"), production(2, "1"), production(3, "1")])
        result = service.calculate_energy_settlement(self._input("PROPORTIONAL", revenue="100"))

        finals = [item.final_revenue_eur for item in result.distributions]
        self.assertEqual(finals, [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")])
        self.assertEqual(sum(finals), Decimal("100.00"))
        self.assertEqual(result.distributions[0].production_share_pct, Decimal("33.33333"))
        self.assertIsNone(result.distributions[0].tolerance_adjustment_eur)
        self.assertEqual(format_distribution_key(result.distributions[0], "PROPORTIONAL"), "PROPORTIONAL: 33.333%")

    def test_smoothed_rounding_residual_goes_to_last_turbine(self):
        service = self._service([production(1, "1"), production(2, "1"), production(3, "1")])
        result = service.calculate_energy_settlement(
            self._input("SMOOTHED", revenue="100", rate_per_kwh_ct=Decimal("10"))
        )
        self.assertEqual(result.distributions[-1].final_revenue_eur, Decimal("33.34"))
        self.assertEqual(result.total_distributed_eur, Decimal("100.00"))

    def test_smoothing_requires_rate(self):
        service = self._service([production(1, "1")])
        with self.assertRaises(InvalidSettlementArgument):
            service.calculate_energy_settlement(self._input("SMOOTHED"))
        with self.assertRaises(InvalidSettlementArgument):
            service.calculate_energy_settlement(self._input("TOLERATED", rate_per_kwh_ct=Decimal("0")))

    def test_zero_rate_given_as_text_is_rejected(self):
        for mode in ("SMOOTHED", "TOLERATED"):
            with self.subTest(mode=mode):
                with self.assertRaises(InvalidSettlementArgument):
                    distribution_strategy_for(mode, rate_per_kwh_ct="0")
                with self.assertRaises(InvalidSettlementArgument):
                    distribution_strategy_for(mode, rate_per_kwh_ct="-5")
        strategy = distribution_strategy_for("SMOOTHED", rate_per_kwh_ct="8")
        self.assertEqual(strategy.rate_per_kwh_eur, Decimal("0.08"))

    def test_negative_revenue_and_invalid_month(self):
        service = self._service([production(1, "1")])
        with self.assertRaises(InvalidSettlementArgument):
            service.calculate_energy_settlement(self._input("PROPORTIONAL", revenue="-1"))
        with self.assertRaises(InvalidSettlementArgument):
            service.calculate_energy_settlement(self._input("PROPORTIONAL", month=13))

    def test_missing_park_and_foreign_mandant(self):
        with self.assertRaises(SettlementNotFound):
            EnergySettlementService(repository=InMemorySettlementRepository()).calculate_energy_settlement(
                self._input("PROPORTIONAL")
            )
        with self.assertRaises(SettlementPermissionDenied):
            self._service([production(1, "1")]).calculate_energy_settlement(
                self._input("PROPORTIONAL", mandant_id=8)
            )

    def test_no_production_data_raises_not_found(self):
        with self.assertRaises(SettlementNotFound):
            self._service([]).calculate_energy_settlement(self._input("PROPORTIONAL", month=3))

    def test_single_turbine_adjustment(self):
        self.assertEqual(
            calculate_single_turbine_adjustment("551286.3", "527664.53", "8.18"),
            Decimal("1932.26"),
        )
        self.assertEqual(calculate_single_turbine_adjustment(400, 500, 10), Decimal("-10.00"))

    def test_operator_summary_groups_by_fund(self):
        service = self._service(
            [
                production(1, "600000", fund_id=100, fund_name="Nordwind GmbH"),
                production(2, "400000", fund_id=200, fund_name="Südwind GmbH"),
                production(3, "500000", fund_id=100, fund_name="Nordwind GmbH"),
            ]
        )
        result = service.calculate_energy_settlement(
            self._input("SMOOTHED", revenue="150000", rate_per_kwh_ct=Decimal("10"))
        )
        grouped = aggregate_by_operator(result.distributions)
        self.assertEqual(list(grouped), [100, 200])
        self.assertEqual([item.turbine_id for item in grouped[100]], [1, 3])

        summaries = calculate_operator_summary(result.distributions)
        nordwind = summaries[0]
        self.assertEqual(nordwind.turbine_count, 2)
        self.assertEqual(nordwind.total_production_kwh, Decimal("1100000.00"))
        self.assertEqual(nordwind.total_adjustment_eur, Decimal("10000.00"))
        self.assertEqual(nordwind.total_final_revenue_eur, Decimal("100000.00"))
        self.assertEqual(summaries[1].total_final_revenue_eur, Decimal("50000.00"))

    def test_distribution_key_for_tolerated_without_adjustment(self):
        distribution = TurbineDistribution(
            turbine_id=1,
            turbine_designation="WEA 1",
            operator_fund_id=1,
            operator_fund_name="Fonds",
            production_kwh=Decimal("10"),
            production_share_pct=Decimal("50"),
            base_revenue_eur=Decimal("5"),
            final_revenue_eur=Decimal("5"),
        )
        self.assertEqual(format_distribution_key(distribution, "TOLERATED"), "DULDUNG ZUSCHLAG: 0.00 EUR (0.00 kWh)")

    def test_format_money_de(self):
        self.assertEqual(format_money_de(Decimal("1234567.891")), "1.234.567,89")


class WindparkFixtureMixin:
    def create_park(self):
        self.mandant = Mandant.objects.create(name="Bürgerwind")
        self.other_mandant = Mandant.objects.create(name="Fremd")
        self.park = Park.objects.create(
            mandant=self.mandant,
            name="Windpark Nord",
            commissioning_date=date(2020, 1, 1),
            minimum_rent_per_turbine=Decimal("1000.00"),
            wea_share_percentage=Decimal("10.00"),
            pool_share_percentage=Decimal("90.00"),
        )
        RevenuePhase.objects.create(
            park=self.park,
            phase_number=1,
            start_year=1,
            end_year=None,
            revenue_share_percentage=Decimal("10.00"),
        )
        self.turbine_1 = Turbine.objects.create(park=self.park, designation="WEA 1")
        self.turbine_2 = Turbine.objects.create(park=self.park, designation="WEA 2")
        self.fund_a = Fund.objects.create(mandant=self.mandant, name="Nordwind GmbH & Co. KG")
        self.fund_b = Fund.objects.create(mandant=self.mandant, name="Südwind GmbH & Co. KG")

        self.lessor = Person.objects.create(mandant=self.mandant, first_name="Hanna", last_name="Meyer")
        self.plot = Plot.objects.create(
            mandant=self.mandant,
            park=self.park,
            cadastral_district="Bordelum",
            field_number="3",
            plot_number="12/1",
        )
        PlotArea.objects.create(plot=self.plot, area_type=WEA, area_sqm=Decimal("1000.00"))
        PlotArea.objects.create(plot=self.plot, area_type=POOL, area_sqm=Decimal("500.00"))
        PlotArea.objects.create(
            plot=self.plot,
            area_type=POOL,
            area_sqm=Decimal("9999.00"),
            compensation_type=PlotArea.CompensationType.ONE_TIME,
        )
        self.lease = Lease.objects.create(mandant=self.mandant, lessor=self.lessor, start_date=date(2019, 1, 1))
        LeasePlot.objects.create(lease=self.lease, plot=self.plot)

    def add_operators(self):
        TurbineOperator.objects.create(turbine=self.turbine_1, operator_fund=self.fund_a, valid_from=date(2020, 1, 1))
        TurbineOperator.objects.create(turbine=self.turbine_2, operator_fund=self.fund_b, valid_from=date(2020, 1, 1))

    def add_production(self, year=2024, month=1, kwh_1="600000", kwh_2="400000"):
        status = TurbineProduction.Status.CONFIRMED
        TurbineProduction.objects.create(
            mandant=self.mandant, turbine=self.turbine_1, year=year, month=month, production_kwh=Decimal(kwh_1), status=status
        )
        TurbineProduction.objects.create(
            mandant=self.mandant, turbine=self.turbine_2, year=year, month=month, production_kwh=Decimal(kwh_2), status=status
        )


class DjangoSettlementRepositoryTests(WindparkFixtureMixin, TestCase):
    def setUp(self):
        self.create_park()
        self.repository = DjangoSettlementRepository()

    def test_load_park_only_counts_active_turbines(self):
        Turbine.objects.create(park=self.park, designation="WEA 3", status=Turbine.Status.DECOMMISSIONED)
        snapshot = self.repository.load_park(self.park.pk)
        self.assertEqual(snapshot.turbine_count, 2)
        self.assertEqual(snapshot.minimum_rent_per_turbine, Decimal("1000.00"))
        self.assertEqual(snapshot.active_revenue_phase(2024).revenue_share_percentage, Decimal("10.00"))
        self.assertIsNone(self.repository.load_park(999999))

    def test_plots_load_only_annual_areas(self):
        plots = self.repository.load_plots_with_areas(self.park.pk, self.mandant.pk)
        self.assertEqual(len(plots), 1)
        self.assertEqual(len(plots[0].areas), 2)
        self.assertEqual(plots[0].active_lease.id, self.lease.pk)
        self.assertEqual(self.repository.load_plots_with_areas(self.park.pk, self.other_mandant.pk), [])

    def test_earliest_active_lease_is_chosen(self):
        newer_lessor = Person.objects.create(mandant=self.mandant, company_name="Agrar KG")
        newer = Lease.objects.create(mandant=self.mandant, lessor=newer_lessor, start_date=date(2021, 1, 1))
        LeasePlot.objects.create(lease=newer, plot=self.plot)

        plot = self.repository.load_plots_with_areas(self.park.pk, self.mandant.pk)[0]
        self.assertEqual(plot.active_lease.id, self.lease.pk)

    def test_production_counts_confirmed_and_invoiced_only(self):
        self.add_operators()
        self.add_production(month=1)
        TurbineProduction.objects.create(
            mandant=self.mandant,
            turbine=self.turbine_1,
            year=2024,
            month=2,
            production_kwh=Decimal("50000"),
            status=TurbineProduction.Status.INVOICED,
        )
        TurbineProduction.objects.create(
            mandant=self.mandant,
            turbine=self.turbine_2,
            year=2024,
            month=2,
            production_kwh=Decimal("77777"),
            status=TurbineProduction.Status.DRAFT,
        )

        yearly = self.repository.load_production_data(self.park.pk, 2024, None, self.mandant.pk)
        self.assertEqual([item.production_kwh for item in yearly], [Decimal("650000"), Decimal("400000")])

        february = self.repository.load_production_data(self.park.pk, 2024, 2, self.mandant.pk)
        self.assertEqual([item.production_kwh for item in february], [Decimal("50000"), Decimal("0")])

    def test_latest_valid_operator_wins(self):
        TurbineOperator.objects.create(turbine=self.turbine_1, operator_fund=self.fund_a, valid_from=date(2020, 1, 1))
        TurbineOperator.objects.create(turbine=self.turbine_1, operator_fund=self.fund_b, valid_from=date(2023, 1, 1))
        TurbineOperator.objects.create(
            turbine=self.turbine_2,
            operator_fund=self.fund_a,
            valid_from=date(2020, 1, 1),
            valid_to=date(2024, 1, 15),
        )
        TurbineOperator.objects.create(turbine=self.turbine_2, operator_fund=self.fund_b, valid_from=date(2024, 1, 15))
        TurbineOperator.objects.create(turbine=self.turbine_2, operator_fund=self.fund_a, valid_from=date(2024, 1, 15))

        data = self.repository.load_production_data(self.park.pk, 2024, 1, self.mandant.pk)
        self.assertEqual(data[0].operator_fund_id, self.fund_b.pk)
        # Gleicher Stichtag: höchste ID gewinnt.
        self.assertEqual(data[1].operator_fund_id, self.fund_a.pk)

    def test_turbine_without_operator_is_skipped_with_warning(self):
        TurbineOperator.objects.create(turbine=self.turbine_1, operator_fund=self.fund_a, valid_from=date(2020, 1, 1))
        TurbineOperator.objects.create(
            turbine=self.turbine_2,
            operator_fund=self.fund_b,
            valid_from=date(2020, 1, 1),
            status=TurbineOperator.Status.INACTIVE,
        )

        with self.assertLogs("windpark.services.settlement_repository", level="WARNING") as logs:
            data = self.repository.load_production_data(self.park.pk, 2024, None, self.mandant.pk)

        self.assertEqual([item.turbine_id for item in data], [self.turbine_1.pk])
        self.assertIn("WEA 2", logs.output[0])

    def test_advance_payments_sum_paid_invoices(self):
        january = LeaseSettlementPeriod.objects.create(
            mandant=self.mandant,
            park=self.park,
            year=2024,
            period_type=LeaseSettlementPeriod.PeriodType.ADVANCE,
            month=1,
        )
        february = LeaseSettlementPeriod.objects.create(
            mandant=self.mandant,
            park=self.park,
            year=2024,
            period_type=LeaseSettlementPeriod.PeriodType.ADVANCE,
            month=2,
        )
        Invoice.objects.create(
            mandant=self.mandant,
            settlement_period=january,
            lease=self.lease,
            invoice_number="GS-2024-001",
            gross_amount=Decimal("83.33"),
            status=Invoice.Status.PAID,
        )
        Invoice.objects.create(
            mandant=self.mandant,
            settlement_period=january,
            gross_amount=Decimal("10.00"),
            status=Invoice.Status.SENT,
        )
        Invoice.objects.create(
            mandant=self.mandant,
            settlement_period=february,
            lease=self.lease,
            gross_amount=Decimal("999.00"),
            status=Invoice.Status.DRAFT,
        )

        payments = self.repository.load_advance_payments(self.park.pk, 2024, self.mandant.pk)

        self.assertEqual(len(payments), 1)
        self.assertEqual(payments[0].month, 1)
        self.assertEqual(payments[0].amount, Decimal("93.33"))
        self.assertEqual(payments[0].invoice_number, "GS-2024-001")
        self.assertEqual(payments[0].lease_amounts, {self.lease.pk: Decimal("83.33")})


class LeaseSettlementPersistenceTests(WindparkFixtureMixin, TestCase):
    def setUp(self):
        self.create_park()
        self.service = LeaseSettlementService()

    def test_final_period_is_calculated_and_saved(self):
        period = LeaseSettlementPeriod.objects.create(mandant=self.mandant, park=self.park, year=2024)
        advance = LeaseSettlementPeriod.objects.create(
            mandant=self.mandant,
            park=self.park,
            year=2024,
            period_type=LeaseSettlementPeriod.PeriodType.ADVANCE,
            month=1,
        )
        Invoice.objects.create(
            mandant=self.mandant,
            settlement_period=advance,
            lease=self.lease,
            gross_amount=Decimal("500.00"),
            status=Invoice.Status.PAID,
        )

        result = self.service.calculate_period(period, self.mandant.pk, total_revenue=Decimal("50000"))

        # Erlösanteil 50000 * 10 % / 2 WEA = 2500 liegt über der Mindestpacht.
        self.assertEqual(result.payment_per_turbine, Decimal("2500.00"))
        self.assertEqual(result.totals.total_payment, Decimal("5000.00"))
        self.assertEqual(result.remaining_amount, Decimal("4500.00"))
        self.assertEqual(period.status, LeaseSettlementPeriod.Status.IN_PROGRESS)
        self.assertEqual(period.total_revenue, Decimal("50000.00"))
        self.assertEqual(period.total_actual_rent, Decimal("5000.00"))
        self.assertEqual(period.total_minimum_rent, Decimal("2000.00"))
        self.assertEqual(period.history.count(), 2)

    def test_linked_energy_settlement_provides_revenue(self):
        settlement = EnergySettlement.objects.create(
            mandant=self.mandant,
            park=self.park,
            year=2024,
            net_operator_revenue_eur=Decimal("80000.00"),
        )
        period = LeaseSettlementPeriod.objects.create(
            mandant=self.mandant,
            park=self.park,
            year=2024,
            linked_energy_settlement=settlement,
        )
        result = self.service.calculate_period(period, self.mandant.pk)
        self.assertEqual(result.total_revenue, Decimal("80000.00"))
        self.assertEqual(result.linked_energy_settlement_id, settlement.pk)

    def test_quarterly_advance_period_is_scaled(self):
        period = LeaseSettlementPeriod.objects.create(
            mandant=self.mandant,
            park=self.park,
            year=2024,
            period_type=LeaseSettlementPeriod.PeriodType.ADVANCE,
            month=4,
            advance_interval=LeaseSettlementPeriod.AdvanceInterval.QUARTERLY,
        )
        result = self.service.calculate_period(period, self.mandant.pk)

        # 2000 EUR Mindestpacht/Jahr: 200 WEA-Anteil, 1800 Pool-Anteil
        self.assertEqual(result.totals.total_monthly_advance, Decimal("166.67"))
        period.refresh_from_db()
        self.assertEqual(period.total_minimum_rent, Decimal("500.01"))
        self.assertEqual(period.status, LeaseSettlementPeriod.Status.IN_PROGRESS)

    def test_closed_period_is_rejected(self):
        period = LeaseSettlementPeriod.objects.create(
            mandant=self.mandant,
            park=self.park,
            year=2024,
            status=LeaseSettlementPeriod.Status.CLOSED,
        )
        with self.assertRaises(InvalidSettlementArgument):
            self.service.calculate_period(period, self.mandant.pk)
        with self.assertRaises(PermissionDenied):
            self.service.calculate_period(period, self.other_mandant.pk)

    def test_save_unknown_period_raises(self):
        result = self.service.calculate_settlement(self.park.pk, 2024, self.mandant.pk)
        with self.assertRaises(SettlementNotFound):
            LeaseSettlementService.save_settlement_calculation(999999, result)

    def test_save_logs_info(self):
        period = LeaseSettlementPeriod.objects.create(mandant=self.mandant, park=self.park, year=2024)
        result = self.service.calculate_settlement(self.park.pk, 2024, self.mandant.pk)
        with self.assertLogs("windpark.services.lease_settlement_service", level="INFO") as logs:
            LeaseSettlementService.save_settlement_calculation(period.pk, result)
        self.assertIn(f"Pachtabrechnung {period.pk} gespeichert", logs.output[0])


class EnergySettlementPersistenceTests(WindparkFixtureMixin, TestCase):
    def setUp(self):
        self.create_park()
        self.add_operators()
        self.add_production()
        self.service = EnergySettlementService()
        self.settlement_input = EnergySettlementInput(
            park_id=self.park.pk,
            year=2024,
            month=1,
            net_operator_revenue_eur=Decimal("100000.00"),
            distribution_mode=EnergySettlement.DistributionMode.SMOOTHED,
            mandant_id=self.mandant.pk,
            rate_per_kwh_ct=Decimal("10"),
            net_operator_reference="NB-2024-01",
        )

    def test_save_and_load_energy_settlement(self):
        result = self.service.calculate_energy_settlement(self.settlement_input)
        settlement = self.service.save_energy_settlement(self.settlement_input, result)

        loaded = self.service.load_energy_settlement(settlement.pk, self.mandant.pk)
        self.assertEqual(loaded.status, EnergySettlement.Status.CALCULATED)
        self.assertEqual(loaded.total_production_kwh, Decimal("1000000.000"))
        self.assertEqual(loaded.net_operator_reference, "NB-2024-01")
        items = list(loaded.items.all())
        self.assertEqual(len(items), 2)
        self.assertEqual(items[0].recipient_fund, self.fund_a)
        self.assertEqual(items[0].revenue_share_eur, Decimal("50000.00"))
        self.assertEqual(items[0].tolerance_adjustment, Decimal("10000.00"))
        self.assertEqual(items[0].average_production_kwh, Decimal("500000.000"))
        self.assertEqual(items[1].distribution_key, "DULDUNG ZUSCHLAG: 10000.00 EUR (-100000.00 kWh)")

        loaded.refresh_from_db()
        self.assertEqual(loaded.calculation_details["turbine_count"], 2)
        self.assertEqual(loaded.calculation_details["tolerance_mode"]["mode"], "SMOOTHED")
        self.assertEqual(len(loaded.calculation_details["distributions"]), 2)

        self.assertIsNone(self.service.load_energy_settlement(settlement.pk, self.other_mandant.pk))

    def test_proportional_settlement_without_adjustment_fields(self):
        settlement_input = EnergySettlementInput(
            park_id=self.park.pk,
            year=2024,
            month=1,
            net_operator_revenue_eur=Decimal("100000.00"),
            distribution_mode=EnergySettlement.DistributionMode.PROPORTIONAL,
            mandant_id=self.mandant.pk,
        )
        result = self.service.calculate_energy_settlement(settlement_input)
        settlement = self.service.save_energy_settlement(settlement_input, result)

        item = settlement.items.order_by("id").first()
        self.assertEqual(item.revenue_share_eur, Decimal("60000.00"))
        self.assertEqual(item.distribution_key, "PROPORTIONAL: 60.000%")
        self.assertIsNone(item.tolerance_adjustment)
        self.assertIsNone(item.deviation_kwh)


class LeaseSettlementCommandTests(WindparkFixtureMixin, TestCase):
    def setUp(self):
        self.create_park()

    def test_dry_run_prints_final_settlement(self):
        output = StringIO()
        call_command(
            "calculate_lease_settlement",
            park=self.park.pk,
            jahr=2024,
            mandant=self.mandant.pk,
            erloes="50000",
            stdout=output,
        )
        text = output.getvalue()
        self.assertIn("Gesamterlös: 50.000,00 EUR", text)
        self.assertIn("Hanna Meyer: 5.000,00 EUR", text)
        self.assertIn("Restzahlung: 5.000,00 EUR", text)

    def test_advance_dry_run(self):
        output = StringIO()
        call_command(
            "calculate_lease_settlement",
            park=self.park.pk,
            jahr=2024,
            mandant=self.mandant.pk,
            typ="ADVANCE",
            monat=2,
            stdout=output,
        )
        self.assertIn("Summe Vorschuss: 166,67 EUR", output.getvalue())

    def test_apply_saves_period(self):
        period = LeaseSettlementPeriod.objects.create(mandant=self.mandant, park=self.park, year=2024)

        preview = StringIO()
        call_command("calculate_lease_settlement", periode=period.pk, mandant=self.mandant.pk, stdout=preview)
        period.refresh_from_db()
        self.assertEqual(period.status, LeaseSettlementPeriod.Status.OPEN)
        self.assertIn("Vorschau", preview.getvalue())

        output = StringIO()
        call_command(
            "calculate_lease_settlement",
            "--apply",
            periode=period.pk,
            mandant=self.mandant.pk,
            erloes="50000",
            stdout=output,
        )
        period.refresh_from_db()
        self.assertEqual(period.status, LeaseSettlementPeriod.Status.IN_PROGRESS)
        self.assertEqual(period.total_actual_rent, Decimal("5000.00"))
        self.assertIn(f"Abrechnungsperiode {period.pk} gespeichert", output.getvalue())

    def test_service_errors_become_command_errors(self):
        with self.assertRaises(CommandError):
            call_command(
                "calculate_lease_settlement",
                park=self.park.pk,
                jahr=2024,
                mandant=self.other_mandant.pk,
                stdout=StringIO(),
            )
        with self.assertRaises(CommandError):
            call_command("calculate_lease_settlement", mandant=self.mandant.pk, stdout=StringIO())


class EnergySettlementCommandTests(WindparkFixtureMixin, TestCase):
    def setUp(self):
        self.create_park()
        self.add_operators()
        self.add_production()

    def test_dry_run_does_not_save(self):
        output = StringIO()
        call_command(
            "calculate_energy_settlement",
            park=self.park.pk,
            jahr=2024,
            monat=1,
            mandant=self.mandant.pk,
            erloes="100000",
            modus="TOLERATED",
            satz="10",
            toleranz="5",
            stdout=output,
        )
        text = output.getvalue()
        self.assertIn("WEA 1 (Nordwind GmbH & Co. KG): 52.500,00 EUR", text)
        self.assertIn("WEA 2 (Südwind GmbH & Co. KG): 47.500,00 EUR", text)
        self.assertIn("Verteilt: 100.000,00 EUR", text)
        self.assertFalse(EnergySettlement.objects.exists())

    def test_apply_saves_settlement(self):
        output = StringIO()
        call_command(
            "calculate_energy_settlement",
            "--apply",
            park=self.park.pk,
            jahr=2024,
            monat=1,
            mandant=self.mandant.pk,
            erloes="100000,00",
            modus="PROPORTIONAL",
            referenz="NB-42",
            stdout=output,
        )
        settlement = EnergySettlement.objects.get()
        self.assertEqual(settlement.net_operator_reference, "NB-42")
        self.assertEqual(settlement.items.count(), 2)
        self.assertIn(f"Stromabrechnung {settlement.pk} gespeichert", output.getvalue())

    def test_missing_rate_is_reported(self):
        with self.assertRaises(CommandError):
            call_command(
                "calculate_energy_settlement",
                park=self.park.pk,
                jahr=2024,
                mandant=self.mandant.pk,
                erloes="100000",
                modus="SMOOTHED",
                stdout=StringIO(),
            )


class WindparkMigrationTests(TestCase):
    def test_app_ships_migrations(self):
        loader = MigrationLoader(connection)
        self.assertIn("windpark", loader.migrated_apps)
        self.assertIn(("windpark", "0001_initial"), loader.disk_migrations)

    def test_models_match_migrations(self):
        output = StringIO()
        call_command("makemigrations", "windpark", check=True, dry_run=True, stdout=output)
        self.assertIn("No changes detected", output.getvalue())
