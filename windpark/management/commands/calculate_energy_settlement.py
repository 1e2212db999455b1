from __future__ import annotations

from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError

from windpark.models import EnergySettlement
from windpark.services.energy_settlement_service import (
    EnergySettlementInput,
    EnergySettlementService,
    calculate_operator_summary,
    format_distribution_key,
)
from windpark.services.settlement_errors import SettlementCalculationError
from windpark.services.settlement_math import format_money_de


def parse_decimal(raw: str | None, label: str) -> Decimal | None:
    if raw in (None, ""):
        return None
    try:
        return Decimal(raw.replace(",", "."))
    except InvalidOperation as exc:
        raise CommandError(f"Ungültiger Wert für {label}: {raw}") from exc


class Command(BaseCommand):
    help = (
        "Verteilt den Netzbetreiber-Erlös eines Windparks auf die Betreiber der WEA "
        "(proportional, Duldung oder Duldung mit Toleranz). Ohne --apply nur Vorschau."
    )

    def add_arguments(self, parser):
        parser.add_argument("--park", type=int, required=True, help="ID des Windparks.")
        parser.add_argument("--jahr", type=int, required=True, help="Abrechnungsjahr (YYYY).")
        parser.add_argument("--mandant", type=int, required=True, help="ID des Mandanten.")
        parser.add_argument("--erloes", type=str, required=True, help="Netzbetreiber-Erlös in EUR.")
        parser.add_argument(
            "--modus",
            choices=EnergySettlement.DistributionMode.values,
            default=EnergySettlement.DistributionMode.PROPORTIONAL,
            help="Verteilungsmodus: PROPORTIONAL, SMOOTHED oder TOLERATED.",
        )
        parser.add_argument("--monat", type=int, help="Monat (1-12). Ohne Angabe Jahresabrechnung.")
        parser.add_argument("--toleranz", type=str, help="Toleranz in Prozent (nur TOLERATED).")
        parser.add_argument("--satz", type=str, help="Vergütungssatz in ct/kWh (SMOOTHED/TOLERATED).")
        parser.add_argument("--referenz", type=str, default="", help="Referenz der Netzbetreiber-Gutschrift.")
        parser.add_argument(
            "--apply",
            action="store_true",
            help="Speichert die Stromabrechnung. Ohne --apply nur Vorschau.",
        )

    def handle(self, *args, **options):
        settlement_input = EnergySettlementInput(
            park_id=options["park"],
            year=options["jahr"],
            month=options.get("monat"),
            net_operator_revenue_eur=parse_decimal(options["erloes"], "--erloes"),
            distribution_mode=options["modus"],
            mandant_id=options["mandant"],
            tolerance_percentage=parse_decimal(options.get("toleranz"), "--toleranz"),
            rate_per_kwh_ct=parse_decimal(options.get("satz"), "--satz"),
            net_operator_reference=options.get("referenz") or "",
        )
        service = EnergySettlementService()
        try:
            result = service.calculate_energy_settlement(settlement_input)
        except SettlementCalculationError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(
            f"Gesamtproduktion: {result.total_production_kwh} kWh, "
            f"Durchschnitt: {result.average_production_kwh:.2f} kWh, WEA: {result.turbine_count}"
        )
        for distribution in result.distributions:
            self.stdout.write(
                f"- {distribution.turbine_designation} ({distribution.operator_fund_name}): "
                f"{format_money_de(distribution.final_revenue_eur)} EUR "
                f"[{format_distribution_key(distribution, settlement_input.distribution_mode)}]"
            )
        for summary in calculate_operator_summary(result.distributions):
            self.stdout.write(
                f"Betreiber {summary.operator_fund_name}: {summary.turbine_count} WEA, "
                f"{format_money_de(summary.total_final_revenue_eur)} EUR"
            )
        self.stdout.write(f"Verteilt: {format_money_de(result.total_distributed_eur)} EUR")

        if not options.get("apply"):
            self.stdout.write(self.style.WARNING("Vorschau: keine Änderungen gespeichert (--apply fehlt)."))
            return

        settlement = service.save_energy_settlement(settlement_input, result)
        self.stdout.write(self.style.SUCCESS(f"Stromabrechnung {settlement.pk} gespeichert."))
