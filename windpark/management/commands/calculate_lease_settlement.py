from __future__ import annotations

from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError

from windpark.models import LeaseSettlementPeriod
from windpark.services.lease_settlement_service import (
    FinalSettlementResult,
    LeaseSettlementService,
    MonthlyAdvanceResult,
)
from windpark.services.settlement_errors import SettlementCalculationError
from windpark.services.settlement_math import format_money_de


class Command(BaseCommand):
    help = (
        "Berechnet die Pachtabrechnung eines Windparks (Vorschuss oder Jahresendabrechnung). "
        "Ohne --apply wird nur das Ergebnis ausgegeben."
    )

    def add_arguments(self, parser):
        parser.add_argument("--park", type=int, help="ID des Windparks.")
        parser.add_argument("--jahr", type=int, help="Abrechnungsjahr (YYYY).")
        parser.add_argument("--mandant", type=int, required=True, help="ID des Mandanten.")
        parser.add_argument(
            "--typ",
            choices=LeaseSettlementPeriod.PeriodType.values,
            default=LeaseSettlementPeriod.PeriodType.FINAL,
            help="Periodentyp: ADVANCE (Vorschuss) oder FINAL (Jahresendabrechnung).",
        )
        parser.add_argument("--monat", type=int, help="Monat (1-12), nur für Vorschüsse.")
        parser.add_argument("--erloes", type=str, help="Gesamterlös in EUR (überschreibt gespeicherte Werte).")
        parser.add_argument(
            "--stromabrechnung",
            type=int,
            help="ID einer Stromabrechnung, deren Netzbetreiber-Erlös verwendet wird.",
        )
        parser.add_argument(
            "--periode",
            type=int,
            help="ID einer gespeicherten Abrechnungsperiode (ersetzt --park/--jahr/--typ).",
        )
        parser.add_argument(
            "--apply",
            action="store_true",
            help="Speichert die Summen in der Abrechnungsperiode. Ohne --apply nur Vorschau.",
        )

    def handle(self, *args, **options):
        mandant_id = options["mandant"]
        total_revenue = self._parse_decimal(options.get("erloes"))
        service = LeaseSettlementService()

        try:
            if options.get("periode"):
                result = self._calculate_period(service, options["periode"], mandant_id, total_revenue, options)
            else:
                result = self._calculate_adhoc(service, mandant_id, total_revenue, options)
        except SettlementCalculationError as exc:
            raise CommandError(str(exc)) from exc

        if isinstance(result, MonthlyAdvanceResult):
            self._write_advance(result)
        else:
            self._write_settlement(result)

    def _calculate_period(self, service, period_id, mandant_id, total_revenue, options):
        period = LeaseSettlementPeriod.objects.filter(pk=period_id).first()
        if period is None:
            raise CommandError(f"Abrechnungsperiode mit ID {period_id} nicht gefunden.")
        apply_changes = bool(options.get("apply"))
        result = service.calculate_period(
            period,
            mandant_id,
            total_revenue=total_revenue,
            save_result=apply_changes,
        )
        if apply_changes:
            self.stdout.write(self.style.SUCCESS(f"Abrechnungsperiode {period.pk} gespeichert."))
        else:
            self.stdout.write(self.style.WARNING("Vorschau: keine Änderungen gespeichert (--apply fehlt)."))
        return result

    def _calculate_adhoc(self, service, mandant_id, total_revenue, options):
        park_id = options.get("park")
        year = options.get("jahr")
        if not park_id or not year:
            raise CommandError("--park und --jahr sind ohne --periode erforderlich.")
        if options.get("apply"):
            raise CommandError("--apply ist nur zusammen mit --periode möglich.")
        if options["typ"] == LeaseSettlementPeriod.PeriodType.ADVANCE:
            return service.calculate_monthly_advance(park_id, year, options.get("monat"), mandant_id)
        return service.calculate_settlement(
            park_id,
            year,
            mandant_id,
            period_type=options["typ"],
            month=options.get("monat"),
            total_revenue=total_revenue,
            linked_energy_settlement_id=options.get("stromabrechnung"),
        )

    @staticmethod
    def _parse_decimal(raw: str | None) -> Decimal | None:
        if raw in (None, ""):
            return None
        try:
            return Decimal(raw.replace(",", "."))
        except InvalidOperation as exc:
            raise CommandError(f"Ungültiger Betrag: {raw}") from exc

    def _write_settlement(self, result):
        self.stdout.write(f"Park: {result.park_name} ({result.year}, {result.period_type})")
        self.stdout.write(f"Gesamterlös: {format_money_de(result.total_revenue)} EUR")
        self.stdout.write(f"Zahlung pro WEA: {format_money_de(result.payment_per_turbine)} EUR")
        for lease in result.leases:
            line = f"- Vertrag #{lease.lease_id} {lease.lessor_name}: {format_money_de(lease.total_payment)} EUR"
            if lease.remaining_amount is not None:
                line += f" (Restzahlung {format_money_de(lease.remaining_amount)} EUR)"
            self.stdout.write(line)
        self.stdout.write(f"Summe Pacht: {format_money_de(result.totals.total_payment)} EUR")
        if isinstance(result, FinalSettlementResult):
            self.stdout.write(f"Bezahlte Vorschüsse: {format_money_de(result.paid_advances)} EUR")
            self.stdout.write(f"Restzahlung: {format_money_de(result.remaining_amount)} EUR")

    def _write_advance(self, result: MonthlyAdvanceResult):
        self.stdout.write(f"Park: {result.park_name} (Vorschuss {result.month:02d}/{result.year})")
        self.stdout.write(f"Jährliche Mindestpacht: {format_money_de(result.yearly_minimum_rent_total)} EUR")
        for advance in result.advances:
            self.stdout.write(
                f"- Vertrag #{advance.lease_id} {advance.lessor_name}: {format_money_de(advance.total_advance)} EUR"
            )
        self.stdout.write(f"Summe Vorschuss: {format_money_de(result.totals.total_monthly_advance)} EUR")
