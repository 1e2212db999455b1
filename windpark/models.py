from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords


class Mandant(models.Model):
    name = models.CharField(max_length=255, verbose_name=_("Name"))
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Erstellt am"))

    class Meta:
        verbose_name = _("Mandant")
        verbose_name_plural = _("Mandanten")
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name


class Person(models.Model):
    class PersonType(models.TextChoices):
        NATURAL = "NATURAL", _("Privatperson")
        LEGAL = "LEGAL", _("Unternehmen")

    mandant = models.ForeignKey(
        "Mandant",
        on_delete=models.CASCADE,
        related_name="persons",
        verbose_name=_("Mandant"),
    )
    person_type = models.CharField(
        max_length=10,
        choices=PersonType.choices,
        default=PersonType.NATURAL,
        verbose_name=_("Personentyp"),
    )
    first_name = models.CharField(max_length=100, blank=True, verbose_name=_("Vorname"))
    last_name = models.CharField(max_length=100, blank=True, verbose_name=_("Nachname"))
    company_name = models.CharField(max_length=255, blank=True, verbose_name=_("Firma"))
    street = models.CharField(max_length=255, blank=True, verbose_name=_("Straße"))
    house_number = models.CharField(max_length=20, blank=True, verbose_name=_("Hausnummer"))
    postal_code = models.CharField(max_length=20, blank=True, verbose_name=_("Postleitzahl"))
    city = models.CharField(max_length=100, blank=True, verbose_name=_("Ort"))
    country = models.CharField(max_length=100, default="Deutschland", verbose_name=_("Land"))
    bank_iban = models.CharField(max_length=34, blank=True, verbose_name=_("IBAN"))
    bank_bic = models.CharField(max_length=11, blank=True, verbose_name=_("BIC"))
    bank_name = models.CharField(max_length=255, blank=True, verbose_name=_("Bank"))

    class Meta:
        verbose_name = _("Person")
        verbose_name_plural = _("Personen")
        ordering = ["last_name", "first_name", "company_name", "id"]

    def __str__(self) -> str:
        if self.company_name:
            return self.company_name
        return f"{self.first_name} {self.last_name}".strip() or f"Person #{self.pk}"


class Fund(models.Model):
    mandant = models.ForeignKey(
        "Mandant",
        on_delete=models.CASCADE,
        related_name="funds",
        verbose_name=_("Mandant"),
    )
    name = models.CharField(max_length=255, verbose_name=_("Name"))

    class Meta:
        verbose_name = _("Betreibergesellschaft")
        verbose_name_plural = _("Betreibergesellschaften")
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name


class Park(models.Model):
    mandant = models.ForeignKey(
        "Mandant",
        on_delete=models.CASCADE,
        related_name="parks",
        verbose_name=_("Mandant"),
    )
    name = models.CharField(max_length=255, verbose_name=_("Name"))
    commissioning_date = models.DateField(null=True, blank=True, verbose_name=_("Inbetriebnahme"))
    minimum_rent_per_turbine = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        verbose_name=_("Mindestpacht pro WEA"),
    )
    wea_share_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        verbose_name=_("Anteil WEA-Standort (%)"),
    )
    pool_share_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        verbose_name=_("Anteil Poolfläche (%)"),
    )
    weg_compensation_per_sqm = models.DecimalField(
        max_digits=10,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        verbose_name=_("Entschädigung Wege (EUR/m²)"),
    )
    ausgleich_compensation_per_sqm = models.DecimalField(
        max_digits=10,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        verbose_name=_("Entschädigung Ausgleichsfläche (EUR/m²)"),
    )
    kabel_compensation_per_m = models.DecimalField(
        max_digits=10,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        verbose_name=_("Entschädigung Kabeltrasse (EUR/m)"),
    )

    class Meta:
        verbose_name = _("Windpark")
        verbose_name_plural = _("Windparks")
        ordering = ["name", "id"]

    def __str__(self) -> str:
        return self.name


class RevenuePhase(models.Model):
    park = models.ForeignKey(
        "Park",
        on_delete=models.CASCADE,
        related_name="revenue_phases",
        verbose_name=_("Windpark"),
    )
    phase_number = models.PositiveSmallIntegerField(verbose_name=_("Phase"))
    start_year = models.PositiveSmallIntegerField(
        verbose_name=_("Ab Betriebsjahr"),
        help_text=_("Erstes Betriebsjahr der Phase (Inbetriebnahmejahr = 1)."),
    )
    end_year = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        verbose_name=_("Bis Betriebsjahr"),
        help_text=_("Leer = unbefristet."),
    )
    revenue_share_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        verbose_name=_("Erlösanteil (%)"),
    )

    class Meta:
        verbose_name = _("Erlösphase")
        verbose_name_plural = _("Erlösphasen")
        ordering = ["park", "start_year", "phase_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["park", "phase_number"],
                name="uniq_revenuephase_park_phase_number",
            )
        ]

    def __str__(self) -> str:
        end = self.end_year if self.end_year is not None else "∞"
        return f"{self.park} · Phase {self.phase_number} ({self.start_year}-{end})"


class Turbine(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", _("In Betrieb")
        INACTIVE = "INACTIVE", _("Außer Betrieb")
        DECOMMISSIONED = "DECOMMISSIONED", _("Rückgebaut")

    park = models.ForeignKey(
        "Park",
        on_delete=models.CASCADE,
        related_name="turbines",
        verbose_name=_("Windpark"),
    )
    designation = models.CharField(max_length=100, verbose_name=_("Bezeichnung"))
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
        verbose_name=_("Status"),
    )

    class Meta:
        verbose_name = _("Windenergieanlage")
        verbose_name_plural = _("Windenergieanlagen")
        ordering = ["park", "designation", "id"]

    def __str__(self) -> str:
        return self.designation


class Plot(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", _("Aktiv")
        ARCHIVED = "ARCHIVED", _("Archiviert")

    mandant = models.ForeignKey(
        "Mandant",
        on_delete=models.CASCADE,
        related_name="plots",
        verbose_name=_("Mandant"),
    )
    park = models.ForeignKey(
        "Park",
        on_delete=models.CASCADE,
        related_name="plots",
        verbose_name=_("Windpark"),
    )
    cadastral_district = models.CharField(max_length=100, verbose_name=_("Gemarkung"))
    field_number = models.CharField(max_length=20, verbose_name=_("Flur"))
    plot_number = models.CharField(max_length=20, verbose_name=_("Flurstück"))
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        verbose_name=_("Status"),
    )

    class Meta:
        verbose_name = _("Flurstück")
        verbose_name_plural = _("Flurstücke")
        ordering = ["park", "cadastral_district", "field_number", "plot_number", "id"]

    def __str__(self) -> str:
        return f"{self.cadastral_district} Flur {self.field_number} Nr. {self.plot_number}"


class PlotArea(models.Model):
    class AreaType(models.TextChoices):
        WEA_STANDORT = "WEA_STANDORT", _("WEA-Standort")
        POOL = "POOL", _("Poolfläche")
        WEG = "WEG", _("Zuwegung")
        AUSGLEICH = "AUSGLEICH", _("Ausgleichsfläche")
        KABEL = "KABEL", _("Kabeltrasse")
        SONSTIGE = "SONSTIGE", _("Sonstige")

    class CompensationType(models.TextChoices):
        ANNUAL = "ANNUAL", _("Jährlich")
        ONE_TIME = "ONE_TIME", _("Einmalig")

    plot = models.ForeignKey(
        "Plot",
        on_delete=models.CASCADE,
        related_name="plot_areas",
        verbose_name=_("Flurstück"),
    )
    area_type = models.CharField(
        max_length=20,
        choices=AreaType.choices,
        verbose_name=_("Flächentyp"),
    )
    area_sqm = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        verbose_name=_("Fläche (m²)"),
    )
    length_m = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        verbose_name=_("Länge (m)"),
    )
    compensation_type = models.CharField(
        max_length=10,
        choices=CompensationType.choices,
        default=CompensationType.ANNUAL,
        verbose_name=_("Entschädigungsart"),
    )
    compensation_fixed_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Fester Betrag (EUR)"),
        help_text=_("Überschreibt die automatische Berechnung für diese Fläche."),
    )
    compensation_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Prozentsatz (%)"),
    )

    class Meta:
        verbose_name = _("Teilfläche")
        verbose_name_plural = _("Teilflächen")
        ordering = ["plot", "area_type", "id"]

    def __str__(self) -> str:
        return f"{self.plot} · {self.get_area_type_display()}"


class Lease(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", _("Entwurf")
        ACTIVE = "ACTIVE", _("Aktiv")
        EXPIRED = "EXPIRED", _("Ausgelaufen")
        TERMINATED = "TERMINATED", _("Gekündigt")

    mandant = models.ForeignKey(
        "Mandant",
        on_delete=models.CASCADE,
        related_name="leases",
        verbose_name=_("Mandant"),
    )
    lessor = models.ForeignKey(
        "Person",
        on_delete=models.PROTECT,
        related_name="leases",
        verbose_name=_("Verpächter"),
    )
    plots = models.ManyToManyField(
        "Plot",
        through="LeasePlot",
        related_name="leases",
        verbose_name=_("Flurstücke"),
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True,
        verbose_name=_("Status"),
    )
    start_date = models.DateField(verbose_name=_("Vertragsbeginn"))
    end_date = models.DateField(null=True, blank=True, verbose_name=_("Vertragsende"))

    class Meta:
        verbose_name = _("Pachtvertrag")
        verbose_name_plural = _("Pachtverträge")
        ordering = ["start_date", "id"]

    def __str__(self) -> str:
        return f"{self.lessor} · {self.start_date}"


class LeasePlot(models.Model):
    lease = models.ForeignKey(
        "Lease",
        on_delete=models.CASCADE,
        related_name="lease_plots",
        verbose_name=_("Pachtvertrag"),
    )
    plot = models.ForeignKey(
        "Plot",
        on_delete=models.CASCADE,
        related_name="lease_plots",
        verbose_name=_("Flurstück"),
    )

    class Meta:
        verbose_name = _("Pachtfläche")
        verbose_name_plural = _("Pachtflächen")
        constraints = [
            models.UniqueConstraint(
                fields=["lease", "plot"],
                name="uniq_leaseplot_lease_plot",
            )
        ]

    def __str__(self) -> str:
        return f"{self.lease} · {self.plot}"


class TurbineOperator(models.Model):
    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", _("Aktiv")
        INACTIVE = "INACTIVE", _("Inaktiv")

    turbine = models.ForeignKey(
        "Turbine",
        on_delete=models.CASCADE,
        related_name="operator_history",
        verbose_name=_("Windenergieanlage"),
    )
    operator_fund = models.ForeignKey(
        "Fund",
        on_delete=models.PROTECT,
        related_name="turbine_operations",
        verbose_name=_("Betreibergesellschaft"),
    )
    valid_from = models.DateField(verbose_name=_("Gültig ab"))
    valid_to = models.DateField(
        null=True,
        blank=True,
        verbose_name=_("Gültig bis"),
        help_text=_("Exklusiv; leer = unbefristet."),
    )
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.ACTIVE,
        verbose_name=_("Status"),
    )

    class Meta:
        verbose_name = _("Betreiberzuordnung")
        verbose_name_plural = _("Betreiberzuordnungen")
        ordering = ["turbine", "-valid_from", "-id"]

    def __str__(self) -> str:
        return f"{self.turbine} → {self.operator_fund} ab {self.valid_from}"


class TurbineProduction(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", _("Entwurf")
        CONFIRMED = "CONFIRMED", _("Bestätigt")
        INVOICED = "INVOICED", _("Abgerechnet")

    mandant = models.ForeignKey(
        "Mandant",
        on_delete=models.CASCADE,
        related_name="turbine_productions",
        verbose_name=_("Mandant"),
    )
    turbine = models.ForeignKey(
        "Turbine",
        on_delete=models.CASCADE,
        related_name="productions",
        verbose_name=_("Windenergieanlage"),
    )
    year = models.PositiveSmallIntegerField(verbose_name=_("Jahr"))
    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)],
        verbose_name=_("Monat"),
    )
    production_kwh = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        validators=[MinValueValidator(0)],
        verbose_name=_("Produktion (kWh)"),
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
        verbose_name=_("Status"),
    )

    class Meta:
        verbose_name = _("Produktionsmeldung")
        verbose_name_plural = _("Produktionsmeldungen")
        ordering = ["-year", "-month", "turbine"]
        constraints = [
            models.UniqueConstraint(
                fields=["turbine", "year", "month"],
                name="uniq_turbineproduction_turbine_year_month",
            )
        ]

    def __str__(self) -> str:
        return f"{self.turbine} · {self.month:02d}/{self.year} · {self.production_kwh} kWh"


class EnergySettlement(models.Model):
    class DistributionMode(models.TextChoices):
        PROPORTIONAL = "PROPORTIONAL", _("Proportional")
        SMOOTHED = "SMOOTHED", _("Geglättet (Duldung)")
        TOLERATED = "TOLERATED", _("Duldung mit Toleranz")

    class Status(models.TextChoices):
        DRAFT = "DRAFT", _("Entwurf")
        CALCULATED = "CALCULATED", _("Berechnet")
        INVOICED = "INVOICED", _("Abgerechnet")
        CLOSED = "CLOSED", _("Abgeschlossen")

    mandant = models.ForeignKey(
        "Mandant",
        on_delete=models.CASCADE,
        related_name="energy_settlements",
        verbose_name=_("Mandant"),
    )
    park = models.ForeignKey(
        "Park",
        on_delete=models.PROTECT,
        related_name="energy_settlements",
        verbose_name=_("Windpark"),
    )
    year = models.PositiveSmallIntegerField(verbose_name=_("Jahr"))
    month = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(12)],
        verbose_name=_("Monat"),
        help_text=_("Leer = Jahresabrechnung."),
    )
    net_operator_revenue_eur = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        verbose_name=_("Netzbetreiber-Erlös (EUR)"),
    )
    net_operator_reference = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_("Netzbetreiber-Referenz"),
    )
    total_production_kwh = models.DecimalField(
        max_digits=16,
        decimal_places=3,
        default=Decimal("0.000"),
        verbose_name=_("Gesamtproduktion (kWh)"),
    )
    distribution_mode = models.CharField(
        max_length=20,
        choices=DistributionMode.choices,
        default=DistributionMode.PROPORTIONAL,
        verbose_name=_("Verteilungsmodus"),
    )
    tolerance_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Toleranz (%)"),
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
        verbose_name=_("Status"),
    )
    calculation_details = models.JSONField(
        null=True,
        blank=True,
        encoder=DjangoJSONEncoder,
        verbose_name=_("Berechnungsdetails"),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Erstellt am"))
    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Stromabrechnung")
        verbose_name_plural = _("Stromabrechnungen")
        ordering = ["-year", "-month", "-id"]

    def __str__(self) -> str:
        period = f"{self.month:02d}/{self.year}" if self.month else str(self.year)
        return f"{self.park} · {period}"


class EnergySettlementItem(models.Model):
    energy_settlement = models.ForeignKey(
        "EnergySettlement",
        on_delete=models.CASCADE,
        related_name="items",
        verbose_name=_("Stromabrechnung"),
    )
    turbine = models.ForeignKey(
        "Turbine",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="energy_settlement_items",
        verbose_name=_("Windenergieanlage"),
    )
    recipient_fund = models.ForeignKey(
        "Fund",
        on_delete=models.PROTECT,
        related_name="energy_settlement_items",
        verbose_name=_("Empfänger"),
    )
    production_share_kwh = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_("Produktion (kWh)"),
    )
    production_share_pct = models.DecimalField(
        max_digits=9,
        decimal_places=5,
        verbose_name=_("Produktionsanteil (%)"),
    )
    revenue_share_eur = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        verbose_name=_("Erlösanteil (EUR)"),
    )
    distribution_key = models.CharField(max_length=255, verbose_name=_("Verteilschlüssel"))
    average_production_kwh = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_("Durchschnittsproduktion (kWh)"),
    )
    deviation_kwh = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Abweichung (kWh)"),
    )
    tolerance_adjustment = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Duldungsausgleich (EUR)"),
    )

    class Meta:
        verbose_name = _("Stromabrechnungsposition")
        verbose_name_plural = _("Stromabrechnungspositionen")
        ordering = ["energy_settlement", "id"]

    def __str__(self) -> str:
        return f"{self.energy_settlement} · {self.turbine} · {self.revenue_share_eur}"


class LeaseSettlementPeriod(models.Model):
    class PeriodType(models.TextChoices):
        ADVANCE = "ADVANCE", _("Vorschuss")
        FINAL = "FINAL", _("Jahresendabrechnung")

    class AdvanceInterval(models.TextChoices):
        MONTHLY = "MONTHLY", _("Monatlich")
        QUARTERLY = "QUARTERLY", _("Quartalsweise")
        YEARLY = "YEARLY", _("Jährlich")

    class Status(models.TextChoices):
        OPEN = "OPEN", _("Offen")
        IN_PROGRESS = "IN_PROGRESS", _("In Bearbeitung")
        CLOSED = "CLOSED", _("Abgeschlossen")

    mandant = models.ForeignKey(
        "Mandant",
        on_delete=models.CASCADE,
        related_name="lease_settlement_periods",
        verbose_name=_("Mandant"),
    )
    park = models.ForeignKey(
        "Park",
        on_delete=models.PROTECT,
        related_name="lease_settlement_periods",
        verbose_name=_("Windpark"),
    )
    year = models.PositiveSmallIntegerField(verbose_name=_("Jahr"))
    period_type = models.CharField(
        max_length=10,
        choices=PeriodType.choices,
        default=PeriodType.FINAL,
        verbose_name=_("Periodentyp"),
    )
    month = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(12)],
        verbose_name=_("Monat"),
    )
    advance_interval = models.CharField(
        max_length=10,
        choices=AdvanceInterval.choices,
        default=AdvanceInterval.MONTHLY,
        verbose_name=_("Vorschuss-Intervall"),
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.OPEN,
        db_index=True,
        verbose_name=_("Status"),
    )
    total_revenue = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Gesamterlös (EUR)"),
    )
    total_minimum_rent = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Mindestpacht gesamt (EUR)"),
    )
    total_actual_rent = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Tatsächliche Pacht gesamt (EUR)"),
    )
    linked_energy_settlement = models.ForeignKey(
        "EnergySettlement",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="lease_settlement_periods",
        verbose_name=_("Verknüpfte Stromabrechnung"),
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Erstellt am"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Aktualisiert am"))
    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Pachtabrechnungsperiode")
        verbose_name_plural = _("Pachtabrechnungsperioden")
        ordering = ["-year", "park__name", "month", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["park", "year", "period_type", "month"],
                name="uniq_leasesettlementperiod_park_year_type_month",
            )
        ]

    def __str__(self) -> str:
        if self.month:
            return f"{self.park} · {self.get_period_type_display()} {self.month:02d}/{self.year}"
        return f"{self.park} · {self.get_period_type_display()} {self.year}"


class Invoice(models.Model):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", _("Entwurf")
        SENT = "SENT", _("Versendet")
        PAID = "PAID", _("Bezahlt")
        CANCELLED = "CANCELLED", _("Storniert")

    mandant = models.ForeignKey(
        "Mandant",
        on_delete=models.CASCADE,
        related_name="invoices",
        verbose_name=_("Mandant"),
    )
    settlement_period = models.ForeignKey(
        "LeaseSettlementPeriod",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
        verbose_name=_("Abrechnungsperiode"),
    )
    lease = models.ForeignKey(
        "Lease",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
        verbose_name=_("Pachtvertrag"),
    )
    invoice_number = models.CharField(max_length=50, blank=True, verbose_name=_("Rechnungsnummer"))
    gross_amount = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Bruttobetrag (EUR)"),
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
        verbose_name=_("Status"),
    )
    paid_at = models.DateTimeField(null=True, blank=True, verbose_name=_("Bezahlt am"))
    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Erstellt am"))

    class Meta:
        verbose_name = _("Gutschrift")
        verbose_name_plural = _("Gutschriften")
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return self.invoice_number or f"Gutschrift #{self.pk}"
