import decimal

import django.core.serializers.json
import django.core.validators
import django.db.models.deletion
import simple_history.models
from django.conf import settings
from django.db import migrations, models


HISTORY_TYPE_CHOICES = [("+", "Created"), ("~", "Changed"), ("-", "Deleted")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Mandant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Erstellt am")),
            ],
            options={
                "verbose_name": "Mandant",
                "verbose_name_plural": "Mandanten",
                "ordering": ["name", "id"],
            },
        ),
        migrations.CreateModel(
            name="Fund",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                (
                    "mandant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="funds",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Betreibergesellschaft",
                "verbose_name_plural": "Betreibergesellschaften",
                "ordering": ["name", "id"],
            },
        ),
        migrations.CreateModel(
            name="Park",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, verbose_name="Name")),
                ("commissioning_date", models.DateField(blank=True, null=True, verbose_name="Inbetriebnahme")),
                (
                    "minimum_rent_per_turbine",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=12,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="Mindestpacht pro WEA",
                    ),
                ),
                (
                    "wea_share_percentage",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=5,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(100),
                        ],
                        verbose_name="Anteil WEA-Standort (%)",
                    ),
                ),
                (
                    "pool_share_percentage",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=5,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(100),
                        ],
                        verbose_name="Anteil Poolfläche (%)",
                    ),
                ),
                (
                    "weg_compensation_per_sqm",
                    models.DecimalField(
                        blank=True,
                        decimal_places=4,
                        max_digits=10,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="Entschädigung Wege (EUR/m²)",
                    ),
                ),
                (
                    "ausgleich_compensation_per_sqm",
                    models.DecimalField(
                        blank=True,
                        decimal_places=4,
                        max_digits=10,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="Entschädigung Ausgleichsfläche (EUR/m²)",
                    ),
                ),
                (
                    "kabel_compensation_per_m",
                    models.DecimalField(
                        blank=True,
                        decimal_places=4,
                        max_digits=10,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="Entschädigung Kabeltrasse (EUR/m)",
                    ),
                ),
                (
                    "mandant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="parks",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Windpark",
                "verbose_name_plural": "Windparks",
                "ordering": ["name", "id"],
            },
        ),
        migrations.CreateModel(
            name="Person",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "person_type",
                    models.CharField(
                        choices=[("NATURAL", "Privatperson"), ("LEGAL", "Unternehmen")],
                        default="NATURAL",
                        max_length=10,
                        verbose_name="Personentyp",
                    ),
                ),
                ("first_name", models.CharField(blank=True, max_length=100, verbose_name="Vorname")),
                ("last_name", models.CharField(blank=True, max_length=100, verbose_name="Nachname")),
                ("company_name", models.CharField(blank=True, max_length=255, verbose_name="Firma")),
                ("street", models.CharField(blank=True, max_length=255, verbose_name="Straße")),
                ("house_number", models.CharField(blank=True, max_length=20, verbose_name="Hausnummer")),
                ("postal_code", models.CharField(blank=True, max_length=20, verbose_name="Postleitzahl")),
                ("city", models.CharField(blank=True, max_length=100, verbose_name="Ort")),
                ("country", models.CharField(default="Deutschland", max_length=100, verbose_name="Land")),
                ("bank_iban", models.CharField(blank=True, max_length=34, verbose_name="IBAN")),
                ("bank_bic", models.CharField(blank=True, max_length=11, verbose_name="BIC")),
                ("bank_name", models.CharField(blank=True, max_length=255, verbose_name="Bank")),
                (
                    "mandant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="persons",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Person",
                "verbose_name_plural": "Personen",
                "ordering": ["last_name", "first_name", "company_name", "id"],
            },
        ),
        migrations.CreateModel(
            name="Plot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("cadastral_district", models.CharField(max_length=100, verbose_name="Gemarkung")),
                ("field_number", models.CharField(max_length=20, verbose_name="Flur")),
                ("plot_number", models.CharField(max_length=20, verbose_name="Flurstück")),
                (
                    "status",
                    models.CharField(
                        choices=[("ACTIVE", "Aktiv"), ("ARCHIVED", "Archiviert")],
                        default="ACTIVE",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "mandant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="plots",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
                (
                    "park",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="plots",
                        to="windpark.park",
                        verbose_name="Windpark",
                    ),
                ),
            ],
            options={
                "verbose_name": "Flurstück",
                "verbose_name_plural": "Flurstücke",
                "ordering": ["park", "cadastral_district", "field_number", "plot_number", "id"],
            },
        ),
        migrations.CreateModel(
            name="RevenuePhase",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("phase_number", models.PositiveSmallIntegerField(verbose_name="Phase")),
                (
                    "start_year",
                    models.PositiveSmallIntegerField(
                        help_text="Erstes Betriebsjahr der Phase (Inbetriebnahmejahr = 1).",
                        verbose_name="Ab Betriebsjahr",
                    ),
                ),
                (
                    "end_year",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Leer = unbefristet.",
                        null=True,
                        verbose_name="Bis Betriebsjahr",
                    ),
                ),
                (
                    "revenue_share_percentage",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(100),
                        ],
                        verbose_name="Erlösanteil (%)",
                    ),
                ),
                (
                    "park",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="revenue_phases",
                        to="windpark.park",
                        verbose_name="Windpark",
                    ),
                ),
            ],
            options={
                "verbose_name": "Erlösphase",
                "verbose_name_plural": "Erlösphasen",
                "ordering": ["park", "start_year", "phase_number"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("park", "phase_number"),
                        name="uniq_revenuephase_park_phase_number",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Turbine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("designation", models.CharField(max_length=100, verbose_name="Bezeichnung")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("ACTIVE", "In Betrieb"),
                            ("INACTIVE", "Außer Betrieb"),
                            ("DECOMMISSIONED", "Rückgebaut"),
                        ],
                        db_index=True,
                        default="ACTIVE",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "park",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="turbines",
                        to="windpark.park",
                        verbose_name="Windpark",
                    ),
                ),
            ],
            options={
                "verbose_name": "Windenergieanlage",
                "verbose_name_plural": "Windenergieanlagen",
                "ordering": ["park", "designation", "id"],
            },
        ),
        migrations.CreateModel(
            name="EnergySettlement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("year", models.PositiveSmallIntegerField(verbose_name="Jahr")),
                (
                    "month",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Leer = Jahresabrechnung.",
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="Monat",
                    ),
                ),
                (
                    "net_operator_revenue_eur",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="Netzbetreiber-Erlös (EUR)",
                    ),
                ),
                (
                    "net_operator_reference",
                    models.CharField(blank=True, max_length=100, verbose_name="Netzbetreiber-Referenz"),
                ),
                (
                    "total_production_kwh",
                    models.DecimalField(
                        decimal_places=3,
                        default=decimal.Decimal("0.000"),
                        max_digits=16,
                        verbose_name="Gesamtproduktion (kWh)",
                    ),
                ),
                (
                    "distribution_mode",
                    models.CharField(
                        choices=[
                            ("PROPORTIONAL", "Proportional"),
                            ("SMOOTHED", "Geglättet (Duldung)"),
                            ("TOLERATED", "Duldung mit Toleranz"),
                        ],
                        default="PROPORTIONAL",
                        max_length=20,
                        verbose_name="Verteilungsmodus",
                    ),
                ),
                (
                    "tolerance_percentage",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=5,
                        null=True,
                        verbose_name="Toleranz (%)",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Entwurf"),
                            ("CALCULATED", "Berechnet"),
                            ("INVOICED", "Abgerechnet"),
                            ("CLOSED", "Abgeschlossen"),
                        ],
                        db_index=True,
                        default="DRAFT",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "calculation_details",
                    models.JSONField(
                        blank=True,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        null=True,
                        verbose_name="Berechnungsdetails",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Erstellt am")),
                (
                    "mandant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="energy_settlements",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
                (
                    "park",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="energy_settlements",
                        to="windpark.park",
                        verbose_name="Windpark",
                    ),
                ),
            ],
            options={
                "verbose_name": "Stromabrechnung",
                "verbose_name_plural": "Stromabrechnungen",
                "ordering": ["-year", "-month", "-id"],
            },
        ),
        migrations.CreateModel(
            name="EnergySettlementItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "production_share_kwh",
                    models.DecimalField(decimal_places=3, max_digits=14, verbose_name="Produktion (kWh)"),
                ),
                (
                    "production_share_pct",
                    models.DecimalField(decimal_places=5, max_digits=9, verbose_name="Produktionsanteil (%)"),
                ),
                (
                    "revenue_share_eur",
                    models.DecimalField(decimal_places=2, max_digits=14, verbose_name="Erlösanteil (EUR)"),
                ),
                ("distribution_key", models.CharField(max_length=255, verbose_name="Verteilschlüssel")),
                (
                    "average_production_kwh",
                    models.DecimalField(
                        blank=True,
                        decimal_places=3,
                        max_digits=14,
                        null=True,
                        verbose_name="Durchschnittsproduktion (kWh)",
                    ),
                ),
                (
                    "deviation_kwh",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=14,
                        null=True,
                        verbose_name="Abweichung (kWh)",
                    ),
                ),
                (
                    "tolerance_adjustment",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=14,
                        null=True,
                        verbose_name="Duldungsausgleich (EUR)",
                    ),
                ),
                (
                    "energy_settlement",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="windpark.energysettlement",
                        verbose_name="Stromabrechnung",
                    ),
                ),
                (
                    "recipient_fund",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="energy_settlement_items",
                        to="windpark.fund",
                        verbose_name="Empfänger",
                    ),
                ),
                (
                    "turbine",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="energy_settlement_items",
                        to="windpark.turbine",
                        verbose_name="Windenergieanlage",
                    ),
                ),
            ],
            options={
                "verbose_name": "Stromabrechnungsposition",
                "verbose_name_plural": "Stromabrechnungspositionen",
                "ordering": ["energy_settlement", "id"],
            },
        ),
        migrations.CreateModel(
            name="HistoricalEnergySettlement",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("year", models.PositiveSmallIntegerField(verbose_name="Jahr")),
                (
                    "month",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        help_text="Leer = Jahresabrechnung.",
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="Monat",
                    ),
                ),
                (
                    "net_operator_revenue_eur",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="Netzbetreiber-Erlös (EUR)",
                    ),
                ),
                (
                    "net_operator_reference",
                    models.CharField(blank=True, max_length=100, verbose_name="Netzbetreiber-Referenz"),
                ),
                (
                    "total_production_kwh",
                    models.DecimalField(
                        decimal_places=3,
                        default=decimal.Decimal("0.000"),
                        max_digits=16,
                        verbose_name="Gesamtproduktion (kWh)",
                    ),
                ),
                (
                    "distribution_mode",
                    models.CharField(
                        choices=[
                            ("PROPORTIONAL", "Proportional"),
                            ("SMOOTHED", "Geglättet (Duldung)"),
                            ("TOLERATED", "Duldung mit Toleranz"),
                        ],
                        default="PROPORTIONAL",
                        max_length=20,
                        verbose_name="Verteilungsmodus",
                    ),
                ),
                (
                    "tolerance_percentage",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=5,
                        null=True,
                        verbose_name="Toleranz (%)",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Entwurf"),
                            ("CALCULATED", "Berechnet"),
                            ("INVOICED", "Abgerechnet"),
                            ("CLOSED", "Abgeschlossen"),
                        ],
                        db_index=True,
                        default="DRAFT",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "calculation_details",
                    models.JSONField(
                        blank=True,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                        null=True,
                        verbose_name="Berechnungsdetails",
                    ),
                ),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="Erstellt am")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                ("history_type", models.CharField(choices=HISTORY_TYPE_CHOICES, max_length=1)),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "mandant",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
                (
                    "park",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="windpark.park",
                        verbose_name="Windpark",
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Stromabrechnung",
                "verbose_name_plural": "historical Stromabrechnungen",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="Lease",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Entwurf"),
                            ("ACTIVE", "Aktiv"),
                            ("EXPIRED", "Ausgelaufen"),
                            ("TERMINATED", "Gekündigt"),
                        ],
                        db_index=True,
                        default="ACTIVE",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("start_date", models.DateField(verbose_name="Vertragsbeginn")),
                ("end_date", models.DateField(blank=True, null=True, verbose_name="Vertragsende")),
                (
                    "lessor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="leases",
                        to="windpark.person",
                        verbose_name="Verpächter",
                    ),
                ),
                (
                    "mandant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="leases",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Pachtvertrag",
                "verbose_name_plural": "Pachtverträge",
                "ordering": ["start_date", "id"],
            },
        ),
        migrations.CreateModel(
            name="LeasePlot",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "lease",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lease_plots",
                        to="windpark.lease",
                        verbose_name="Pachtvertrag",
                    ),
                ),
                (
                    "plot",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lease_plots",
                        to="windpark.plot",
                        verbose_name="Flurstück",
                    ),
                ),
            ],
            options={
                "verbose_name": "Pachtfläche",
                "verbose_name_plural": "Pachtflächen",
                "constraints": [
                    models.UniqueConstraint(fields=("lease", "plot"), name="uniq_leaseplot_lease_plot")
                ],
            },
        ),
        migrations.AddField(
            model_name="lease",
            name="plots",
            field=models.ManyToManyField(
                related_name="leases",
                through="windpark.LeasePlot",
                to="windpark.plot",
                verbose_name="Flurstücke",
            ),
        ),
        migrations.CreateModel(
            name="LeaseSettlementPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("year", models.PositiveSmallIntegerField(verbose_name="Jahr")),
                (
                    "period_type",
                    models.CharField(
                        choices=[("ADVANCE", "Vorschuss"), ("FINAL", "Jahresendabrechnung")],
                        default="FINAL",
                        max_length=10,
                        verbose_name="Periodentyp",
                    ),
                ),
                (
                    "month",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="Monat",
                    ),
                ),
                (
                    "advance_interval",
                    models.CharField(
                        choices=[("MONTHLY", "Monatlich"), ("QUARTERLY", "Quartalsweise"), ("YEARLY", "Jährlich")],
                        default="MONTHLY",
                        max_length=10,
                        verbose_name="Vorschuss-Intervall",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("OPEN", "Offen"), ("IN_PROGRESS", "In Bearbeitung"), ("CLOSED", "Abgeschlossen")],
                        db_index=True,
                        default="OPEN",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "total_revenue",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="Gesamterlös (EUR)"
                    ),
                ),
                (
                    "total_minimum_rent",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=14,
                        null=True,
                        verbose_name="Mindestpacht gesamt (EUR)",
                    ),
                ),
                (
                    "total_actual_rent",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=14,
                        null=True,
                        verbose_name="Tatsächliche Pacht gesamt (EUR)",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Erstellt am")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Aktualisiert am")),
                (
                    "linked_energy_settlement",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="lease_settlement_periods",
                        to="windpark.energysettlement",
                        verbose_name="Verknüpfte Stromabrechnung",
                    ),
                ),
                (
                    "mandant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lease_settlement_periods",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
                (
                    "park",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lease_settlement_periods",
                        to="windpark.park",
                        verbose_name="Windpark",
                    ),
                ),
            ],
            options={
                "verbose_name": "Pachtabrechnungsperiode",
                "verbose_name_plural": "Pachtabrechnungsperioden",
                "ordering": ["-year", "park__name", "month", "-id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("park", "year", "period_type", "month"),
                        name="uniq_leasesettlementperiod_park_year_type_month",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="HistoricalLeaseSettlementPeriod",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("year", models.PositiveSmallIntegerField(verbose_name="Jahr")),
                (
                    "period_type",
                    models.CharField(
                        choices=[("ADVANCE", "Vorschuss"), ("FINAL", "Jahresendabrechnung")],
                        default="FINAL",
                        max_length=10,
                        verbose_name="Periodentyp",
                    ),
                ),
                (
                    "month",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="Monat",
                    ),
                ),
                (
                    "advance_interval",
                    models.CharField(
                        choices=[("MONTHLY", "Monatlich"), ("QUARTERLY", "Quartalsweise"), ("YEARLY", "Jährlich")],
                        default="MONTHLY",
                        max_length=10,
                        verbose_name="Vorschuss-Intervall",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("OPEN", "Offen"), ("IN_PROGRESS", "In Bearbeitung"), ("CLOSED", "Abgeschlossen")],
                        db_index=True,
                        default="OPEN",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "total_revenue",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="Gesamterlös (EUR)"
                    ),
                ),
                (
                    "total_minimum_rent",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=14,
                        null=True,
                        verbose_name="Mindestpacht gesamt (EUR)",
                    ),
                ),
                (
                    "total_actual_rent",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=14,
                        null=True,
                        verbose_name="Tatsächliche Pacht gesamt (EUR)",
                    ),
                ),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="Erstellt am")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="Aktualisiert am")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                ("history_type", models.CharField(choices=HISTORY_TYPE_CHOICES, max_length=1)),
                (
                    "history_user",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "linked_energy_settlement",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="windpark.energysettlement",
                        verbose_name="Verknüpfte Stromabrechnung",
                    ),
                ),
                (
                    "mandant",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
                (
                    "park",
                    models.ForeignKey(
                        blank=True,
                        db_constraint=False,
                        null=True,
                        on_delete=django.db.models.deletion.DO_NOTHING,
                        related_name="+",
                        to="windpark.park",
                        verbose_name="Windpark",
                    ),
                ),
            ],
            options={
                "verbose_name": "historical Pachtabrechnungsperiode",
                "verbose_name_plural": "historical Pachtabrechnungsperioden",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("invoice_number", models.CharField(blank=True, max_length=50, verbose_name="Rechnungsnummer")),
                (
                    "gross_amount",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=14, null=True, verbose_name="Bruttobetrag (EUR)"
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("DRAFT", "Entwurf"),
                            ("SENT", "Versendet"),
                            ("PAID", "Bezahlt"),
                            ("CANCELLED", "Storniert"),
                        ],
                        db_index=True,
                        default="DRAFT",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True, verbose_name="Bezahlt am")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Erstellt am")),
                (
                    "lease",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="windpark.lease",
                        verbose_name="Pachtvertrag",
                    ),
                ),
                (
                    "mandant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="invoices",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
                (
                    "settlement_period",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="windpark.leasesettlementperiod",
                        verbose_name="Abrechnungsperiode",
                    ),
                ),
            ],
            options={
                "verbose_name": "Gutschrift",
                "verbose_name_plural": "Gutschriften",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="PlotArea",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "area_type",
                    models.CharField(
                        choices=[
                            ("WEA_STANDORT", "WEA-Standort"),
                            ("POOL", "Poolfläche"),
                            ("WEG", "Zuwegung"),
                            ("AUSGLEICH", "Ausgleichsfläche"),
                            ("KABEL", "Kabeltrasse"),
                            ("SONSTIGE", "Sonstige"),
                        ],
                        max_length=20,
                        verbose_name="Flächentyp",
                    ),
                ),
                (
                    "area_sqm",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=12,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="Fläche (m²)",
                    ),
                ),
                (
                    "length_m",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=10,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="Länge (m)",
                    ),
                ),
                (
                    "compensation_type",
                    models.CharField(
                        choices=[("ANNUAL", "Jährlich"), ("ONE_TIME", "Einmalig")],
                        default="ANNUAL",
                        max_length=10,
                        verbose_name="Entschädigungsart",
                    ),
                ),
                (
                    "compensation_fixed_amount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Überschreibt die automatische Berechnung für diese Fläche.",
                        max_digits=12,
                        null=True,
                        verbose_name="Fester Betrag (EUR)",
                    ),
                ),
                (
                    "compensation_percentage",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=5, null=True, verbose_name="Prozentsatz (%)"
                    ),
                ),
                (
                    "plot",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="plot_areas",
                        to="windpark.plot",
                        verbose_name="Flurstück",
                    ),
                ),
            ],
            options={
                "verbose_name": "Teilfläche",
                "verbose_name_plural": "Teilflächen",
                "ordering": ["plot", "area_type", "id"],
            },
        ),
        migrations.CreateModel(
            name="TurbineOperator",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("valid_from", models.DateField(verbose_name="Gültig ab")),
                (
                    "valid_to",
                    models.DateField(
                        blank=True,
                        help_text="Exklusiv; leer = unbefristet.",
                        null=True,
                        verbose_name="Gültig bis",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("ACTIVE", "Aktiv"), ("INACTIVE", "Inaktiv")],
                        default="ACTIVE",
                        max_length=10,
                        verbose_name="Status",
                    ),
                ),
                (
                    "operator_fund",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="turbine_operations",
                        to="windpark.fund",
                        verbose_name="Betreibergesellschaft",
                    ),
                ),
                (
                    "turbine",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="operator_history",
                        to="windpark.turbine",
                        verbose_name="Windenergieanlage",
                    ),
                ),
            ],
            options={
                "verbose_name": "Betreiberzuordnung",
                "verbose_name_plural": "Betreiberzuordnungen",
                "ordering": ["turbine", "-valid_from", "-id"],
            },
        ),
        migrations.CreateModel(
            name="TurbineProduction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("year", models.PositiveSmallIntegerField(verbose_name="Jahr")),
                (
                    "month",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                        verbose_name="Monat",
                    ),
                ),
                (
                    "production_kwh",
                    models.DecimalField(
                        decimal_places=3,
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(0)],
                        verbose_name="Produktion (kWh)",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("DRAFT", "Entwurf"), ("CONFIRMED", "Bestätigt"), ("INVOICED", "Abgerechnet")],
                        db_index=True,
                        default="DRAFT",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "mandant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="turbine_productions",
                        to="windpark.mandant",
                        verbose_name="Mandant",
                    ),
                ),
                (
                    "turbine",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="productions",
                        to="windpark.turbine",
                        verbose_name="Windenergieanlage",
                    ),
                ),
            ],
            options={
                "verbose_name": "Produktionsmeldung",
                "verbose_name_plural": "Produktionsmeldungen",
                "ordering": ["-year", "-month", "turbine"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("turbine", "year", "month"),
                        name="uniq_turbineproduction_turbine_year_month",
                    )
                ],
            },
        ),
    ]
