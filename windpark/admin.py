from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin

from .models import (
    EnergySettlement,
    EnergySettlementItem,
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


class RevenuePhaseInline(admin.TabularInline):
    model = RevenuePhase
    extra = 0


class TurbineInline(admin.TabularInline):
    model = Turbine
    extra = 0


class PlotAreaInline(admin.TabularInline):
    model = PlotArea
    extra = 0


class LeasePlotInline(admin.TabularInline):
    model = LeasePlot
    extra = 0
    autocomplete_fields = ("plot",)


class EnergySettlementItemInline(admin.TabularInline):
    model = EnergySettlementItem
    extra = 0
    readonly_fields = (
        "turbine",
        "recipient_fund",
        "production_share_kwh",
        "production_share_pct",
        "revenue_share_eur",
        "distribution_key",
        "average_production_kwh",
        "deviation_kwh",
        "tolerance_adjustment",
    )
    can_delete = False


@admin.register(Mandant)
class MandantAdmin(admin.ModelAdmin):
    list_display = ("name", "created_at")
    search_fields = ("name",)


@admin.register(Person)
class PersonAdmin(admin.ModelAdmin):
    list_display = ("__str__", "person_type", "postal_code", "city", "bank_iban")
    list_filter = ("person_type", "mandant")
    search_fields = ("first_name", "last_name", "company_name", "city")


@admin.register(Fund)
class FundAdmin(admin.ModelAdmin):
    list_display = ("name", "mandant")
    list_filter = ("mandant",)
    search_fields = ("name",)


@admin.register(Park)
class ParkAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "mandant",
        "commissioning_date",
        "minimum_rent_per_turbine",
        "wea_share_percentage",
        "pool_share_percentage",
    )
    list_filter = ("mandant",)
    search_fields = ("name",)
    inlines = [RevenuePhaseInline, TurbineInline]


@admin.register(Plot)
class PlotAdmin(admin.ModelAdmin):
    list_display = ("plot_number", "cadastral_district", "field_number", "park", "status")
    list_filter = ("status", "park")
    search_fields = ("plot_number", "cadastral_district")
    inlines = [PlotAreaInline]


@admin.register(Lease)
class LeaseAdmin(admin.ModelAdmin):
    list_display = ("lessor", "status", "start_date", "end_date")
    list_filter = ("status", "mandant")
    search_fields = ("lessor__last_name", "lessor__company_name")
    inlines = [LeasePlotInline]


@admin.register(TurbineOperator)
class TurbineOperatorAdmin(admin.ModelAdmin):
    list_display = ("turbine", "operator_fund", "valid_from", "valid_to", "status")
    list_filter = ("status", "turbine__park")


@admin.register(TurbineProduction)
class TurbineProductionAdmin(admin.ModelAdmin):
    list_display = ("turbine", "year", "month", "production_kwh", "status")
    list_filter = ("status", "year", "turbine__park")


@admin.register(EnergySettlement)
class EnergySettlementAdmin(SimpleHistoryAdmin):
    list_display = ("park", "year", "month", "net_operator_revenue_eur", "distribution_mode", "status")
    list_filter = ("status", "distribution_mode", "park")
    search_fields = ("park__name", "net_operator_reference")
    readonly_fields = ("calculation_details", "created_at")
    inlines = [EnergySettlementItemInline]
    history_list_display = ("status", "net_operator_revenue_eur", "history_user", "history_date")


@admin.register(LeaseSettlementPeriod)
class LeaseSettlementPeriodAdmin(SimpleHistoryAdmin):
    list_display = (
        "park",
        "year",
        "period_type",
        "month",
        "status",
        "total_revenue",
        "total_minimum_rent",
        "total_actual_rent",
    )
    list_filter = ("status", "period_type", "park")
    search_fields = ("park__name",)
    history_list_display = ("status", "total_revenue", "total_actual_rent", "history_user", "history_date")


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "settlement_period", "lease", "gross_amount", "status", "paid_at")
    list_filter = ("status",)
    search_fields = ("invoice_number",)
