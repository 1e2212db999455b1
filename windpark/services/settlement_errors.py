from __future__ import annotations

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied


class SettlementCalculationError(Exception):
    """Basisfehler der Pacht- und Stromabrechnung."""


class SettlementNotFound(SettlementCalculationError, ObjectDoesNotExist):
    """Park, Stromabrechnung oder Produktionsdaten fehlen."""


class SettlementPermissionDenied(SettlementCalculationError, PermissionDenied):
    """Der Park gehört zu einem anderen Mandanten."""


class InvalidSettlementArgument(SettlementCalculationError, ValueError):
    """Ungültige Eingabe (Monat, Erlös, Vergütungssatz, Periodenstatus)."""
