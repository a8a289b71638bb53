"""Integrations package - External service connections.

Modules:
    - base: Abstract base class with retry/backoff
    - csv_importer: CSV/XLSX contact import with header normalisation
    - checkout: Stripe Checkout for the one-time unlock
"""

from cadenceiq.integrations.base import IntegrationBase

__all__ = [
    "IntegrationBase",
]
