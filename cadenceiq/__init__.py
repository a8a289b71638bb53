"""CadenceIQ Source Package.

Contact outreach tracker built around a 4-stage email/call cadence.

Layers:
    - core: Configuration, logging, exceptions
    - db: Models and snapshot persistence
    - engine: Stage policy, sequence engine, calendar and contact stores
    - ai: Social profile insights via Claude
    - integrations: CSV/XLSX import, Stripe checkout
"""

__version__ = "0.1.0"
