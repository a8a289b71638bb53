"""CadenceIQ Test Suite.

Test organization mirrors cadenceiq/ structure:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── test_core/           # Config, logging, exceptions
    ├── test_db/             # Models and snapshot storage
    ├── test_engine/         # Stages, cadence, calendar, contact store
    ├── test_ai/             # Social profile insights
    ├── test_integrations/   # CSV import and checkout
    └── test_cli.py          # Command-line entry point
"""
