"""
Fleetguard command line scripts.

Database migration, seeding, reset, setup and smoke-test commands built on
fleetguard-core.
"""

__version__ = "0.1.0"
