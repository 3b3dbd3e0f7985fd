"""Core provisioning engine: collection, planning, execution and reporting."""
