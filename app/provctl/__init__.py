"""provctl - declarative, idempotent host provisioning.

Describe the packages, configuration files, bootstrap commands and services a
host should have in a manifest, preview the converging plan, and apply it.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
