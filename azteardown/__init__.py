"""Azure Teardown - typed removal of Azure resources with per-type recipes."""

__version__ = "0.4.0"
