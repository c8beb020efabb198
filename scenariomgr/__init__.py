"""Scenario manager for a cloud emulator: a REST service that stores configurations and drives actions on them."""

__version__ = "0.1.0"