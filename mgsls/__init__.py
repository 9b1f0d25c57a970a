"""Simulated controller for a mirror-galvanometer laser sintering machine: G-code reading, galvo planning, stepper ramps, heater and recorded hardware."""

__version__ = "1.8.0"