"""Command-line entry points for WealthSim."""
