"""Simulation package shim.

This module exposes the Simulation class at `memhier.simulation` so front
ends can use `from memhier.simulation import Simulation`.
"""
from .simulation import Simulation, SimulationSettings, parse_manual_sequence

__all__ = ["Simulation", "SimulationSettings", "parse_manual_sequence"]
