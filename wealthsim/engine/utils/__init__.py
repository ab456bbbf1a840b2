"""Utility helpers for WealthSim."""

from wealthsim.engine.logging import configure_cli_logging, record_metrics, setup_logger

from .io import ensure_dir, read_yaml, safe_path_segment, write_json, write_yaml
from .rand import MASK_32, RandomStreams, SeededRandom, ambient_seed, iteration_seeds

__all__ = [
    "ensure_dir",
    "safe_path_segment",
    "read_yaml",
    "write_json",
    "write_yaml",
    "configure_cli_logging",
    "record_metrics",
    "setup_logger",
    "MASK_32",
    "RandomStreams",
    "SeededRandom",
    "ambient_seed",
    "iteration_seeds",
]
