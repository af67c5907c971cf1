"""Cuisto - cooking-session engine for guided, hands-free cooking.

Cuisto runs step-by-step cooking sessions with:
- Per-step and free-standing countdown timers on a single 1 Hz tick
- Keyword-based voice command interpretation
- Single-slot spoken feedback with barge-in
- Hands-free mode (continuous recognition + screen wake lock)

Usage:
    python -m cuisto recipe.yaml --profile dev
"""

__version__ = "0.1.0"
__author__ = "Cuisto Team"

from .config import CuistoConfig
from .config.loader import load_config

__all__ = [
    "CuistoConfig",
    "__version__",
    "load_config",
]
