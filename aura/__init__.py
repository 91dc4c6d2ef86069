"""Aura - a streaming chat assistant with a human confirmation gate for actions."""

__version__ = "0.1.0"

from aura.config import Config
from aura.main import main

__all__ = ["Config", "main", "__version__"]
