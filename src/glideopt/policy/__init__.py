"""Control policy genome."""

from .genome import ControlPolicy

__all__ = ["ControlPolicy"]
