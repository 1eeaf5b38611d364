"""habitext: lifecycle extensions for tracked habits."""

__version__ = "0.1.0"
