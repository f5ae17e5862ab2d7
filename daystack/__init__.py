"""DayStack - daily mood, energy, productivity and habit tracking."""

__version__ = "0.1.0"
