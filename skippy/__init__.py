"""skippy - compute which modules a change affects, so CI can skip the rest."""

__version__ = "0.1.0"
