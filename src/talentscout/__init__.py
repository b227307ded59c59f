"""TalentScout - multi-source candidate sourcing pipeline."""

__version__ = "0.1.0"
