"""Validation package."""

from recurrence_engine.validation.validator import PairingValidator

__all__ = ["PairingValidator"]
