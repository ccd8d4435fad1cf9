"""Diagnostic stream scanning and the readiness barrier."""

from .readiness import ReadinessBarrier
from .scanner import AddressScanner

__all__ = ["AddressScanner", "ReadinessBarrier"]
