"""Utility helpers: clocks, subprocess handling and go module detection."""
