"""Utility helpers for Pulseo."""
