"""Utility helpers for LiveMatte."""
