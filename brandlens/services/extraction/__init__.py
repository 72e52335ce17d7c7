"""Conversion of raw model answers into structured judgments."""
