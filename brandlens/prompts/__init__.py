"""Prompt templates for battery, analysis and repair calls."""
