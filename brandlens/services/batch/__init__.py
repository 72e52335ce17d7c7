"""Batch fan-out of prompts to models and roll-up of their judgments."""
