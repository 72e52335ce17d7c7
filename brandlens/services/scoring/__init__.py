"""Rule-based and LLM-derived content scoring."""
