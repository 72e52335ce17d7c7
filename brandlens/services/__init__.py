"""Domain services: prompts, extraction, batches, scoring and trends."""
