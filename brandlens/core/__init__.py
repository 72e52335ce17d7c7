"""Core building blocks: exceptions, HTTP client, adapters and run context."""
