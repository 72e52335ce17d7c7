"""Period-over-period variation of report metrics."""
