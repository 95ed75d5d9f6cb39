"""Service factories wiring configuration to the ingest pipeline."""
