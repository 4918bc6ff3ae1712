"""Domain layer: plain models and invariants, no persistence."""
