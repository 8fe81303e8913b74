"""Record/blob store adapters and the tiered store gateway."""
