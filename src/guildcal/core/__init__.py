"""Cross-cutting infrastructure: cache, tri-state fields, logging, tracing."""
