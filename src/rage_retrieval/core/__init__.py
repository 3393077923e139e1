"""Core retrieval components: error taxonomy, resilience, client, observability."""
