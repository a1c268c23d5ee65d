"""HTTP API over the deal service."""
