"""Jet tracker: fighter procurement media collection and enrichment pipeline."""
