"""Outbreak map backend: spatial aggregation and waterway proximity engine."""
