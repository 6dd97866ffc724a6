"""Spatial engine: case aggregation, waterway proximity, bounding boxes."""
