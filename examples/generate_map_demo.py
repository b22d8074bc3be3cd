#!/usr/bin/env python3
"""
Simple demo script showing map generation and interactive editing.
"""

import numpy as np

from py_blobmap.config import GenerationConfig
from py_blobmap.core import FeatureType, GenerationMode, MapGenerator


def summarize(terrain):
    """Print cell, height and feature statistics for a map."""
    heights = terrain.graph.heights
    sea_level = terrain.config.sea_level

    land_cells = np.sum(heights >= sea_level)
    land_pct = land_cells / len(heights) * 100
    print(f"  Total cells: {len(heights)}")
    print(f"  Land cells: {land_cells} ({land_pct:.1f}%)")
    print(f"  Height range: {heights.min():.2f}-{heights.max():.2f}")

    bins = [0, 0.1, sea_level, 0.4, 0.6, 0.8, 1.0]
    hist, _ = np.histogram(heights, bins=bins)
    print("  Height distribution:")
    for i in range(len(bins) - 1):
        bar = "#" * int(hist[i] / max(hist.max(), 1) * 20)
        print(f"    {bins[i]:.2f}-{bins[i + 1]:.2f}: {bar} ({hist[i]})")

    print("  Features:")
    for feature in terrain.features:
        loops = terrain.coastlines.get(feature.key, [])
        coast = ""
        if feature.type is not FeatureType.OCEAN:
            closed = sum(1 for loop in loops if loop.closed)
            coast = f", {closed}/{len(loops)} closed coastline loops"
        print(f"    {feature.name} {feature.type.value} #{feature.number}: {feature.cells} cells{coast}")


def main():
    """Demonstrate map generation."""
    print("Blob Map Generation Demo")
    print("=" * 40)

    config = GenerationConfig.create(
        width=400,
        height=300,
        spacing=8,
        sea_level=0.2,
        peak_height=0.9,
        decay=0.8,
        sharpness=0.2,
        blob_count=8,
        seed="demo123",
    )
    generator = MapGenerator(config)

    print(f"\nGenerating {config.width:.0f}x{config.height:.0f} map...")
    terrain = generator.generate()
    print(f"Generated in {terrain.generation_time_seconds:.2f}s (margin {terrain.margin:.0f})")
    summarize(terrain)

    print("\nAdding an island near the top left and a hill next to it...")
    generator.add_blob_at(point=(config.width * 0.3, config.height * 0.3))
    terrain = generator.add_blob_at(point=(config.width * 0.35, config.height * 0.35))
    summarize(terrain)

    print("\nGenerating the same map as a central island with hills...")
    terrain = MapGenerator(config.model_copy(update={"mode": GenerationMode.RANDOM_MAP})).generate()
    summarize(terrain)


if __name__ == "__main__":
    main()
