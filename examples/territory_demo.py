#!/usr/bin/env python3
"""
Demonstration of the territory overlay.

Generates a random star field, merges a few neighbourhoods into larger
territories and renders the regions before and after the merge.
"""

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.patches import Polygon as PolygonPatch

from py_starmap.config import configure_logging
from py_starmap.core import TerritoryOverlay, plan_neighbor_merges


def random_stars(count, radius, seed):
    rng = np.random.default_rng(seed)
    angles = rng.uniform(0, 2 * np.pi, count)
    distances = radius * np.sqrt(rng.uniform(0, 1, count))
    return {
        f"star-{i}": (float(d * np.cos(a)), float(d * np.sin(a)))
        for i, (a, d) in enumerate(zip(angles, distances))
    }


def draw_regions(ax, overlay, stars, title):
    cmap = plt.get_cmap("tab20")
    for i, (site_id, region) in enumerate(overlay.regions.items()):
        patch = PolygonPatch(region.polygon, closed=region.is_closed,
                             facecolor=cmap(i % 20), edgecolor="black", alpha=0.6, linewidth=0.8)
        ax.add_patch(patch)
        cx, cy = region.centroid
        if len(region.members) > 1:
            ax.text(cx, cy, str(len(region.members)), ha="center", va="center", fontsize=8)

    xs, ys = zip(*stars.values())
    ax.scatter(xs, ys, c="white", edgecolors="black", s=12, zorder=3)
    ax.set_title(title)
    ax.set_aspect("equal")
    ax.autoscale_view()


def main():
    configure_logging()

    stars = random_stars(count=60, radius=100.0, seed=7)
    overlay = TerritoryOverlay({"padding_offset": 30.0, "chaikin_iterations": 2})

    print("=== Territory Overlay Demo ===\n")

    print("1. Generating the initial overlay...")
    overlay.apply_merges_and_regenerate(stars)
    print(f"   - Regions: {overlay.report.region_count}")
    print(f"   - Skipped regions: {len(overlay.report.skipped_regions)}")

    fig, axes = plt.subplots(1, 2, figsize=(16, 8))
    draw_regions(axes[0], overlay, stars, "Initial territories")

    print("\n2. Planning and queuing merges...")
    plan = plan_neighbor_merges(overlay.adjacency, central_count=4, neighbors_per_center=4, seed=11)
    for target, source in plan:
        overlay.queue_merge(target, source)
    print(f"   - Queued {len(overlay.pending_merges)} merges")

    print("\n3. Regenerating with merges applied...")
    overlay.apply_merges_and_regenerate(stars)
    report = overlay.report
    print(f"   - Regions: {report.region_count}")
    print(f"   - Applied merges: {len(report.applied_merges)}")
    print(f"   - Failed merges: {len(report.failed_merges)}")
    for failure in report.failed_merges:
        print(f"     {failure.source} -> {failure.target}: {failure.reason}")

    draw_regions(axes[1], overlay, stars, "After merging")

    total_area = sum(region.area for region in overlay.regions.values())
    print(f"\n   - Total territory area: {total_area:.1f}")

    plt.tight_layout()
    plt.savefig("territory_demo.png", dpi=150, bbox_inches="tight")
    print("\nSaved territory_demo.png")
    plt.show()


if __name__ == "__main__":
    main()
