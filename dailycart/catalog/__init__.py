"""Directory seeding.

Loads branches, products and delivery partners from a seed file, or
generates a deterministic demo set.
"""

from dailycart.catalog.seed import (
    DemoSeedConfig,
    SeedData,
    SeedFile,
    generate_demo_seed,
    load_configured_seed,
)

__all__ = [
    "DemoSeedConfig",
    "SeedData",
    "SeedFile",
    "generate_demo_seed",
    "load_configured_seed",
]
