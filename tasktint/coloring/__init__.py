"""Coloring core: cache, fingerprint index, color resolver and render scheduler."""
