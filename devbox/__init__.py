"""
devbox — local development environment manager.

Two entry points share one dispatch engine:

    devbox   global manager (scaffolding, download cache, bundling)
    box      per-project manager (packages, env, config rendering)
"""

__version__ = "0.1.0"
