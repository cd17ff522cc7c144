"""dep-drift-sec — dependency drift and supply-chain heuristics for npm projects.

Reads package.json + package-lock.json, rebuilds the resolved dependency
graph, and flags loose ranges, duplicated versions, and deprecated,
unmaintained or single-maintainer packages.
"""

__version__ = "1.0.0"
