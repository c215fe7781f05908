"""
Burrow Core: resolution and orchestration engine.

Turns a project reference into a Project, walks its dependency graph,
and drives the fetch -> build -> test -> install pipeline for every
project that is not installed yet.

# ---- Changelog ----
# [2026-10-18] Initial creation.
#   What: Package init for burrow_core.
#   How:  Single package with one submodule per pipeline concern,
#         the same layout the ecosystem/ package uses for the store.
# -------------------
"""

__version__ = "0.1.0"
