"""
Ecosystem: catalog and installation state for Burrow projects

The ecosystem is everything Burrow knows about projects outside a
single run:
  - the catalog of installable projects (projects.json), each entry a
    project descriptor
  - which projects are installed, and whether they were requested
    explicitly or only pulled in as dependencies (state.json)
  - the usage-report logs written after every pipeline run

Project descriptors (META.json) declare a project's name, version,
runtime/test/build dependencies and where to fetch its sources from.
See ecosystem.descriptor for the recognised keys.
"""

__version__ = "0.1.0"
