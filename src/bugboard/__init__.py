"""
bugboard — terminal client for a remote bug-tracker REST API.

bugboard keeps a kanban-style board of issues in memory, applies status
moves optimistically, and reconciles every move against the authoritative
remote store. Issue creation can be pre-filled by a remote AI analysis
service.

Package layout (src/bugboard/):
  core/  — models, board snapshots, sync controller, debounce, stats, config
  api/   — httpx clients for the bug store and the analysis service
  cli/   — Click CLI entry point
"""

__version__ = "0.4.0"
__all__ = ["__version__"]
