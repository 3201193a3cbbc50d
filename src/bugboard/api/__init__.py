"""
Remote collaborators — httpx clients for the bug store and the AI service.

Both clients normalise transport failures at their boundary: the bug store
client raises :mod:`bugboard.core.exceptions` types, the analysis client
falls back to default values and never raises.
"""

from bugboard.api.analysis import AnalysisClient, AnalysisResult  # noqa: F401
from bugboard.api.client import BugApiClient  # noqa: F401
