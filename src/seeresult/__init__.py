"""
SEE result relay - fetches gradesheets from the results site and returns them as JSON.
"""

from __future__ import annotations

__version__ = "1.0.0"

from .config import Config
from .extractor import ResultExtractor, ResultRecord, SubjectRecord

__all__ = ["__version__", "Config", "ResultExtractor", "ResultRecord", "SubjectRecord"]
