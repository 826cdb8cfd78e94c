"""
Gradesheet extraction.

Locates the GPA label, the six-column subject table and the restated
identity block inside the results site's HTML.
"""

from .models import ResultRecord, SubjectRecord
from .result_extractor import ResultExtractor

__all__ = ["ResultExtractor", "ResultRecord", "SubjectRecord"]
