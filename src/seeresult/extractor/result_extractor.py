"""
BeautifulSoup-based extractor for the SEE gradesheet page.

The markup belongs to a third party and is matched as it is today: a bold
GPA label, six-cell subject rows and an ``lgfonts`` block that restates the
symbol number and date of birth.
"""

from __future__ import annotations

import asyncio
import re
from typing import List

import structlog
from bs4 import BeautifulSoup

from .models import ResultRecord, SubjectRecord

logger = structlog.get_logger(__name__)

GPA_LABEL = re.compile(r"GRADE POINT AVERAGE", re.IGNORECASE)
GPA_PREFIX = re.compile(r"GRADE POINT AVERAGE \(GPA\)\s*:?\s*", re.IGNORECASE)
SYMBOL_PATTERN = re.compile(r"(\d{8}[A-Z]?)\b", re.ASCII)
DOB_PATTERN = re.compile(r"DATE OF BIRTH.*?(\d{4}[-./]\d{2}[-./]\d{2})", re.IGNORECASE | re.ASCII)
WHITESPACE_RUN = re.compile(r"\s+")

SUBJECT_CELL_COUNT = 6


class ResultExtractor:
    """Turns a gradesheet HTML document into a :class:`ResultRecord`."""

    def __init__(self, parser: str = "lxml", info_class: str = "lgfonts") -> None:
        self.parser = parser
        self.info_class = info_class

    async def extract_async(self, html: str, submitted_symbol: str, submitted_dob: str) -> ResultRecord:
        """Run :meth:`extract` on the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.extract, html, submitted_symbol, submitted_dob)

    def extract(self, html: str, submitted_symbol: str, submitted_dob: str) -> ResultRecord:
        """Extract GPA, subjects and confirmed identity fields.

        Args:
            html: Raw gradesheet document
            submitted_symbol: Symbol number the client asked for
            submitted_dob: Date of birth the client asked for

        Returns:
            ResultRecord; never raises for unexpected markup
        """
        try:
            soup = BeautifulSoup(html or "", self.parser)
            symbol, dob = self._identity(soup, submitted_symbol, submitted_dob)
            return ResultRecord(
                symbol=symbol,
                dob=dob,
                gpa=self._gpa(soup),
                subjects=tuple(self._subjects(soup)),
            )
        except Exception as e:
            logger.warning("Gradesheet extraction failed", error=str(e), symbol=submitted_symbol)
            return ResultRecord(symbol=submitted_symbol, dob=submitted_dob, gpa=None, subjects=())

    def _gpa(self, soup: BeautifulSoup) -> str | None:
        for bold in soup.find_all("b"):
            text = bold.get_text().strip()
            if GPA_LABEL.search(text):
                return GPA_PREFIX.sub("", text, count=1).strip()
        return None

    def _subjects(self, soup: BeautifulSoup) -> List[SubjectRecord]:
        subjects = []
        for row in soup.select("table tr"):
            cells = [td.get_text().strip() for td in row.find_all("td")]
            if len(cells) != SUBJECT_CELL_COUNT:
                continue
            subjects.append(
                SubjectRecord(
                    subject_name=WHITESPACE_RUN.sub(" ", cells[0]).strip(),
                    credit_hours=cells[1],
                    grade=cells[2],
                    grade_point=cells[3],
                    final_grade=cells[4],
                    remarks=cells[5],
                )
            )
        return subjects

    def _identity(self, soup: BeautifulSoup, submitted_symbol: str, submitted_dob: str) -> tuple[str, str]:
        # Text of every info block, concatenated in document order.
        info_text = "".join(element.get_text() for element in soup.find_all(class_=self.info_class))

        symbol_match = SYMBOL_PATTERN.search(info_text)
        dob_match = DOB_PATTERN.search(info_text)

        symbol = symbol_match.group(1) if symbol_match else submitted_symbol
        dob = dob_match.group(1) if dob_match else submitted_dob
        return symbol, dob
