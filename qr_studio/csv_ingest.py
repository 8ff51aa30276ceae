"""Parse uploaded CSV files into header lists and row mappings."""

import csv
import json
from pathlib import Path
from typing import Dict, Iterator, List, Union

Row = Dict[str, str]


class CsvParseError(Exception):
    """Raised when an uploaded file cannot be read as CSV."""


class CsvRows:
    """Restartable view over the rows of a CSV file.

    The first line holds the column names. Each iteration re-opens the file,
    so the rows can be consumed more than once with plain ``for`` loops.
    """

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8-sig"):
        self.path = Path(path)
        self.encoding = encoding
        self._headers: List[str] = []
        self._headers_read = False

    @property
    def headers(self) -> List[str]:
        if not self._headers_read:
            with self._open() as fh:
                self._headers = self._read_headers(csv.reader(fh))
            self._headers_read = True
        return list(self._headers)

    def __iter__(self) -> Iterator[Row]:
        with self._open() as fh:
            reader = csv.reader(fh)
            headers = self._read_headers(reader)
            self._headers, self._headers_read = headers, True
            if not headers:
                return
            try:
                for cells in reader:
                    if not any(cell.strip() for cell in cells):
                        continue
                    # Short rows are padded, surplus cells are dropped.
                    padded = cells + [""] * (len(headers) - len(cells))
                    yield dict(zip(headers, padded))
            except (csv.Error, UnicodeDecodeError) as exc:
                raise CsvParseError(f"{self.path.name} line {reader.line_num}: {exc}") from exc

    def read(self) -> List[Row]:
        return list(self)

    def _open(self):
        try:
            return self.path.open(newline="", encoding=self.encoding)
        except OSError as exc:
            raise CsvParseError(f"Cannot open {self.path.name}: {exc}") from exc

    @staticmethod
    def _read_headers(reader) -> List[str]:
        try:
            first = next(reader, None)
        except (csv.Error, UnicodeDecodeError) as exc:
            raise CsvParseError(f"Cannot read CSV header: {exc}") from exc
        if first is None:
            return []
        return [name.strip() for name in first]


def row_content(row: Row) -> str:
    """Compact JSON of a row, keeping column order."""
    return json.dumps(row, ensure_ascii=False, separators=(",", ":"))
