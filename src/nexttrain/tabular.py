"""Streaming reader for GTFS delimited text relations."""

import csv
import io
import logging
from typing import IO, Callable, Iterator, List, TypeVar, Union

from .exceptions import RowParseError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Source = Union[IO, bytes, str]


class Row(dict):
    """A parsed row: field name -> string value, plus its source line number."""

    __slots__ = ("line_number",)

    def __init__(self, fields, line_number: int = 0):
        super().__init__(fields)
        self.line_number = line_number


def _text_stream(source: Source) -> IO[str]:
    if isinstance(source, str):
        return io.StringIO(source, newline="")
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    if isinstance(source, io.TextIOBase):
        return source
    # csv needs newline="" so quoted newlines survive; bad bytes become U+FFFD
    return io.TextIOWrapper(source, encoding="utf-8-sig", errors="replace", newline="")


def _is_blank(values: List[str]) -> bool:
    return not any(v.strip() for v in values)


def read_rows(source: Source, delimiter: str = ",") -> Iterator[Row]:
    """
    Stream rows from a delimited text relation.

    The first non-blank line is the header. Quoted fields may contain the
    delimiter, newlines, and doubled quotes (an escaped literal quote).
    Blank lines are skipped. Rows with the wrong number of fields are kept:
    missing fields read as "" and surplus fields are dropped. Invalid UTF-8
    is decoded as U+FFFD. A record the csv module rejects (e.g. an
    unterminated quote that runs past the field size limit) is logged and
    dropped, and reading resumes on the following line.

    Args:
        source: Binary or text stream, or the raw content as bytes/str.
        delimiter: Field delimiter.

    Yields:
        Row objects keyed by header name.
    """
    reader = csv.reader(_text_stream(source), delimiter=delimiter)
    headers: List[str] = []

    while True:
        try:
            values = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            logger.warning(f"Line {reader.line_num}: dropping unreadable record: {e}")
            continue

        if _is_blank(values):
            continue

        if not headers:
            headers = [h.strip().lstrip("\ufeff") for h in values]
            continue

        if len(values) != len(headers):
            logger.warning(
                f"Line {reader.line_num}: expected {len(headers)} fields, got {len(values)}"
            )
            if len(values) < len(headers):
                values = values + [""] * (len(headers) - len(values))
            else:
                values = values[: len(headers)]

        yield Row(zip(headers, values), line_number=reader.line_num)


def parse_relation(
    source: Source,
    from_row: Callable[[Row, int], T],
    relation: str = "",
) -> Iterator[T]:
    """
    Stream typed records from a relation.

    Rows that cannot be coerced (``from_row`` raises RowParseError) are
    logged and skipped; the stream keeps going.

    Args:
        source: Relation content, as accepted by read_rows().
        from_row: Record constructor, e.g. ``StopRow.from_row``.
        relation: Relation name used in log messages.
    """
    skipped = 0
    for row in read_rows(source):
        try:
            yield from_row(row, row.line_number)
        except RowParseError as e:
            skipped += 1
            logger.warning(f"Skipping row in {relation or 'relation'}: {e}")

    if skipped:
        logger.info(f"Skipped {skipped} malformed rows in {relation or 'relation'}")
