# app/services/record_parser.py
import csv
import logging
import math
import re
import warnings
from io import StringIO
from typing import Any, Dict, Iterator, List, Optional

import pandas as pd

from madrid_map.app.errors import RecordParseError

logger = logging.getLogger(__name__)

CANDIDATE_DELIMITERS = (",", ";", "\t", "|")
_INT_RE = re.compile(r"^[-+]?\d+$")
_FLOAT_RE = re.compile(r"^[-+]?(\d+\.\d*|\.\d+|\d+)([eE][-+]?\d+)?$")


def coerce_value(value: Any) -> Any:
    """Best-effort typing of a single cell: numbers become int/float, blanks None."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if not isinstance(value, str):
        return value
    s = value.strip()
    if not s:
        return None
    if _INT_RE.match(s):
        return int(s)
    if _FLOAT_RE.match(s):
        return float(s)
    return s


def sniff_delimiter(text: str) -> str:
    first_line = ""
    for line in text.splitlines():
        if line.strip():
            first_line = line
            break
    counts = {d: first_line.count(d) for d in CANDIDATE_DELIMITERS}
    best = max(counts, key=lambda d: counts[d])
    return best if counts[best] > 0 else ","


def _count_overlong(text: str, sep: str, width: int) -> int:
    reader = csv.reader(StringIO(text), delimiter=sep)
    return sum(1 for fields in reader if len(fields) > width)


def _column_count(text: str, sep: str) -> int:
    try:
        head = pd.read_csv(StringIO(text), sep=sep, header=None, nrows=1, dtype=str, engine="python")
    except pd.errors.EmptyDataError:
        raise RecordParseError("payload is empty")
    except (pd.errors.ParserError, ValueError) as exc:
        raise RecordParseError(f"unreadable first line: {exc}")
    return int(head.shape[1])


def parse_records(
    text: str,
    has_header: bool = True,
    delimiter: Optional[str] = None,
) -> Iterator[Dict[str, Any]]:
    """
    Parse delimited text into raw row mappings, one per data line.

    Blank lines and lines with nothing but delimiters are skipped. A line with
    more fields than the header is truncated and logged rather than failing
    the whole payload; a short line has its missing cells set to None.
    Without a header, columns are named by position ("0", "1", ...).

    Raises RecordParseError when the payload has no readable content at all.
    """
    if text is None or not str(text).strip():
        raise RecordParseError("payload is empty")
    text = str(text).lstrip("\ufeff")
    sep = delimiter or sniff_delimiter(text)
    width = _column_count(text, sep)

    overflow = _count_overlong(text, sep, width)

    try:
        # keeps an over-long first row from turning column 0 into an implicit index
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            frame = pd.read_csv(
                StringIO(text),
                sep=sep,
                header=0 if has_header else None,
                index_col=False,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine="python",
            )
    except pd.errors.EmptyDataError:
        raise RecordParseError("payload is empty")
    except (pd.errors.ParserError, ValueError) as exc:
        raise RecordParseError(str(exc))

    if overflow:
        logger.warning("Truncated %d over-long line(s) to %d fields", overflow, width)

    columns = [str(c).strip() for c in frame.columns]
    if has_header and not any(columns):
        raise RecordParseError("header row is empty")

    return _iter_rows(frame, columns)


def _iter_rows(frame: pd.DataFrame, columns: List[str]) -> Iterator[Dict[str, Any]]:
    for values in frame.itertuples(index=False, name=None):
        row = {col: coerce_value(v) for col, v in zip(columns, values)}
        if all(v is None for v in row.values()):
            continue
        yield row
