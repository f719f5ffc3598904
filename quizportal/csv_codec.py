"""CSV text <-> rows of string cells.

Used by question/student import and by the teacher exports. Quoted fields
may contain commas, doubled quotes and line breaks (LF or CRLF). Output uses
CRLF between rows and quotes only cells that need it.
"""
import csv
import io
from typing import Any, Iterable, List

BOM = "\ufeff"
ROW_SEPARATOR = "\r\n"


def _keep_row(fields: List[str]) -> bool:
    return len(fields) > 1 or any(f.strip() != "" for f in fields)


def parse_rows(text: str) -> List[List[str]]:
    """Parse CSV text into rows; blank lines are skipped."""
    rows: List[List[str]] = []
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    n = len(text)

    while i < n:
        ch = text[i]
        if in_quotes:
            if ch == '"':
                if i + 1 < n and text[i + 1] == '"':
                    current.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                current.append(ch)
        elif ch == '"':
            in_quotes = True
        elif ch == ',':
            fields.append("".join(current))
            current = []
        elif ch == '\r':
            # the following \n ends the row
            pass
        elif ch == '\n':
            fields.append("".join(current))
            current = []
            if _keep_row(fields):
                rows.append(fields)
            fields = []
        else:
            current.append(ch)
        i += 1

    fields.append("".join(current))
    if _keep_row(fields):
        rows.append(fields)
    return rows


def format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def generate_rows(rows: Iterable[Iterable[Any]]) -> str:
    """Serialize rows with CRLF separators and no trailing separator."""
    output = io.StringIO()
    writer = csv.writer(output, lineterminator=ROW_SEPARATOR, quoting=csv.QUOTE_MINIMAL)
    for row in rows:
        cells = [format_cell(cell) for cell in row]
        if cells == [""]:
            # csv.writer would emit '""' here
            output.write(ROW_SEPARATOR)
            continue
        writer.writerow(cells)
    text = output.getvalue()
    if text.endswith(ROW_SEPARATOR):
        text = text[: -len(ROW_SEPARATOR)]
    return text


def with_bom(text: str) -> str:
    """Prefix a BOM so spreadsheet applications detect UTF-8."""
    return BOM + text


def decode_csv_bytes(data: bytes) -> str:
    """Decode an uploaded CSV file: UTF-8 (BOM optional), else Shift_JIS."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("cp932")
