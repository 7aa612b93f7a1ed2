import csv
import io

from classroom.errors import ImportFileError


def parse_csv(raw: bytes, max_rows: int) -> tuple[list[str], list[dict[str, str]]]:
    """
    Parse uploaded CSV bytes into (headers, rows).

    Headers are trimmed and lower-cased, every value is trimmed and blank
    lines are dropped. Anything that prevents a clean row-per-record reading
    raises ImportFileError, before any row is looked at.
    """
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ImportFileError("CSV file must be UTF-8 encoded") from e

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    try:
        header = next(reader, None)
        if not header or not any(h.strip() for h in header):
            raise ImportFileError("CSV file is empty or has no header row.")
        headers = [h.strip().lower() for h in header]

        rows: list[dict[str, str]] = []
        for cells in reader:
            if not any(c.strip() for c in cells):
                continue
            if len(cells) != len(headers):
                raise ImportFileError(
                    f"Failed to parse CSV: row {len(rows) + 2} has {len(cells)} field(s), "
                    f"expected {len(headers)}."
                )
            rows.append({h: c.strip() for h, c in zip(headers, cells)})
    except csv.Error as e:
        raise ImportFileError(f"Failed to parse CSV: {e}") from e

    if len(rows) > max_rows:
        raise ImportFileError(
            f"CSV exceeds maximum allowed rows ({max_rows}). Found {len(rows)} rows.",
            total=len(rows),
        )
    if not rows:
        raise ImportFileError("CSV file is empty or has no valid data rows.")
    return headers, rows
