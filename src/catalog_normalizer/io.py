from __future__ import annotations
import csv
import io as _stdio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from .errors import EmptyInputError, HeaderValidationError
from .normalize import fold_header


logger = logging.getLogger(__name__)


class HeaderIndex:
    """Resolves a wanted column name to the name actually used in a file.

    Exact match first; then a folded match ignoring case, surrounding
    whitespace and BOM / zero-width characters. Built once per table.
    """

    def __init__(self, header: Iterable[str]):
        self.exact: dict = {}
        self.folded: dict = {}
        for name in header:
            if not name:
                continue
            self.exact.setdefault(name, name)
            self.folded.setdefault(fold_header(name), name)

    def resolve(self, name: str) -> str | None:
        if name in self.exact:
            return self.exact[name]
        return self.folded.get(fold_header(name))

    def __contains__(self, name: str) -> bool:
        return self.resolve(name) is not None


@dataclass
class RowTable:
    header: list
    rows: list
    skipped: int = 0
    index: HeaderIndex = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.index = HeaderIndex(self.header)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[dict]:
        return iter(self.rows)

    def get(self, row: dict, name: str, default: str = "") -> str:
        col = self.index.resolve(name)
        if col is None:
            return default
        val = row.get(col)
        return default if val is None else val


def _safe_records(reader) -> Iterator[list | None]:
    """Yield csv records; None marks a record the csv module rejected."""
    while True:
        try:
            yield next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            logger.warning(f"Skipping unreadable CSV record near line {reader.line_num}: {e}")
            yield None


def _build_table(records: Iterable[list | None], anchors: tuple = ()) -> RowTable:
    header: list = []
    rows: list = []
    skipped = 0
    seen_header = False
    for raw in records:
        if raw is None:
            skipped += 1
            continue
        if not raw or not any((c or "").strip() for c in raw):
            continue
        if not seen_header:
            header = [(c or "").strip() for c in raw]
            seen_header = True
            continue
        d: dict = {}
        for i, name in enumerate(header):
            if not name:
                continue
            d[name] = (raw[i] or "").strip() if i < len(raw) else ""
        if len(raw) > len(header) and any((c or "").strip() for c in raw[len(header):]):
            logger.debug(f"Row has {len(raw)} values for {len(header)} columns; extras ignored")
        rows.append(d)

    if not seen_header:
        raise EmptyInputError("CSV file is empty or has no header row")

    table = RowTable(header=header, rows=rows, skipped=skipped)
    if anchors:
        cols = [table.index.resolve(a) for a in anchors]
        cols = [c for c in cols if c]
        kept = []
        for d in table.rows:
            if any(d.get(c) for c in cols):
                kept.append(d)
            else:
                table.skipped += 1
                logger.warning(f"Skipping row without {' / '.join(anchors)}")
        table.rows = kept
    return table


def read_rows(text: str, anchors: tuple = ()) -> RowTable:
    """Decode CSV text into a RowTable using its first non-blank line as header.

    Short rows are padded with "", rows the csv module cannot decode are
    skipped and counted, and when ``anchors`` are given rows with no value
    in any anchor column are skipped and counted too.
    """
    if text is None or not text.strip():
        raise EmptyInputError("CSV file is empty or has no valid data")
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.reader(_stdio.StringIO(text, newline=""))
    return _build_table(_safe_records(reader), anchors=anchors)


def rows_from_records(records: list, anchors: tuple = ()) -> RowTable:
    """Build a RowTable from already-split rows (list of dicts)."""
    if not records:
        raise EmptyInputError("No rows supplied")
    header: list = []
    for r in records:
        for k in r.keys():
            if k not in header:
                header.append(k)
    matrix = [header]
    for r in records:
        matrix.append(["" if r.get(k) is None else str(r.get(k)) for k in header])
    return _build_table(matrix, anchors=anchors)


def check_headers(table: RowTable, required: tuple, platform: str) -> None:
    missing = [name for name in required if name not in table.index]
    if missing:
        raise HeaderValidationError(platform, missing)


def write_csv_text(rows: list, fieldnames: list) -> str:
    buf = _stdio.StringIO()
    writer = csv.DictWriter(buf, fieldnames=fieldnames, restval="", extrasaction="ignore")
    writer.writeheader()
    for r in rows:
        writer.writerow(r)
    return buf.getvalue()


def write_csv(output_path: Path, text: str) -> None:
    with output_path.open("w", newline="", encoding="utf-8") as f:
        f.write(text)


def _val_to_str(v) -> str:
    # Excel numeric cells: 5225.0 -> '5225'
    if isinstance(v, bool):
        return "TRUE" if v else "FALSE"
    if isinstance(v, float):
        return str(int(v)) if v.is_integer() else str(v)
    if isinstance(v, int):
        return str(v)
    return "" if v is None else str(v)


def _read_rows_xlsx(input_path: Path, anchors: tuple = ()) -> RowTable:
    from openpyxl import load_workbook

    wb = load_workbook(filename=str(input_path), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        matrix = [[_val_to_str(v) for v in row] for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
    return _build_table(matrix, anchors=anchors)


def _read_rows_xls(input_path: Path, anchors: tuple = ()) -> RowTable:
    import xlrd

    book = xlrd.open_workbook(str(input_path))
    sheet = book.sheet_by_index(0)
    matrix = []
    for r in range(sheet.nrows):
        matrix.append([_val_to_str(sheet.cell_value(r, c)) for c in range(sheet.ncols)])
    return _build_table(matrix, anchors=anchors)


def read_any_rows(input_path: Path, anchors: tuple = ()) -> RowTable:
    ext = input_path.suffix.lower()
    if ext in (".xlsx", ".xlsm", ".xltx", ".xltm"):
        return _read_rows_xlsx(input_path, anchors=anchors)
    if ext == ".xls":
        return _read_rows_xls(input_path, anchors=anchors)
    # default try CSV
    text = input_path.read_text(encoding="utf-8-sig")
    return read_rows(text, anchors=anchors)
