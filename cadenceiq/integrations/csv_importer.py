"""CSV and XLSX contact importer with header normalisation.

Provides:
    - CSV and XLSX parsing
    - Header synonym matching (case-insensitive)
    - Rows normalised to contact-creation fields

The contact store only accepts normalised field names; every header
spelling quirk is handled here.

Usage:
    from cadenceiq.integrations.csv_importer import CSVImporter

    importer = CSVImporter()
    preview = importer.parse_file(Path("contacts.csv"))
    rows = importer.read_contacts(Path("contacts.csv"), day=WeekDay.MONDAY)
    result = store.import_batch(rows)
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import openpyxl

from cadenceiq.core.exceptions import ImportError_
from cadenceiq.core.logging import get_logger
from cadenceiq.db.models import WeekDay

logger = get_logger(__name__)


@dataclass
class ParseResult:
    """Result of parsing a CSV/XLSX file.

    Attributes:
        headers: Column headers
        sample_rows: First 5 rows of data
        total_rows: Total data rows
        mapping: Contact field -> matched header
        encoding: File encoding used
    """

    headers: list[str]
    sample_rows: list[list[str]]
    total_rows: int
    mapping: dict[str, str]
    encoding: str = "utf-8"

    @property
    def unmapped_headers(self) -> list[str]:
        """Headers that feed no contact field."""
        used = set(self.mapping.values())
        return [h for h in self.headers if h not in used]


# Accepted header spellings per contact field, in priority order
HEADER_SYNONYMS: dict[str, list[str]] = {
    "entity_name": ["Entity Name", "Company", "Company Name", "Organization"],
    "primary_contact": ["Primary Contact", "Name", "Contact Name", "Full Name"],
    "email_address": ["Email Address", "Email", "E-mail"],
    "phone_number": ["Phone Number", "Phone", "Mobile"],
    "company_linkedin": ["Company LinkedIn", "Company LinkedIn URL"],
    "contact_linkedin": ["Contact LinkedIn", "LinkedIn", "Contact LinkedIn URL"],
    "contact_facebook": ["Contact Facebook", "Facebook"],
    "notes": ["Notes", "Note", "Comments"],
}


def _header_key(header: str) -> str:
    return " ".join(header.lower().split())


class CSVImporter:
    """CSV and XLSX file importer.

    Handles:
        - Multiple encodings (UTF-8 with or without BOM, CP1252, Latin-1)
        - Excel files (openpyxl)
        - Header synonym matching
    """

    # Delimiters the sniffer is allowed to detect; anything else
    # (e.g. ``@`` from email addresses) is treated as a mis-detection.
    _VALID_DELIMITERS = {",", "\t", ";", "|"}

    def parse_file(self, path: Path) -> ParseResult:
        """Parse a CSV or XLSX file for preview.

        Args:
            path: Path to file

        Returns:
            ParseResult with headers, sample data and detected mapping

        Raises:
            ImportError_: If file cannot be parsed
        """
        headers, all_rows, encoding = self._read(Path(path))

        return ParseResult(
            headers=headers,
            sample_rows=all_rows[:5],
            total_rows=len(all_rows),
            mapping=self.detect_mapping(headers),
            encoding=encoding,
        )

    def detect_mapping(self, headers: list[str]) -> dict[str, str]:
        """Match headers to contact fields.

        Args:
            headers: Column headers

        Returns:
            Dict of contact field -> header, for fields that matched
        """
        by_key = {_header_key(h): h for h in headers if h}
        mapping: dict[str, str] = {}
        claimed: set[str] = set()

        for field_name, synonyms in HEADER_SYNONYMS.items():
            for synonym in synonyms:
                header = by_key.get(_header_key(synonym))
                if header is not None and header not in claimed:
                    mapping[field_name] = header
                    claimed.add(header)
                    break

        return mapping

    def read_contacts(
        self,
        path: Path,
        day: WeekDay,
        mapping: Optional[dict[str, str]] = None,
    ) -> list[dict[str, str]]:
        """Read a file into contact-creation rows.

        Rows that are entirely blank are skipped. Rows missing
        required fields are kept; the store rejects and counts them.

        Args:
            path: Path to file
            day: Day bucket stamped on every row
            mapping: Field -> header override (defaults to detect_mapping)

        Returns:
            List of dicts keyed by contact field name, plus "day"
        """
        headers, all_rows, _ = self._read(Path(path))
        if mapping is None:
            mapping = self.detect_mapping(headers)

        header_idx = {h: i for i, h in enumerate(headers)}
        rows: list[dict[str, str]] = []

        for raw in all_rows:
            if all(not (cell and cell.strip()) for cell in raw):
                continue

            row: dict[str, str] = {field_name: "" for field_name in HEADER_SYNONYMS}
            for field_name, header in mapping.items():
                idx = header_idx.get(header)
                if idx is None or idx >= len(raw):
                    continue
                value = (raw[idx] or "").strip()
                if field_name == "email_address":
                    value = value.lower()
                row[field_name] = value

            row["day"] = day.value
            rows.append(row)

        logger.info(
            "Contacts read from file",
            extra={"context": {"file": Path(path).name, "rows": len(rows), "day": day.value}},
        )
        return rows

    def _read(self, path: Path) -> tuple[list[str], list[list[str]], str]:
        """Dispatch on file type.

        Returns:
            Tuple of (headers, all_rows, encoding)
        """
        if not path.exists():
            raise ImportError_(f"File not found: {path}")

        suffix = path.suffix.lower()
        if suffix == ".xlsx":
            headers, rows = self._parse_xlsx(path)
            encoding = "xlsx"
        elif suffix == ".csv":
            headers, rows, encoding = self._parse_csv(path)
        else:
            raise ImportError_(f"Unsupported file type: {suffix}")

        if not headers:
            raise ImportError_("File contains no headers")
        return headers, rows, encoding

    def _parse_csv(self, path: Path) -> tuple[list[str], list[list[str]], str]:
        """Parse CSV file, trying multiple encodings."""
        encodings = ["utf-8-sig", "cp1252", "latin-1"]

        for encoding in encodings:
            try:
                with open(path, "r", encoding=encoding, newline="") as f:
                    sample = f.read(8192)
                    f.seek(0)

                    try:
                        dialect = csv.Sniffer().sniff(sample)
                        if dialect.delimiter in self._VALID_DELIMITERS:
                            reader = csv.reader(f, dialect)
                        else:
                            reader = csv.reader(f)
                    except csv.Error:
                        # Sniffer fails on small/simple files
                        reader = csv.reader(f)
                    rows = list(reader)

                if not rows:
                    return [], [], encoding

                headers = [str(h).strip().strip('"') for h in rows[0]]
                data_rows = [
                    [str(cell).strip() if cell else "" for cell in row] for row in rows[1:]
                ]
                return headers, data_rows, encoding

            except UnicodeDecodeError:
                continue
            except csv.Error as e:
                raise ImportError_(f"Cannot parse CSV: {e}") from e

        raise ImportError_(f"Cannot read file with any supported encoding: {path}")

    def _parse_xlsx(self, path: Path) -> tuple[list[str], list[list[str]]]:
        """Parse the active sheet of an XLSX file."""
        try:
            wb = openpyxl.load_workbook(str(path), read_only=True, data_only=True)
        except Exception as e:
            raise ImportError_(f"Cannot open workbook: {e}") from e

        try:
            ws = wb.active
            rows_iter = ws.iter_rows(values_only=True)

            header_row = next(rows_iter, None)
            if header_row is None:
                return [], []

            headers = [str(cell).strip() if cell is not None else "" for cell in header_row]
            data_rows = [
                [str(cell).strip() if cell is not None else "" for cell in row] for row in rows_iter
            ]
            return headers, data_rows
        finally:
            wb.close()
