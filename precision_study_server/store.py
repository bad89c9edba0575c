import csv
import io
import os
from typing import Callable, Generic, TypeVar

from precision_study_server.records import StudyResult, SUSRecord
from precision_study_server.tabular import (
    STUDY_RESULT_HEADER,
    SUS_HEADER,
    decode_study_result,
    decode_sus_record,
    encode_study_result,
    encode_sus_record,
)

T = TypeVar("T")

# the default 128 KiB limit would reject long free-text answers on read
csv.field_size_limit(2**31 - 1)


class CsvRowStore(Generic[T]):
    """Append-only CSV file holding one record type, one row per record.

    The file is opened and closed on every call; nothing is cached between calls.
    """

    def __init__(self, path: str, header: list[str], encode: Callable[[T], list[str]], decode: Callable[[list[str]], T | None]):
        self.path = path
        self.header = header
        self.encode = encode
        self.decode = decode

    def append(self, record: T) -> bool:
        """Append one row, writing the header first if the file is empty.

        Storage errors are printed and swallowed; the return value says whether the row was written.
        """
        try:
            with open(self.path, "a", newline="", encoding="utf-8", errors="replace") as f:
                row_text = io.StringIO()
                writer = csv.writer(row_text)
                if os.fstat(f.fileno()).st_size == 0:
                    writer.writerow(self.header)
                writer.writerow(self.encode(record))
                # header and row go out in one write
                f.write(row_text.getvalue())
                f.flush()
        except OSError as e:
            print(f"Could not write to {self.path}: {e}", flush=True)
            return False
        return True

    def read_all(self) -> list[T]:
        try:
            f = open(self.path, "r", newline="", encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return []
        except OSError as e:
            print(f"Could not open {self.path}: {e}", flush=True)
            return []

        records: list[T] = []
        with f:
            reader = csv.reader(f)
            header_skipped = False
            while True:
                try:
                    row = next(reader)
                except StopIteration:
                    break
                except csv.Error as e:
                    print(f"Skipping malformed row in {self.path} at line {reader.line_num}: {e}", flush=True)
                    # a malformed first line still counts as the header
                    header_skipped = True
                    continue
                if not header_skipped:
                    header_skipped = True
                    continue
                record = self.decode(row)
                if record is not None:
                    records.append(record)
        return records


def study_result_store(path: str) -> CsvRowStore[StudyResult]:
    return CsvRowStore(path, STUDY_RESULT_HEADER, encode_study_result, decode_study_result)


def sus_store(path: str) -> CsvRowStore[SUSRecord]:
    return CsvRowStore(path, SUS_HEADER, encode_sus_record, decode_sus_record)
