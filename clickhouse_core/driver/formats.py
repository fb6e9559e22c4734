from enum import Enum
from typing import Union

from clickhouse_core.driver.exceptions import ProgrammingError


class DataFormat(str, Enum):
    """
    ClickHouse input/output formats supported by the client.  The format determines both the serialization used
    on the wire and the decoding strategy applied to the response
    """
    JSON = 'JSON'
    JSONStrings = 'JSONStrings'
    JSONCompact = 'JSONCompact'
    JSONCompactStrings = 'JSONCompactStrings'
    JSONColumnsWithMetadata = 'JSONColumnsWithMetadata'
    JSONObjectEachRow = 'JSONObjectEachRow'
    JSONEachRow = 'JSONEachRow'
    JSONStringsEachRow = 'JSONStringsEachRow'
    JSONCompactEachRow = 'JSONCompactEachRow'
    JSONCompactStringsEachRow = 'JSONCompactStringsEachRow'
    JSONCompactEachRowWithNames = 'JSONCompactEachRowWithNames'
    JSONCompactEachRowWithNamesAndTypes = 'JSONCompactEachRowWithNamesAndTypes'
    JSONCompactStringsEachRowWithNames = 'JSONCompactStringsEachRowWithNames'
    JSONCompactStringsEachRowWithNamesAndTypes = 'JSONCompactStringsEachRowWithNamesAndTypes'
    JSONEachRowWithProgress = 'JSONEachRowWithProgress'
    CSV = 'CSV'
    CSVWithNames = 'CSVWithNames'
    CSVWithNamesAndTypes = 'CSVWithNamesAndTypes'
    TabSeparated = 'TabSeparated'
    TabSeparatedRaw = 'TabSeparatedRaw'
    TabSeparatedWithNames = 'TabSeparatedWithNames'
    TabSeparatedWithNamesAndTypes = 'TabSeparatedWithNamesAndTypes'
    CustomSeparated = 'CustomSeparated'
    CustomSeparatedWithNames = 'CustomSeparatedWithNames'
    CustomSeparatedWithNamesAndTypes = 'CustomSeparatedWithNamesAndTypes'
    Parquet = 'Parquet'

    def __str__(self):
        return self.value


# Records are JSON objects, one per line
row_object_formats = frozenset((DataFormat.JSONEachRow,
                                DataFormat.JSONStringsEachRow,
                                DataFormat.JSONEachRowWithProgress))

# Records are JSON arrays, one per line
compact_formats = frozenset((DataFormat.JSONCompactEachRow,
                             DataFormat.JSONCompactStringsEachRow,
                             DataFormat.JSONCompactEachRowWithNames,
                             DataFormat.JSONCompactEachRowWithNamesAndTypes,
                             DataFormat.JSONCompactStringsEachRowWithNames,
                             DataFormat.JSONCompactStringsEachRowWithNamesAndTypes))

streamable_json_formats = row_object_formats | compact_formats

single_document_formats = frozenset((DataFormat.JSON,
                                     DataFormat.JSONStrings,
                                     DataFormat.JSONCompact,
                                     DataFormat.JSONCompactStrings,
                                     DataFormat.JSONColumnsWithMetadata))

record_formats = frozenset((DataFormat.JSONObjectEachRow,))

raw_formats = frozenset((DataFormat.CSV,
                         DataFormat.CSVWithNames,
                         DataFormat.CSVWithNamesAndTypes,
                         DataFormat.TabSeparated,
                         DataFormat.TabSeparatedRaw,
                         DataFormat.TabSeparatedWithNames,
                         DataFormat.TabSeparatedWithNamesAndTypes,
                         DataFormat.CustomSeparated,
                         DataFormat.CustomSeparatedWithNames,
                         DataFormat.CustomSeparatedWithNamesAndTypes))

binary_formats = frozenset((DataFormat.Parquet,))

# Formats the server only produces
output_only_formats = single_document_formats | {DataFormat.JSONEachRowWithProgress}


def validate_format(fmt: Union[str, DataFormat]) -> DataFormat:
    """
    Convert a format name to the matching DataFormat
    :param fmt: DataFormat or format name as accepted by ClickHouse (case-sensitive)
    :return: DataFormat enum member
    """
    try:
        return DataFormat(fmt)
    except ValueError:
        raise ProgrammingError(f'Unsupported data format {fmt}') from None


def is_streamable_json(fmt: DataFormat) -> bool:
    return fmt in streamable_json_formats


def is_single_document_json(fmt: DataFormat) -> bool:
    return fmt in single_document_formats


def is_record_json(fmt: DataFormat) -> bool:
    return fmt in record_formats


def is_raw_format(fmt: DataFormat) -> bool:
    return fmt in raw_formats


def is_binary_format(fmt: DataFormat) -> bool:
    return fmt in binary_formats
