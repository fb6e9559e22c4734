from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from clickhouse_core.driver.exceptions import ProgrammingError
from clickhouse_core.driver.formats import DataFormat

STATEMENT_SEPARATOR = ';'


@dataclass(frozen=True)
class ColumnList:
    """Insert into exactly these columns, in this order"""
    names: Tuple[str, ...]

    def clause(self) -> str:
        return f" ({', '.join(self.names)})" if self.names else ''


@dataclass(frozen=True)
class ColumnsExcept:
    """Insert into every column of the table except these"""
    names: Tuple[str, ...]

    def clause(self) -> str:
        return f" (* EXCEPT ({', '.join(self.names)}))" if self.names else ''


InsertColumns = Union[ColumnList, ColumnsExcept]


def _column_names(names: Any) -> Tuple[str, ...]:
    if isinstance(names, str):
        names = (names,) if names else ()
    elif not isinstance(names, Sequence):
        raise ProgrammingError(f'Insert column names must be a sequence, not {type(names).__name__}')
    names = tuple(names)
    for name in names:
        if not isinstance(name, str) or not name:
            raise ProgrammingError(f'Invalid insert column name {name!r}')
    return names


def as_insert_columns(columns: Any) -> Optional[InsertColumns]:
    """
    Normalize the insert column selector argument
    :param columns: None, a sequence of column names, a mapping of the form {'except': [names]}, or an existing
      ColumnList/ColumnsExcept
    :return: The matching InsertColumns variant, or None if all columns are used
    """
    if columns is None or isinstance(columns, (ColumnList, ColumnsExcept)):
        return columns
    if isinstance(columns, str):
        return ColumnList(_column_names(columns)) if columns else None
    if isinstance(columns, Mapping):
        if set(columns.keys()) != {'except'}:
            raise ProgrammingError("Column exclusions must be specified as {'except': [column names]}")
        return ColumnsExcept(_column_names(columns['except']))
    if isinstance(columns, Sequence):
        return ColumnList(_column_names(columns))
    raise ProgrammingError(f'Unrecognized insert columns type {type(columns).__name__}')


def remove_trailing_semi(query: str) -> str:
    """
    Strips the final run of statement separators.  Separators earlier in the statement are left untouched
    """
    end = len(query)
    while end > 0 and query[end - 1] == STATEMENT_SEPARATOR:
        end -= 1
    return query[:end]


def prepare_statement(query: str) -> str:
    return remove_trailing_semi(query.strip())


def format_query(query: str, fmt: DataFormat) -> str:
    return f'{prepare_statement(query)} \nFORMAT {fmt}'


def insert_query(table: str, fmt: DataFormat, columns: Optional[InsertColumns] = None) -> str:
    columns_part = columns.clause() if columns is not None else ''
    return f'INSERT INTO {table.strip()}{columns_part} FORMAT {fmt}'
