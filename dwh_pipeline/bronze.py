import csv
import logging
import os
import sqlite3
import time
from typing import Any, Dict, List, Optional

from dwh_pipeline.schema import BRONZE_COLUMNS, TABLES, bronze_table, create_bronze_table

logger = logging.getLogger("BronzeLayer")


def validate_csv_structure(csv_file: str, required_columns: list) -> bool:
    """
    Validate the structure of the CSV file.

    Args:
        csv_file: Path to the CSV file
        required_columns: List of required column names

    Returns:
        True if the CSV structure is valid, False otherwise
    """
    try:
        with open(csv_file, newline='', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            csv_columns = reader.fieldnames
            if not csv_columns:
                logger.error(f"CSV file {csv_file} is empty or has no headers.")
                return False
            csv_columns = [col.strip() for col in csv_columns]
            missing_columns = [col for col in required_columns if col not in csv_columns]
            if missing_columns:
                logger.error(f"CSV file {csv_file} is missing required columns: {missing_columns}")
                return False
        return True
    except OSError as e:
        logger.error(f"Error validating CSV structure of {csv_file}: {e}")
        return False


def convert_value(raw: Optional[str], kind: str) -> Any:
    """
    Convert a raw CSV field to its bronze value.

    Empty fields become None. "int" and "num" fields raise ValueError when
    malformed, which fails the whole table load.
    """
    if raw is None:
        return None
    value = raw.strip()
    if value == "":
        return None
    if kind == "int":
        try:
            return int(value)
        except ValueError:
            number = float(value)
            if not number.is_integer():
                raise ValueError(f"invalid integer literal: {raw!r}")
            return int(number)
    if kind == "num":
        try:
            return int(value)
        except ValueError:
            return float(value)
    return raw


def read_csv_rows(csv_file: str, name: str) -> List[tuple]:
    """Read every data row of a source CSV as a tuple in bronze column order."""
    columns = BRONZE_COLUMNS[name]
    rows = []
    with open(csv_file, newline='', encoding='utf-8') as f:
        reader = csv.DictReader(f)
        reader.fieldnames = [col.strip() for col in reader.fieldnames]
        for line_number, row in enumerate(reader, start=2):
            try:
                rows.append(tuple(convert_value(row.get(column), kind) for column, kind in columns))
            except ValueError as e:
                raise ValueError(f"{os.path.basename(csv_file)} line {line_number}: {e}") from e
    return rows


def load_table(conn: sqlite3.Connection, name: str, csv_file: str) -> int:
    """
    Truncate a bronze table and bulk-load it from a CSV file.

    The truncate and the insert share one transaction, so a failed load
    leaves the table as it was.

    Returns:
        Number of rows loaded
    """
    required_columns = [column for column, _ in BRONZE_COLUMNS[name]]
    if not os.path.exists(csv_file):
        raise FileNotFoundError(f"CSV file not found: {csv_file}")
    if not validate_csv_structure(csv_file, required_columns):
        raise ValueError(f"CSV structure validation failed for {csv_file}")

    rows = read_csv_rows(csv_file, name)
    table = bronze_table(name)
    placeholders = ", ".join("?" for _ in required_columns)

    cursor = conn.cursor()
    create_bronze_table(cursor, name)
    conn.commit()
    try:
        cursor.execute(f"DELETE FROM {table}")
        cursor.executemany(
            f"INSERT INTO {table} ({', '.join(required_columns)}) VALUES ({placeholders})",
            rows,
        )
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        raise
    return len(rows)


def source_file(csv_dir: str, name: str) -> str:
    return os.path.join(csv_dir, f"{name}.csv")


def load_bronze(conn: sqlite3.Connection, csv_dir: str) -> Dict[str, bool]:
    """
    Load all six bronze tables from <csv_dir>/<table>.csv.

    A failure in one table is logged and the loader moves on to the next one.

    Args:
        conn: SQLite connection to the warehouse
        csv_dir: Directory holding the source CSV files

    Returns:
        Mapping of table name to load success
    """
    logger.info("=" * 60)
    logger.info("Starting Bronze Layer Load Process")
    logger.info("=" * 60)

    batch_start = time.perf_counter()
    results = {}
    for name in TABLES:
        csv_file = source_file(csv_dir, name)
        logger.info(f"Processing Table: {bronze_table(name)}")
        logger.info(f"File: {csv_file}")
        start = time.perf_counter()
        try:
            record_count = load_table(conn, name, csv_file)
            logger.info(f">> Loaded {record_count} rows in {time.perf_counter() - start:.3f} sec")
            results[name] = True
        except (OSError, ValueError, sqlite3.Error) as e:
            logger.error(f"*** ERROR loading table {bronze_table(name)} ***")
            logger.error(f"Message: {e}")
            logger.error(f"Type   : {type(e).__name__}")
            logger.warning(f"Table {bronze_table(name)} keeps the rows of its previous load.")
            results[name] = False

    failed = [name for name, ok in results.items() if not ok]
    logger.info("=" * 60)
    logger.info("Bronze Layer Load Completed.")
    if failed:
        logger.warning(f"Tables that failed to load: {failed}")
    logger.info(f"Total Duration: {time.perf_counter() - batch_start:.3f} seconds")
    logger.info("=" * 60)
    return results
