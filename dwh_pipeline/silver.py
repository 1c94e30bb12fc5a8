"""
Silver layer: cleans and conforms the six bronze tables.

Each table has a pure rule function (bronze DataFrame -> silver DataFrame)
and the batch runs them in a fixed order, writing each result through a
staging table that is swapped into place in a single transaction.
"""
import logging
import sqlite3
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any, Callable, List, Optional, Tuple

import pandas as pd

from dwh_pipeline.codes import Gender, MaritalStatus, ProductLine, standardize_country
from dwh_pipeline.errors import (
    BatchCancelledError,
    SourceUnavailableError,
    StepFailedError,
    WarehouseError,
)
from dwh_pipeline.schema import (
    SILVER_COLUMNS,
    bronze_table,
    create_silver_table,
    silver_table,
    staging_table,
    table_exists,
)

logger = logging.getLogger("SilverLayer")

ROW_OFFSET = "_row_offset"
DATE_FORMAT = "%Y-%m-%d"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
SALES_TOLERANCE = 0.01


@dataclass
class BatchContext:
    """Connection, logger, cancellation signal and processing time for one silver batch."""

    conn: sqlite3.Connection
    logger: logging.Logger = logger
    cancel_event: threading.Event = field(default_factory=threading.Event)
    processing_time: datetime = field(default_factory=datetime.now)


@dataclass
class StepResult:
    table: str
    rows: int
    duration: float


@dataclass
class BatchResult:
    started_at: datetime
    steps: List[StepResult] = field(default_factory=list)
    duration: float = 0.0

    @property
    def total_rows(self) -> int:
        return sum(step.rows for step in self.steps)


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def _is_null(value: Any) -> bool:
    return value is None or (not isinstance(value, str) and pd.isna(value))


def _trim(value: Any) -> Optional[str]:
    if _is_null(value):
        return None
    return str(value).strip()


def _to_float(value: Any) -> Optional[float]:
    if _is_null(value):
        return None
    return float(value)


def _money(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(value, 2)


def _to_timestamps(series: pd.Series) -> pd.Series:
    """
    Parse date/datetime text into naive timestamps; anything unparseable becomes NaT.

    Values with a UTC offset are converted to UTC, naive values are taken as UTC.
    """
    return pd.to_datetime(series, errors="coerce", format="mixed", utc=True).dt.tz_convert(None)


def _to_iso_dates(timestamps: pd.Series) -> pd.Series:
    return timestamps.dt.strftime(DATE_FORMAT).astype(object).where(timestamps.notna(), None)


def _with_row_offset(bronze_df: pd.DataFrame) -> pd.DataFrame:
    df = bronze_df.copy()
    if ROW_OFFSET not in df.columns:
        df[ROW_OFFSET] = range(len(df))
    return df


def parse_yyyymmdd(value: Any) -> Optional[str]:
    """
    Convert an integer YYYYMMDD date to ISO text.

    Returns None for null, 0, values whose decimal representation is not
    exactly 8 characters, and invalid calendar dates.
    """
    if _is_null(value):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    text = str(number)
    if number == 0 or len(text) != 8:
        return None
    try:
        return datetime.strptime(text, "%Y%m%d").strftime(DATE_FORMAT)
    except ValueError:
        return None


def repair_sales_amount(sales: Any, quantity: Any, price: Any) -> Optional[float]:
    """
    Recompute sales as quantity * |price| when it is missing, not positive,
    or off by more than one cent.
    """
    sales = _to_float(sales)
    quantity = _to_float(quantity)
    price = _to_float(price)
    expected = None if quantity is None or price is None else quantity * abs(price)

    if sales is None or sales <= 0:
        return _money(expected)
    if expected is not None and round(abs(sales - expected), 9) > SALES_TOLERANCE:
        return _money(expected)
    return _money(sales)


def repair_price(price: Any, sales: Any, quantity: Any) -> Optional[float]:
    """
    Derive price from the original sales amount when price is missing or not positive.

    Division by a zero quantity yields None.
    """
    price = _to_float(price)
    if price is not None and price > 0:
        return _money(price)
    sales = _to_float(sales)
    quantity = _to_float(quantity)
    if sales is None or quantity is None or quantity == 0:
        return None
    return _money(sales / quantity)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def transform_customer_info(bronze_df: pd.DataFrame) -> pd.DataFrame:
    """
    Keep the latest row per customer id and standardize its attributes.

    Rows without a customer id are dropped. The latest row is the one with
    the greatest create date (unparseable dates count as null and lose);
    on ties the row loaded last into bronze wins.
    """
    df = _with_row_offset(bronze_df)
    df = df[df["cst_id"].notna()].copy()
    df["_create_ts"] = _to_timestamps(df["cst_create_date"])

    df = df.sort_values(
        ["_create_ts", ROW_OFFSET],
        ascending=[False, False],
        na_position="last",
        kind="mergesort",
    )
    df = df.drop_duplicates(subset=["cst_id"], keep="first").sort_values("cst_id", kind="mergesort")

    return pd.DataFrame({
        "cst_id": df["cst_id"].astype("int64"),
        "cst_key": df["cst_key"],
        "cst_firstname": df["cst_firstname"].map(_trim),
        "cst_lastname": df["cst_lastname"].map(_trim),
        "cst_marital_status": df["cst_marital_status"].map(lambda v: MaritalStatus.from_code(v).value),
        "cst_gndr": df["cst_gndr"].map(lambda v: Gender.from_code(v).value),
        "cst_create_date": _to_iso_dates(df["_create_ts"]),
    }).reset_index(drop=True)


def transform_product_info(bronze_df: pd.DataFrame) -> pd.DataFrame:
    """
    Split the product key into category id and clean key, and derive version end dates.

    A version ends the day before the next version of the same clean key
    starts; the latest version has no end date.
    """
    df = _with_row_offset(bronze_df)
    raw_key = df["prd_key"]
    df["cat_id"] = raw_key.map(lambda k: None if _is_null(k) else str(k)[:5].replace("-", "_"))
    df["prd_key"] = raw_key.map(lambda k: None if _is_null(k) else str(k)[6:])
    df["_start_ts"] = _to_timestamps(df["prd_start_dt"])

    ordered = df.sort_values(["_start_ts", ROW_OFFSET], na_position="first", kind="mergesort")
    next_start = ordered.groupby("prd_key", dropna=False, sort=False)["_start_ts"].shift(-1)
    end_ts = (next_start - pd.Timedelta(days=1)).reindex(df.index)

    return pd.DataFrame({
        "prd_id": df["prd_id"],
        "cat_id": df["cat_id"],
        "prd_key": df["prd_key"],
        "prd_nm": df["prd_nm"],
        "prd_cost": pd.to_numeric(df["prd_cost"], errors="coerce").fillna(0),
        "prd_line": df["prd_line"].map(lambda v: ProductLine.from_code(v).value),
        "prd_start_dt": _to_iso_dates(df["_start_ts"]),
        "prd_end_dt": _to_iso_dates(end_ts),
    }).reset_index(drop=True)


def transform_sales_details(bronze_df: pd.DataFrame) -> pd.DataFrame:
    """
    Validate the three YYYYMMDD dates and repair sales amount and price.

    Price repair reads the original sales amount, not the repaired one.
    """
    df = _with_row_offset(bronze_df)
    original = list(zip(df["sls_sales"], df["sls_quantity"], df["sls_price"]))

    sales = [repair_sales_amount(s, q, p) for s, q, p in original]
    price = [repair_price(p, s, q) for s, q, p in original]

    return pd.DataFrame({
        "sls_ord_num": df["sls_ord_num"],
        "sls_prd_key": df["sls_prd_key"],
        "sls_cust_id": df["sls_cust_id"],
        "sls_order_dt": df["sls_order_dt"].map(parse_yyyymmdd),
        "sls_ship_dt": df["sls_ship_dt"].map(parse_yyyymmdd),
        "sls_due_dt": df["sls_due_dt"].map(parse_yyyymmdd),
        "sls_sales": pd.Series(sales, index=df.index, dtype=object),
        "sls_quantity": df["sls_quantity"],
        "sls_price": pd.Series(price, index=df.index, dtype=object),
    }).reset_index(drop=True)


def transform_categories(bronze_df: pd.DataFrame) -> pd.DataFrame:
    return bronze_df[SILVER_COLUMNS["erp_px_cat_g1v2"]].reset_index(drop=True)


def transform_erp_customers(bronze_df: pd.DataFrame, processing_time: datetime) -> pd.DataFrame:
    """
    Strip the NAS prefix from customer ids, null future birthdates, standardize gender.
    """
    df = _with_row_offset(bronze_df)
    birth_ts = _to_timestamps(df["bdate"])
    birth_ts = birth_ts.where(~(birth_ts > pd.Timestamp(processing_time)))

    return pd.DataFrame({
        "cid": df["cid"].map(
            lambda c: c if _is_null(c) or not str(c).startswith("NAS") else str(c)[3:]
        ),
        "bdate": _to_iso_dates(birth_ts),
        "gen": df["gen"].map(lambda v: Gender.from_text(v).value),
    }).reset_index(drop=True)


def transform_locations(bronze_df: pd.DataFrame) -> pd.DataFrame:
    df = _with_row_offset(bronze_df)
    return pd.DataFrame({
        "cid": df["cid"].map(lambda c: c if _is_null(c) else str(c).replace("-", "")),
        "cntry": df["cntry"].map(standardize_country),
    }).reset_index(drop=True)


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------

def read_bronze(conn: sqlite3.Connection, name: str) -> pd.DataFrame:
    """
    Read a bronze table in load order, with its rowid as the row offset.

    Raises:
        SourceUnavailableError: if the table is missing or cannot be read
    """
    source = bronze_table(name)
    if not table_exists(conn, source):
        raise SourceUnavailableError(f"Bronze table {source} does not exist", step=name)
    try:
        return pd.read_sql(f"SELECT rowid AS {ROW_OFFSET}, * FROM {source} ORDER BY rowid", conn)
    except (sqlite3.Error, pd.errors.DatabaseError) as e:
        raise SourceUnavailableError(f"Bronze table {source} could not be read: {e}", step=name, cause=e) from e


def write_silver(conn: sqlite3.Connection, name: str, silver_df: pd.DataFrame,
                 processing_time: datetime) -> int:
    """
    Replace a silver table's contents with silver_df.

    Rows are written to a staging table first; the target is then emptied
    and refilled from staging inside one transaction, so readers never see
    an empty or partial table and a failed write leaves the target untouched.

    Returns:
        Number of rows written
    """
    columns = SILVER_COLUMNS[name]
    target = silver_table(name)
    staging = staging_table(name)

    cursor = conn.cursor()
    cursor.execute(f"DROP TABLE IF EXISTS {staging}")
    create_silver_table(cursor, name, staging)
    create_silver_table(cursor, name)
    conn.commit()

    try:
        frame = silver_df[columns].copy()
        frame["dwh_create_date"] = processing_time.strftime(TIMESTAMP_FORMAT)
        frame.to_sql(staging, conn, if_exists="append", index=False)

        all_columns = ", ".join(columns + ["dwh_create_date", "dwh_update_date"])
        with conn:
            conn.execute(f"DELETE FROM {target}")
            conn.execute(f"INSERT INTO {target} ({all_columns}) SELECT {all_columns} FROM {staging}")
    finally:
        conn.execute(f"DROP TABLE IF EXISTS {staging}")
        conn.commit()

    return len(frame)


def run_step(context: BatchContext, name: str,
             transform: Callable[[pd.DataFrame], pd.DataFrame]) -> StepResult:
    """Read, transform and write one silver table."""
    log = context.logger
    start = time.perf_counter()
    log.info(f">> Processing: {silver_table(name)}")

    try:
        bronze_df = read_bronze(context.conn, name)
        silver_df = transform(bronze_df)
        log.info(f"   Replacing contents of {silver_table(name)}...")
        rows = write_silver(context.conn, name, silver_df, context.processing_time)
    except WarehouseError:
        raise
    except Exception as e:
        raise StepFailedError.from_exception(name, e) from e

    duration = time.perf_counter() - start
    log.info(f"   Rows inserted: {rows}")
    log.info(f"   Duration: {duration:.3f} seconds")
    return StepResult(table=name, rows=rows, duration=duration)


def silver_steps(context: BatchContext) -> List[Tuple[str, Callable[[pd.DataFrame], pd.DataFrame]]]:
    return [
        ("crm_cust_info", transform_customer_info),
        ("crm_prd_info", transform_product_info),
        ("crm_sales_details", transform_sales_details),
        ("erp_px_cat_g1v2", transform_categories),
        ("erp_cust_az12", partial(transform_erp_customers, processing_time=context.processing_time)),
        ("erp_loc_a101", transform_locations),
    ]


def _log_failure(log: logging.Logger, error: WarehouseError) -> None:
    log.error("=" * 62)
    log.error("ERROR OCCURRED DURING SILVER LAYER ETL PROCESS")
    log.error("=" * 62)
    log.error(f"Error Code:      {error.error_code.value} ({error.error_code.name})")
    log.error(f"Error Severity:  {error.severity.value}")
    log.error(f"Error Message:   {error.message}")
    log.error(f"Error Step:      {error.step or 'N/A'}")
    for key, value in error.details.items():
        log.error(f"Error Detail:    {key} = {value}")
    log.error("=" * 62)
    log.warning(
        "Silver tables loaded before the failure keep their new contents and the rest "
        "keep the previous run's contents; the batch is not atomic across tables."
    )


def load_silver(context: BatchContext) -> BatchResult:
    """
    Run the full silver batch: six table loads in a fixed order.

    Any failure aborts the remaining steps and is re-raised as a
    WarehouseError carrying code, message, severity and failing step.
    Tables completed before the failure are not rolled back.

    Args:
        context: Connection, logger, cancellation signal and processing time

    Returns:
        BatchResult with per-table row counts and durations
    """
    log = context.logger
    result = BatchResult(started_at=context.processing_time)
    batch_start = time.perf_counter()

    log.info("=" * 62)
    log.info("Silver Layer ETL Process Started")
    log.info(f"Start Time: {context.processing_time.strftime(TIMESTAMP_FORMAT)}")
    log.info("=" * 62)

    try:
        for name, transform in silver_steps(context):
            if context.cancel_event.is_set():
                raise BatchCancelledError(step=name)
            result.steps.append(run_step(context, name, transform))
    except WarehouseError as e:
        _log_failure(log, e)
        raise

    result.duration = time.perf_counter() - batch_start
    log.info("=" * 62)
    log.info("Silver Layer ETL Process Completed Successfully")
    log.info(f"Rows Loaded: {result.total_rows}")
    log.info(f"Total Duration: {result.duration:.3f} seconds")
    log.info("=" * 62)
    return result


class SilverTransformer:
    """
    Zero-argument entry point for the silver batch.

    Example:
        >>> transformer = SilverTransformer(conn)
        >>> transformer.run()
    """

    def __init__(self, conn: sqlite3.Connection, log: Optional[logging.Logger] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.conn = conn
        self.logger = log or logger
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        """Stop the batch before its next step."""
        self.cancel_event.set()

    def run(self, processing_time: Optional[datetime] = None) -> BatchResult:
        context = BatchContext(
            conn=self.conn,
            logger=self.logger,
            cancel_event=self.cancel_event,
            processing_time=processing_time or datetime.now(),
        )
        return load_silver(context)
