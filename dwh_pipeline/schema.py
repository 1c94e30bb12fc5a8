"""
Table definitions for the bronze and silver layers.

SQLite has no schemas, so each layer is a table-name prefix:
bronze_<table>, silver_<table>, gold_<view>.
"""
import sqlite3
from typing import Dict, List, Optional, Tuple

BRONZE_PREFIX = "bronze_"
SILVER_PREFIX = "silver_"
GOLD_PREFIX = "gold_"

# Load order of the six source tables
TABLES = [
    "crm_cust_info",
    "crm_prd_info",
    "crm_sales_details",
    "erp_loc_a101",
    "erp_cust_az12",
    "erp_px_cat_g1v2",
]

# Bronze columns mirror the CSV headers. Kind drives CSV value conversion:
# "int" and "num" columns must parse, "text" columns are kept as read.
BRONZE_COLUMNS: Dict[str, List[Tuple[str, str]]] = {
    "crm_cust_info": [
        ("cst_id", "int"),
        ("cst_key", "text"),
        ("cst_firstname", "text"),
        ("cst_lastname", "text"),
        ("cst_marital_status", "text"),
        ("cst_gndr", "text"),
        ("cst_create_date", "text"),
    ],
    "crm_prd_info": [
        ("prd_id", "int"),
        ("prd_key", "text"),
        ("prd_nm", "text"),
        ("prd_cost", "num"),
        ("prd_line", "text"),
        ("prd_start_dt", "text"),
        ("prd_end_dt", "text"),
    ],
    "crm_sales_details": [
        ("sls_ord_num", "text"),
        ("sls_prd_key", "text"),
        ("sls_cust_id", "int"),
        ("sls_order_dt", "int"),
        ("sls_ship_dt", "int"),
        ("sls_due_dt", "int"),
        ("sls_sales", "num"),
        ("sls_quantity", "int"),
        ("sls_price", "num"),
    ],
    "erp_loc_a101": [
        ("cid", "text"),
        ("cntry", "text"),
    ],
    "erp_cust_az12": [
        ("cid", "text"),
        ("bdate", "text"),
        ("gen", "text"),
    ],
    "erp_px_cat_g1v2": [
        ("id", "text"),
        ("cat", "text"),
        ("subcat", "text"),
        ("maintenance", "text"),
    ],
}

_BRONZE_SQL_TYPES = {"int": "INTEGER", "num": "NUMERIC", "text": "TEXT"}

# Silver DDL templates; {table} is the physical table name so the same
# definition serves the target table and its staging copy.
SILVER_DDL: Dict[str, str] = {
    "crm_cust_info": """
        CREATE TABLE IF NOT EXISTS {table} (
            cst_id              INTEGER NOT NULL,
            cst_key             TEXT    NOT NULL CHECK (length(cst_key) <= 50),
            cst_firstname       TEXT    CHECK (length(cst_firstname) <= 100),
            cst_lastname        TEXT    CHECK (length(cst_lastname) <= 100),
            cst_marital_status  TEXT    CHECK (length(cst_marital_status) <= 20),
            cst_gndr            TEXT    CHECK (length(cst_gndr) <= 20),
            cst_create_date     DATE,
            dwh_create_date     TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            dwh_update_date     TEXT
        )
    """,
    "crm_prd_info": """
        CREATE TABLE IF NOT EXISTS {table} (
            prd_id              INTEGER NOT NULL,
            cat_id              TEXT    CHECK (length(cat_id) <= 10),
            prd_key             TEXT    NOT NULL CHECK (length(prd_key) <= 50),
            prd_nm              TEXT    CHECK (length(prd_nm) <= 100),
            prd_cost            NUMERIC,
            prd_line            TEXT    CHECK (length(prd_line) <= 50),
            prd_start_dt        DATE,
            prd_end_dt          DATE,
            dwh_create_date     TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            dwh_update_date     TEXT
        )
    """,
    "crm_sales_details": """
        CREATE TABLE IF NOT EXISTS {table} (
            sls_ord_num         TEXT    NOT NULL CHECK (length(sls_ord_num) <= 50),
            sls_prd_key         TEXT    NOT NULL CHECK (length(sls_prd_key) <= 50),
            sls_cust_id         INTEGER NOT NULL,
            sls_order_dt        DATE,
            sls_ship_dt         DATE,
            sls_due_dt          DATE,
            sls_sales           NUMERIC,
            sls_quantity        INTEGER,
            sls_price           NUMERIC,
            dwh_create_date     TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            dwh_update_date     TEXT
        )
    """,
    "erp_px_cat_g1v2": """
        CREATE TABLE IF NOT EXISTS {table} (
            id                  TEXT    NOT NULL CHECK (length(id) <= 50),
            cat                 TEXT    CHECK (length(cat) <= 100),
            subcat              TEXT    CHECK (length(subcat) <= 100),
            maintenance         TEXT    CHECK (length(maintenance) <= 50),
            dwh_create_date     TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            dwh_update_date     TEXT
        )
    """,
    "erp_cust_az12": """
        CREATE TABLE IF NOT EXISTS {table} (
            cid                 TEXT    NOT NULL CHECK (length(cid) <= 50),
            bdate               DATE,
            gen                 TEXT    CHECK (length(gen) <= 20),
            dwh_create_date     TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            dwh_update_date     TEXT
        )
    """,
    "erp_loc_a101": """
        CREATE TABLE IF NOT EXISTS {table} (
            cid                 TEXT    NOT NULL CHECK (length(cid) <= 50),
            cntry               TEXT    CHECK (length(cntry) <= 100),
            dwh_create_date     TEXT    NOT NULL DEFAULT CURRENT_TIMESTAMP,
            dwh_update_date     TEXT
        )
    """,
}

# Business columns written by the silver rules, in table order
SILVER_COLUMNS: Dict[str, List[str]] = {
    "crm_cust_info": [
        "cst_id", "cst_key", "cst_firstname", "cst_lastname",
        "cst_marital_status", "cst_gndr", "cst_create_date",
    ],
    "crm_prd_info": [
        "prd_id", "cat_id", "prd_key", "prd_nm", "prd_cost",
        "prd_line", "prd_start_dt", "prd_end_dt",
    ],
    "crm_sales_details": [
        "sls_ord_num", "sls_prd_key", "sls_cust_id", "sls_order_dt",
        "sls_ship_dt", "sls_due_dt", "sls_sales", "sls_quantity", "sls_price",
    ],
    "erp_px_cat_g1v2": ["id", "cat", "subcat", "maintenance"],
    "erp_cust_az12": ["cid", "bdate", "gen"],
    "erp_loc_a101": ["cid", "cntry"],
}


def bronze_table(name: str) -> str:
    return f"{BRONZE_PREFIX}{name}"


def silver_table(name: str) -> str:
    return f"{SILVER_PREFIX}{name}"


def staging_table(name: str) -> str:
    return f"{SILVER_PREFIX}{name}__staging"


def create_bronze_table(cursor: sqlite3.Cursor, name: str) -> None:
    """
    Create a bronze table if it doesn't already exist.
    """
    columns = ",\n            ".join(
        f"{column} {_BRONZE_SQL_TYPES[kind]}" for column, kind in BRONZE_COLUMNS[name]
    )
    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {bronze_table(name)} (
            {columns}
        )
    """)


def create_silver_table(cursor: sqlite3.Cursor, name: str, table: Optional[str] = None) -> None:
    """
    Create a silver table (or a staging copy of it) if it doesn't already exist.
    """
    cursor.execute(SILVER_DDL[name].format(table=table or silver_table(name)))


def create_tables(conn: sqlite3.Connection) -> None:
    """Create every bronze and silver table."""
    cursor = conn.cursor()
    for name in TABLES:
        create_bronze_table(cursor, name)
        create_silver_table(cursor, name)
    conn.commit()


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type IN ('table', 'view') AND name = ?",
        (table,),
    ).fetchone()
    return row is not None
