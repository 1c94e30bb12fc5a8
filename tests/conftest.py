# tests/conftest.py
import csv
import sqlite3
from datetime import datetime

import pandas as pd
import pytest

from dwh_pipeline.schema import BRONZE_COLUMNS, bronze_table, create_tables

# A small, internally consistent bronze data set covering every table
SAMPLE_BRONZE = {
    "crm_cust_info": [
        {"cst_id": 11000, "cst_key": "AW00011000", "cst_firstname": " Jon", "cst_lastname": "Yang ",
         "cst_marital_status": "M", "cst_gndr": "M", "cst_create_date": "2025-10-06"},
        {"cst_id": 11001, "cst_key": "AW00011001", "cst_firstname": "Eugene", "cst_lastname": "Huang",
         "cst_marital_status": "S", "cst_gndr": None, "cst_create_date": "2025-10-06"},
        {"cst_id": 11001, "cst_key": "AW00011001", "cst_firstname": "Eugene", "cst_lastname": "Huang",
         "cst_marital_status": None, "cst_gndr": None, "cst_create_date": "2024-01-01"},
        {"cst_id": None, "cst_key": "SF566", "cst_firstname": None, "cst_lastname": None,
         "cst_marital_status": None, "cst_gndr": None, "cst_create_date": None},
    ],
    "crm_prd_info": [
        {"prd_id": 210, "prd_key": "CO-RF-FR-R92B-58", "prd_nm": "HL Road Frame - Black- 58",
         "prd_cost": None, "prd_line": "R", "prd_start_dt": "2003-07-01", "prd_end_dt": None},
        {"prd_id": 212, "prd_key": "AC-HE-HL-U509-R", "prd_nm": "Sport-100 Helmet- Red",
         "prd_cost": 12, "prd_line": "S", "prd_start_dt": "2011-07-01", "prd_end_dt": "2007-12-28"},
        {"prd_id": 213, "prd_key": "AC-HE-HL-U509-R", "prd_nm": "Sport-100 Helmet- Red",
         "prd_cost": 14, "prd_line": "S", "prd_start_dt": "2012-07-01", "prd_end_dt": "2008-12-27"},
    ],
    "crm_sales_details": [
        {"sls_ord_num": "SO43697", "sls_prd_key": "FR-R92B-58", "sls_cust_id": 11000,
         "sls_order_dt": 20101229, "sls_ship_dt": 20110105, "sls_due_dt": 20110110,
         "sls_sales": 3578, "sls_quantity": 1, "sls_price": 3578},
        {"sls_ord_num": "SO43698", "sls_prd_key": "HL-U509-R", "sls_cust_id": 11001,
         "sls_order_dt": 0, "sls_ship_dt": 20110105, "sls_due_dt": 20110110,
         "sls_sales": None, "sls_quantity": 2, "sls_price": 14},
    ],
    "erp_cust_az12": [
        {"cid": "NASAW00011000", "bdate": "1971-10-06", "gen": "Male"},
        {"cid": "AW00011001", "bdate": "2999-01-01", "gen": " f "},
    ],
    "erp_loc_a101": [
        {"cid": "AW-00011000", "cntry": "Australia"},
        {"cid": "AW-00011001", "cntry": "usa"},
    ],
    "erp_px_cat_g1v2": [
        {"id": "AC_HE", "cat": "Accessories", "subcat": "Helmets", "maintenance": "Yes"},
        {"id": "CO_RF", "cat": "Components", "subcat": "Road Frames", "maintenance": "No"},
    ],
}


def bronze_frame(name, rows):
    """Build a bronze-shaped DataFrame for rule tests."""
    columns = [column for column, _ in BRONZE_COLUMNS[name]]
    return pd.DataFrame(rows, columns=columns)


@pytest.fixture
def conn():
    """In-memory warehouse with every bronze and silver table created."""
    connection = sqlite3.connect(":memory:")
    create_tables(connection)
    yield connection
    connection.close()


@pytest.fixture
def processing_time():
    return datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def insert_bronze(conn):
    """Helper fixture to insert rows (dicts) into a bronze table."""
    def _insert(name, rows):
        columns = [column for column, _ in BRONZE_COLUMNS[name]]
        placeholders = ", ".join("?" for _ in columns)
        conn.executemany(
            f"INSERT INTO {bronze_table(name)} ({', '.join(columns)}) VALUES ({placeholders})",
            [tuple(row.get(column) for column in columns) for row in rows],
        )
        conn.commit()
    return _insert


@pytest.fixture
def seeded_conn(conn, insert_bronze):
    """Warehouse with SAMPLE_BRONZE loaded into bronze."""
    for name, rows in SAMPLE_BRONZE.items():
        insert_bronze(name, rows)
    return conn


@pytest.fixture
def create_csv_file(tmp_path):
    """Helper fixture to write a source CSV file into a temporary directory."""
    source_dir = tmp_path / "source"
    source_dir.mkdir(exist_ok=True)

    def _create_csv(name, rows, headers=None):
        if headers is None:
            headers = [column for column, _ in BRONZE_COLUMNS[name]]
        filepath = source_dir / f"{name}.csv"
        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(headers)
            for row in rows:
                writer.writerow(["" if row.get(h) is None else row.get(h) for h in headers])
        return filepath

    _create_csv.directory = source_dir
    return _create_csv
