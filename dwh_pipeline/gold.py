import logging
import sqlite3
from typing import Dict

import pandas as pd

logger = logging.getLogger("GoldLayer")

# Customer dimension: CRM is the master for gender, ERP is the fallback.
DIM_CUSTOMERS_SQL = """
    CREATE VIEW gold_dim_customers AS
    SELECT
        ROW_NUMBER() OVER (ORDER BY ci.cst_id) AS customer_key,
        ci.cst_id                              AS customer_id,
        ci.cst_key                             AS customer_number,
        ci.cst_firstname                       AS first_name,
        ci.cst_lastname                        AS last_name,
        la.cntry                               AS country,
        ci.cst_marital_status                  AS marital_status,
        CASE
            WHEN ci.cst_gndr != 'N/A' THEN ci.cst_gndr
            ELSE COALESCE(ca.gen, 'N/A')
        END                                    AS gender,
        ca.bdate                               AS birthdate,
        ci.cst_create_date                     AS create_date
    FROM silver_crm_cust_info ci
    LEFT JOIN silver_erp_cust_az12 ca
        ON ci.cst_key = ca.cid
    LEFT JOIN silver_erp_loc_a101 la
        ON ci.cst_key = la.cid
"""

# Product dimension: current versions only.
DIM_PRODUCTS_SQL = """
    CREATE VIEW gold_dim_products AS
    SELECT
        ROW_NUMBER() OVER (ORDER BY pn.prd_start_dt, pn.prd_key) AS product_key,
        pn.prd_id                                                AS product_id,
        pn.prd_key                                               AS product_number,
        pn.prd_nm                                                AS product_name,
        pn.cat_id                                                AS category_id,
        pc.cat                                                   AS category,
        pc.subcat                                                AS subcategory,
        pn.prd_cost                                              AS cost,
        pn.prd_line                                              AS product_line,
        pn.prd_start_dt                                          AS start_date,
        pc.maintenance                                           AS maintenance
    FROM silver_crm_prd_info pn
    LEFT JOIN silver_erp_px_cat_g1v2 pc
        ON pn.cat_id = pc.id
    WHERE pn.prd_end_dt IS NULL
"""

# Sales fact: one row per order line item.
FACT_SALES_SQL = """
    CREATE VIEW gold_fact_sales AS
    SELECT
        sd.sls_ord_num  AS order_number,
        pr.product_key  AS product_key,
        cu.customer_key AS customer_key,
        sd.sls_order_dt AS order_date,
        sd.sls_ship_dt  AS shipping_date,
        sd.sls_due_dt   AS due_date,
        sd.sls_sales    AS sales_amount,
        sd.sls_quantity AS sales_quantity,
        sd.sls_price    AS price
    FROM silver_crm_sales_details sd
    LEFT JOIN gold_dim_products pr
        ON sd.sls_prd_key = pr.product_number
    LEFT JOIN gold_dim_customers cu
        ON sd.sls_cust_id = cu.customer_id
"""

GOLD_VIEWS: Dict[str, str] = {
    "gold_dim_customers": DIM_CUSTOMERS_SQL,
    "gold_dim_products": DIM_PRODUCTS_SQL,
    "gold_fact_sales": FACT_SALES_SQL,
}


def create_gold_views(conn: sqlite3.Connection) -> None:
    """
    Drop and recreate the gold views over the silver tables.

    The fact view depends on both dimensions, so it is dropped first and created last.
    """
    cursor = conn.cursor()
    for view in reversed(list(GOLD_VIEWS)):
        cursor.execute(f"DROP VIEW IF EXISTS {view}")
    for view, ddl in GOLD_VIEWS.items():
        cursor.execute(ddl)
        logger.info(f"View [{view}] created successfully.")
    conn.commit()


def read_gold(conn: sqlite3.Connection, view: str) -> pd.DataFrame:
    """
    Read a gold view into a DataFrame.

    Args:
        conn: SQLite connection to the warehouse
        view: One of gold_dim_customers, gold_dim_products, gold_fact_sales

    Returns:
        DataFrame with the view's rows
    """
    if view not in GOLD_VIEWS:
        raise ValueError(f"Unknown gold view: {view}")
    return pd.read_sql(f"SELECT * FROM {view}", conn)
