# tests/test_gold.py
import pytest

from dwh_pipeline.gold import GOLD_VIEWS, create_gold_views, read_gold
from dwh_pipeline.silver import BatchContext, load_silver


@pytest.fixture
def gold_conn(seeded_conn, processing_time):
    load_silver(BatchContext(conn=seeded_conn, processing_time=processing_time))
    create_gold_views(seeded_conn)
    return seeded_conn


def test_dim_customers(gold_conn):
    customers = read_gold(gold_conn, "gold_dim_customers").set_index("customer_id")

    assert customers.loc[11000, "customer_key"] == 1
    assert customers.loc[11001, "customer_key"] == 2
    assert customers.loc[11000, "customer_number"] == "AW00011000"
    assert customers.loc[11000, "country"] == "Australia"
    assert customers.loc[11000, "birthdate"] == "1971-10-06"
    assert customers.loc[11001, "country"] == "United States"
    assert customers.loc[11001, "marital_status"] == "Single"


def test_dim_customers_gender_prefers_crm(gold_conn):
    customers = read_gold(gold_conn, "gold_dim_customers").set_index("customer_id")
    # 11000 has a CRM gender; 11001 falls back to the ERP value
    assert customers.loc[11000, "gender"] == "Male"
    assert customers.loc[11001, "gender"] == "Female"


def test_dim_products_only_current_versions(gold_conn):
    products = read_gold(gold_conn, "gold_dim_products").sort_values("product_key").reset_index(drop=True)

    assert products["product_id"].tolist() == [210, 213]
    assert products["product_key"].tolist() == [1, 2]
    assert products["product_number"].tolist() == ["FR-R92B-58", "HL-U509-R"]
    assert products["category"].tolist() == ["Components", "Accessories"]
    assert products.loc[0, "cost"] == 0


def test_fact_sales_resolves_surrogate_keys(gold_conn):
    sales = read_gold(gold_conn, "gold_fact_sales").set_index("order_number")

    assert sales.loc["SO43697", "product_key"] == 1
    assert sales.loc["SO43697", "customer_key"] == 1
    assert sales.loc["SO43698", "product_key"] == 2
    assert sales.loc["SO43698", "customer_key"] == 2
    assert sales.loc["SO43698", "sales_amount"] == 28


def test_fact_sales_keeps_unmatched_lines(gold_conn, insert_bronze, processing_time):
    insert_bronze("crm_sales_details", [{
        "sls_ord_num": "SO99999", "sls_prd_key": "ZZ-UNKNOWN", "sls_cust_id": 424242,
        "sls_order_dt": 20110101, "sls_ship_dt": 20110108, "sls_due_dt": 20110113,
        "sls_sales": 10, "sls_quantity": 1, "sls_price": 10,
    }])
    load_silver(BatchContext(conn=gold_conn, processing_time=processing_time))

    sales = read_gold(gold_conn, "gold_fact_sales").set_index("order_number")
    assert len(sales) == 3
    assert sales["product_key"].isna()["SO99999"]
    assert sales["customer_key"].isna()["SO99999"]


def test_views_follow_silver_reloads(gold_conn, processing_time):
    gold_conn.execute("DELETE FROM bronze_crm_sales_details")
    gold_conn.commit()
    load_silver(BatchContext(conn=gold_conn, processing_time=processing_time))

    assert read_gold(gold_conn, "gold_fact_sales").empty


def test_create_gold_views_is_repeatable(gold_conn):
    create_gold_views(gold_conn)
    names = {
        row[0] for row in gold_conn.execute("SELECT name FROM sqlite_master WHERE type = 'view'")
    }
    assert names == set(GOLD_VIEWS)


def test_read_gold_rejects_unknown_view(gold_conn):
    with pytest.raises(ValueError, match="Unknown gold view"):
        read_gold(gold_conn, "silver_crm_cust_info")
