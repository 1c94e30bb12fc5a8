"""
Generate the six warehouse source CSV files with realistic dirty data.

The files land in <output_dir>/<table>.csv, ready for the bronze loader.
"""
import argparse
import os
from datetime import date, timedelta
from typing import Dict, List

import numpy as np
import pandas as pd

DEFAULT_OUTPUT_DIR = "data/source"
DEFAULT_NUM_CUSTOMERS = 500
DEFAULT_NUM_ORDERS = 2000

CATEGORIES = {
    "AC_BR": ("Accessories", "Bike Racks", "Yes"),
    "AC_HE": ("Accessories", "Helmets", "Yes"),
    "BI_MB": ("Bikes", "Mountain Bikes", "Yes"),
    "BI_RB": ("Bikes", "Road Bikes", "Yes"),
    "BI_TB": ("Bikes", "Touring Bikes", "Yes"),
    "CL_JE": ("Clothing", "Jerseys", "No"),
    "CO_RF": ("Components", "Road Frames", "No"),
}
PRODUCT_LINE_CODES = ["M", "R", "S", "T", " r ", None]
MARITAL_CODES = ["S", "M", "s", " M ", None]
CRM_GENDER_CODES = ["M", "F", "f", " m", None, ""]
ERP_GENDERS = ["Male", "Female", "M", "F", " female ", "", None]
COUNTRIES = ["DE", "US", "USA", "usa", "Germany", "Australia", "United Kingdom ", " ", None]


def random_date(rng: np.random.Generator, start: date, end: date) -> date:
    return start + timedelta(days=int(rng.integers(0, (end - start).days + 1)))


def yyyymmdd(day: date) -> int:
    return int(day.strftime("%Y%m%d"))


def generate_customers(rng: np.random.Generator, num_customers: int) -> List[Dict]:
    """CRM customers, with stale duplicates, padded names and a few null ids."""
    records = []
    for i in range(num_customers):
        cst_id = 11000 + i
        created = random_date(rng, date(2020, 1, 1), date(2025, 12, 31))
        record = {
            "cst_id": cst_id,
            "cst_key": f"AW{cst_id:08d}",
            "cst_firstname": rng.choice(["Jon", "Eugene", " Ruben", "Christy ", "Elizabeth"]),
            "cst_lastname": rng.choice(["Yang", " Huang", "Torres", "Zhu ", "Johnson"]),
            "cst_marital_status": rng.choice(np.array(MARITAL_CODES, dtype=object)),
            "cst_gndr": rng.choice(np.array(CRM_GENDER_CODES, dtype=object)),
            "cst_create_date": created.isoformat(),
        }
        records.append(record)
        if rng.random() < 0.05:
            stale = dict(record)
            stale["cst_create_date"] = (created - timedelta(days=int(rng.integers(1, 365)))).isoformat()
            stale["cst_marital_status"] = None
            records.append(stale)
    for _ in range(max(1, num_customers // 100)):
        records.append({
            "cst_id": None,
            "cst_key": "SF566",
            "cst_firstname": None,
            "cst_lastname": None,
            "cst_marital_status": None,
            "cst_gndr": None,
            "cst_create_date": None,
        })
    return records


def generate_products(rng: np.random.Generator) -> List[Dict]:
    """CRM products; some product numbers have several versions over time."""
    records = []
    prd_id = 210
    for cat_id in CATEGORIES:
        for n in range(3):
            product_number = f"{cat_id.replace('_', '')}-{n:02d}{int(rng.integers(40, 62))}"
            start = random_date(rng, date(2011, 1, 1), date(2013, 1, 1))
            for _ in range(int(rng.integers(1, 4))):
                records.append({
                    "prd_id": prd_id,
                    "prd_key": f"{cat_id.replace('_', '-')}-{product_number}",
                    "prd_nm": f"{CATEGORIES[cat_id][1]} {product_number}",
                    "prd_cost": None if rng.random() < 0.1 else int(rng.integers(10, 1500)),
                    "prd_line": rng.choice(np.array(PRODUCT_LINE_CODES, dtype=object)),
                    "prd_start_dt": start.isoformat(),
                    "prd_end_dt": None,
                })
                prd_id += 1
                start = start + timedelta(days=int(rng.integers(180, 400)))
    return records


def generate_sales(rng: np.random.Generator, customers: List[Dict],
                   products: List[Dict], num_orders: int) -> List[Dict]:
    """CRM sales lines with zero/short dates, inconsistent amounts and missing prices."""
    customer_ids = [c["cst_id"] for c in customers if c["cst_id"] is not None]
    product_keys = sorted({p["prd_key"][6:] for p in products})
    records = []
    for n in range(num_orders):
        order_day = random_date(rng, date(2011, 1, 1), date(2014, 1, 1))
        quantity = int(rng.integers(1, 4))
        price = int(rng.integers(2, 2500))
        sales = quantity * price
        roll = rng.random()
        if roll < 0.03:
            sales = None
        elif roll < 0.06:
            sales = -sales
        elif roll < 0.09:
            sales = sales + int(rng.integers(1, 50))
        if rng.random() < 0.04:
            price = None
        elif rng.random() < 0.02:
            price = -price

        order_dt = yyyymmdd(order_day)
        if rng.random() < 0.02:
            order_dt = 0
        elif rng.random() < 0.02:
            order_dt = int(rng.integers(1000, 99999))

        records.append({
            "sls_ord_num": f"SO{43697 + n}",
            "sls_prd_key": rng.choice(product_keys),
            "sls_cust_id": int(rng.choice(customer_ids)),
            "sls_order_dt": order_dt,
            "sls_ship_dt": yyyymmdd(order_day + timedelta(days=7)),
            "sls_due_dt": yyyymmdd(order_day + timedelta(days=12)),
            "sls_sales": sales,
            "sls_quantity": quantity,
            "sls_price": price,
        })
    return records


def generate_erp_customers(rng: np.random.Generator, customers: List[Dict]) -> List[Dict]:
    """ERP demographics; some ids carry the NAS prefix, some birthdates are in the future."""
    records = []
    seen = set()
    for customer in customers:
        key = customer["cst_key"]
        if customer["cst_id"] is None or key in seen:
            continue
        seen.add(key)
        if rng.random() < 0.02:
            birth = random_date(rng, date.today() + timedelta(days=1), date.today() + timedelta(days=3650))
        else:
            birth = random_date(rng, date(1930, 1, 1), date(2005, 12, 31))
        records.append({
            "cid": f"NAS{key}" if rng.random() < 0.5 else key,
            "bdate": birth.isoformat(),
            "gen": rng.choice(np.array(ERP_GENDERS, dtype=object)),
        })
    return records


def generate_locations(rng: np.random.Generator, customers: List[Dict]) -> List[Dict]:
    """ERP locations; ids are hyphenated and country codes are inconsistent."""
    records = []
    seen = set()
    for customer in customers:
        key = customer["cst_key"]
        if customer["cst_id"] is None or key in seen:
            continue
        seen.add(key)
        records.append({
            "cid": f"{key[:2]}-{key[2:]}",
            "cntry": rng.choice(np.array(COUNTRIES, dtype=object)),
        })
    return records


def generate_categories() -> List[Dict]:
    return [
        {"id": cat_id, "cat": cat, "subcat": subcat, "maintenance": maintenance}
        for cat_id, (cat, subcat, maintenance) in CATEGORIES.items()
    ]


def generate_source_files(
    output_dir: str = DEFAULT_OUTPUT_DIR,
    num_customers: int = DEFAULT_NUM_CUSTOMERS,
    num_orders: int = DEFAULT_NUM_ORDERS,
    seed: int = 42
) -> Dict[str, str]:
    """
    Generate all six source CSV files.

    Returns:
        Mapping of table name to the CSV path written
    """
    rng = np.random.default_rng(seed)
    os.makedirs(output_dir, exist_ok=True)

    customers = generate_customers(rng, num_customers)
    products = generate_products(rng)
    tables = {
        "crm_cust_info": customers,
        "crm_prd_info": products,
        "crm_sales_details": generate_sales(rng, customers, products, num_orders),
        "erp_cust_az12": generate_erp_customers(rng, customers),
        "erp_loc_a101": generate_locations(rng, customers),
        "erp_px_cat_g1v2": generate_categories(),
    }

    paths = {}
    for name, records in tables.items():
        output_file = os.path.join(output_dir, f"{name}.csv")
        # object dtype keeps integer columns with gaps from being written as floats
        pd.DataFrame(records, dtype=object).to_csv(output_file, index=False)
        paths[name] = output_file
    return paths


def main():
    parser = argparse.ArgumentParser(description='Generate warehouse source CSV files')
    parser.add_argument('--customers', type=int, default=DEFAULT_NUM_CUSTOMERS,
                        help=f'Number of customers (default: {DEFAULT_NUM_CUSTOMERS})')
    parser.add_argument('--orders', type=int, default=DEFAULT_NUM_ORDERS,
                        help=f'Number of sales lines (default: {DEFAULT_NUM_ORDERS})')
    parser.add_argument('--output-dir', type=str, default=DEFAULT_OUTPUT_DIR,
                        help=f'Output directory (default: {DEFAULT_OUTPUT_DIR})')
    parser.add_argument('--seed', type=int, default=42, help='Random seed (default: 42)')
    args = parser.parse_args()

    paths = generate_source_files(args.output_dir, args.customers, args.orders, args.seed)
    for name, path in paths.items():
        print(f"Generated {name}: {path}")


if __name__ == "__main__":
    main()
