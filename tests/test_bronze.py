# tests/test_bronze.py
import os

import pytest

from conftest import SAMPLE_BRONZE
from dwh_pipeline.bronze import convert_value, load_bronze, load_table, validate_csv_structure
from dwh_pipeline.schema import TABLES, bronze_table


def bronze_rows(conn, name):
    return conn.execute(f"SELECT * FROM {bronze_table(name)} ORDER BY rowid").fetchall()


def write_all_sources(create_csv_file):
    for name, rows in SAMPLE_BRONZE.items():
        create_csv_file(name, rows)
    return create_csv_file.directory


class TestConvertValue:

    def test_empty_fields_are_null(self):
        assert convert_value("", "text") is None
        assert convert_value("   ", "int") is None
        assert convert_value(None, "num") is None

    def test_text_is_kept_as_read(self):
        assert convert_value(" Jon", "text") == " Jon"

    def test_integers(self):
        assert convert_value("11000", "int") == 11000
        assert convert_value("20101229.0", "int") == 20101229

    def test_numbers(self):
        assert convert_value("3578", "num") == 3578
        assert convert_value("12.5", "num") == 12.5

    @pytest.mark.parametrize("raw, kind", [("abc", "int"), ("1.5", "int"), ("n/a", "num")])
    def test_malformed_numbers_raise(self, raw, kind):
        with pytest.raises(ValueError):
            convert_value(raw, kind)


def test_validate_csv_structure(create_csv_file):
    path = create_csv_file("erp_loc_a101", [], headers=["cid"])
    assert validate_csv_structure(str(path), ["cid", "cntry"]) is False
    path = create_csv_file("erp_loc_a101", [])
    assert validate_csv_structure(str(path), ["cid", "cntry"]) is True


def test_load_bronze_loads_every_table(conn, create_csv_file):
    source_dir = write_all_sources(create_csv_file)

    results = load_bronze(conn, str(source_dir))

    assert results == {name: True for name in TABLES}
    for name, rows in SAMPLE_BRONZE.items():
        assert len(bronze_rows(conn, name)) == len(rows)

    customers = bronze_rows(conn, "crm_cust_info")
    assert customers[0] == (11000, "AW00011000", " Jon", "Yang ", "M", "M", "2025-10-06")
    assert customers[3][0] is None
    sales = bronze_rows(conn, "crm_sales_details")
    assert sales[1][3] == 0
    assert sales[1][6] is None


def test_reload_truncates_before_insert(conn, create_csv_file):
    source_dir = write_all_sources(create_csv_file)

    load_bronze(conn, str(source_dir))
    load_bronze(conn, str(source_dir))

    assert len(bronze_rows(conn, "crm_cust_info")) == len(SAMPLE_BRONZE["crm_cust_info"])


def test_missing_file_fails_only_that_table(conn, create_csv_file):
    create_csv_file("erp_px_cat_g1v2", SAMPLE_BRONZE["erp_px_cat_g1v2"])

    results = load_bronze(conn, str(create_csv_file.directory))

    assert results["erp_px_cat_g1v2"] is True
    assert [name for name, ok in results.items() if not ok] == [
        name for name in TABLES if name != "erp_px_cat_g1v2"
    ]
    assert len(bronze_rows(conn, "erp_px_cat_g1v2")) == 2


def test_malformed_value_keeps_previous_contents(conn, create_csv_file):
    source_dir = write_all_sources(create_csv_file)
    load_bronze(conn, str(source_dir))
    before = bronze_rows(conn, "crm_sales_details")

    bad = dict(SAMPLE_BRONZE["crm_sales_details"][0], sls_quantity="two")
    create_csv_file("crm_sales_details", [bad])
    results = load_bronze(conn, str(source_dir))

    assert results["crm_sales_details"] is False
    assert results["crm_cust_info"] is True
    assert bronze_rows(conn, "crm_sales_details") == before


def test_missing_header_fails_table(conn, create_csv_file, caplog):
    create_csv_file("erp_loc_a101", [{"cid": "AW-1"}], headers=["cid"])

    with caplog.at_level("ERROR", logger="BronzeLayer"):
        results = load_bronze(conn, str(create_csv_file.directory))

    assert results["erp_loc_a101"] is False
    assert "missing required columns" in caplog.text
    assert bronze_rows(conn, "erp_loc_a101") == []


def test_load_table_reports_row_count(conn, create_csv_file):
    path = create_csv_file("erp_cust_az12", SAMPLE_BRONZE["erp_cust_az12"])
    assert load_table(conn, "erp_cust_az12", str(path)) == 2


def test_load_table_missing_file(conn, tmp_path):
    with pytest.raises(FileNotFoundError):
        load_table(conn, "erp_cust_az12", str(tmp_path / "nope.csv"))


def test_failed_table_warns_about_previous_rows(conn, create_csv_file, caplog):
    source_dir = write_all_sources(create_csv_file)
    load_bronze(conn, str(source_dir))
    os.remove(source_dir / "erp_cust_az12.csv")

    with caplog.at_level("WARNING", logger="BronzeLayer"):
        results = load_bronze(conn, str(source_dir))

    assert results["erp_cust_az12"] is False
    assert "Table bronze_erp_cust_az12 keeps the rows of its previous load." in caplog.text
    assert len(bronze_rows(conn, "erp_cust_az12")) == 2
