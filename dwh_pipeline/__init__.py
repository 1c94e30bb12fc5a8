"""
SQLite Medallion Data Warehouse Package

Modules:
    config.py       - Environment / .env configuration.
    schema.py       - Bronze and Silver table DDL.
    codes.py        - Closed code sets used by the Silver layer.
    errors.py       - Structured warehouse errors.
    bronze.py       - Truncates and bulk-loads raw CSV files into the bronze layer.
    silver.py       - Cleans and conforms bronze data into the silver layer.
    gold.py         - Gold dimension and fact views over the silver layer.
    export.py       - Parquet exports and S3 publication.
    run_pipeline.py - Orchestrates the full ETL pipeline (CLI entry point).

Version: 1.0.0
"""

__version__ = "1.0.0"
