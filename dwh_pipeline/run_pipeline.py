#!/usr/bin/env python3
"""
Medallion Data Warehouse Pipeline

Runs the warehouse end to end on a single SQLite database:
bronze (CSV bulk load) -> silver (cleaning batch) -> gold (views),
then optionally exports the gold views to Parquet and uploads them to S3.
"""
import argparse
import logging
import os
import sqlite3
import sys
import threading
from typing import Any, Dict, List, Optional

from dwh_pipeline.bronze import load_bronze
from dwh_pipeline.config import PipelineConfig, load_config
from dwh_pipeline.errors import WarehouseError
from dwh_pipeline.export import export_gold_layer, upload_exports
from dwh_pipeline.gold import GOLD_VIEWS, create_gold_views
from dwh_pipeline.schema import TABLES, bronze_table, create_tables, silver_table, table_exists
from dwh_pipeline.silver import SilverTransformer
from utils.logger import setup_pipeline_loggers

logger = logging.getLogger("ETL_Pipeline")


def connect(db_path: str) -> sqlite3.Connection:
    """
    Open the warehouse database, creating its directory if needed.
    """
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return sqlite3.connect(db_path)


def get_layer_stats(conn: sqlite3.Connection) -> Dict[str, int]:
    """
    Get record counts for every bronze and silver table and gold view.

    Missing tables are reported as -1.
    """
    objects: List[str] = [bronze_table(name) for name in TABLES]
    objects += [silver_table(name) for name in TABLES]
    objects += list(GOLD_VIEWS)

    stats = {}
    for name in objects:
        if table_exists(conn, name):
            stats[name] = conn.execute(f"SELECT COUNT(*) FROM {name}").fetchone()[0]
        else:
            stats[name] = -1
    return stats


def run_pipeline(
    config: PipelineConfig,
    skip_bronze: bool = False,
    export: bool = False,
    upload: bool = False,
    cancel_event: Optional[threading.Event] = None
) -> Dict[str, Any]:
    """
    Run the full ETL pipeline.

    Args:
        config: Pipeline configuration
        skip_bronze: Reuse the bronze tables already in the database
        export: Export the gold views to Parquet
        upload: Upload the exported files to S3 (implies export)
        cancel_event: Optional signal to stop the silver batch between steps

    Returns:
        Dictionary with bronze results, the silver BatchResult, exported files and layer stats

    Raises:
        WarehouseError: if the silver batch fails
    """
    conn = connect(config.db_path)
    try:
        create_tables(conn)

        bronze_results = {}
        if skip_bronze:
            logger.info("Skipping bronze layer load.")
        else:
            bronze_results = load_bronze(conn, config.csv_dir)

        silver_result = SilverTransformer(conn, cancel_event=cancel_event).run()

        create_gold_views(conn)

        exported = []
        if export or upload:
            exported = export_gold_layer(conn, config.export_dir)
        if upload:
            upload_exports(exported, config)

        stats = get_layer_stats(conn)
        logger.info(f"Pipeline completed successfully. Layer statistics: {stats}")

        return {
            'bronze': bronze_results,
            'silver': silver_result,
            'exported_files': exported,
            'stats': stats,
        }
    finally:
        conn.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point for the pipeline."""
    config = load_config()

    parser = argparse.ArgumentParser(description='Run the medallion data warehouse pipeline')
    parser.add_argument('--db', type=str, default=config.db_path, help='Path to SQLite database')
    parser.add_argument('--csv-dir', type=str, default=config.csv_dir, help='Directory with source CSV files')
    parser.add_argument('--export-dir', type=str, default=config.export_dir, help='Directory for exported files')
    parser.add_argument('--log-dir', type=str, default=config.log_dir, help='Directory for log files')
    parser.add_argument('--skip-bronze', action='store_true', help='Reuse existing bronze tables')
    parser.add_argument('--export', action='store_true', help='Export gold views to Parquet')
    parser.add_argument('--upload', action='store_true', help='Upload exported files to S3')

    args = parser.parse_args(argv)

    config.db_path = args.db
    config.csv_dir = args.csv_dir
    config.export_dir = args.export_dir
    config.log_dir = args.log_dir

    setup_pipeline_loggers(log_dir=config.log_dir)
    logger.info("Starting ETL pipeline...")

    try:
        result = run_pipeline(
            config,
            skip_bronze=args.skip_bronze,
            export=args.export,
            upload=args.upload,
        )
    except WarehouseError as e:
        logger.error(f"Pipeline failed: {e}")
        print("Pipeline execution failed:")
        for key, value in e.to_dict().items():
            print(f"  {key}: {value}")
        return 1

    print("Pipeline execution completed:")
    print(f"Silver rows loaded: {result['silver'].total_rows} in {result['silver'].duration:.3f} seconds")
    for path in result['exported_files']:
        print(f"Exported: {path}")

    print("\nLayer statistics:")
    for name, count in result['stats'].items():
        print(f"{name}: {count} records")
    return 0


if __name__ == "__main__":
    sys.exit(main())
