import datetime
import logging
import os
import sqlite3
from typing import List, Optional

import boto3
import pandas as pd
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from dwh_pipeline.config import PipelineConfig
from dwh_pipeline.gold import GOLD_VIEWS

logger = logging.getLogger("ETL_Pipeline")


def export_table_to_parquet(conn: sqlite3.Connection, table_name: str, output_file: str) -> Optional[str]:
    """
    Export a warehouse table or view to a Parquet file.

    Returns:
        The output path, or None if the table is empty
    """
    df = pd.read_sql(f"SELECT * FROM {table_name}", conn)
    if df.empty:
        logger.warning(f"Table '{table_name}' is empty. No data to export.")
        return None
    os.makedirs(os.path.dirname(output_file) or ".", exist_ok=True)
    df.to_parquet(output_file, index=False)
    logger.info(f"Exported {len(df)} records from table '{table_name}' to {output_file}")
    return output_file


def export_gold_layer(conn: sqlite3.Connection, output_dir: str) -> List[str]:
    """
    Export every gold view to a timestamped Parquet file in output_dir.

    Returns:
        Paths of the files written
    """
    ts = datetime.datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    exported = []
    for view in GOLD_VIEWS:
        output_file = os.path.join(output_dir, f"{ts}_{view}.parquet")
        if export_table_to_parquet(conn, view, output_file):
            exported.append(output_file)
    return exported


def s3_client(config: PipelineConfig):
    return boto3.client('s3',
                        aws_access_key_id=config.aws_access_key_id,
                        aws_secret_access_key=config.aws_secret_access_key,
                        region_name=config.aws_region)


def upload_file_to_s3(local_file: str, bucket: str, s3_key: str, config: PipelineConfig) -> bool:
    """
    Upload a local file to the given bucket and key.

    Returns:
        True if the upload succeeded, False otherwise
    """
    try:
        s3_client(config).upload_file(local_file, bucket, s3_key)
        logger.info(f"Uploaded {local_file} to s3://{bucket}/{s3_key}")
        return True
    except (BotoCoreError, ClientError, S3UploadFailedError) as e:
        logger.error(f"Failed to upload {local_file} to s3://{bucket}/{s3_key}: {e}")
        return False


def upload_exports(files: List[str], config: PipelineConfig) -> bool:
    """Upload exported files to config.s3_bucket under a gold/ prefix."""
    if not config.s3_bucket:
        logger.error("No S3 bucket configured (DWH_S3_BUCKET). Skipping upload.")
        return False
    results = [
        upload_file_to_s3(path, config.s3_bucket, f"gold/{os.path.basename(path)}", config)
        for path in files
    ]
    return all(results)
