import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_DB_PATH = "database/warehouse.db"
DEFAULT_CSV_DIR = "data/source"
DEFAULT_EXPORT_DIR = "data/exports"
DEFAULT_LOG_DIR = "logs"
DEFAULT_AWS_REGION = "us-east-1"


@dataclass
class PipelineConfig:
    """Runtime settings for the warehouse pipeline."""

    db_path: str = DEFAULT_DB_PATH
    csv_dir: str = DEFAULT_CSV_DIR
    export_dir: str = DEFAULT_EXPORT_DIR
    log_dir: str = DEFAULT_LOG_DIR
    s3_bucket: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = DEFAULT_AWS_REGION


def load_config(env_file: Optional[str] = None) -> PipelineConfig:
    """
    Build the pipeline configuration from environment variables.

    Variables from a .env file are loaded first but never override
    variables already present in the environment.

    Args:
        env_file: Optional path to a .env file (default: search from the working directory)

    Returns:
        PipelineConfig instance
    """
    load_dotenv(dotenv_path=env_file)

    return PipelineConfig(
        db_path=os.environ.get("DWH_DB_PATH", DEFAULT_DB_PATH),
        csv_dir=os.environ.get("DWH_CSV_DIR", DEFAULT_CSV_DIR),
        export_dir=os.environ.get("DWH_EXPORT_DIR", DEFAULT_EXPORT_DIR),
        log_dir=os.environ.get("DWH_LOG_DIR", DEFAULT_LOG_DIR),
        s3_bucket=os.environ.get("DWH_S3_BUCKET") or None,
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
        aws_region=os.environ.get("AWS_REGION", DEFAULT_AWS_REGION),
    )
