import os
from dataclasses import dataclass
from typing import Optional

LOCAL_ENDPOINT = "http://localhost:8000"
LOCAL_REGION = "localhost"
LOCAL_PREFIX = "dev"


@dataclass
class DbConfig:
    """Where the database lives, how its tables are named, and how hard to retry batches.

    Parameters:
        - offline: talk to a local DynamoDB (e.g. DynamoDB Local or serverless-offline).
        - endpoint_url: explicit endpoint, `None` to let boto3 pick the regional one.
        - region_name: AWS region, `None` to let boto3 resolve it.
        - table_prefix: every table name becomes '{table_prefix}-{name}'. Empty means no prefix.
        - max_batch_attempts: maximum number of service calls for one batch operation.
        - backoff_base, backoff_cap: bounds (in seconds) for the delay between batch rounds.
    """

    offline: bool = False
    endpoint_url: Optional[str] = None
    region_name: Optional[str] = None
    table_prefix: str = ""
    max_batch_attempts: int = 10
    backoff_base: float = 0.05
    backoff_cap: float = 5.0

    def __post_init__(self):
        if self.max_batch_attempts < 1:
            raise ValueError(f"max_batch_attempts must be at least 1, got: {self.max_batch_attempts}")
        if self.backoff_base < 0 or self.backoff_cap < 0:
            raise ValueError(f"Backoff delays cannot be negative: {self.backoff_base}, {self.backoff_cap}")

    @staticmethod
    def from_env(environ=None):
        env = os.environ if environ is None else environ
        offline = is_truthy(env.get("IS_OFFLINE"))

        if offline:
            endpoint_url = LOCAL_ENDPOINT
            region_name = LOCAL_REGION
            table_prefix = LOCAL_PREFIX
        else:
            endpoint_url = None
            region_name = env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or None
            table_prefix = env.get("DB_PREFIX", "")

        return DbConfig(
            offline=offline,
            endpoint_url=endpoint_url,
            region_name=region_name,
            table_prefix=table_prefix,
            max_batch_attempts=int(env.get("DB_MAX_BATCH_ATTEMPTS", 10)),
            backoff_base=float(env.get("DB_BACKOFF_BASE", 0.05)),
            backoff_cap=float(env.get("DB_BACKOFF_CAP", 5.0)),
        )

    def table_name(self, name):
        return make_table_name(self.table_prefix, name)


def make_table_name(prefix, name):
    return f"{prefix}-{name}" if prefix else name


def is_truthy(value):
    return bool(value) and value.strip().lower() not in ("0", "false", "no", "off", "")
