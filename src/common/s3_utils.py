"""
S3 utility functions
"""
import boto3
from typing import List, Optional
from botocore.exceptions import ClientError

from common.error_handlers import ChartDataError


class S3Utils:
    """S3 utility functions"""

    def __init__(self, s3_client=None, region: Optional[str] = None):
        self.s3_client = s3_client or boto3.client('s3', region_name=region)

    def get_object_bytes(self, bucket: str, key: str) -> bytes:
        """Read a whole object into memory"""
        try:
            response = self.s3_client.get_object(Bucket=bucket, Key=key)
            return response['Body'].read()
        except ClientError as e:
            raise ChartDataError(f"Failed to read s3://{bucket}/{key}: {e}") from e

    def object_exists(self, bucket: str, key: str) -> bool:
        """Check whether a key exists"""
        try:
            self.s3_client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('404', 'NoSuchKey', 'NotFound'):
                return False
            raise ChartDataError(f"Failed to check s3://{bucket}/{key}: {e}") from e

    def list_keys(self, bucket: str, prefix: str) -> List[str]:
        """List every key under a prefix"""
        try:
            paginator = self.s3_client.get_paginator("list_objects_v2")
            keys = []
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    if not obj["Key"].endswith('/'):
                        keys.append(obj["Key"])
            return keys
        except ClientError as e:
            raise ChartDataError(f"Failed to list s3://{bucket}/{prefix}: {e}") from e

    def put_object(self, bucket: str, key: str, content, **extra):
        """Put object to S3"""
        try:
            self.s3_client.put_object(Bucket=bucket, Key=key, Body=content, **extra)
        except ClientError as e:
            raise ChartDataError(f"Failed to put object: {e}") from e
