"""
AWS configuration management
"""
import os
import boto3


class AWSConfig:
    """AWS configuration manager"""

    def __init__(self):
        self.environment = os.getenv('ENVIRONMENT', 'dev')
        self.region = os.getenv('AWS_REGION', 'us-east-1')

        # S3 configuration
        self.s3_config = {
            'chart_data_bucket': os.getenv('CHART_DATA_BUCKET', f'solana-charts-data-{self.environment}'),
            'chart_data_prefix': os.getenv('CHART_DATA_PREFIX', 'chart-data/'),
            'aggregated_prefix': os.getenv('AGGREGATED_PREFIX', 'chart-data/aggregated/'),
            'chart_configs_prefix': os.getenv('CHART_CONFIGS_PREFIX', 'chart-configs/')
        }

    def get_s3_client(self):
        """Get S3 client"""
        return boto3.client('s3', region_name=self.region)
