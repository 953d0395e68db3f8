"""
Chart data file storage (local directory or S3)
"""
import gzip
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import structlog

from common.error_handlers import ChartDataError
from common.s3_utils import S3Utils

logger = structlog.get_logger(__name__)

SKIP_PREFIXES = ('_', 'aggregated')


def is_chart_data_file(name: str, skip_prefixes=SKIP_PREFIXES) -> bool:
    base = os.path.basename(name)
    if not (base.endswith('.json') or base.endswith('.json.gz')):
        return False
    return not base.startswith(tuple(skip_prefixes))


def decode_chart_file(name: str, content: bytes) -> Dict[str, Any]:
    """Parse a plain or gzip JSON chart data file"""
    try:
        if name.endswith('.gz'):
            content = gzip.decompress(content)
        return json.loads(content.decode('utf-8'))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ChartDataError(f"Failed to parse chart data file {name}: {e}") from e


def output_name(name: str) -> str:
    """Optimized files are always named after the uncompressed variant"""
    base = os.path.basename(name)
    return base[:-3] if base.endswith('.gz') else base


class ChartStore:
    """Chart data files in local directories"""

    def __init__(self, input_dir: str, output_dir: str, configs_dir: str,
                 gzip_level: int = 9, write_plain: bool = True):
        self.input_dir = Path(input_dir)
        self.output_dir = Path(output_dir)
        self.configs_dir = Path(configs_dir)
        self.gzip_level = gzip_level
        self.write_plain = write_plain

    def list_chart_files(self) -> List[str]:
        if not self.input_dir.is_dir():
            raise ChartDataError(f"Chart data directory not found: {self.input_dir}")
        return sorted(p.name for p in self.input_dir.iterdir() if p.is_file() and is_chart_data_file(p.name))

    def read_chart_file(self, name: str) -> Tuple[Dict[str, Any], int]:
        path = self.input_dir / name
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ChartDataError(f"Failed to read {path}: {e}") from e
        return decode_chart_file(name, content), len(content)

    def write_optimized(self, name: str, payload: Dict[str, Any]) -> int:
        """Write plain and gzip variants; returns the gzip size"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_dir / output_name(name)

        if self.write_plain:
            target.write_text(json.dumps(payload, indent=2, default=str), encoding='utf-8')

        compressed = gzip.compress(json.dumps(payload, default=str).encode('utf-8'), compresslevel=self.gzip_level)
        gz_target = target.with_name(target.name + '.gz')
        gz_target.write_bytes(compressed)
        return len(compressed)

    def write_summary(self, file_name: str, summary: Dict[str, Any]) -> str:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target = self.output_dir / file_name
        target.write_text(json.dumps(summary, indent=2, default=str), encoding='utf-8')
        return str(target)

    def load_chart_configs(self, page_id: str) -> Optional[Dict[str, Any]]:
        path = self.configs_dir / f"{page_id}.json"
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load chart configs", page_id=page_id, error=str(e))
            return None


class S3ChartStore:
    """Chart data files under S3 prefixes"""

    def __init__(self, bucket: str, input_prefix: str, output_prefix: str, configs_prefix: str,
                 s3_utils: Optional[S3Utils] = None, gzip_level: int = 9, write_plain: bool = True):
        self.bucket = bucket
        self.input_prefix = input_prefix
        self.output_prefix = output_prefix
        self.configs_prefix = configs_prefix
        self.s3_utils = s3_utils or S3Utils()
        self.gzip_level = gzip_level
        self.write_plain = write_plain

    def list_chart_files(self) -> List[str]:
        names = []
        for key in self.s3_utils.list_keys(self.bucket, self.input_prefix):
            relative = key[len(self.input_prefix):]
            # Only direct children; the aggregated output lives in a sub-prefix
            if '/' in relative.strip('/'):
                continue
            if is_chart_data_file(relative):
                names.append(relative.strip('/'))
        return sorted(names)

    def read_chart_file(self, name: str) -> Tuple[Dict[str, Any], int]:
        content = self.s3_utils.get_object_bytes(self.bucket, f"{self.input_prefix}{name}")
        return decode_chart_file(name, content), len(content)

    def write_optimized(self, name: str, payload: Dict[str, Any]) -> int:
        key = f"{self.output_prefix}{output_name(name)}"

        if self.write_plain:
            self.s3_utils.put_object(self.bucket, key, json.dumps(payload, indent=2, default=str).encode('utf-8'),
                                     ContentType='application/json')

        compressed = gzip.compress(json.dumps(payload, default=str).encode('utf-8'), compresslevel=self.gzip_level)
        self.s3_utils.put_object(self.bucket, f"{key}.gz", compressed,
                                 ContentType='application/json', ContentEncoding='gzip')
        return len(compressed)

    def write_summary(self, file_name: str, summary: Dict[str, Any]) -> str:
        key = f"{self.output_prefix}{file_name}"
        self.s3_utils.put_object(self.bucket, key, json.dumps(summary, indent=2, default=str).encode('utf-8'),
                                 ContentType='application/json')
        return f"s3://{self.bucket}/{key}"

    def load_chart_configs(self, page_id: str) -> Optional[Dict[str, Any]]:
        key = f"{self.configs_prefix}{page_id}.json"
        try:
            if not self.s3_utils.object_exists(self.bucket, key):
                return None
            return decode_chart_file(key, self.s3_utils.get_object_bytes(self.bucket, key))
        except ChartDataError as e:
            logger.warning("Failed to load chart configs", page_id=page_id, error=str(e))
            return None
