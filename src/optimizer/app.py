"""
Chart data optimizer entry point
"""
import argparse
import json
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from aggregation.datasets import compression_stats, create_aggregated_datasets
from aggregation.processors.summaries import aggregate_by_batches, extract_date_range
from common.error_handlers import ChartDataError, create_error_response, handle_exception
from common.logging_config import setup_logging
from common.s3_utils import S3Utils
from config.aggregation_config import OptimizerConfig
from config.aws_config import AWSConfig
from optimizer.storage.chart_store import ChartStore, S3ChartStore


class ChartDataOptimizer:
    """Attach pre-aggregated datasets to every chart of the chart data files"""

    def __init__(self, store, logger=None, config: Optional[OptimizerConfig] = None):
        self.logger = logger or setup_logging("chart-optimizer")
        self.store = store
        self.config = config or OptimizerConfig()
        self._chart_configs: Dict[str, Optional[Dict[str, Any]]] = {}

    def find_chart_config(self, page_id: Optional[str], chart_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Chart definition from the page's config file, loaded once per page"""
        if not page_id:
            return None
        if page_id not in self._chart_configs:
            self._chart_configs[page_id] = self.store.load_chart_configs(page_id)

        page_config = self._chart_configs[page_id] or {}
        for chart in page_config.get('charts') or []:
            if chart.get('id') == chart_id:
                return chart
        return None

    def optimize_chart(self, chart: Dict[str, Any], chart_config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        data = chart['data']
        result = create_aggregated_datasets(data, chart_config)
        datasets = result['datasets']
        metadata = result['metadata']

        optimized = dict(chart)
        optimized['aggregatedData'] = datasets
        optimized['aggregationMetadata'] = metadata
        optimized['originalDataLength'] = len(data)
        optimized['compressionStats'] = compression_stats(data, datasets)

        if metadata:
            optimized['dateRange'] = extract_date_range(data, metadata['dataMapping']['time_field'])
        else:
            # No usable time axis, summarize in fixed batches instead
            batch_size = self.config.get_processing_config()['summary_batch_size']
            optimized['batchSummary'] = aggregate_by_batches(data, batch_size)

        default_level = metadata['defaultLevel'] if metadata else 'raw'
        optimized['data'] = datasets.get(default_level, data)
        return optimized

    def optimize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Optimize one chart data file

        Args:
            payload: {"pageId": ..., "charts": [...]} as written by the chart fetcher

        Returns:
            The payload with optimized charts and point totals
        """
        charts = payload.get('charts') if isinstance(payload, dict) else None
        if not isinstance(charts, list):
            raise ChartDataError("No charts array found in chart data file")

        page_id = payload.get('pageId')
        processed_charts = []

        for chart in charts:
            if not isinstance(chart, dict) or not chart.get('success') or not isinstance(chart.get('data'), list):
                processed_charts.append(chart)
                continue

            self.logger.info("Processing chart",
                             page_id=page_id,
                             chart_id=chart.get('chartId'),
                             data_points=len(chart['data']))
            chart_config = self.find_chart_config(page_id, chart.get('chartId'))
            processed_charts.append(self.optimize_chart(chart, chart_config))

        optimized = dict(payload)
        optimized['charts'] = processed_charts
        optimized['aggregationOptimized'] = True
        optimized['optimizedAt'] = datetime.now().isoformat()
        optimized['totalOriginalPoints'] = sum(_data_length(c) for c in charts)
        optimized['totalOptimizedPoints'] = sum(_data_length(c) for c in processed_charts)
        return optimized

    def process_file(self, name: str) -> Dict[str, Any]:
        """Read, optimize and write one chart data file"""
        start_time = datetime.now()
        self.logger.info("Processing chart data file", file=name)

        payload, original_size = self.store.read_chart_file(name)
        optimized = self.optimize_payload(payload)
        optimized_size = self.store.write_optimized(name, optimized)

        size_savings = round((original_size - optimized_size) / original_size * 100, 1) if original_size else 0.0
        result = {
            'file': name[:-3] if name.endswith('.gz') else name,
            'originalSize': original_size,
            'optimizedSize': optimized_size,
            'sizeSavings': size_savings,
            'pointsReduction': optimized['totalOriginalPoints'] - optimized['totalOptimizedPoints'],
            'processingTime': (datetime.now() - start_time).total_seconds()
        }

        self.logger.info("Chart data file optimized",
                         file=name,
                         original_size=original_size,
                         optimized_size=optimized_size,
                         size_savings=size_savings)
        return result

    def optimize_all(self) -> Dict[str, Any]:
        """Optimize every chart data file and write the summary report"""
        files = self.store.list_chart_files()
        self.logger.info("Found chart data files to optimize", file_count=len(files))

        results: List[Dict[str, Any]] = []
        failed: List[Dict[str, Any]] = []

        for name in files:
            try:
                results.append(self.process_file(name))
            except Exception as e:
                error_details = handle_exception(e, self.logger)
                failed.append({'file': name, 'error': error_details['message']})

        total_original = sum(r['originalSize'] for r in results)
        total_optimized = sum(r['optimizedSize'] for r in results)
        total_savings = (total_original - total_optimized) / total_original * 100 if total_original else 0.0

        summary = {
            'optimizedAt': datetime.now().isoformat(),
            'totalFiles': len(results),
            'failedFiles': failed,
            'totalSizeSavings': f"{total_savings:.1f}%",
            'originalSizeMB': f"{total_original / 1024 / 1024:.1f}",
            'optimizedSizeMB': f"{total_optimized / 1024 / 1024:.1f}",
            'totalPointsReduced': sum(r['pointsReduction'] for r in results),
            'results': sorted(results, key=lambda r: r['sizeSavings'], reverse=True)
        }

        location = self.store.write_summary(self.config.summary_file, summary)
        self.logger.info("Optimization complete",
                         files_processed=len(results),
                         files_failed=len(failed),
                         total_size_savings=summary['totalSizeSavings'],
                         summary_report=location)
        return summary


def _data_length(chart: Dict[str, Any]) -> int:
    data = chart.get('data') if isinstance(chart, dict) else None
    return len(data) if isinstance(data, list) else 0


def build_store(args: argparse.Namespace, config: OptimizerConfig):
    processing = config.get_processing_config()

    if args.source == 's3':
        aws_config = AWSConfig()
        s3_config = aws_config.s3_config
        return S3ChartStore(
            bucket=args.bucket or s3_config['chart_data_bucket'],
            input_prefix=args.input or s3_config['chart_data_prefix'],
            output_prefix=args.output or s3_config['aggregated_prefix'],
            configs_prefix=args.configs or s3_config['chart_configs_prefix'],
            s3_utils=S3Utils(aws_config.get_s3_client()),
            gzip_level=processing['gzip_level'],
            write_plain=processing['write_plain_json']
        )

    return ChartStore(
        input_dir=args.input or config.paths['input_dir'],
        output_dir=args.output or config.paths['output_dir'],
        configs_dir=args.configs or config.paths['configs_dir'],
        gzip_level=processing['gzip_level'],
        write_plain=processing['write_plain_json']
    )


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Pre-aggregate chart data files')
    parser.add_argument('--source', choices=['local', 's3'], default='local')
    parser.add_argument('--input', help='Chart data directory or S3 prefix')
    parser.add_argument('--output', help='Output directory or S3 prefix')
    parser.add_argument('--configs', help='Chart config directory or S3 prefix')
    parser.add_argument('--bucket', help='S3 bucket (s3 source only)')
    args = parser.parse_args(argv)

    try:
        config = OptimizerConfig()
        optimizer = ChartDataOptimizer(build_store(args, config), config=config)
        summary = optimizer.optimize_all()
    except ChartDataError as e:
        print(json.dumps({'success': False, 'error': create_error_response(type(e).__name__, str(e))}))
        return 1

    print(json.dumps({k: v for k, v in summary.items() if k != 'results'}, indent=2))
    return 0 if not summary['failedFiles'] else 1


if __name__ == "__main__":
    sys.exit(main())
