"""Artifact writers for finished pipeline runs.

Layout of ``output_dir``::

    config.yaml                  configuration used for the run
    sweep_records.csv            one row per sweep element
    reevaluation_records.csv     one row per (selected record, fold)
    consolidation_records.csv    one row per fold of the final split
    final_features.json          final feature set with occurrence counts
    failures.json                skipped elements with the reason
    summary.json                 headline numbers and the run signature
"""

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

from .config import PipelineConfig, config_to_dict, save_config
from .records import records_to_frame

logger = logging.getLogger(__name__)


def compute_run_signature(config: PipelineConfig) -> str:
    """Compute stable run signature for reproducibility tracking.

    Returns:
        12-character hex hash of the configuration.
    """
    config_str = json.dumps(config_to_dict(config), sort_keys=True)
    return hashlib.md5(config_str.encode()).hexdigest()[:12]


def write_artifacts(pipeline, output_dir: Union[str, Path]) -> Dict[str, Path]:
    """Write all artifacts of a finished pipeline.

    Args:
        pipeline: GainPenalizationPipeline after ``run``.
        output_dir: Target directory (created if missing).

    Returns:
        Dict mapping artifact name to written path.
    """
    if pipeline.consolidation_ is None:
        raise ValueError("Pipeline has not been run")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths: Dict[str, Path] = {}

    paths['config'] = output_dir / "config.yaml"
    save_config(pipeline.config, paths['config'])

    tables = {
        'sweep_records': pipeline.sweep_result_.records,
        'reevaluation_records': pipeline.reevaluation_result_.records,
        'consolidation_records': pipeline.consolidation_.records,
    }
    for name, records in tables.items():
        paths[name] = output_dir / f"{name}.csv"
        records_to_frame(records).to_csv(paths[name], index=False)

    paths['final_features'] = output_dir / "final_features.json"
    with open(paths['final_features'], 'w') as f:
        json.dump(pipeline.consolidation_.to_dict(), f, indent=2)

    paths['failures'] = output_dir / "failures.json"
    with open(paths['failures'], 'w') as f:
        json.dump(
            {
                'failures': [
                    {'element_id': e.element_id, 'stage': e.stage, 'error': e.error}
                    for e in pipeline.failures
                ],
                'degenerate': list(pipeline.sweep_result_.degenerate),
            },
            f, indent=2,
        )

    summary: Dict[str, Any] = pipeline.summary()
    summary['run_signature'] = compute_run_signature(pipeline.config)
    summary['timestamp'] = datetime.now().isoformat(timespec='seconds')
    paths['summary'] = output_dir / "summary.json"
    with open(paths['summary'], 'w') as f:
        json.dump(summary, f, indent=2)

    logger.info(f"Wrote {len(paths)} artifacts to {output_dir}")
    return paths
