"""Console display for the gain-penalization pipeline.

Formatted tables for the best sweep records, the feature tally and the
final consolidation, plus ``summarize_sweep`` for grid-level aggregates.
"""

from typing import Dict, List, Optional, Sequence
import pandas as pd

from .consolidation import ConsolidationResult
from .records import EvaluationRecord, SelectedFeatureSet, records_to_frame
from .selection import rank_records


# =============================================================================
# Display Constants
# =============================================================================

# Box drawing characters for tables
BOX_CHARS = {
    'top_left': '┌',
    'top_right': '┐',
    'bottom_left': '└',
    'bottom_right': '┘',
    'horizontal': '─',
    'vertical': '│',
    'cross': '┼',
    'top_tee': '┬',
    'bottom_tee': '┴',
    'left_tee': '├',
    'right_tee': '┤',
}


def summarize_sweep(records: Sequence[EvaluationRecord]) -> pd.DataFrame:
    """Aggregate sweep records per (source, fraction, lambda0, gamma).

    Returns:
        DataFrame with mean/std test accuracy, mean train accuracy, mean
        feature count and the number of folds, best combination first.
    """
    columns = [
        'source', 'fraction', 'lambda0', 'gamma', 'test_accuracy_mean',
        'test_accuracy_std', 'train_accuracy_mean', 'n_features_mean', 'n_folds',
    ]
    df = records_to_frame(records)
    if df.empty:
        return pd.DataFrame(columns=columns)

    grouped = df.groupby(['source', 'fraction', 'lambda0', 'gamma'], dropna=False)
    summary = grouped.agg(
        test_accuracy_mean=('test_accuracy', 'mean'),
        test_accuracy_std=('test_accuracy', 'std'),
        train_accuracy_mean=('train_accuracy', 'mean'),
        n_features_mean=('n_features', 'mean'),
        n_folds=('fold_id', 'nunique'),
    ).reset_index()

    summary = summary.sort_values(
        ['test_accuracy_mean', 'train_accuracy_mean', 'n_features_mean'],
        ascending=[False, False, True],
        kind='mergesort',
    ).reset_index(drop=True)
    return summary[columns]


# =============================================================================
# Results Display Class
# =============================================================================

class ResultsDisplay:
    """Formatted console output for pipeline stages and results."""

    def __init__(self, width: int = 80, max_feature_chars: int = 40):
        """Initialize the display.

        Args:
            width: Display width in characters.
            max_feature_chars: Feature lists longer than this are truncated.
        """
        self.width = width
        self.max_feature_chars = max_feature_chars

    def _truncate(self, text: str) -> str:
        if len(text) <= self.max_feature_chars:
            return text
        return text[:self.max_feature_chars - 3] + '...'

    def _draw_header(self, title: str) -> str:
        """Draw a header box."""
        b = BOX_CHARS
        inner_width = self.width - 2

        lines = [
            f"{b['top_left']}{b['horizontal'] * inner_width}{b['top_right']}",
            f"{b['vertical']} {title.center(inner_width - 2)} {b['vertical']}",
            f"{b['bottom_left']}{b['horizontal'] * inner_width}{b['bottom_right']}",
        ]
        return '\n'.join(lines)

    def _draw_table(
        self,
        headers: List[str],
        rows: List[List[str]],
    ) -> str:
        """Draw a formatted table with auto-sized columns."""
        col_widths = []
        for i, h in enumerate(headers):
            max_width = len(h)
            for row in rows:
                if i < len(row):
                    max_width = max(max_width, len(str(row[i])))
            col_widths.append(max_width + 2)

        b = BOX_CHARS

        def border(left: str, middle: str, right: str) -> str:
            return left + middle.join(b['horizontal'] * w for w in col_widths) + right

        header_row = b['vertical'] + b['vertical'].join(
            f" {h.center(w - 2)} " for h, w in zip(headers, col_widths)
        ) + b['vertical']

        data_rows = [
            b['vertical'] + b['vertical'].join(
                f" {str(val).ljust(w - 2)} " for val, w in zip(row, col_widths)
            ) + b['vertical']
            for row in rows
        ]

        lines = [border(b['top_left'], b['top_tee'], b['top_right']), header_row]
        lines.append(border(b['left_tee'], b['cross'], b['right_tee']))
        lines.extend(data_rows)
        lines.append(border(b['bottom_left'], b['bottom_tee'], b['bottom_right']))
        return '\n'.join(lines)

    def format_top_records(
        self,
        records: Sequence[EvaluationRecord],
        n: int = 10,
        title: str = "Top records",
    ) -> str:
        """Table of the ``n`` best records by the ranking key."""
        headers = ['Rank', 'Record', 'Test Acc', 'Train Acc', 'N', 'Features']
        rows = []
        for i, record in enumerate(rank_records(records)[:n], 1):
            rows.append([
                str(i),
                record.record_id,
                f"{record.test_accuracy:.4f}",
                f"{record.train_accuracy:.4f}",
                str(record.n_features),
                self._truncate(", ".join(record.features)),
            ])
        return self._draw_header(title) + '\n' + self._draw_table(headers, rows)

    def format_feature_tally(self, feature_set: SelectedFeatureSet) -> str:
        """Table of the final features and their occurrence counts."""
        headers = ['#', 'Feature', 'Count', 'Share']
        rows = []
        for i, (feature, count) in enumerate(zip(feature_set.features, feature_set.counts), 1):
            share = count / feature_set.n_records if feature_set.n_records else 0.0
            rows.append([str(i), feature, str(count), f"{share:.0%}"])
        title = f"Final features (tallied over {feature_set.n_records} records)"
        return self._draw_header(title) + '\n' + self._draw_table(headers, rows)

    def format_consolidation(self, result: ConsolidationResult) -> str:
        """Table of the final split's accuracy summary."""
        headers = ['Metric', 'Mean', 'Median', 'Std', 'Min', 'Max']
        rows = []
        for name, summary in [('Test accuracy', result.test_summary),
                              ('Train accuracy', result.train_summary)]:
            rows.append([name] + [f"{summary[k]:.4f}" for k in ['mean', 'median', 'std', 'min', 'max']])
        title = f"Final model over {len(result.records)} folds"
        return self._draw_header(title) + '\n' + self._draw_table(headers, rows)

    def format_sweep_summary(self, summary: pd.DataFrame, n: int = 10) -> str:
        """Table of the best grid points from ``summarize_sweep``."""
        headers = ['Source', 'Fraction', 'Lambda0', 'Gamma', 'Test Acc', 'N Feat', 'Folds']
        rows = []
        for _, row in summary.head(n).iterrows():
            rows.append([
                str(row['source']),
                f"{row['fraction']:.2f}",
                f"{row['lambda0']:.2f}",
                f"{row['gamma']:.2f}",
                f"{row['test_accuracy_mean']:.4f}",
                f"{row['n_features_mean']:.1f}",
                str(row['n_folds']),
            ])
        return self._draw_header("Sweep grid (mean over folds)") + '\n' + self._draw_table(headers, rows)

    def print_pipeline_header(self, config_summary: str = "") -> None:
        """Print the pipeline header."""
        print()
        print("=" * self.width)
        print("GAIN-PENALIZED RANDOM FOREST FEATURE SELECTION".center(self.width))
        print("=" * self.width)
        if config_summary:
            print(config_summary)
        print()

    def print_stage_header(self, stage_name: str, description: str = "") -> None:
        """Print a stage header."""
        print()
        print("-" * self.width)
        print(f"  {stage_name}")
        if description:
            print(f"  {description}")
        print("-" * self.width)

    def print_final_summary(
        self,
        result: ConsolidationResult,
        failures: Optional[Dict[str, int]] = None,
    ) -> None:
        """Print the feature tally and the final accuracy table."""
        print()
        print(self.format_feature_tally(result.feature_set))
        print(self.format_consolidation(result))
        if failures:
            skipped = ", ".join(f"{stage}: {n}" for stage, n in failures.items())
            print(f"  Skipped elements: {skipped}")
        print()
