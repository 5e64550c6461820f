#!/usr/bin/env python3
"""
Cluster the rows of a delimited numeric file with K-means.

Usage:
    python -m tabkmeans.cli data.tsv -k 3
    python -m tabkmeans.cli data.csv --sep , -k 2 --max-iters 50 --tol 1e-6
"""

import argparse
import sys

from numtable import NumTable
from tabkmeans.kmeans import KMeans
from tabkmeans.utils import render_assignments


def _separator(value: str) -> str:
    if value == "\\t":
        return "\t"
    if len(value) != 1:
        raise argparse.ArgumentTypeError(f"separator must be a single character, got {value!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="K-means clustering of a delimited numeric table")
    parser.add_argument('path', help='Input file; first line is a header, first column is the row label')
    parser.add_argument('--sep', type=_separator, default='\t',
                        help='Field separator, a single character (default: tab)')
    parser.add_argument('-k', '--clusters', type=int, required=True,
                        help='Number of clusters')
    parser.add_argument('--max-iters', type=int, default=300,
                        help='Maximum number of iterations (default: 300)')
    parser.add_argument('--tol', type=float, default=1e-4,
                        help='Convergence tolerance on centroid movement (default: 1e-4)')
    parser.add_argument('--strict', action='store_true',
                        help='Fail on non-numeric fields instead of reading them as 0.0')
    parser.add_argument('--show-table', action='store_true',
                        help='Print the loaded table before clustering')
    parser.add_argument('--verbose', action='store_true',
                        help='Print progress information')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        table = NumTable.from_file(args.path, sep=args.sep, strict=args.strict, verbose=args.verbose)
        if args.show_table:
            print(table.render())
        kmeans = KMeans(
            n_clusters=args.clusters,
            max_iters=args.max_iters,
            tol=args.tol,
            verbose=args.verbose
        )
        labels = kmeans.fit_predict(table)
    except (OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(render_assignments(labels, table))
    return 0


if __name__ == "__main__":
    sys.exit(main())
