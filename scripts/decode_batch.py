#!/usr/bin/env python3
"""Decode a published batch file into points or deltas.

Usage
-----
    python scripts/decode_batch.py batch.json
    python scripts/decode_batch.py --deltas batch.json
    python scripts/decode_batch.py --flat flat-batch.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from skbatcher.decode import expand_flat_to_points, expand_to_deltas, expand_to_points
from skbatcher.exceptions import BatchDecodeError


def main() -> int:
    parser = argparse.ArgumentParser(description="Decode a skbatcher batch file.")
    parser.add_argument("batch", help="Batch JSON file ('-' for stdin)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--deltas", action="store_true", help="Emit last-value deltas instead of points")
    mode.add_argument("--flat", action="store_true", help="Input is a flat or flat_composite batch")
    args = parser.parse_args()

    text = sys.stdin.read() if args.batch == "-" else Path(args.batch).read_text(encoding="utf-8")
    batch = json.loads(text)

    try:
        if args.deltas:
            records = expand_to_deltas(batch)
        elif args.flat:
            records = expand_flat_to_points(batch)
        else:
            records = expand_to_points(batch)
    except BatchDecodeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    for record in records:
        print(json.dumps(record.model_dump(mode="json", by_alias=True)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
