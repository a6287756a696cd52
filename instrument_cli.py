#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Command line front end: instrument a file, a URL, or stdin.

    python instrument_cli.py script.py -o script.debug.py --report
    python instrument_cli.py --url https://github.com/o/r/blob/main/x.py
    echo '#p total = 1 + 1' | python instrument_cli.py
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from config import HashpConfig
from marker_preprocessor import MarkerSyntaxError
from rewriter import rewrite_source, validate_output
from source_fetcher import SourceFetchError, SourceFetcher


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog='hashp', description='Rewrite #p markers into value-printing instrumentation')
    ap.add_argument('input', nargs='?', help='Python source file (default: stdin)')
    ap.add_argument('--url', help='Fetch the source from a URL instead of a file')
    ap.add_argument('-o', '--out', help='Write instrumented code here (default: stdout)')
    ap.add_argument('--report', action='store_true', help='Print instrumented points to stderr')
    ap.add_argument('--check', action='store_true', help='Validate the output; exit 2 if a check fails')
    return ap


def _read_source(args, config: HashpConfig) -> str:
    if args.url:
        return SourceFetcher(config).fetch(args.url)
    if args.input:
        return Path(args.input).read_text(encoding='utf-8')
    return sys.stdin.read()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = HashpConfig.from_env()

    try:
        code = _read_source(args, config)
        result = rewrite_source(code, config)
    except MarkerSyntaxError as e:
        print(f"✗ {e}", file=sys.stderr)
        if e.text:
            print(f"    {e.text}", file=sys.stderr)
        return 1
    except (SourceFetchError, OSError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    if args.out:
        Path(args.out).write_text(result.code + '\n', encoding='utf-8')
    else:
        print(result.code)

    if args.report:
        report = result.report
        print(f"✓ {len(report.points)} point(s) instrumented from {report.markers_found} marker(s)",
              file=sys.stderr)
        for point in report.points:
            print(f"  {point.kind:16} line {point.line}: {point.label}", file=sys.stderr)
        for degraded in report.degraded:
            print(f"  rename only      line {degraded.line}: {degraded.name}", file=sys.stderr)

    if args.check:
        validation = validate_output(result.code, config)
        if not result.report.points:
            # Nothing was marked, so no diagnostics are expected
            validation.pop('has_diagnostics')
        for check, passed in validation.items():
            status = "✓" if passed else "✗"
            print(f"  {status} {check}", file=sys.stderr)
        if not all(validation.values()):
            return 2

    return 0


if __name__ == '__main__':
    sys.exit(main())
