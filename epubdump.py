#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, TextIO

from folio.errors import EpubError
from folio.service import get_asset, get_chapter, list_chapters


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Inspect an EPUB: list its reading order, render a chapter or extract an asset."
    )
    parser.add_argument("input", help="Input EPUB file path")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-c", "--chapter", type=int, help="Print the rewritten HTML of chapter N (0-based)")
    group.add_argument("-a", "--asset", help="Extract the archive entry at PATH")
    parser.add_argument("-o", "--output", help="Write the asset to this file instead of stdout")
    parser.add_argument("--book-id", help="Book id embedded in asset URLs (default: file stem)")
    parser.add_argument("--base-url", default="", help="Prefix for rewritten asset URLs")
    return parser.parse_args(argv)


def main(argv: list[str], stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None) -> int:
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    args = parse_args(argv)
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Input file not found: {input_path}", file=err)
        return 1

    try:
        if args.chapter is not None:
            fragment = get_chapter(input_path, args.book_id or input_path.stem, args.chapter, args.base_url)
            print(f"<!-- chapter {fragment.chapter_index + 1} of {fragment.total_chapters} -->", file=out)
            print(fragment.html, file=out)
        elif args.asset is not None:
            item = get_asset(input_path, args.asset)
            if args.output:
                Path(args.output).write_bytes(item.content)
                print(f"{item.path} ({item.media_type}, {len(item.content)} bytes) saved to: {args.output}", file=out)
            else:
                out.flush()
                getattr(out, "buffer", sys.stdout.buffer).write(item.content)
        else:
            for idx, path in enumerate(list_chapters(input_path)):
                print(f"{idx:4d}  {path}", file=out)
    except EpubError as exc:
        print(f"{type(exc).__name__}: {exc}", file=err)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
