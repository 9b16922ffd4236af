# Copyright 2026 Cisco Systems, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Command-line interface for the CRX Inspector."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from ..config.config import Config
from ..core.downloader import CrxDownloader
from ..core.exceptions import CrxInspectorError
from ..core.extension_id import parse_extension_id
from ..core.inspector import CrxInspector, InspectedPackage
from ..core.models import DirectoryNode, FileCategory, FilterCriteria
from ..core.search import match_preview, search_statistics, sort_search_results
from ..core.tree_builder import aggregate_sizes, flatten, iter_files, tree_stats

logger = logging.getLogger("crx_inspector.cli")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _configure_logging(args: argparse.Namespace, config: Config) -> None:
    if getattr(args, "debug", False):
        level = logging.DEBUG
    elif getattr(args, "verbose", False):
        level = logging.INFO
    else:
        level = getattr(logging, config.log_level, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr, force=True)


def _load_config(args: argparse.Namespace) -> Config:
    config_path = getattr(args, "config", None)
    if not config_path:
        return Config.from_env()
    path = Path(config_path)
    if path.suffix in (".yaml", ".yml"):
        return Config.from_yaml(path)
    return Config.from_file(path)


def _load_package(args: argparse.Namespace, config: Config) -> InspectedPackage:
    """Open a local .crx file, or download one when the source is an extension ID or store URL."""
    inspector = CrxInspector(config)
    source = args.source
    path = Path(source)
    if path.exists():
        return inspector.open_file(path)

    parsed = parse_extension_id(source)
    if not parsed.ok:
        raise FileNotFoundError(f"No such file, and not an extension ID or store URL: {source}")

    logger.info("Downloading %s from the Chrome update service", parsed.value)
    with CrxDownloader(
        timeout=config.download_timeout_seconds,
        max_bytes=config.max_upload_bytes,
        update_service_url=config.update_service_url,
    ) as downloader:
        data = downloader.download(parsed.value).unwrap()
    return inspector.open(data, filename=f"{parsed.value}.crx")


def _dump(args: argparse.Namespace, data: Any, render_text: Callable[[], str]) -> str:
    fmt = getattr(args, "format", "text")
    if fmt == "json":
        return json.dumps(data, indent=2, default=str)
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    return render_text()


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def _render_tree(root: DirectoryNode) -> str:
    lines = ["."]

    def _walk(node: DirectoryNode, prefix: str) -> None:
        for i, child in enumerate(node.children):
            last = i == len(node.children) - 1
            connector = "└── " if last else "├── "
            if isinstance(child, DirectoryNode):
                lines.append(f"{prefix}{connector}{child.name}/")
                _walk(child, prefix + ("    " if last else "│   "))
            else:
                lines.append(f"{prefix}{connector}{child.name} ({_format_size(child.size)})")

    _walk(root, "")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def info_command(args: argparse.Namespace, config: Config) -> int:
    package = _load_package(args, config)
    data = package.to_dict()
    data["stats"] = tree_stats(package.tree).to_dict()

    def _text() -> str:
        lines = [
            f"Name:             {package.name or '-'}",
            f"Version:          {package.version or '-'}",
            f"Extension ID:     {package.extension_id or '-'}",
            f"CRX format:       {package.header.version}",
            f"Manifest version: {package.manifest_version or '-'}",
            f"Size:             {_format_size(package.size)}",
            f"SHA-256:          {package.sha256}",
            f"Files:            {data['stats']['total_files']}",
        ]
        if package.permissions:
            lines.append(f"Permissions:      {', '.join(package.permissions)}")
        if package.host_permissions:
            lines.append(f"Host permissions: {', '.join(package.host_permissions)}")
        for skipped in package.skipped_entries:
            lines.append(f"Skipped:          {skipped.message}")
        return "\n".join(lines)

    print(_dump(args, data, _text))
    return 0


def tree_command(args: argparse.Namespace, config: Config) -> int:
    package = _load_package(args, config)
    tree = aggregate_sizes(package.tree) if args.aggregate else package.tree

    if args.flat:
        rows = flatten(tree, include_directories=False)
        print(_dump(args, rows, lambda: "\n".join(r["path"] for r in rows)))
    else:
        print(_dump(args, tree.to_dict(), lambda: _render_tree(tree)))
    return 0


def manifest_command(args: argparse.Namespace, config: Config) -> int:
    package = _load_package(args, config)
    print(_dump(args, package.manifest, lambda: json.dumps(package.manifest, indent=2, ensure_ascii=False)))
    return 0


def search_command(args: argparse.Namespace, config: Config) -> int:
    package = _load_package(args, config)
    inspector = CrxInspector(config)
    report = inspector.search(
        package,
        args.query,
        case_sensitive=args.case_sensitive,
        whole_word=args.whole_word,
        use_regex=args.regex,
        context_lines=args.context,
        file_pattern=args.file_pattern,
        max_results=args.max_results,
    )

    def _text() -> str:
        lines = []
        for result in sort_search_results(report.results):
            lines.append(f"{result.file_path} ({result.match_count} matches)")
            for match in result.matches:
                lines.append(f"  {match.line_number}:{match.column_number}: {match_preview(match)}")
        stats = search_statistics(report.results)
        lines.append(
            f"{stats['total_matches']} matches in {stats['files_with_matches']} files "
            f"({report.files_searched} searched){' [truncated]' if report.truncated else ''}"
        )
        return "\n".join(lines)

    print(_dump(args, report.to_dict(), _text))
    return 0 if report.results else 1


def filter_command(args: argparse.Namespace, config: Config) -> int:
    package = _load_package(args, config)
    criteria = FilterCriteria(
        name_pattern=args.name,
        use_regex=args.regex,
        case_sensitive=args.case_sensitive,
        categories=frozenset(args.category or ()),
        min_size=args.min_size,
        max_size=args.max_size,
    )
    inspector = CrxInspector(config)
    nodes = inspector.filter(package, criteria)
    rows = [node.to_dict() for node in nodes]

    def _text() -> str:
        return "\n".join(f"{node.path}\t{node.category.value}\t{_format_size(node.size)}" for node in nodes)

    print(_dump(args, rows, _text))
    return 0 if nodes else 1


def extract_command(args: argparse.Namespace, config: Config) -> int:
    """Write the embedded ZIP, or unpack its files into a directory."""
    package = _load_package(args, config)
    inspector = CrxInspector(config)

    if args.zip:
        Path(args.zip).write_bytes(inspector.export_zip(package))
        print(f"Archive saved to: {args.zip}")
        return 0

    output_dir = Path(args.output).resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    count = 0
    for node in iter_files(package.tree):
        target = (output_dir / node.path).resolve()
        # Archive paths are already validated; this guards against odd separators
        if not target.is_relative_to(output_dir):
            logger.warning("Skipping %s: resolves outside %s", node.path, output_dir)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(inspector.read_file(package, node.path))
        count += 1
    print(f"Extracted {count} files to: {output_dir}")
    return 0


def serve_command(args: argparse.Namespace, config: Config) -> int:
    from ..api.api_server import run_server

    run_server(host=args.host, port=args.port, reload=args.reload, log_level=config.log_level.lower())
    return 0


# ---------------------------------------------------------------------------
# Shared argparse helpers
# ---------------------------------------------------------------------------


def _add_common_flags(parser: argparse.ArgumentParser, with_source: bool = True, formats: bool = True) -> None:
    if with_source:
        parser.add_argument("source", help="Path to a .crx file, an extension ID or a Chrome Web Store URL")
    if formats:
        parser.add_argument(
            "--format",
            choices=["text", "json", "yaml"],
            default="text",
            help="Output format (default: text)",
        )
    parser.add_argument("--config", metavar="PATH", help="Configuration file (.env or .yaml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress messages")
    parser.add_argument("--debug", action="store_true", help="Log debug messages")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="crx-inspector",
        description="CRX Inspector - Browse, search and filter Chrome extension packages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  crx-inspector info extension.crx
  crx-inspector tree extension.crx --aggregate
  crx-inspector search extension.crx "chrome.tabs" --file-pattern "*.js"
  crx-inspector search extension.crx "eval\\(" --regex --format json
  crx-inspector filter extension.crx --category asset --min-size 1024
  crx-inspector extract extension.crx --zip extension.zip
  crx-inspector info https://chromewebstore.google.com/detail/<name>/<id>
  crx-inspector serve --port 8000
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # -- info --------------------------------------------------------------
    info_p = subparsers.add_parser("info", help="Show package metadata")
    _add_common_flags(info_p)

    # -- tree --------------------------------------------------------------
    tree_p = subparsers.add_parser("tree", help="Show the file tree")
    _add_common_flags(tree_p)
    tree_p.add_argument("--flat", action="store_true", help="List file paths instead of a tree")
    tree_p.add_argument("--aggregate", action="store_true", help="Roll file sizes up into directories")

    # -- manifest ----------------------------------------------------------
    manifest_p = subparsers.add_parser("manifest", help="Print manifest.json")
    _add_common_flags(manifest_p)

    # -- search ------------------------------------------------------------
    search_p = subparsers.add_parser("search", help="Search file contents")
    _add_common_flags(search_p)
    search_p.add_argument("query", help="Text (or regular expression with --regex) to look for")
    search_p.add_argument("--regex", "-e", action="store_true", help="Treat the query as a regular expression")
    search_p.add_argument("--case-sensitive", "-s", action="store_true", help="Match case exactly")
    search_p.add_argument("--whole-word", "-w", action="store_true", help="Match whole words only")
    search_p.add_argument("--context", "-C", type=int, default=None, metavar="N", help="Lines of context")
    search_p.add_argument("--file-pattern", "-g", metavar="GLOB", help="Only search files matching GLOB")
    search_p.add_argument("--max-results", "-m", type=int, default=None, metavar="N", help="Stop after N matches")

    # -- filter ------------------------------------------------------------
    filter_p = subparsers.add_parser("filter", help="List files by name, category and size")
    _add_common_flags(filter_p)
    filter_p.add_argument("--name", "-n", metavar="PATTERN", help="Glob (* and ?) or, with --regex, a regex")
    filter_p.add_argument("--regex", "-e", action="store_true", help="Treat --name as a regular expression")
    filter_p.add_argument("--case-sensitive", "-s", action="store_true", help="Match names case-sensitively")
    filter_p.add_argument(
        "--category",
        "-c",
        action="append",
        choices=[c.value for c in FileCategory],
        help="Keep only this category (repeatable)",
    )
    filter_p.add_argument("--min-size", type=int, default=None, metavar="BYTES")
    filter_p.add_argument("--max-size", type=int, default=None, metavar="BYTES")

    # -- extract -----------------------------------------------------------
    extract_p = subparsers.add_parser("extract", help="Unpack files or save the embedded ZIP")
    _add_common_flags(extract_p, formats=False)
    target = extract_p.add_mutually_exclusive_group(required=True)
    target.add_argument("--output", "-o", metavar="DIR", help="Directory to unpack files into")
    target.add_argument("--zip", metavar="FILE", help="Write the embedded ZIP archive to FILE")

    # -- serve -------------------------------------------------------------
    serve_p = subparsers.add_parser("serve", help="Run the HTTP API server")
    _add_common_flags(serve_p, with_source=False, formats=False)
    serve_p.add_argument("--host", default="localhost", help="Host to bind to")
    serve_p.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_p.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    # -- dispatch ----------------------------------------------------------
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    dispatch = {
        "info": info_command,
        "tree": tree_command,
        "manifest": manifest_command,
        "search": search_command,
        "filter": filter_command,
        "extract": extract_command,
        "serve": serve_command,
    }
    handler = dispatch.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        config = _load_config(args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1
    _configure_logging(args, config)

    try:
        return handler(args, config)
    except CrxInspectorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
