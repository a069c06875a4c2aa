"""
CLI runner for the empty-body analysis engine.

This module provides the main CLI entry point for loading adapters,
parsing files, building the project symbol table, running rules, and
outputting results.
"""

import argparse
import concurrent.futures
import json
import logging
import os
import sys
import time
from typing import Any, Dict, List, Optional, Tuple

from .config import EngineConfig, find_config_file, load_config
from .file_filter import filter_files
from .issues import FindingCollector
from .php_adapter import default_php_adapter
from .registry import discover_rules, get_adapter, get_enabled_rules, get_rule_ids, register_adapter
from .schema import ENGINE_VERSION, PROTOCOL_VERSION, findings_to_json, validate_runner_output
from .scopes import Context
from .suppressions import filter_suppressed_findings
from .symbol_index import PhpSymbolTable, build_symbol_index
from .traversal import run_rules
from .types import SEVERITY_ORDER, Finding

logger = logging.getLogger(__name__)

LANGUAGE = "php"
DEFAULT_DISCOVERY_PACKAGES = ["rules"]


def setup_adapters():
    """Register the available language adapters."""
    register_adapter(LANGUAGE, default_php_adapter)


def collect_files(paths: List[str], extensions: Tuple[str, ...] = None,
                  exclude_dirs: Optional[List[str]] = None) -> List[str]:
    """Collect files to analyze from the given paths."""
    adapter = get_adapter(LANGUAGE)
    if not adapter:
        raise ValueError(f"No adapter registered for language: {LANGUAGE}")

    if extensions is None:
        extensions = adapter.file_extensions

    files = []
    for path in paths:
        if os.path.isfile(path):
            if any(path.endswith(ext) for ext in extensions):
                files.append(path)
        elif os.path.isdir(path):
            for root, dirs, filenames in os.walk(path):
                dirs.sort()
                for filename in sorted(filenames):
                    if any(filename.endswith(ext) for ext in extensions):
                        files.append(os.path.join(root, filename))
        else:
            logger.warning("Path does not exist: %s", path)

    # Deduplicate while keeping order, then drop vendored/generated files
    files = list(dict.fromkeys(files))
    return filter_files(files, extra_excludes=exclude_dirs)


def parse_files(files: List[str], adapter) -> Tuple[Dict[str, str], Dict[str, Any], float]:
    """Read and parse every file once.

    Returns:
        (texts, trees, parse_ms); unreadable files are left out of both maps
    """
    texts: Dict[str, str] = {}
    trees: Dict[str, Any] = {}
    start = time.time()

    for file_path in files:
        try:
            with open(file_path, 'r', encoding='utf-8', errors='ignore') as f:
                content = f.read()
        except OSError as e:
            logger.warning("Failed to read %s: %s", file_path, e)
            continue

        tree = adapter.parse(content)
        if tree.root_node.has_error:
            logger.debug("Syntax errors in %s; analyzing what parsed", file_path)
        texts[file_path] = content
        trees[file_path] = tree

    return texts, trees, (time.time() - start) * 1000


def analyze_file(file_path: str, text: str, tree: Any, rules: List, config: EngineConfig,
                 symbols: PhpSymbolTable, adapter=None) -> List[Finding]:
    """Run rules over one parsed file and post-process the findings."""
    adapter = adapter or get_adapter(LANGUAGE)
    outline = symbols.get_outline(file_path) or adapter.outline(tree, file_path)

    context = Context(file_path, symbols)
    sinks = {
        rule.meta.id: FindingCollector(rule.meta.id, file_path, text, config.rule_severities)
        for rule in rules
    }
    failed = run_rules(rules, outline, context, sinks)
    if failed:
        logger.warning("%d rule(s) failed on %s: %s", len(failed), file_path, ", ".join(failed))

    findings: List[Finding] = []
    for rule in rules:
        findings.extend(sinks[rule.meta.id].findings)
    findings.sort(key=lambda f: (f.start_byte, f.rule))

    threshold = SEVERITY_ORDER.get(config.severity_threshold, 0)
    findings = [f for f in findings if SEVERITY_ORDER.get(f.severity, 0) >= threshold]

    findings = filter_suppressed_findings(findings, text)

    if len(findings) > config.max_findings_per_file:
        logger.debug("Truncating %d findings in %s to %d",
                     len(findings), file_path, config.max_findings_per_file)
        findings = findings[:config.max_findings_per_file]

    return findings


def run_analysis_parallel(files: List[str], rules: List, config: EngineConfig, jobs: int,
                          adapter=None) -> Tuple[List[Finding], float, Dict[str, str]]:
    """Run analysis on files with optional parallelization.

    The symbol table is built from every file before any rule runs, and is
    only read afterwards.

    Returns:
        (findings, parse_ms, texts)
    """
    adapter = adapter or get_adapter(LANGUAGE)
    texts, trees, parse_ms = parse_files(files, adapter)
    readable = [f for f in files if f in trees]

    symbols = build_symbol_index(readable, adapter, trees)

    def analyze(file_path):
        return analyze_file(file_path, texts[file_path], trees[file_path], rules, config, symbols, adapter)

    if jobs <= 1:
        file_results = [analyze(file_path) for file_path in readable]
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=jobs) as executor:
            futures = [executor.submit(analyze, file_path) for file_path in readable]

            # Collect results in file order
            file_results = []
            for file_path, future in zip(readable, futures):
                try:
                    file_results.append(future.result())
                except Exception as e:
                    logger.error("Failed to process %s: %s", file_path, e)
                    file_results.append([])

    all_findings: List[Finding] = []
    for findings in file_results:
        all_findings.extend(findings)
        if len(all_findings) >= config.max_total_findings:
            all_findings = all_findings[:config.max_total_findings]
            break

    return all_findings, parse_ms, texts


def build_output(findings: List[Finding], files_count: int, rules_count: int,
                 metrics: Dict[str, float], text_cache: Dict[str, str] = None) -> Dict[str, Any]:
    """Build the protocol output object."""
    return {
        "protocol": PROTOCOL_VERSION,
        "engine_version": ENGINE_VERSION,
        "files_scanned": files_count,
        "rules_run": rules_count,
        "findings": findings_to_json(findings, text_cache),
        "metrics": metrics
    }


def format_output(findings: List[Finding], files_count: int, rules_count: int, metrics: Dict[str, float],
                  format_type: str, text_cache: Dict[str, str] = None) -> str:
    """Format output according to specified format."""
    if format_type == "json":
        output = build_output(findings, files_count, rules_count, metrics, text_cache)
        return json.dumps(output, indent=2)

    elif format_type == "pretty":
        lines = []
        lines.append(f"Scanned {files_count} files with {rules_count} rules")
        lines.append(f"Found {len(findings)} issues")
        lines.append("")

        # Group findings by file
        by_file: Dict[str, List[Finding]] = {}
        for finding in findings:
            by_file.setdefault(finding.file, []).append(finding)

        for file_path, file_findings in sorted(by_file.items()):
            lines.append(file_path)
            for finding in file_findings:
                location = f"line {finding.line}" if finding.line else f"byte {finding.start_byte}"
                label = finding.issue or finding.rule
                lines.append(f"  [{finding.severity}] {location}: {finding.message} ({label})")
            lines.append("")

        lines.append("Metrics:")
        lines.append(f"  Parse time: {metrics['parse_ms']:.1f}ms")
        lines.append(f"  Rules time: {metrics['rules_ms']:.1f}ms")
        lines.append(f"  Total time: {metrics['total_ms']:.1f}ms")

        return "\n".join(lines)

    else:
        raise ValueError(f"Unknown format: {format_type}")


def _load_rules(discovery_packages: List[str], rule_patterns: List[str]) -> List:
    discovered = discover_rules(discovery_packages)
    logger.debug("Discovered %d rules from %s: %s", discovered, discovery_packages, get_rule_ids())
    return get_enabled_rules(rule_patterns, LANGUAGE)


def analyze_paths(paths: List[str], discovery_packages: List[str] = None,
                  rule_patterns: List[str] = None, config_path: str = None,
                  jobs: int = 1) -> Dict[str, Any]:
    """
    Library function to analyze paths.

    Args:
        paths: List of file/directory paths to analyze
        discovery_packages: Packages to discover rules from (default: ["rules"])
        rule_patterns: Rule patterns to run (default: enabled_rules from config)
        config_path: Path to config file (default: auto-detect)
        jobs: Number of worker threads

    Returns:
        Dictionary with analysis results in protocol format
    """
    total_start = time.time()
    setup_adapters()

    if not config_path:
        config_path = find_config_file(paths[0] if paths else ".")
    config = load_config(config_path)

    rules = _load_rules(discovery_packages or DEFAULT_DISCOVERY_PACKAGES,
                        rule_patterns or config.enabled_rules)
    extensions = tuple(config.language_configs.get(LANGUAGE, {}).get("extensions", ())) or None
    files = collect_files(paths, extensions, config.exclude_dirs)

    rules_start = time.time()
    findings, parse_ms, texts = run_analysis_parallel(files, rules, config, jobs)
    metrics = {
        "parse_ms": parse_ms,
        "rules_ms": (time.time() - rules_start) * 1000,
        "total_ms": (time.time() - total_start) * 1000
    }
    return build_output(findings, len(files), len(rules), metrics, texts)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Report PHP methods, functions and closures with empty bodies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m engine.runner --paths src/ --format json
  python -m engine.runner --paths src/ lib/ --rules "deadcode.*" --jobs 4 --validate
  emptybody --paths app/Service.php --format pretty
        """
    )

    parser.add_argument(
        "--paths",
        nargs="+",
        required=True,
        help="Paths to files or directories to analyze"
    )

    parser.add_argument(
        "--discover",
        default=",".join(DEFAULT_DISCOVERY_PACKAGES),
        help="Comma-separated packages to discover rules from (default: rules)"
    )

    parser.add_argument(
        "--rules",
        help="Rule patterns to run: '*' for all, or comma-separated IDs/patterns (default: from config)"
    )

    parser.add_argument(
        "--exts",
        help="Override file extensions (comma-separated, e.g., '.php,.inc')"
    )

    parser.add_argument(
        "--jobs",
        type=int,
        default=0,
        help="Number of parallel jobs (0=auto, 1=sequential, N=parallel)"
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate JSON output against schema"
    )

    parser.add_argument(
        "--format",
        choices=["json", "pretty"],
        default="json",
        help="Output format: json (protocol v1), pretty (human-readable)"
    )

    parser.add_argument(
        "--config",
        help="Path to configuration file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    total_start = time.time()

    # Setup adapters
    setup_adapters()

    # Load configuration
    config_path = args.config
    if not config_path:
        config_path = find_config_file(args.paths[0] if args.paths else ".")
    config = load_config(config_path)
    logger.info("Using config: %s", config_path or "defaults")

    # Parse rule filters
    if args.rules is None:
        rule_patterns = config.enabled_rules
    elif args.rules == "*":
        rule_patterns = ["*"]
    else:
        rule_patterns = [pattern.strip() for pattern in args.rules.split(",")]

    discovery_packages = [pkg.strip() for pkg in args.discover.split(",")]
    rules = _load_rules(discovery_packages, rule_patterns)
    logger.info("Running %d rules: %s", len(rules), [r.meta.id for r in rules])

    # Parse extensions override
    extensions = None
    if args.exts:
        extensions = tuple(ext.strip() for ext in args.exts.split(","))
    else:
        extensions = tuple(config.language_configs.get(LANGUAGE, {}).get("extensions", ())) or None

    files = collect_files(args.paths, extensions, config.exclude_dirs)
    logger.info("Found %d files to analyze", len(files))

    if not files:
        print("No files found to analyze", file=sys.stderr)
        sys.exit(1)

    # Determine number of jobs
    jobs = args.jobs
    if jobs == 0:
        jobs = min(4, len(files), os.cpu_count() or 1)

    rules_start = time.time()
    findings, parse_time_ms, texts = run_analysis_parallel(files, rules, config, jobs)
    rules_time_ms = (time.time() - rules_start) * 1000
    total_time_ms = (time.time() - total_start) * 1000

    metrics = {
        "parse_ms": parse_time_ms,
        "rules_ms": rules_time_ms,
        "total_ms": total_time_ms
    }

    output = format_output(findings, len(files), len(rules), metrics, args.format, texts)

    if args.validate and args.format == "json":
        errors = validate_runner_output(json.loads(output))
        if errors:
            print("JSON validation errors:", file=sys.stderr)
            for error in errors:
                print(f"  {error}", file=sys.stderr)
            sys.exit(2)

    print(output)


if __name__ == "__main__":
    main()
