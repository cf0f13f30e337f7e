#!/usr/bin/env python3
"""
PolicyGate CLI - Paid Partnership Policy Runner

Command-line interface for checking posts against a policy pack.

Usage:
    pg evaluate --text "Use code SAVE10, shop now"
    pg evaluate --file post.txt --pack packs/x_paid_partnership.yaml --json
    pg batch --posts posts.json --workers 4
    pg validate-pack --pack packs/x_paid_partnership.yaml
    pg pack-info --pack packs/x_paid_partnership.yaml
    pg diff-packs --old v1.yaml --new v2.yaml
    pg init-pack --out packs/my_pack.yaml

Exit Codes:
    0   PASS            - No violation
    2   VIOLATION       - At least one post violates policy (BOUNCE)
    10  INPUT_INVALID   - Invalid input (text, post file)
    11  PACK_ERROR      - Pack validation/loading failed
    20  INTERNAL_ERROR  - Unexpected internal error
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

from . import __version__
from .batch import run_batch
from .confidence import display
from .engine import EnforcementVerdict, PolicyEngine
from .exceptions import (
    ConfigurationError,
    InvalidInputError,
    PolicyGateError,
    wrap_internal_exception,
)
from .pack_loader import (
    PackLoaderError,
    PackValidationError,
    PolicyPack,
    default_pack,
    default_pack_dict,
    diff_packs,
    dump_pack_yaml,
    load_pack_yaml,
)


# ============================================================================
# EXIT CODES
# ============================================================================

class ExitCode:
    """Deterministic exit codes for pipeline integration."""
    PASS = 0              # No violation
    VIOLATION = 2         # BOUNCE
    INPUT_INVALID = 10    # Invalid input files
    PACK_ERROR = 11       # Pack validation/loading failed
    INTERNAL_ERROR = 20   # Unexpected error


def error_to_exit_code(error: PolicyGateError) -> int:
    """Map a public error to its exit code."""
    if isinstance(error, InvalidInputError):
        return ExitCode.INPUT_INVALID
    if isinstance(error, ConfigurationError):
        return ExitCode.PACK_ERROR
    return ExitCode.INTERNAL_ERROR


# ============================================================================
# OUTPUT FORMATTING
# ============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    END = '\033[0m'

    @classmethod
    def disable(cls):
        cls.HEADER = ''
        cls.BLUE = ''
        cls.CYAN = ''
        cls.GREEN = ''
        cls.YELLOW = ''
        cls.RED = ''
        cls.BOLD = ''
        cls.END = ''


def print_header(text: str):
    print(f"\n{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{text}{Colors.END}")
    print(f"{Colors.BOLD}{Colors.CYAN}{'='*60}{Colors.END}")


def print_success(text: str):
    print(f"{Colors.GREEN}[OK] {text}{Colors.END}")


def print_error(text: str):
    print(f"{Colors.RED}[ERROR] {text}{Colors.END}", file=sys.stderr)


def print_warning(text: str):
    print(f"{Colors.YELLOW}[WARN] {text}{Colors.END}")


def print_info(text: str):
    print(f"{Colors.BLUE}[INFO] {text}{Colors.END}")


def print_kv(key: str, value: str, indent: int = 0):
    spaces = "  " * indent
    print(f"{spaces}{Colors.BOLD}{key}:{Colors.END} {value}")


def json_dumps(obj: Any, indent: int = 2) -> str:
    """Serialize object to JSON string."""
    return json.dumps(obj, indent=indent, sort_keys=True, ensure_ascii=False)


def print_verdict(verdict: EnforcementVerdict):
    color = Colors.RED if verdict.violation else Colors.GREEN
    print_kv("Action", f"{color}{verdict.action.value}{Colors.END}")
    print_kv("Violation", str(verdict.violation))
    print_kv("Reason", verdict.reason)

    gates = verdict.gate_results
    print(f"\n{Colors.BOLD}Gates:{Colors.END}")
    print_kv("Commission", str(gates.commission), indent=1)
    print_kv("Promotion", str(gates.promotion), indent=1)
    print_kv("Industries", ", ".join(gates.industries) or "none", indent=1)
    print_kv("Disclaimer", str(gates.disclaimer), indent=1)

    if verdict.primary_industry:
        print_kv("Primary Industry", verdict.primary_industry)
        print_kv("Industry Confidence", f"{verdict.industry_verdict.confidence:.2f}")

    if verdict.suggested_labels:
        print(f"\n{Colors.BOLD}Suggested Labels:{Colors.END}")
        for label in verdict.suggested_labels:
            print(f"  - {label}")

    if verdict.confidence is not None:
        badge = display(verdict.confidence)
        print()
        print_kv("Confidence", f"{badge['icon']} {badge['text']} ({badge['score']}%)")
        for conflict in verdict.confidence.conflicts:
            print_warning(f"{conflict.description}: {conflict.recommendation}")

    print()
    print_kv("Verdict ID", verdict.verdict_id)


# ============================================================================
# HELPERS
# ============================================================================

def _load_pack(pack_arg: Optional[str]) -> PolicyPack:
    if not pack_arg:
        return default_pack()
    return load_pack_yaml(pack_arg)


def _report_pack_error(e: Exception) -> int:
    if isinstance(e, PackValidationError):
        print_error(f"Validation failed with {len(e.errors)} error(s):")
        for error in e.errors:
            print(f"  {Colors.RED}[X]{Colors.END} {error}", file=sys.stderr)
    else:
        print_error(f"Loading failed: {e}")
    return ExitCode.PACK_ERROR


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_evaluate(args):
    """Evaluate a single post."""
    if args.file:
        post_path = Path(args.file)
        if not post_path.exists():
            print_error(f"Post file not found: {post_path}")
            return ExitCode.INPUT_INVALID
        text = post_path.read_text(encoding='utf-8')
    else:
        text = args.text

    analysis = None
    if args.analysis:
        try:
            analysis = json.loads(Path(args.analysis).read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as e:
            print_error(f"Cannot read analysis file: {e}")
            return ExitCode.INPUT_INVALID

    try:
        pack = _load_pack(args.pack)
    except PackLoaderError as e:
        return _report_pack_error(e)

    try:
        verdict = PolicyEngine(pack).evaluate(text, analysis=analysis)
    except PolicyGateError as e:
        print_error(str(e))
        return error_to_exit_code(e)

    if args.json:
        print(json_dumps(verdict.to_dict()))
    else:
        print_header("PolicyGate - Evaluate")
        print_verdict(verdict)

    return ExitCode.VIOLATION if verdict.violation else ExitCode.PASS


def cmd_batch(args):
    """Evaluate a JSON list of posts."""
    posts_path = Path(args.posts)
    if not posts_path.exists():
        print_error(f"Posts file not found: {posts_path}")
        return ExitCode.INPUT_INVALID

    try:
        posts = json.loads(posts_path.read_text(encoding='utf-8'))
    except json.JSONDecodeError as e:
        print_error(f"Invalid JSON: {e}")
        return ExitCode.INPUT_INVALID

    if not isinstance(posts, list):
        print_error("Posts file must contain a JSON list")
        return ExitCode.INPUT_INVALID

    try:
        pack = _load_pack(args.pack)
    except PackLoaderError as e:
        return _report_pack_error(e)

    try:
        report = run_batch(PolicyEngine(pack), posts, max_workers=args.workers)
    except PolicyGateError as e:
        print_error(str(e))
        return error_to_exit_code(e)

    if args.json:
        print(json_dumps(report.to_dict()))
    else:
        print_header("PolicyGate - Batch Analysis")
        for result in report.results:
            verdict = result.verdict
            marker = f"{Colors.RED}BOUNCE{Colors.END}" if verdict.violation else f"{Colors.GREEN}NONE{Colors.END}"
            print(f"  [{marker}] {result.post.post_id}: {verdict.reason}")
        print()
        print_kv("Total Posts", str(report.total_posts))
        print_kv("Violations", str(report.violations_found))
        print_kv("Violation Rate", f"{report.violation_rate:.1f}%")
        print_kv("Most Common Industry", report.most_common_industry or "None")
        if report.industry_breakdown:
            print(f"\n{Colors.BOLD}Industry Breakdown:{Colors.END}")
            for industry, count in report.industry_breakdown.items():
                print(f"  {industry}: {count} post(s)")

    return ExitCode.VIOLATION if report.violations_found else ExitCode.PASS


def cmd_validate_pack(args):
    """Validate a pack file."""
    print_header("PolicyGate - Validate Pack")

    pack_path = Path(args.pack)

    if not pack_path.exists():
        print_error(f"Pack file not found: {pack_path}")
        return ExitCode.INPUT_INVALID

    print_info(f"Validating: {pack_path}")

    try:
        pack = load_pack_yaml(str(pack_path))
    except PackLoaderError as e:
        return _report_pack_error(e)

    print_success("Pack is valid!")
    print()
    print_kv("Pack ID", pack.pack_id)
    print_kv("Version", pack.pack_version)
    print_kv("Pack Hash", pack.pack_hash[:32] + "...")
    print()
    print_kv("Industries", str(len(pack.taxonomies.industries)))
    print_kv("Label Entries", str(len(pack.labels.entries)))
    return ExitCode.PASS


def cmd_pack_info(args):
    """Show pack information."""
    print_header("PolicyGate - Pack Info")

    try:
        pack = _load_pack(args.pack)
    except PackLoaderError as e:
        return _report_pack_error(e)

    info = pack.to_dict()
    print_kv("Pack ID", pack.pack_id)
    print_kv("Name", pack.name)
    print_kv("Version", pack.pack_version)
    print()
    print_kv("Pack Hash", pack.pack_hash)

    print(f"\n{Colors.BOLD}Gate Phrases:{Colors.END}")
    for category, count in info["phrase_counts"].items():
        print_kv(category, str(count), indent=1)

    print(f"\n{Colors.BOLD}Industries ({info['industry_count']}):{Colors.END}")
    for taxonomy in pack.taxonomies.industries:
        labels = pack.labels.labels_for(taxonomy.name)
        print(f"  {taxonomy.name}: {len(taxonomy)} phrases, {len(labels)} labels")

    print(f"\n{Colors.BOLD}Confidence Weights:{Colors.END}")
    for name, weight in info["weights"].items():
        print_kv(name, f"{weight:.2f}", indent=1)

    return ExitCode.PASS


def cmd_diff_packs(args):
    """Compare two pack versions."""
    try:
        old_pack = load_pack_yaml(args.old)
        new_pack = load_pack_yaml(args.new)
    except PackLoaderError as e:
        return _report_pack_error(e)

    diff = diff_packs(old_pack, new_pack)
    if args.json:
        print(json_dumps(diff))
        return ExitCode.PASS

    print_header("PolicyGate - Pack Diff")
    print_kv("Versions", f"{diff['old_version']} -> {diff['new_version']}")
    for category in ("commission", "promotion", "disclosure"):
        changes = diff[category]
        if changes["added"] or changes["removed"]:
            print(f"\n{Colors.BOLD}{category}:{Colors.END}")
            for phrase in changes["added"]:
                print(f"  {Colors.GREEN}+ {phrase}{Colors.END}")
            for phrase in changes["removed"]:
                print(f"  {Colors.RED}- {phrase}{Colors.END}")

    industries = diff["industries"]
    for name in industries["added"]:
        print(f"{Colors.GREEN}+ industry {name}{Colors.END}")
    for name in industries["removed"]:
        print(f"{Colors.RED}- industry {name}{Colors.END}")
    for name, changes in industries["changed"].items():
        print_kv(name, f"+{len(changes['added'])} / -{len(changes['removed'])} phrases")
    return ExitCode.PASS


def cmd_init_pack(args):
    """Write the built-in pack to a YAML file."""
    out_path = Path(args.out)
    if out_path.exists() and not args.force:
        print_error(f"Refusing to overwrite {out_path} (use --force)")
        return ExitCode.INPUT_INVALID

    out_path.parent.mkdir(parents=True, exist_ok=True)
    dump_pack_yaml(default_pack_dict(), str(out_path))
    print_success(f"Wrote {out_path}")
    return ExitCode.PASS


# ============================================================================
# MAIN
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pg",
        description="PolicyGate CLI - paid partnership policy checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   PASS            No violation
  2   VIOLATION       Post(s) violate policy
  10  INPUT_INVALID   Invalid input files
  11  PACK_ERROR      Pack validation failed
  20  INTERNAL_ERROR  Unexpected error

Examples:
  pg evaluate --text "Use my referral code, visit our casino app"
  pg evaluate --file post.txt --pack packs/x_paid_partnership.yaml --json
  pg batch --posts posts.json
  pg validate-pack --pack packs/x_paid_partnership.yaml
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # evaluate
    eval_parser = subparsers.add_parser("evaluate", help="Evaluate a single post")
    source = eval_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", "-t", help="Post text")
    source.add_argument("--file", "-f", help="File containing the post text")
    eval_parser.add_argument("--pack", "-p", help="Pack YAML file (default: built-in pack)")
    eval_parser.add_argument("--analysis", "-a", help="JSON file with extra analysis evidence")
    eval_parser.add_argument("--json", action="store_true", help="Print the verdict as JSON")
    eval_parser.set_defaults(func=cmd_evaluate)

    # batch
    batch_parser = subparsers.add_parser("batch", help="Evaluate a JSON list of posts")
    batch_parser.add_argument("--posts", required=True,
                              help="JSON file: list of {text, url, author, post_id}")
    batch_parser.add_argument("--pack", "-p", help="Pack YAML file (default: built-in pack)")
    batch_parser.add_argument("--workers", "-w", type=int, default=None, help="Thread pool size")
    batch_parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    batch_parser.set_defaults(func=cmd_batch)

    # validate-pack
    val_pack_parser = subparsers.add_parser("validate-pack", help="Validate a pack file")
    val_pack_parser.add_argument("--pack", "-p", required=True, help="Pack YAML file")
    val_pack_parser.set_defaults(func=cmd_validate_pack)

    # pack-info
    info_parser = subparsers.add_parser("pack-info", help="Show pack information")
    info_parser.add_argument("--pack", "-p", help="Pack YAML file (default: built-in pack)")
    info_parser.set_defaults(func=cmd_pack_info)

    # diff-packs
    diff_parser = subparsers.add_parser("diff-packs", help="Compare two pack versions")
    diff_parser.add_argument("--old", required=True, help="Old pack YAML file")
    diff_parser.add_argument("--new", required=True, help="New pack YAML file")
    diff_parser.add_argument("--json", action="store_true", help="Print the diff as JSON")
    diff_parser.set_defaults(func=cmd_diff_packs)

    # init-pack
    init_parser = subparsers.add_parser("init-pack", help="Write the built-in pack as YAML")
    init_parser.add_argument("--out", "-o", required=True, help="Output YAML file")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")
    init_parser.set_defaults(func=cmd_init_pack)

    return parser


def main(argv=None):
    """Main entry point."""
    if not sys.stdout.isatty():
        Colors.disable()

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        return args.func(args)
    except Exception as e:
        error = wrap_internal_exception(e)
        print_error(f"Unexpected error: {error}")
        return error_to_exit_code(error)


if __name__ == "__main__":
    sys.exit(main())
