"""Command-line entry point: `python -m patscope`."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from patscope.chemistry import RDKIT_AVAILABLE, RDKitMoleculeMatcher
from patscope.claims import ClaimSet
from patscope.config import EngineConfig
from patscope.errors import MatcherError, ValidationError
from patscope.markush import CoverageAnalyzer, MarkushStructure

logger = logging.getLogger(__name__)


def _load_json(path: str):
    with open(path, "r") as f:
        return json.load(f)


def run_claims(args, config: EngineConfig) -> int:
    claim_set = ClaimSet.from_dict(_load_json(args.file), rules=config.claims)
    print(f"{len(claim_set)} claims, {len(claim_set.independent_claims())} independent")
    for claim in claim_set.independent_claims():
        tree = [c.number for c in claim_set.claim_tree(claim.number)]
        print(f"claim {claim.number} ({claim.category.value}): {tree}")
    return 0


def run_markush(args, config: EngineConfig) -> int:
    structure = MarkushStructure.from_dict(_load_json(args.file))
    print(f"{structure.name} (claim {structure.claim_number})")
    print(f"positions: {', '.join(p.symbol for p in structure.positions)}")
    print(f"total combinations: {structure.calculate_combinations()}")

    max_count = args.enumerate or config.enumeration.default_max_count
    for example in structure.enumerate_exemplary(max_count):
        print(f"  {example}")
    return 0


def run_coverage(args, config: EngineConfig) -> int:
    data = _load_json(args.structures)
    if isinstance(data, dict):
        data = data.get("structures", [data])
    structures = [MarkushStructure.from_dict(d) for d in data]
    molecules = [
        line.strip()
        for line in Path(args.molecules).read_text().splitlines()
        if line.strip()
    ]

    matcher = None
    if config.chemistry.use_rdkit and RDKIT_AVAILABLE:
        matcher = RDKitMoleculeMatcher()
    elif config.chemistry.use_rdkit:
        logger.warning("RDKit not available; matching against preferred examples only")

    report = CoverageAnalyzer(matcher=matcher, config=config.coverage).analyze(
        structures, molecules
    )
    print(json.dumps(report.to_dict(), indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Patent claim and Markush structure analysis")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to configuration file (default: $PATSCOPE_CONFIG or configs/default.yaml)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    claims_parser = subparsers.add_parser("claims", help="Validate a claim set JSON file")
    claims_parser.add_argument("file")
    claims_parser.set_defaults(handler=run_claims)

    markush_parser = subparsers.add_parser("markush", help="Analyse a Markush structure JSON file")
    markush_parser.add_argument("file")
    markush_parser.add_argument(
        "--enumerate",
        type=int,
        default=0,
        help="Number of exemplary compounds to print",
    )
    markush_parser.set_defaults(handler=run_markush)

    coverage_parser = subparsers.add_parser(
        "coverage", help="Score a molecule list against Markush structures"
    )
    coverage_parser.add_argument("structures", help="JSON file with one or more structures")
    coverage_parser.add_argument("molecules", help="Text file with one SMILES per line")
    coverage_parser.set_defaults(handler=run_coverage)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    config = EngineConfig.load(args.config)

    try:
        return args.handler(args, config)
    except (ValidationError, MatcherError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
