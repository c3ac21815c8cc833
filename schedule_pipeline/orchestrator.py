from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from .modules.exporter import (
    build_calendar_rows,
    build_pivot_rows,
    filter_series,
    load_series,
    write_rows,
)
from .modules.minimizer import Minimizer
from .pipelines.season_schedule.symbolic_parser import SeasonScheduleSymbolicParser


PIPELINE_REGISTRY: Dict[str, Dict[str, object]] = {
    "season_schedule": {
        "symbolic": SeasonScheduleSymbolicParser,
    },
}

# format -> (default file name, row builder)
EXPORT_FORMATS = {
    "csv": ("iracing_schedule_pivoted.csv", "pivot"),
    "calendar": ("iracing_schedule_calendar.csv", "calendar"),
}

SUMMARY_LABELS = [
    ("documents", "Documents processed"),
    ("pages", "Pages covered"),
    ("series", "Series parsed"),
    ("dropped", "Series dropped"),
    ("weeks", "Race weeks"),
    ("draft_series", "Draft series"),
    ("car_rotation_series", "Car rotation series"),
]

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_config(config_path: Path) -> dict:
    with config_path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def get_pipeline_config(config: dict, pipeline_name: str) -> dict:
    pipelines = config.get("pipelines") or {}
    pipeline_config = pipelines.get(pipeline_name)
    if not pipeline_config:
        raise ValueError(f"Pipeline '{pipeline_name}' not configured in config.yaml")
    if not pipeline_config.get("enabled", True):
        raise ValueError(f"Pipeline '{pipeline_name}' is disabled in configuration")
    return pipeline_config


def resolve_documents(
    parser: SeasonScheduleSymbolicParser, document_args: Optional[List[str]]
) -> Optional[List[Path]]:
    """Relative document names are looked up in the pipeline's source directory."""
    if not document_args:
        return None

    doc_paths: List[Path] = []
    for doc in document_args:
        candidate = Path(doc)
        if not candidate.is_absolute():
            candidate = parser.source_dir / candidate
        if not candidate.exists():
            raise FileNotFoundError(f"Document not found: {candidate}")
        doc_paths.append(candidate)
    return doc_paths


def resolve_export_inputs(
    root_dir: Path, pipeline_name: str, config: dict, input_args: Optional[List[str]]
) -> List[Path]:
    """Explicit inputs are relative to the working directory; the default is every parsed document."""
    if input_args:
        return [Path(arg) if Path(arg).is_absolute() else Path.cwd() / arg for arg in input_args]
    pipeline_config = get_pipeline_config(config, pipeline_name)
    parsed_dir = root_dir / pipeline_config.get("output_dir", "output/parsed")
    return sorted(parsed_dir.glob(f"*{SeasonScheduleSymbolicParser.output_suffix}"))


def run_symbolic_pipeline(
    root_dir: Path,
    pipeline_name: str,
    config: dict,
    document_args: Optional[List[str]] = None,
) -> List[Path]:
    pipeline_config = get_pipeline_config(config, pipeline_name)
    symbolic_cls = PIPELINE_REGISTRY[pipeline_name]["symbolic"]
    parser = symbolic_cls(root_dir, pipeline_config, config)
    return parser.run(resolve_documents(parser, document_args))


def build_minimizer(root_dir: Path, export_config: dict, minimize: Optional[bool]) -> Minimizer:
    active = export_config.get("minimize", False) if minimize is None else minimize
    rules_path = root_dir / export_config.get("replacements_path", "replacements.yaml")
    if rules_path.exists():
        return Minimizer.from_file(rules_path, active=active)
    if active:
        logging.warning("Replacement rules not found at %s; names left as parsed", rules_path)
    return Minimizer(active=False)


def run_export(
    root_dir: Path,
    pipeline_name: str,
    config: dict,
    input_args: Optional[List[str]] = None,
    export_format: str = "csv",
    license_levels: Optional[List[str]] = None,
    search: Optional[str] = None,
    minimize: Optional[bool] = None,
    output: Optional[Path] = None,
) -> List[Path]:
    export_config = config.get("export", {}) or {}

    inputs = resolve_export_inputs(root_dir, pipeline_name, config, input_args)
    if not inputs:
        logging.warning("No parsed documents to export")
        return []

    series = filter_series(load_series(inputs), license_levels, search)
    if not series:
        logging.warning(
            "No series left after filtering (license=%s, search=%r)", license_levels, search
        )
        return []

    minimizer = build_minimizer(root_dir, export_config, minimize)
    filename, layout = EXPORT_FORMATS[export_format]
    if layout == "pivot":
        rows = build_pivot_rows(series, minimizer, int(export_config.get("weeks", 12)))
    else:
        rows = build_calendar_rows(series, minimizer)

    if output is None:
        output = root_dir / export_config.get("output_dir", "output/export") / filename
    logging.info("Exporting %d series from %d document(s)", len(series), len(inputs))
    return [write_rows(rows, output)]


def summarize_symbolic_outputs(output_paths: List[Path]) -> Optional[dict]:
    if not output_paths:
        return None

    stats = {key: 0 for key, _ in SUMMARY_LABELS}
    for path in output_paths:
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logging.warning("Unable to load %s for summary: %s", path, exc)
            continue

        stats["documents"] += 1
        stats["pages"] += int(data.get("source", {}).get("page_count", 0))
        stats["dropped"] += int((data.get("quality") or {}).get("series_dropped", 0))

        for item in data.get("series") or []:
            stats["series"] += 1
            stats["weeks"] += len(item.get("schedules") or [])
            kind = item.get("series_kind")
            if kind == "draft":
                stats["draft_series"] += 1
            elif kind == "car_rotation":
                stats["car_rotation_series"] += 1

    return stats


def print_summary(summary: dict) -> None:
    print("\nSchedule extraction summary")
    for key, label in SUMMARY_LABELS:
        print(f" - {label}: {summary[key]}")


def configure_logging(config: dict, verbose: bool) -> None:
    log_config = config.get("logging", {}) or {}
    level = logging.getLevelName(str(log_config.get("level", "INFO")).upper())
    if verbose:
        level = logging.DEBUG
    elif not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=log_config.get("format", DEFAULT_LOG_FORMAT))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Season schedule PDF parser and exporter"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration YAML file (default: ./config.yaml, then the project root)",
    )
    parser.add_argument(
        "--pipeline",
        choices=list(PIPELINE_REGISTRY.keys()),
        default="season_schedule",
        help="Pipeline name to execute (default: season_schedule)",
    )
    parser.add_argument(
        "--stage",
        choices=["symbolic", "export"],
        default="symbolic",
        help="Parse PDFs to JSON (symbolic) or render parsed JSON as CSV (export)",
    )

    parse_group = parser.add_argument_group("symbolic stage")
    parse_group.add_argument(
        "--document",
        dest="documents",
        action="append",
        help="Schedule PDF to parse, relative to source_dir or absolute; repeatable",
    )

    export_group = parser.add_argument_group("export stage")
    export_group.add_argument(
        "--input",
        dest="inputs",
        action="append",
        help="Parsed JSON file to export; repeatable (default: every *.parsed.json in output_dir)",
    )
    export_group.add_argument(
        "--format",
        choices=list(EXPORT_FORMATS.keys()),
        default="csv",
        help="Pivoted series CSV or week-by-week calendar table",
    )
    export_group.add_argument(
        "--license",
        dest="licenses",
        action="append",
        help="Keep series with this license (Rookie, D, C, B, A, Unknown); repeatable",
    )
    export_group.add_argument("--search", default=None, help="Keep series whose name contains this text")
    export_group.add_argument(
        "--minimize",
        action="store_true",
        default=None,
        help="Shorten track, layout and car names with the replacement rules",
    )
    export_group.add_argument("--output", type=Path, default=None, help="Export file path")

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    return parser.parse_args(argv)


def resolve_config_path(config_arg: Optional[Path]) -> Path:
    if config_arg is None:
        local = Path.cwd() / "config.yaml"
        if local.exists():
            return local
        return Path(__file__).resolve().parent.parent / "config.yaml"
    if config_arg.is_absolute():
        return config_arg
    return (Path.cwd() / config_arg).resolve()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config_path = resolve_config_path(args.config)
    if not config_path.exists():
        logging.basicConfig(level=logging.ERROR)
        logging.error("Configuration file not found: %s", config_path)
        return 1

    config = load_config(config_path)
    configure_logging(config, args.verbose)

    root_dir = config_path.parent
    try:
        if args.stage == "symbolic":
            outputs = run_symbolic_pipeline(
                root_dir=root_dir,
                pipeline_name=args.pipeline,
                config=config,
                document_args=args.documents,
            )
        elif args.stage == "export":
            outputs = run_export(
                root_dir=root_dir,
                pipeline_name=args.pipeline,
                config=config,
                input_args=args.inputs,
                export_format=args.format,
                license_levels=args.licenses,
                search=args.search,
                minimize=args.minimize,
                output=args.output,
            )
        else:
            raise ValueError(f"Unsupported stage: {args.stage}")
    except Exception as exc:
        logging.exception("Pipeline execution failed: %s", exc)
        return 2

    if not outputs:
        logging.warning("No output generated for pipeline '%s'", args.pipeline)
        return 0

    logging.info("Generated %d file(s):", len(outputs))
    for path in outputs:
        logging.info(" - %s", path)

    if args.stage == "symbolic":
        summary = summarize_symbolic_outputs(outputs)
        if summary:
            print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
